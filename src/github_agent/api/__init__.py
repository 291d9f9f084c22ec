"""HTTP API: dashboard routes under /api and the public API under /api/v1."""
