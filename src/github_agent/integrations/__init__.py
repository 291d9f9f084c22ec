"""Clients for external services (GitHub, Vercel, Slack)."""
