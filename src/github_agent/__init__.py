"""GitHub Agent: AI assistant for your GitHub repositories."""

__version__ = "0.1.0"
