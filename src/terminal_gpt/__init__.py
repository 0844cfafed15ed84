"""Terminal chat client for OpenAI-compatible streaming endpoints."""

__version__ = "0.1.0"
