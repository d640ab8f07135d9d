"""Real-time planning poker server."""

__version__ = "1.0.0"
