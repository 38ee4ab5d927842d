"""RAI - chat assistant backend proxying to AI providers."""

__version__ = "0.1.0"
