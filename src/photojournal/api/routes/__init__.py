"""API route modules."""

from photojournal.api.routes import health, images

__all__ = ["health", "images"]
