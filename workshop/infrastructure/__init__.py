"""Infrastructure layer implementations."""

from workshop.infrastructure import storage

__all__ = ["storage"]
