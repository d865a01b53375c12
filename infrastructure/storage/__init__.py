"""Storage infrastructure package."""

from .file_storage import FileStorage

__all__ = ["FileStorage"]
