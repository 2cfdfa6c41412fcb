"""API module initialization."""

from . import people, references, settings

__all__ = ["people", "references", "settings"]
