"""EditScope: edit targeting and context assembly for AI code editing."""

__version__ = "0.1.0"
