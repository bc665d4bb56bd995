"""Custom exceptions for world map generation."""

from typing import Optional


class WorldGenError(Exception):
    """Base exception for world generation errors."""

    pass


class ConfigurationError(WorldGenError, ValueError):
    """Raised when a generation configuration is invalid.

    Attributes:
        field: Dotted path of the offending field, e.g. ``terrain.ocean_percentage``
    """

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class GenerationCancelledError(WorldGenError):
    """Raised when generation is cancelled between pipeline phases."""

    def __init__(self, phase: str):
        super().__init__(f"Generation cancelled before phase '{phase}'")
        self.phase = phase
