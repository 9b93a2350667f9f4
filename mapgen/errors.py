# mapgen/errors.py
"""Exceptions raised by the map generation pipeline.

Configuration and ordering errors are programming mistakes in how a chain was
assembled and are never retried.  ``GenerationFailedError`` means a correctly
assembled chain could not produce a usable map.
"""


class MapGenError(Exception):
    """Base class for all map generation failures."""


class BuilderConfigurationError(MapGenError):
    """The builder chain was assembled incorrectly."""


class BuilderOrderingError(MapGenError):
    """A meta-builder ran before the data it depends on was produced."""


class GenerationFailedError(MapGenError):
    """A builder could not produce a valid map."""


class WfcContradictionError(GenerationFailedError):
    """Wave function collapse kept contradicting itself past its retry budget."""

    def __init__(self, attempts: int):
        super().__init__(f"Wave function collapse failed after {attempts} attempts")
        self.attempts = attempts


class EmptyTableError(MapGenError, ValueError):
    """A random table with zero total weight was asked for a draw."""


class RexFormatError(MapGenError, ValueError):
    """A REXPaint image could not be decoded."""
