"""
Error types raised by the color extraction pipeline.

Degenerate inputs (transparent images, empty peaks) are not errors; they
produce empty results.
"""


class InputShapeError(ValueError):
    """Pixel buffer does not match the declared width and height."""


class ConfigRangeError(ValueError):
    """An option is outside its documented domain."""
