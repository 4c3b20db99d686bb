"""Exceptions raised by the analysis core."""


class InvalidInput(ValueError):
    """Structurally invalid input (bad shape, dtype, dimensions or values)."""


class EmptyImage(InvalidInput):
    """Image or mask with zero width or height."""
