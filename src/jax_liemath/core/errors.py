"""Exceptions raised by JAX Lie Math."""


class DimensionError(ValueError):
    """An input vector or matrix does not have the shape an operation requires."""
