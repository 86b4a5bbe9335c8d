"""Errors raised by the planning services."""


class AnchorMissingError(ValueError):
    """A required anchor (usually the hotel) has no usable coordinates."""
