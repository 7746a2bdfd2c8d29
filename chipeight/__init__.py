"""A CHIP-8 interpreter (``cpu``) with a pygame window front end (``app``)."""

__version__ = "1.0.0"
__all__ = ["app", "cpu"]