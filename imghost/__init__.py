"""Image hosting on top of a GitHub repository."""

__version__ = "0.1.0"
