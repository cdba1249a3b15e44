"""propkit — author, simulate and encode governance proposals."""

__version__ = "0.1.0"
