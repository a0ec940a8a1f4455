"""inkwell: import, permalink and decorate blog entries."""

__version__ = "0.1.0"
