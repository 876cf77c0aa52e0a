"""School gradebook backend: grade compilation, publication and archive."""

__version__ = "1.0.0"
