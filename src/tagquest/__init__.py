"""Tag-driven narrative adventure engine."""

__version__ = "0.1.0"
