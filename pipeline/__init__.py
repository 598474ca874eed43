"""Agent jar assembly for generated runtime monitors."""

__version__ = "0.1.0"
