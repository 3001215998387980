"""Event-driven S3 thumbnail generation."""

__version__ = "0.1.0"
