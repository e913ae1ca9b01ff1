"""Profile avatar storage and resolution service."""

__version__ = "0.1.0"
