"""Uniform record access over relational, delimited text and XML storage."""

__version__ = "0.1.0"
