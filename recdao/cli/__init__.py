"""Command-line interface for browsing and editing record storage.

Built with Click and Rich.
"""

from recdao.cli.main import cli

__all__ = ["cli"]
