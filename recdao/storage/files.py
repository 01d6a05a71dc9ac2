"""Atomic whole-file rewrites.

Text is written to a temporary file in the target's directory, then
renamed over the target, so a failed write never leaves a truncated file.
"""

import logging
import os
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)


def atomic_write_text(path: Path, text: str, encoding: str = "utf-8") -> None:
    """Replace the content of ``path`` with ``text`` atomically."""
    path = Path(path)
    temp_fd, temp_path = tempfile.mkstemp(
        dir=path.parent, prefix=f".{path.name}.", suffix=".tmp"
    )
    try:
        with open(temp_fd, "w", encoding=encoding, newline="") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())

        Path(temp_path).replace(path)
        logger.debug("Rewrote %s (%d bytes)", path, len(text))
    except Exception:
        Path(temp_path).unlink(missing_ok=True)
        raise


def atomic_write_bytes(path: Path, data: bytes) -> None:
    """Replace the content of ``path`` with ``data`` atomically."""
    path = Path(path)
    temp_fd, temp_path = tempfile.mkstemp(
        dir=path.parent, prefix=f".{path.name}.", suffix=".tmp"
    )
    try:
        with open(temp_fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())

        Path(temp_path).replace(path)
        logger.debug("Rewrote %s (%d bytes)", path, len(data))
    except Exception:
        Path(temp_path).unlink(missing_ok=True)
        raise
