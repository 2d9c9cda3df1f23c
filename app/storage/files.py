"""Filesystem helpers shared by the persistent store adapters."""

import contextlib
import os
import tempfile
from pathlib import Path


def atomic_write_text(path: Path, text: str) -> None:
    """Replace ``path`` with ``text`` so readers never see a partial file.

    The content goes to a temp file in the same directory, is fsynced, then
    renamed over the target.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(text)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        with contextlib.suppress(OSError):
            os.unlink(tmp_name)
        raise


def quarantine(path: Path) -> Path | None:
    """Move an unreadable file aside as ``<name>.corrupt``; returns the new path."""
    target = path.with_name(f"{path.name}.corrupt")
    try:
        os.replace(path, target)
    except OSError:
        return None
    return target
