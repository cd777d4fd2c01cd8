"""Atomic file replacement for small state files."""

from __future__ import annotations

import os
import tempfile
from contextlib import contextmanager
from collections.abc import Iterator
from pathlib import Path
from typing import IO


@contextmanager
def atomic_write(filepath: Path, mode: str = "w") -> Iterator[IO]:
    """Write to a temp file next to *filepath*, then rename it into place.

    Readers only ever see the old content or the complete new content.
    """
    folder = filepath.parent
    folder.mkdir(parents=True, exist_ok=True)
    fd, temp_path = tempfile.mkstemp(dir=folder, prefix=f".{filepath.name}.", text="b" not in mode)
    try:
        with os.fdopen(fd, mode, encoding=None if "b" in mode else "utf-8") as f:
            yield f
            f.flush()
            os.fsync(f.fileno())
        os.replace(temp_path, filepath)
    except BaseException:
        if os.path.exists(temp_path):
            os.remove(temp_path)
        raise


def write_text_atomic(filepath: Path, text: str) -> None:
    with atomic_write(filepath) as f:
        f.write(text)
