"""Atomic file writes shared by the state store and the config loader."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path


def atomic_write_text(path: Path, content: str) -> None:
    """Write ``content`` to ``path`` via a temp file in the same directory + rename.

    Readers never observe a partially written file. The caller is responsible
    for serializing concurrent writers (see StateStore.transaction).

    Raises:
        OSError: If the directory cannot be created or the write fails.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, temp_path_str = tempfile.mkstemp(
        prefix=f".{path.stem}-", suffix=".tmp", dir=str(path.parent)
    )
    temp_path = Path(temp_path_str)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        temp_path.replace(path)
    except Exception:
        temp_path.unlink(missing_ok=True)
        raise
