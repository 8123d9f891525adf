"""Text file helpers shared by the adapters.

Files are read and written with ``newline=""`` so line endings survive a
round trip byte for byte.
"""

from __future__ import annotations

import os
from pathlib import Path


def read_text(path: str | Path) -> str:
    with Path(path).open("r", encoding="utf-8", newline="") as f:
        return f.read()


def write_text(path: str | Path, text: str) -> None:
    """Write ``text`` to ``path``, creating parent directories."""
    path_obj = Path(path)
    path_obj.parent.mkdir(parents=True, exist_ok=True)
    with path_obj.open("w", encoding="utf-8", newline="") as f:
        f.write(text)


def atomic_write_text(path: str | Path, text: str) -> None:
    """Replace ``path`` with ``text``; the file is either fully rewritten or untouched."""
    path_obj = Path(path)
    tmp = path_obj.with_name(f".{path_obj.name}.tmp")
    try:
        write_text(tmp, text)
        os.replace(tmp, path_obj)
    finally:
        tmp.unlink(missing_ok=True)
