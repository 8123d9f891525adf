from __future__ import annotations

import sys
from pathlib import Path
from typing import Callable

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from tests.utils.project import write_project  # noqa: E402


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """A project whose glossary holds the four sample definitions."""
    return write_project(tmp_path)


@pytest.fixture
def make_project(tmp_path: Path) -> Callable[..., Path]:
    return lambda glossary, **spec: write_project(tmp_path, glossary, **spec)
