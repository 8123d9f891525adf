"""Exception hierarchy for the glossary splitter.

Library functions raise these; ``specup_migrate.splitter`` converts them into
an explicit ``SplitResult`` at the orchestration boundary.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:  # pragma: no cover - typing only
    from specup_migrate.preconditions import SplitConditions


class SplitterError(Exception):
    """Base class for every error raised by ``specup_migrate``."""


class ConfigurationError(SplitterError, ValueError):
    """The project configuration cannot be used to plan a split."""


class ManifestError(ConfigurationError):
    """``specs.json`` is missing, unreadable or structurally invalid."""


class PreconditionError(SplitterError):
    """Raised when the safety checks reject a split before any mutation."""

    def __init__(self, conditions: SplitConditions) -> None:
        self.conditions = conditions
        super().__init__(", ".join(conditions.reasons) or "preconditions not met")


class DefinitionParseError(SplitterError, ValueError):
    """The glossary text cannot be partitioned into definitions."""

    def __init__(self, message: str, line: int) -> None:
        self.line = line
        super().__init__(f"line {line}: {message}")


class MalformedDefinitionError(DefinitionParseError):
    """A marker line is not closed with ``]]``."""


class EmptyHeaderError(DefinitionParseError):
    """A marker line carries no term name."""


class SplitIOError(SplitterError, OSError):
    """Filesystem failure after mutation started.

    ``created`` lists the files that were written before the failure; they
    are left in place.
    """

    def __init__(
        self,
        path: str | Path,
        phase: str,
        cause: OSError,
        created: Sequence[str] = (),
    ) -> None:
        self.path = str(path)
        self.phase = phase
        self.created = list(created)
        super().__init__(f"{phase} failed for {self.path}: {cause.strerror or cause}")


class DuplicateTermError(DefinitionParseError):
    """Two definitions derive the same file name and suffixing is disabled."""
