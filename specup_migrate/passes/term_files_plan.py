"""Term file planning pass.

Maps every extracted definition to an output file name and content. Two
definitions that derive the same name are disambiguated with a numeric
suffix (``term-2.md``) and reported in ``meta["warnings"]``; with
``collision: error`` a ``DuplicateTermError`` is raised instead.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import reduce
from typing import Any, Dict, Iterable, List, Tuple

from specup_migrate.errors import DuplicateTermError
from specup_migrate.framework import Artifact, register, with_metrics
from specup_migrate.glossary import TermDefinition, term_filename

PlannedFile = Dict[str, Any]

_POLICIES = ("suffix", "error")


def _unique_stem(stem: str, taken: frozenset[str]) -> str:
    if stem not in taken:
        return stem
    return next(
        candidate
        for candidate in (f"{stem}-{n}" for n in range(2, len(taken) + 3))
        if candidate not in taken
    )


def _plan(
    definitions: Iterable[TermDefinition], policy: str
) -> Tuple[List[PlannedFile], List[str]]:
    def step(
        state: Tuple[frozenset[str], List[PlannedFile], List[str]],
        definition: TermDefinition,
    ) -> Tuple[frozenset[str], List[PlannedFile], List[str]]:
        taken, files, warnings = state
        stem = term_filename(definition.header)
        unique = _unique_stem(stem, taken)
        if unique != stem:
            if policy == "error":
                raise DuplicateTermError(
                    f"'{definition.header}' derives the existing file name '{stem}.md'",
                    definition.line,
                )
            warnings = [
                *warnings,
                f"'{definition.header}' (line {definition.line}) collides with "
                f"'{stem}.md'; writing '{unique}.md' instead",
            ]
        planned = {
            "name": f"{unique}.md",
            "header": definition.header,
            "line": definition.line,
            "content": definition.text,
        }
        return taken | {unique}, [*files, planned], warnings

    initial: Tuple[frozenset[str], List[PlannedFile], List[str]] = (frozenset(), [], [])
    _, files, warnings = reduce(step, definitions, initial)
    return files, warnings


@dataclass
class _TermFilesPlanPass:
    name: str = field(default="term_files_plan", init=False)
    input_type: type = field(default=dict, init=False)  # {"type": "definitions"}
    output_type: type = field(default=dict, init=False)  # {"type": "term_files"}
    collision: str = "suffix"

    def __post_init__(self) -> None:
        if self.collision not in _POLICIES:
            raise ValueError(
                f"collision must be one of {', '.join(_POLICIES)}, got {self.collision!r}"
            )

    def __call__(self, a: Artifact) -> Artifact:
        doc = a.payload
        if not isinstance(doc, dict) or doc.get("type") != "definitions":
            return a
        files, warnings = _plan(doc.get("definitions", []), self.collision)
        meta = with_metrics(
            a.meta, self.name, {"files": len(files), "collisions": len(warnings)}
        )
        meta["warnings"] = [*(meta.get("warnings") or []), *warnings]
        return Artifact(payload={**doc, "type": "term_files", "files": files}, meta=meta)


term_files_plan = register(_TermFilesPlanPass())
