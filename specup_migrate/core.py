from __future__ import annotations

import time
from collections.abc import Mapping, Sequence
from dataclasses import fields, is_dataclass, replace
from functools import reduce
from pathlib import Path
from typing import Any

from specup_migrate.config import PipelineSpec
from specup_migrate.framework import Artifact, Pass, registry

_REQUIRED_STEP = "definition_extract"


def _pass_steps(spec: PipelineSpec) -> list[str]:
    """Return pipeline steps after rejecting unregistered ones."""
    regs = registry()
    unknown = [s for s in spec.pipeline if s not in regs]
    if unknown:
        raise KeyError(f"unknown steps: {unknown}")
    return list(spec.pipeline)


def _index(steps: Sequence[str], name: str) -> int | None:
    return next((i for i, s in enumerate(steps) if s == name), None)


def _ensure_order(steps: Sequence[str], before: str, after: str) -> None:
    """Raise when ``before`` is present but runs after ``after``."""
    first, second = _index(steps, before), _index(steps, after)
    if first is not None and second is not None and first > second:
        raise ValueError(f"{after} requires {before} to run beforehand")


def _enforce_invariants(spec: PipelineSpec) -> list[str]:
    """Return validated steps while enforcing presence and order invariants."""
    steps = _pass_steps(spec)
    if _REQUIRED_STEP not in steps:
        raise ValueError(f"pipeline must include {_REQUIRED_STEP}")
    _ensure_order(steps, "glossary_normalize", "definition_extract")
    _ensure_order(steps, "definition_extract", "term_files_plan")
    return steps


def _prepare_pass(pass_obj: Pass, overrides: Mapping[str, Any]) -> Pass:
    """Return a copy of ``pass_obj`` with dataclass fields taken from ``overrides``."""
    if not overrides or not is_dataclass(pass_obj):
        return pass_obj
    names = {f.name for f in fields(pass_obj) if f.init}
    updates = {k: v for k, v in overrides.items() if k in names}
    if not updates:
        return pass_obj
    return replace(pass_obj, **updates)


def configure_pass(pass_obj: Pass, opts: Mapping[str, Any]) -> Pass:
    """Return a new pass with ``opts`` merged without mutating ``pass_obj``."""
    return _prepare_pass(pass_obj, opts)


def _time_step(
    acc: tuple[Artifact, dict[str, float]],
    p: Pass,
) -> tuple[Artifact, dict[str, float]]:
    """Apply ``p`` to ``acc`` while recording its execution time."""
    a, timings = acc
    t0 = time.perf_counter()
    a = p(a)
    return a, {**timings, p.name: time.perf_counter() - t0}


def _run_passes(spec: PipelineSpec, a: Artifact) -> tuple[Artifact, dict[str, float]]:
    """Run pipeline passes declared in ``spec`` capturing per-pass timings.

    ``spec.marker`` reaches every pass with a ``marker`` field.
    """
    passes = [
        configure_pass(registry()[name], {**spec.options.get(name, {}), "marker": spec.marker})
        for name in spec.pipeline
    ]
    return reduce(_time_step, passes, (a, {}))


def glossary_artifact(text: str, source_path: str | Path) -> Artifact:
    """Wrap glossary ``text`` read from ``source_path`` for the pass pipeline."""
    return Artifact(
        payload={"type": "glossary", "source_path": str(source_path), "text": text},
        meta={"metrics": {}, "warnings": [], "input": str(source_path)},
    )


def run_analysis(
    text: str, source_path: str | Path, spec: PipelineSpec
) -> tuple[Artifact, dict[str, float]]:
    """Run the declared analysis passes over ``text`` without touching disk."""
    steps = _enforce_invariants(spec)
    run_spec = spec.model_copy(update={"pipeline": steps})
    return _run_passes(run_spec, glossary_artifact(text, source_path))


def run_inspect() -> dict[str, dict[str, str]]:
    """Return a lightweight view of the registry for CLI/tests."""
    return {
        name: {"input": str(p.input_type), "output": str(p.output_type)}
        for name, p in registry().items()
    }
