from __future__ import annotations

import os
import pathlib
import warnings
from functools import reduce
from importlib import import_module
from typing import Any, Dict, Iterable, Mapping, List, cast

from pydantic import BaseModel, Field, model_validator

yaml = cast(Any, import_module("yaml"))

DEFAULT_MARKER = "[[def:"
DEFAULT_PIPELINE: tuple[str, ...] = (
    "glossary_normalize",
    "definition_extract",
    "term_files_plan",
)
CONFIG_FILENAME = "splitter.yaml"
_MARKER_STEPS = ("glossary_normalize", "definition_extract")


class PipelineSpec(BaseModel):
    """Declarative description of the glossary analysis passes.

    ``marker`` is handed to every pass that takes one. It may be set at the
    top level or as a ``marker`` option of a marker-aware step; conflicting
    values are rejected.
    """

    pipeline: List[str] = Field(default_factory=lambda: list(DEFAULT_PIPELINE))
    options: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    marker: str = DEFAULT_MARKER

    @model_validator(mode="after")
    def _resolve_marker(self) -> "PipelineSpec":
        declared = {
            f"{step}.marker": self.options[step]["marker"]
            for step in _MARKER_STEPS
            if "marker" in self.options.get(step, {})
        }
        if "marker" in self.model_fields_set:
            declared = {"marker": self.marker, **declared}
        invalid = [k for k, v in declared.items() if not isinstance(v, str) or not v]
        if invalid:
            raise ValueError(
                f"definition marker must be a non-empty string: {', '.join(invalid)}"
            )
        values = set(declared.values())
        if len(values) > 1:
            found = ", ".join(f"{k}={v!r}" for k, v in declared.items())
            raise ValueError(f"conflicting definition markers: {found}")
        if values:
            self.marker = values.pop()
        return self


def _read_yaml(path: str | os.PathLike | None) -> Dict[str, Any]:
    """Return a dict from YAML or {} if path is None/missing/empty."""
    if not path:
        return {}
    p = pathlib.Path(path)
    if not p.exists():
        return {}
    data = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise TypeError(f"{p.name} must contain a top-level mapping")
    return data


def _env_overrides(steps: Iterable[str]) -> Dict[str, Dict[str, Any]]:
    """
    Map STEP__key=value -> options[step][key]=value (step/key lower-cased).

    Only variables naming a known step are considered. Values are
    YAML-coerced so 'true', '42' etc. become bool/int.
    """
    known = set(steps)
    out: Dict[str, Dict[str, Any]] = {}
    for k, v in os.environ.items():
        if "__" not in k:
            continue
        step, key = k.lower().split("__", 1)
        if step not in known:
            continue
        try:
            val = yaml.safe_load(v)
        except yaml.YAMLError:
            val = v
        out.setdefault(step, {})[key] = val
    return out


def _merge_options(
    base: Dict[str, Dict[str, Any]], override: Dict[str, Dict[str, Any]]
) -> Dict[str, Dict[str, Any]]:
    """Shallow-merge per-step options; override wins."""
    sources = set(base) | set(override)
    return {s: {**base.get(s, {}), **override.get(s, {})} for s in sources}


def _warn_unknown_options(pipeline: Iterable[str], opts: Mapping[str, Any]) -> None:
    """Emit a warning when options name steps absent from the pipeline."""

    steps = set(pipeline)
    unknown = [step for step in opts if step and step not in steps]
    if unknown:
        warnings.warn(
            f"Unknown pipeline options: {', '.join(sorted(unknown))}",
            stacklevel=2,
        )


def _without_marker(opts: Dict[str, Dict[str, Any]]) -> Dict[str, Dict[str, Any]]:
    return {s: {k: v for k, v in o.items() if k != "marker"} for s, o in opts.items()}


def load_spec(
    path: str | os.PathLike | None = CONFIG_FILENAME,
    overrides: Dict[str, Dict[str, Any]] | None = None,
    marker: str | None = None,
) -> PipelineSpec:
    """Load YAML + env/CLI overrides into a validated PipelineSpec.

    A ``marker`` argument replaces every marker found in the file or the
    environment.
    """
    data = _read_yaml(path)
    pipeline = data.get("pipeline") or list(DEFAULT_PIPELINE)
    opts = data.get("options") or {}
    sources: Iterable[Dict[str, Dict[str, Any]]] = (
        d for d in (opts, _env_overrides(pipeline), overrides) if d
    )
    acc: Dict[str, Dict[str, Any]] = {}
    merged = reduce(_merge_options, sources, acc)

    _warn_unknown_options(pipeline, merged)
    if marker:
        data = {**data, "marker": marker}
        merged = _without_marker(merged)
    return PipelineSpec.model_validate({**data, "pipeline": pipeline, "options": merged})
