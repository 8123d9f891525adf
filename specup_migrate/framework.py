"""Minimal pass framework for the glossary analysis pipeline.

A pass is any callable object exposing ``name``, ``input_type`` and
``output_type`` that maps one ``Artifact`` to the next. Passes never touch
the filesystem; reading and writing is left to ``specup_migrate.adapters``.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Mapping, Protocol, Type, runtime_checkable


@dataclass(frozen=True)
class Artifact:
    """Glossary payload plus run metadata (``metrics``, ``warnings``)."""

    payload: Any
    meta: Dict[str, Any] | None = None


@runtime_checkable
class Pass(Protocol):
    name: str
    input_type: Type
    output_type: Type

    def __call__(self, a: Artifact) -> Artifact:
        """Execute the pass."""
        ...


_REGISTRY: Mapping[str, Pass] = MappingProxyType({})


def register(p: Pass) -> Pass:
    """Register ``p`` under its name.

    Re-registering the same object is a no-op; a different pass reusing a
    taken name is rejected.
    """
    global _REGISTRY
    existing = _REGISTRY.get(p.name)
    if existing is not None and existing is not p:
        raise ValueError(f"pass {p.name!r} is already registered")
    _REGISTRY = MappingProxyType({**dict(_REGISTRY), p.name: p})
    return p


def registry() -> Dict[str, Pass]:
    """Shallow copy of the registry for inspection/testing."""
    return dict(_REGISTRY)


def with_metrics(
    meta: Mapping[str, Any] | None, name: str, metrics: Mapping[str, Any]
) -> Dict[str, Any]:
    """Return a copy of ``meta`` with ``metrics`` recorded under ``name``."""
    base = dict(meta or {})
    return {**base, "metrics": {**(base.get("metrics") or {}), name: dict(metrics)}}
