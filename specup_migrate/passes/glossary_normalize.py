"""Glossary normalization pass.

Computes the normalized layout of a ``glossary`` payload: every marker is
surrounded by blank lines and every other non-blank line carries the ``~ ``
prefix. The result is stored as ``normalized_text`` next to the untouched
``text``, which the extraction pass keeps reading. The pass never touches the
filesystem; persisting the rewrite is the job of
``specup_migrate.adapters.io_glossary``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict

from specup_migrate.config import DEFAULT_MARKER
from specup_migrate.framework import Artifact, register, with_metrics
from specup_migrate.glossary import normalize_glossary


def _metrics(before: str, after: str) -> Dict[str, int]:
    return {
        "lines_before": before.count("\n") + 1,
        "lines_after": after.count("\n") + 1,
        "changed": int(before != after),
    }


@dataclass
class _GlossaryNormalizePass:
    name: str = field(default="glossary_normalize", init=False)
    input_type: type = field(default=dict, init=False)  # {"type": "glossary"}
    output_type: type = field(default=dict, init=False)
    marker: str = DEFAULT_MARKER

    def __call__(self, a: Artifact) -> Artifact:
        doc = a.payload
        if not isinstance(doc, dict) or doc.get("type") != "glossary":
            return a
        text = doc.get("text", "")
        normalized = normalize_glossary(text, self.marker)
        meta = with_metrics(a.meta, self.name, _metrics(text, normalized))
        return Artifact(payload={**doc, "normalized_text": normalized}, meta=meta)


glossary_normalize = register(_GlossaryNormalizePass())
