"""Definition extraction pass.

Turns a ``glossary`` payload into a ``definitions`` payload holding the
introduction segment and one ``TermDefinition`` per marker line.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from specup_migrate.config import DEFAULT_MARKER
from specup_migrate.framework import Artifact, register, with_metrics
from specup_migrate.glossary import parse_definitions


@dataclass
class _DefinitionExtractPass:
    name: str = field(default="definition_extract", init=False)
    input_type: type = field(default=dict, init=False)  # {"type": "glossary"}
    output_type: type = field(default=dict, init=False)  # {"type": "definitions"}
    marker: str = DEFAULT_MARKER

    def __call__(self, a: Artifact) -> Artifact:
        doc = a.payload
        if not isinstance(doc, dict) or doc.get("type") != "glossary":
            return a
        parsed = parse_definitions(doc.get("text", ""), self.marker)
        meta = with_metrics(
            a.meta,
            self.name,
            {"definitions": len(parsed.definitions), "intro_chars": len(parsed.intro)},
        )
        return Artifact(
            payload={
                **doc,
                "type": "definitions",
                "intro": parsed.intro,
                "definitions": list(parsed.definitions),
            },
            meta=meta,
        )


definition_extract = register(_DefinitionExtractPass())
