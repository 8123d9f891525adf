"""
Pure text operations on glossary documents.

A glossary document is plain markdown where every term definition starts on
its own line with a marker (``[[def: Term, alias]]`` by default). Everything
that is not a marker line is treated as opaque text.

- ``normalize_glossary`` enforces the blank-line and ``~ `` prefix layout.
- ``parse_definitions`` walks the marker lines once and returns the
  introduction plus one ``TermDefinition`` per marker.
- ``term_filename`` derives the file name for a header.
- ``has_definition_marker`` tells whether a document holds any definition.
- ``iter_definition_blocks`` finds the compact ``marker + ~lines`` blocks
  used by the multi-file extraction and iref conversion.

Functions are pure (no side effects) except for logging.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Iterator, List, Tuple

from specup_migrate.config import DEFAULT_MARKER
from specup_migrate.errors import EmptyHeaderError, MalformedDefinitionError

logger = logging.getLogger(__name__)

CONTINUATION = "~"
_CONTINUATION_PREFIX = f"{CONTINUATION} "


@dataclass(frozen=True)
class TermDefinition:
    """One definition segment, from its marker up to the next marker or EOF."""

    header: str
    text: str
    line: int

    @property
    def term(self) -> str:
        """Canonical term name (text before the first comma)."""
        return self.header.split(",", 1)[0].strip()

    @property
    def aliases(self) -> Tuple[str, ...]:
        return tuple(a.strip() for a in self.header.split(",")[1:] if a.strip())

    @property
    def body(self) -> str:
        """Segment text after the marker line."""
        _, _, rest = self.text.partition("\n")
        return rest


@dataclass(frozen=True)
class ParsedGlossary:
    intro: str
    definitions: Tuple[TermDefinition, ...]


@dataclass(frozen=True)
class DefinitionBlock:
    """A marker line plus its ``~`` continuation lines, located by offsets."""

    start: int
    end: int
    text: str
    header: str

    @property
    def term(self) -> str:
        return self.header.split(",", 1)[0].strip()


@lru_cache(maxsize=None)
def _marker_line_re(marker: str) -> re.Pattern[str]:
    return re.compile(rf"^{re.escape(marker)}", re.MULTILINE)


@lru_cache(maxsize=None)
def _header_re(marker: str) -> re.Pattern[str]:
    return re.compile(rf"{re.escape(marker)}[ \t]?(?P<header>.*?)\]\]")


def _is_blank(line: str) -> bool:
    return not line.strip()


def _has_continuation(line: str) -> bool:
    return line.lstrip().startswith(CONTINUATION)


def _normalized_line(line: str, marker: str) -> str:
    if line.startswith(marker) or _is_blank(line) or _has_continuation(line):
        return line
    return f"{_CONTINUATION_PREFIX}{line}"


def _needs_blank_before(prev: str | None, line: str, marker: str) -> bool:
    """Return True when a blank line must separate ``prev`` and ``line``."""
    if prev is None or _is_blank(prev):
        return False
    if prev.startswith(marker):
        return not _is_blank(line)
    return line.startswith(marker)


def normalize_glossary(text: str, marker: str = DEFAULT_MARKER) -> str:
    """Return ``text`` with the layout the definition extractor expects.

    A blank line is inserted after a marker line when the next line is not
    blank, and before a marker line that follows a non-blank line. Every
    other non-blank line gets the ``~ `` continuation prefix unless it
    already starts with ``~``. The transformation is idempotent.
    """
    lines = text.split("\n")
    out: List[str] = []
    prev: str | None = None
    for line in lines:
        if _needs_blank_before(prev, line, marker):
            out.append("")
        out.append(_normalized_line(line, marker))
        prev = line
    result = "\n".join(out)
    logger.debug(
        "normalize_glossary: %d lines in, %d lines out", len(lines), len(out)
    )
    return result


def has_definition_marker(text: str, marker: str = DEFAULT_MARKER) -> bool:
    """Return True when a line of ``text`` starts with ``marker``.

    Markers quoted inside a line are ignored, matching ``parse_definitions``.
    """
    return _marker_line_re(marker).search(text) is not None


def _line_number(text: str, offset: int) -> int:
    return text.count("\n", 0, offset) + 1


def _line_at(text: str, offset: int) -> str:
    end = text.find("\n", offset)
    return text[offset:] if end == -1 else text[offset:end]


def _header_at(text: str, offset: int, marker: str) -> str:
    """Return the header of the marker line starting at ``offset``."""
    line = _line_at(text, offset)
    match = _header_re(marker).match(line)
    lineno = _line_number(text, offset)
    if not match:
        raise MalformedDefinitionError(
            f"definition marker is not closed with ']]': {line!r}", lineno
        )
    header = match.group("header")
    if not term_filename(header):
        raise EmptyHeaderError(
            f"definition marker has no term name: {line!r}", lineno
        )
    return header


def parse_definitions(text: str, marker: str = DEFAULT_MARKER) -> ParsedGlossary:
    """Split ``text`` into the introduction and ordered term definitions.

    Headers and segments are taken from the same marker match, so their
    counts cannot diverge. Raises ``MalformedDefinitionError`` for a marker
    line without a closing ``]]`` and ``EmptyHeaderError`` for a header
    that yields no term name, such as ``[[def: , alias]]``.
    """
    starts = [m.start() for m in _marker_line_re(marker).finditer(text)]
    if not starts:
        return ParsedGlossary(intro=text, definitions=())
    bounds = zip(starts, [*starts[1:], len(text)])
    definitions = tuple(
        TermDefinition(
            header=_header_at(text, start, marker),
            text=text[start:end],
            line=_line_number(text, start),
        )
        for start, end in bounds
    )
    logger.debug("parse_definitions: %d definitions", len(definitions))
    return ParsedGlossary(intro=text[: starts[0]], definitions=definitions)


def term_filename(header: str) -> str:
    """Derive a lowercase, hyphenated file stem from a definition header.

    >>> term_filename("Authorization, authZ")
    'authorization'
    >>> term_filename("Network/Transport")
    'network-transport'
    """
    canonical = header.split(",", 1)[0].replace(",", "").strip()
    return canonical.replace("/", "-").replace(" ", "-").lower()


def _block_end(text: str, offset: int) -> int:
    """Return the offset just past the last ``~`` line of the block at ``offset``."""
    end = text.find("\n", offset)
    if end == -1:
        return len(text)
    last = end
    pos = end + 1
    while pos <= len(text):
        nxt = text.find("\n", pos)
        line_end = len(text) if nxt == -1 else nxt
        line = text[pos:line_end]
        if _has_continuation(line):
            last = line_end
        elif not _is_blank(line):
            break
        if nxt == -1:
            break
        pos = nxt + 1
    return last


def iter_definition_blocks(
    text: str, marker: str = DEFAULT_MARKER
) -> Iterator[DefinitionBlock]:
    """Yield every marker line together with its ``~`` continuation lines.

    Blank lines inside a block are kept; trailing blank lines are not part
    of the block. Marker lines without a term name are skipped.
    """
    for match in _marker_line_re(marker).finditer(text):
        start = match.start()
        header_match = _header_re(marker).match(_line_at(text, start))
        if not header_match or not term_filename(header_match.group("header")):
            logger.debug("skipping marker without header at offset %d", start)
            continue
        end = _block_end(text, start)
        yield DefinitionBlock(
            start=start,
            end=end,
            text=text[start:end],
            header=header_match.group("header"),
        )
