"""Lab report text parsing: line tokenizing and result normalization."""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence

from bloodwise.schemas.lab import DEFAULT_SECTION, NOT_PROVIDED, LabResult

NUM = r"\d+(?:\.\d+)?"
# "7,500" or "1,250.5"; tried before NUM so the comma is not read as a unit
GROUPED_NUM = r"\d{1,3}(?:,\d{3})+(?!\d)(?:\.\d+)?"
VALUE = r"(?P<value>" + GROUPED_NUM + "|" + NUM + r")"

SECTION_HEADER = re.compile(r"^[A-Z][A-Z ]{2,}:?$")

# "(Ref: 13.5-17.5)", "(Reference Range: <200)" or a bare "(70-99)"; flags like "(H)" are not ranges.
_RANGE_GROUP = (
    r"\(\s*(?:ref(?:erence)?(?:\s+range)?\s*:\s*)?"
    r"(?P<range>[^)]*?[\d<>][^)]*?)\s*\)"
)

COLON_FORM = re.compile(
    r"^\s*(?P<name>[A-Za-z](?:[^:(]|\([^):]*\))*?)\s*:\s*"
    + VALUE
    + r"(?:\s*(?P<unit>[^\s()]+))?"
    r"(?:\s*" + _RANGE_GROUP + r")?",
    re.IGNORECASE,
)

SPACED_FORM = re.compile(
    r"^\s*(?P<name>[A-Za-z][A-Za-z0-9/%\-]*(?:\s+[A-Za-z][A-Za-z0-9/%\-]*)*)\s+"
    + VALUE
    + r"(?:\s*(?P<unit>[^\s()]+))?"
    r"(?:\s*" + _RANGE_GROUP + r")?"
    r"\s*$",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class LineGrammar:
    """A named line pattern exposing name/value/unit/range groups."""

    name: str
    pattern: re.Pattern

    def match(self, line: str) -> Optional[Dict[str, Optional[str]]]:
        m = self.pattern.match(line)
        if not m:
            return None
        return m.groupdict()


LINE_GRAMMARS: Sequence[LineGrammar] = (
    LineGrammar("colon", COLON_FORM),
    LineGrammar("spaced", SPACED_FORM),
)


@dataclass(frozen=True)
class RawToken:
    name: str
    value: str
    unit: str
    raw_range: Optional[str]
    section: str
    grammar: str


def section_header(line: str) -> Optional[str]:
    """Return the section title if the line is an all-caps header."""
    stripped = line.strip()
    if not SECTION_HEADER.match(stripped):
        return None
    return stripped.rstrip(":").strip()


def match_line(line: str, grammars: Iterable[LineGrammar] = LINE_GRAMMARS) -> Optional[tuple]:
    for grammar in grammars:
        groups = grammar.match(line)
        if groups:
            return grammar.name, groups
    return None


def tokenize_report(text: str, grammars: Iterable[LineGrammar] = LINE_GRAMMARS) -> List[RawToken]:
    """Split OCR text into raw tokens, tracking the current section.

    Lines that match no grammar are dropped.
    """
    grammars = tuple(grammars)
    tokens: List[RawToken] = []
    current_section = DEFAULT_SECTION

    for line in (text or "").splitlines():
        line = line.rstrip()
        if not line.strip():
            continue
        header = section_header(line)
        if header:
            current_section = header
            continue

        found = match_line(line, grammars)
        if not found:
            continue
        grammar_name, groups = found
        name = (groups.get("name") or "").strip()
        value = (groups.get("value") or "").strip()
        if not name or not value:
            continue
        raw_range = (groups.get("range") or "").strip() or None
        tokens.append(
            RawToken(
                name=name,
                value=value,
                unit=(groups.get("unit") or "").strip(),
                raw_range=raw_range,
                section=current_section,
                grammar=grammar_name,
            )
        )
    return tokens


def normalize_tokens(tokens: Iterable[RawToken]) -> Dict[str, LabResult]:
    """Build name -> LabResult in insertion order.

    A repeated name replaces the earlier record entirely and keeps the
    position where the name was first seen.
    """
    results: Dict[str, LabResult] = {}
    for token in tokens:
        results[token.name] = LabResult(
            name=token.name,
            value=float(token.value.replace(",", "")),
            unit=token.unit,
            ref_range=token.raw_range or NOT_PROVIDED,
            section=token.section,
        )
    return results


def parse_lab_text(text: str, grammars: Iterable[LineGrammar] = LINE_GRAMMARS) -> Dict[str, LabResult]:
    return normalize_tokens(tokenize_report(text, grammars))


__all__ = [
    "LINE_GRAMMARS",
    "LineGrammar",
    "RawToken",
    "section_header",
    "match_line",
    "tokenize_report",
    "normalize_tokens",
    "parse_lab_text",
]
