"""Reference-range parsing and containment checks for printed lab ranges."""
from __future__ import annotations

import re
from typing import NamedTuple, Optional

from bloodwise.schemas.lab import Status

NUM = r"\d+(?:\.\d+)?"
_BETWEEN = re.compile(r"^\s*(?P<lo>[^-]*?)\s*-\s*(?P<hi>[^-]*?)\s*$")
# leading number of a bound; a trailing unit such as "K/uL" is ignored
_NUMBER = re.compile(r"^\s*(" + NUM + r")")


class ParsedRange(NamedTuple):
    min: Optional[float] = None
    max: Optional[float] = None

    @property
    def is_empty(self) -> bool:
        return self.min is None and self.max is None


def _to_float(token: str) -> Optional[float]:
    match = _NUMBER.match((token or "").replace(",", ""))
    if not match:
        return None
    return float(match.group(1))


def parse_range(text: Optional[str]) -> ParsedRange:
    """Parse "13.5-17.5", "<200 mg/dL" or ">40" into a ParsedRange.

    A '-' is always read as the separator, so negative bounds are not
    supported. Unreadable bounds come back as None; this never raises.
    """
    if not text:
        return ParsedRange()
    cleaned = text.strip().replace("–", "-").replace("—", "-")

    if "-" in cleaned:
        match = _BETWEEN.match(cleaned)
        if not match:
            return ParsedRange()
        return ParsedRange(_to_float(match.group("lo")), _to_float(match.group("hi")))
    if cleaned.startswith("<"):
        return ParsedRange(None, _to_float(cleaned[1:].lstrip("=")))
    if cleaned.startswith(">"):
        return ParsedRange(_to_float(cleaned[1:].lstrip("=")), None)
    return ParsedRange()


def compare_to_range(value: float, reference: ParsedRange) -> Optional[Status]:
    """Inclusive containment; None when the range has no bounds."""
    lo, hi = reference
    if lo is not None and hi is not None:
        if value < lo:
            return Status.LOW
        if value > hi:
            return Status.HIGH
        return Status.NORMAL
    if lo is not None:
        return Status.LOW if value < lo else Status.NORMAL
    if hi is not None:
        return Status.HIGH if value > hi else Status.NORMAL
    return None


__all__ = ["ParsedRange", "parse_range", "compare_to_range"]
