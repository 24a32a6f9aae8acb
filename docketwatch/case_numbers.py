"""Case-number recognition and normalization.

San Diego Superior Court numbers appear in two shapes:

* compact: two-digit year, two-letter case type, a 4-8 digit sequence and an
  optional suffix letter, e.g. ``22FL001581C``
* dashed: case type, four-digit year and a 4-8 digit sequence, e.g.
  ``FL-2024-123456``

The canonical form is the compact one. A dashed number is rewritten by moving
the last two digits of its year in front of the type and keeping the sequence
as written, so ``FL-2024-1234567`` becomes ``24FL1234567``.
"""

from __future__ import annotations

import re
from typing import Iterator, List, Optional, Tuple

# Ordered: the first format that matches a token wins.
CASE_NUMBER_FORMATS: Tuple[Tuple[str, re.Pattern[str]], ...] = (
    ("compact", re.compile(r"\b(?P<yy>\d{2})(?P<type>[A-Z]{2})(?P<seq>\d{4,8})(?P<suffix>[A-Z]?)\b")),
    ("dashed", re.compile(r"\b(?P<type>[A-Z]{2})-(?P<yyyy>\d{4})-(?P<seq>\d{4,8})\b")),
)

CASE_TYPE_CODES = {
    "FL": "Family Law",
    "CR": "Criminal",
    "CV": "Civil",
    "CU": "Civil Unlimited",
    "CL": "Civil Limited",
    "SC": "Small Claims",
    "TR": "Traffic",
    "JC": "Juvenile",
    "AD": "Administrative",
    "AP": "Appeals",
    "GU": "Guardianship",
    "MH": "Mental Health",
    "PR": "Probate",
}


def _canonical(fmt: str, match: re.Match[str]) -> str:
    if fmt == "compact":
        return match.group(0)
    case_type = match.group("type")
    year = match.group("yyyy")
    return f"{year[2:]}{case_type}{match.group('seq')}"


def _prepare(text: str) -> str:
    return text.upper()


def normalize_case_id(raw: str) -> Optional[str]:
    """Return the canonical form of ``raw`` or ``None`` when no format fits."""

    candidate = re.sub(r"\s+", "", _prepare(raw or ""))
    for fmt, pattern in CASE_NUMBER_FORMATS:
        match = pattern.fullmatch(candidate)
        if match:
            return _canonical(fmt, match)
    return None


def iter_case_numbers(text: str) -> Iterator[str]:
    """Yield canonical case numbers found in ``text`` in order of appearance."""

    prepared = _prepare(text)
    found: List[Tuple[int, str]] = []
    for fmt, pattern in CASE_NUMBER_FORMATS:
        for match in pattern.finditer(prepared):
            found.append((match.start(), _canonical(fmt, match)))
    seen = set()
    for _, number in sorted(found, key=lambda item: item[0]):
        if number in seen:
            continue
        seen.add(number)
        yield number


def case_type_code(case_id: str) -> Optional[str]:
    """Return the two-letter type code embedded in a canonical case number."""

    match = re.match(r"^\d{2}([A-Z]{2})\d", case_id)
    return match.group(1) if match else None
