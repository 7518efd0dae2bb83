"""Year extraction from the free-text ``released`` header credit."""

import re
from typing import List, Tuple

_YEAR_RE = re.compile(r"\b([0-9]{4}|[0-9]{2})\b")

# Two-digit years below the pivot belong to the 2000s.
_CENTURY_PIVOT = 70


def normalize_year(value: int) -> int:
    if value < 100:
        return value + (2000 if value < _CENTURY_PIVOT else 1900)
    return value


def extract_years(released: str) -> List[int]:
    """Return every year found in a credit like ``"1987-88 Hewson"``, in order."""
    return [normalize_year(int(tok)) for tok in _YEAR_RE.findall(released or "")]


def year_range(released: str) -> Tuple[int, int]:
    """Return ``(year_min, year_max)``; ``(0, 0)`` when no year is present."""
    years = extract_years(released)
    if not years:
        return 0, 0
    return min(years), max(years)
