"""
Tune Filter — the live, query-matched view over the catalog.

A query matches a tune when it is a case-insensitive substring of the tune's
title, author or path.  The empty query matches everything.  Each ``apply``
builds a new immutable FilteredView and swaps it in with one assignment, so
readers always see either the old view or the new one.
"""

from dataclasses import dataclass
from typing import List, Sequence, Tuple

from .catalog import Catalog
from .models import SidTune


@dataclass(frozen=True)
class FilteredView:
    """Ordered subsequence of the catalog matching ``query``."""

    query: str
    tunes: Tuple[SidTune, ...]

    @property
    def count(self) -> int:
        return len(self.tunes)

    def __len__(self) -> int:
        return len(self.tunes)

    def __getitem__(self, position: int) -> SidTune:
        return self.tunes[position]

    def page(self, offset: int, limit: int) -> Sequence[SidTune]:
        offset = max(0, offset)
        return self.tunes[offset:offset + max(0, limit)]


class TuneFilter:
    """Keeps the current FilteredView for one catalog."""

    def __init__(self, catalog: Catalog) -> None:
        self.catalog = catalog
        self._haystacks: List[Tuple[str, str, str]] = [
            (t.header.name.lower(), t.header.author.lower(), t.path.lower())
            for t in catalog
        ]
        self.view = FilteredView(query="", tunes=tuple(catalog))

    @property
    def count(self) -> int:
        return self.view.count

    def apply(self, query: str) -> FilteredView:
        """Recompute the view for ``query`` and make it current."""
        needle = (query or "").lower()
        if not needle:
            view = FilteredView(query="", tunes=tuple(self.catalog))
        else:
            view = FilteredView(
                query=query,
                tunes=tuple(
                    tune
                    for tune, hay in zip(self.catalog, self._haystacks)
                    if needle in hay[0] or needle in hay[1] or needle in hay[2]
                ),
            )
        self.view = view
        return view


def filter_tunes(catalog: Catalog, query: str) -> FilteredView:
    """One-shot filter without keeping state."""
    return TuneFilter(catalog).apply(query)
