"""
Release Provider and Cross-Reference

Releases (demos, games, music disks) list the tunes they use by collection
path.  A provider supplies them; ``cross_reference`` attaches each release
to the tunes it names.

The bundled provider reads a JSON document:

    [
      {"id": 11634, "name": "Edge of Disgrace", "group": "Booze Design",
       "year": 2008, "type": "C64 Demo",
       "sids": ["/MUSICIANS/J/Jammer/Edge_of_Disgrace.sid"]}
    ]

This feature is optional.  Set SID_CATALOG_RELEASES to the document's path
to enable it; use JsonReleaseProvider.from_settings() to get an instance only
when configured.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING, Dict, List, Optional, Protocol

from loguru import logger
from pydantic import TypeAdapter, ValidationError

from .errors import ReleaseFileError
from .models import Release

if TYPE_CHECKING:
    from .catalog import Catalog
    from .config import Settings

_RELEASE_LIST = TypeAdapter(List[Release])


class ReleaseProvider(Protocol):
    """Anything that can list releases with their tune paths."""

    def read_releases(self) -> List[Release]: ...


# ---------------------------------------------------------------------------
# JSON file provider
# ---------------------------------------------------------------------------

class JsonReleaseProvider:
    """Reads releases from a JSON array on disk."""

    def __init__(self, json_path: Path) -> None:
        self.json_path = Path(json_path)

    @classmethod
    def from_settings(cls, settings: "Settings") -> Optional["JsonReleaseProvider"]:
        """Return a provider if a releases file is configured, else None."""
        if settings.releases_path is None:
            logger.info("SID_CATALOG_RELEASES not set — release cross-reference disabled.")
            return None
        return cls(settings.releases_path)

    def read_releases(self) -> List[Release]:
        if not self.json_path.exists():
            logger.warning(f"Releases file not found at {self.json_path}, skipping.")
            return []
        try:
            raw = json.loads(self.json_path.read_text(encoding="utf-8"))
            releases = _RELEASE_LIST.validate_python(raw)
        except (json.JSONDecodeError, ValidationError) as e:
            raise ReleaseFileError(f"Invalid releases file {self.json_path}: {e}") from e
        logger.info(f"Releases loaded: {len(releases)} from {self.json_path}")
        return releases


class StaticReleaseProvider:
    """Provider over an in-memory list, for callers that already hold releases."""

    def __init__(self, releases: List[Release]) -> None:
        self._releases = list(releases)

    def read_releases(self) -> List[Release]:
        return list(self._releases)


# ---------------------------------------------------------------------------
# Cross-reference
# ---------------------------------------------------------------------------

def cross_reference(catalog: "Catalog", releases: List[Release]) -> Dict[str, int]:
    """Attach every release to the tunes whose paths it lists.

    The path list is dropped from the attached copy.  Paths that match no
    tune are logged and skipped.

    Returns:
        Stats dict with releases, attached and unknown counts.
    """
    attached = 0
    unknown = 0
    for release in releases:
        paths = release.sids
        ref = release.model_copy(update={"sids": []})
        for path in paths:
            tune = catalog.get_by_path(path)
            if tune is None:
                logger.warning(f"Unknown path: {path} (release {release.id} {release.name!r})")
                unknown += 1
                continue
            if tune.add_release(ref):
                attached += 1

    logger.info(
        f"Cross-referenced {len(releases)} releases: "
        f"{attached} links, {unknown} unknown paths"
    )
    return {"releases": len(releases), "attached": attached, "unknown": unknown}
