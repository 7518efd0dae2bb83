"""
Tune Catalog — builds, loads and holds the index of every tune in HVSC.

The catalog is built from the collection's song-length table: every tune the
table names has its header decoded, its song lengths attached and its years
derived, in table order.  That order is the canonical order and defines each
tune's ``index``.

Building reads tens of thousands of files, so the result is kept as a
snapshot (``tunes.json.gz``).  On startup the snapshot is loaded; if there
is none, a prebuilt one for the detected HVSC release is downloaded and the
load retried once.

Usage:
    settings = Settings.from_env()
    catalog = open_catalog(settings)                 # load, fetching if needed
    catalog = open_catalog(settings, rebuild=True)   # full rebuild from HVSC
    tune = catalog[0]
    pos = catalog.index_of("/MUSICIANS/H/Hubbard_Rob/Commando.sid")
"""

from __future__ import annotations

from datetime import timedelta
from typing import Any, Dict, Iterator, List, Optional, Sequence

from loguru import logger

from .config import Settings
from .errors import SnapshotMissingError
from .fetcher import detect_release, download_snapshot, snapshot_url
from .models import SidTune
from .releases import ReleaseProvider, cross_reference
from .sid_header import read_sid_header
from .snapshot import load_snapshot, save_snapshot
from .song_lengths import read_song_lengths
from .years import year_range

# Load, then fetch once and load again.
_LOAD_ATTEMPTS = 2
_PROGRESS_EVERY = 1000


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

class Catalog:
    """Ordered, path-unique collection of tunes.

    Read-only once built or loaded; a rebuild produces a new Catalog.
    """

    def __init__(
        self,
        tunes: Optional[Sequence[SidTune]] = None,
        release: Optional[int] = None,
    ) -> None:
        self.release = release
        self._tunes: List[SidTune] = []
        self._by_path: Dict[str, int] = {}
        for tune in tunes or []:
            self.append(tune)

    def append(self, tune: SidTune) -> bool:
        """Add a tune at the end; returns False if its path is already present."""
        if tune.path in self._by_path:
            return False
        tune.index = len(self._tunes)
        self._by_path[tune.path] = tune.index
        self._tunes.append(tune)
        return True

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    @property
    def num_tunes(self) -> int:
        return len(self._tunes)

    @property
    def tunes(self) -> Sequence[SidTune]:
        return tuple(self._tunes)

    def __len__(self) -> int:
        return len(self._tunes)

    def __getitem__(self, position: int) -> SidTune:
        return self._tunes[position]

    def __iter__(self) -> Iterator[SidTune]:
        return iter(self._tunes)

    def index_of(self, path: str) -> int:
        """Position of the tune with this path, or -1."""
        return self._by_path.get(path, -1)

    def get_by_path(self, path: str) -> Optional[SidTune]:
        pos = self._by_path.get(path)
        return self._tunes[pos] if pos is not None else None

    # ------------------------------------------------------------------
    # Stats
    # ------------------------------------------------------------------

    def stats(self) -> Dict[str, Any]:
        years = [t.year_min for t in self._tunes if t.year_min]
        return {
            "release":       self.release,
            "num_tunes":     self.num_tunes,
            "num_songs":     sum(t.header.songs for t in self._tunes),
            "with_releases": sum(1 for t in self._tunes if t.releases),
            "multi_sid":     sum(1 for t in self._tunes if t.header.chip_count > 1),
            "rsid":          sum(1 for t in self._tunes if t.header.magic_id == "RSID"),
            "year_min":      min(years) if years else None,
            "year_max":      max(t.year_max for t in self._tunes) if years else None,
        }

    def __repr__(self) -> str:
        return f"Catalog({self.num_tunes} tunes, release={self.release})"


# ---------------------------------------------------------------------------
# Build
# ---------------------------------------------------------------------------

def _fit_song_lengths(lengths: List[timedelta], songs: int, path: str) -> List[timedelta]:
    if len(lengths) > songs:
        logger.debug(f"{path}: {len(lengths)} song lengths for {songs} songs, extra ignored")
        return lengths[:songs]
    return lengths + [timedelta(0)] * (songs - len(lengths))


def build_tune(settings: Settings, path: str, lengths: List[timedelta]) -> SidTune:
    """Decode one tune file and derive its catalog fields."""
    header = read_sid_header(settings.hvsc_path(path))
    year_min, year_max = year_range(header.released)
    return SidTune(
        path=path,
        header=header,
        song_lengths=_fit_song_lengths(lengths, header.songs, path),
        year_min=year_min,
        year_max=year_max,
    )


def build_catalog(
    settings: Settings,
    release_provider: Optional[ReleaseProvider] = None,
    release: Optional[int] = None,
) -> Catalog:
    """Build a catalog from the raw collection.

    Raises:
        OSError: the song-length table or a tune file cannot be read.
    """
    logger.info(f"Building tunes index from {settings.song_lengths_path}")
    catalog = Catalog(release=release)

    for path, lengths in read_song_lengths(settings.song_lengths_path):
        if catalog.index_of(path) >= 0:
            logger.warning(f"Duplicate song-length entry for {path}, skipped")
            continue
        catalog.append(build_tune(settings, path, lengths))
        if catalog.num_tunes % _PROGRESS_EVERY == 0:
            logger.debug(f"…{catalog.num_tunes} tunes")

    logger.info(f"Read {catalog.num_tunes} tunes.")

    if release_provider is not None:
        cross_reference(catalog, release_provider.read_releases())
    return catalog


def rebuild_catalog(
    settings: Settings,
    release_provider: Optional[ReleaseProvider] = None,
    release: Optional[int] = None,
) -> Catalog:
    """Build from the raw collection and persist the snapshot."""
    catalog = build_catalog(settings, release_provider=release_provider, release=release)
    save_snapshot(catalog.tunes, settings.snapshot_path)
    return catalog


# ---------------------------------------------------------------------------
# Open
# ---------------------------------------------------------------------------

def fetch_snapshot(settings: Settings, release: int) -> None:
    """Download the prebuilt snapshot for ``release`` and install it as the cache.

    The download lands beside the cache file and must decode before it is
    saved in place, so a bad fetch never leaves an unloadable cache behind.

    Raises:
        FetchError: the download failed.
        SnapshotCorruptError: the downloaded file is not a valid snapshot.
    """
    snapshot_path = settings.snapshot_path
    staging = snapshot_path.with_name(snapshot_path.name + ".download")
    download_snapshot(snapshot_url(release, settings.snapshot_url), staging)
    if not staging.exists():
        logger.warning(f"Download produced no file at {staging}")
        return
    try:
        tunes = load_snapshot(staging)
        save_snapshot(tunes, snapshot_path)
    finally:
        staging.unlink(missing_ok=True)


def open_catalog(
    settings: Settings,
    rebuild: bool = False,
    release_provider: Optional[ReleaseProvider] = None,
    fetch: bool = True,
) -> Catalog:
    """Return the catalog for this run: rebuilt, loaded, or fetched then loaded.

    Raises:
        ReleaseDetectionError: the HVSC version marker is missing or invalid.
        SnapshotCorruptError: the snapshot file cannot be decoded.
        FetchError: the remote snapshot could not be downloaded.
        SnapshotMissingError: no snapshot exists after the single fetch.
    """
    release = detect_release(settings.version_path)

    if rebuild:
        return rebuild_catalog(settings, release_provider=release_provider, release=release)

    snapshot_path = settings.snapshot_path
    for attempt in range(_LOAD_ATTEMPTS):
        if snapshot_path.exists():
            catalog = Catalog(load_snapshot(snapshot_path), release=release)
            logger.info(f"Read {catalog.num_tunes} tunes.")
            return catalog
        if attempt == 0 and fetch:
            fetch_snapshot(settings, release)

    raise SnapshotMissingError(
        f"No tunes index at {snapshot_path}; run 'sid-catalog build' to create one."
    )
