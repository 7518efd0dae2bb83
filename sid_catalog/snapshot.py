"""
Snapshot Cache — compact gzip'd JSON form of the catalog.

The snapshot is an indented JSON array of tune records, gzip-compressed and
written to ``tunes.json.gz``.  To keep it small, fields holding their usual
value are left out when saving and put back when loading:

    header.magic_id        "PSID"
    header.version         2
    header.data_offset     124
    header.songs           1
    header.start_song      1
    header.name/author/released   "<?>"
    header.sid2/sid3_address      absent
    year_max               equal to year_min
    releases               empty

``index`` is never stored; it is the record's position in the array.  Song
lengths are stored as whole seconds.  Snapshots in the upstream layout
(capitalised keys, nanosecond durations) are also accepted on load.

Elision works on plain dicts built at save time; ``SidTune`` objects are
never modified.
"""

from __future__ import annotations

import gzip
import json
import zlib
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from loguru import logger
from pydantic import ValidationError

from .errors import SnapshotCorruptError
from .models import (
    DEFAULT_MAGIC_ID,
    DEFAULT_TITLE,
    DEFAULT_VERSION,
    HEADER_SIZE,
    SidTune,
)

# ---------------------------------------------------------------------------
# Elision table
# ---------------------------------------------------------------------------

HEADER_DEFAULTS: Dict[str, Any] = {
    "magic_id":    DEFAULT_MAGIC_ID,
    "version":     DEFAULT_VERSION,
    "data_offset": HEADER_SIZE,
    "songs":       1,
    "start_song":  1,
    "name":        DEFAULT_TITLE,
    "author":      DEFAULT_TITLE,
    "released":    DEFAULT_TITLE,
}
_HEADER_OPTIONAL = ("sid2_address", "sid3_address")


def elide_defaults(tune: SidTune) -> Dict[str, Any]:
    """Return the persisted record for ``tune`` with default-valued fields left out."""
    header = tune.header.model_dump(mode="json")
    for field, default in HEADER_DEFAULTS.items():
        if header.get(field) == default:
            del header[field]
    for field in _HEADER_OPTIONAL:
        if header.get(field) is None:
            header.pop(field, None)

    record: Dict[str, Any] = {
        "path": tune.path,
        "header": header,
        "song_lengths": [int(d.total_seconds()) for d in tune.song_lengths],
        "year_min": tune.year_min,
    }
    if tune.year_max != tune.year_min:
        record["year_max"] = tune.year_max
    if tune.releases:
        record["releases"] = [
            r.model_dump(mode="json", exclude_none=True, exclude={"sids"})
            for r in tune.releases
        ]
    return record


def restore_defaults(record: Dict[str, Any]) -> Dict[str, Any]:
    """Inverse of ``elide_defaults``: fill every left-out field back in."""
    restored = dict(record)
    header = dict(restored.get("header") or {})
    for field, default in HEADER_DEFAULTS.items():
        header.setdefault(field, default)
    for field in _HEADER_OPTIONAL:
        header.setdefault(field, None)
    restored["header"] = header

    restored.setdefault("song_lengths", [])
    restored.setdefault("year_min", 0)
    restored.setdefault("year_max", restored["year_min"])
    restored.setdefault("releases", [])
    return restored


# ---------------------------------------------------------------------------
# Upstream layout
# ---------------------------------------------------------------------------
#
# Prebuilt snapshots published for each HVSC release use capitalised keys
# ("Path", "Header.MagicID", ...), zero values in place of defaults and song
# lengths in nanoseconds.  They are converted to the record form above.

_UPSTREAM_HEADER_KEYS = {
    "MagicID":     "magic_id",
    "Version":     "version",
    "DataOffset":  "data_offset",
    "LoadAddress": "load_address",
    "InitAddress": "init_address",
    "PlayAddress": "play_address",
    "Songs":       "songs",
    "StartSong":   "start_song",
    "Speed":       "speed",
    "Name":        "name",
    "Author":      "author",
    "Released":    "released",
    "Flags":       "flags",
    "StartPage":   "start_page",
    "PageLength":  "page_length",
    "Sid2Address": "sid2_address",
    "Sid3Address": "sid3_address",
}
_NANOS_PER_SECOND = 1_000_000_000


def is_upstream_record(record: Dict[str, Any]) -> bool:
    return "Path" in record and "path" not in record


def _upstream_release(raw: Any) -> Optional[Dict[str, Any]]:
    if not isinstance(raw, dict):
        return None
    release_id = raw.get("ID", raw.get("Id"))
    name = raw.get("Name")
    if not isinstance(release_id, int) or not isinstance(name, str):
        return None
    release: Dict[str, Any] = {"id": release_id, "name": name}
    for go_key, key, kind in (("Group", "group", str), ("Year", "year", int), ("Type", "type", str)):
        value = raw.get(go_key)
        if isinstance(value, kind) and value:
            release[key] = value
    return release


def upstream_to_record(record: Dict[str, Any]) -> Dict[str, Any]:
    """Convert one upstream tune object to the elided record form.

    Raises:
        TypeError, ValueError: a field has the wrong shape.
    """
    header_in = record.get("Header") or {}
    if not isinstance(header_in, dict):
        raise TypeError(f"header of {record['Path']!r} is not an object")
    header = {
        key: header_in[go_key]
        for go_key, key in _UPSTREAM_HEADER_KEYS.items()
        if header_in.get(go_key) not in (None, "", 0)
    }

    converted: Dict[str, Any] = {
        "path": record["Path"],
        "header": header,
        "song_lengths": [int(ns) // _NANOS_PER_SECOND for ns in record.get("SongLengths") or []],
        "year_min": record.get("YearMin") or 0,
    }
    if record.get("YearMax"):
        converted["year_max"] = record["YearMax"]

    releases: List[Dict[str, Any]] = []
    for raw in record.get("Releases") or []:
        release = _upstream_release(raw)
        if release is None:
            logger.debug(f"{record['Path']}: unrecognised release entry skipped")
        elif all(r["id"] != release["id"] for r in releases):
            releases.append(release)
    if releases:
        converted["releases"] = releases
    return converted


# ---------------------------------------------------------------------------
# Save / load
# ---------------------------------------------------------------------------

def encode_snapshot(tunes: Sequence[SidTune]) -> bytes:
    records = [elide_defaults(t) for t in tunes]
    data_json = json.dumps(records, indent=2, ensure_ascii=False)
    return gzip.compress(data_json.encode("utf-8"))


def decode_snapshot(data: bytes, source: str = "<snapshot>") -> List[SidTune]:
    """Decompress and parse snapshot bytes into fully populated tunes.

    Raises:
        SnapshotCorruptError: the bytes are not a valid snapshot.
    """
    try:
        records = json.loads(gzip.decompress(data).decode("utf-8"))
    except (OSError, EOFError, zlib.error, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise SnapshotCorruptError(f"Cannot decode snapshot {source}: {e}") from e
    if not isinstance(records, list):
        raise SnapshotCorruptError(f"Snapshot {source} is not a list of tunes")

    tunes: List[SidTune] = []
    seen: set[str] = set()
    for position, record in enumerate(records):
        if not isinstance(record, dict):
            raise SnapshotCorruptError(f"Snapshot {source}: entry {position} is not an object")
        if is_upstream_record(record):
            try:
                record = upstream_to_record(record)
            except (TypeError, ValueError) as e:
                raise SnapshotCorruptError(f"Snapshot {source}: entry {position} is invalid: {e}") from e
        try:
            tune = SidTune.model_validate({**restore_defaults(record), "index": position})
        except ValidationError as e:
            raise SnapshotCorruptError(f"Snapshot {source}: entry {position} is invalid: {e}") from e
        if tune.path in seen:
            raise SnapshotCorruptError(f"Snapshot {source}: duplicate path {tune.path}")
        seen.add(tune.path)
        tunes.append(tune)
    return tunes


def save_snapshot(tunes: Sequence[SidTune], snapshot_path: Path) -> int:
    """Write the snapshot atomically; returns the compressed size in bytes."""
    payload = encode_snapshot(tunes)
    snapshot_path.parent.mkdir(parents=True, exist_ok=True)
    tmp = snapshot_path.with_suffix(".tmp")
    tmp.write_bytes(payload)
    tmp.replace(snapshot_path)
    logger.info(f"Snapshot saved: {len(tunes)} tunes, {len(payload)} bytes → {snapshot_path}")
    return len(payload)


def load_snapshot(snapshot_path: Path) -> List[SidTune]:
    """Read a snapshot file.

    Raises:
        OSError: the file cannot be read (e.g. it does not exist).
        SnapshotCorruptError: the file exists but is not a valid snapshot.
    """
    data = snapshot_path.read_bytes()
    tunes = decode_snapshot(data, source=str(snapshot_path))
    logger.info(f"Snapshot loaded: {len(tunes)} tunes from {snapshot_path}")
    return tunes
