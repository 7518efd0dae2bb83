"""
Data Models for the SID Tune Catalog

Domain types for decoded PSID/RSID headers, catalogued tunes and the
releases cross-referenced onto them.  These models are always fully
populated; the compact on-disk form lives in ``snapshot.py``.
"""

from datetime import timedelta
from typing import Optional, List

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Header constants
# ---------------------------------------------------------------------------

HEADER_SIZE = 124
DEFAULT_MAGIC_ID = "PSID"
DEFAULT_VERSION = 2
DEFAULT_TITLE = "<?>"
SID_BASE_ADDRESS = 0xD000


# ---------------------------------------------------------------------------
# Header model
# ---------------------------------------------------------------------------

class SidHeader(BaseModel):
    """Decoded 124-byte prefix of a SID tune file."""

    magic_id: str = Field(DEFAULT_MAGIC_ID, description="Four character tag, e.g. 'PSID' or 'RSID'")
    version: int = Field(DEFAULT_VERSION, description="Header format version")
    data_offset: int = Field(HEADER_SIZE, ge=0, le=0xFFFF, description="Offset of the C64 data")
    load_address: int = Field(0, ge=0, le=0xFFFF, description="C64 load address (0 = taken from data)")
    init_address: int = Field(0, ge=0, le=0xFFFF, description="Init routine address")
    play_address: int = Field(0, ge=0, le=0xFFFF, description="Play routine address")
    songs: int = Field(1, ge=0, le=0xFFFF, description="Number of songs in the file")
    start_song: int = Field(1, ge=0, le=0xFFFF, description="1-based default song")
    speed: int = Field(0, ge=0, le=0xFFFFFFFF, description="Per-song VBI/CIA timing bits")
    name: str = Field(DEFAULT_TITLE, description="Tune title")
    author: str = Field(DEFAULT_TITLE, description="Composer credit")
    released: str = Field(DEFAULT_TITLE, description="Release/copyright credit, usually year + publisher")
    flags: int = Field(0, ge=0, le=0xFFFF, description="Header flag bits (v2+)")
    start_page: int = Field(0, ge=0, le=0xFF, description="Relocation start page")
    page_length: int = Field(0, ge=0, le=0xFF, description="Relocation page count")
    sid2_address: Optional[int] = Field(None, description="Address of a second SID chip")
    sid3_address: Optional[int] = Field(None, description="Address of a third SID chip")

    @property
    def chip_count(self) -> int:
        return 1 + (self.sid2_address is not None) + (self.sid3_address is not None)


# ---------------------------------------------------------------------------
# Release model
# ---------------------------------------------------------------------------

class Release(BaseModel):
    """A curated release (demo, game, music collection) that uses one or more tunes."""

    id: int = Field(..., description="Release identifier")
    name: str = Field(..., description="Release name")
    group: Optional[str] = Field(None, description="Releasing group")
    year: Optional[int] = Field(None, description="Year of release")
    type: Optional[str] = Field(None, description="Release type, e.g. 'C64 Demo'")
    sids: List[str] = Field(default_factory=list, description="Collection paths of the tunes used")


# ---------------------------------------------------------------------------
# Tune model
# ---------------------------------------------------------------------------

class SidTune(BaseModel):
    """One catalog entry: a tune file with its header, song lengths and releases."""

    index: int = Field(0, ge=0, description="Position in canonical catalog order")
    path: str = Field(..., description="Collection-relative path, e.g. '/MUSICIANS/H/Hubbard_Rob/Commando.sid'")
    header: SidHeader = Field(default_factory=SidHeader)
    song_lengths: List[timedelta] = Field(default_factory=list, description="Duration of each song")
    year_min: int = Field(0, ge=0, description="Earliest year in the release credit (0 = unknown)")
    year_max: int = Field(0, ge=0, description="Latest year in the release credit (0 = unknown)")
    releases: List[Release] = Field(default_factory=list, description="Releases using this tune")

    def year_label(self) -> str:
        if not self.year_min:
            return ""
        if self.year_max > self.year_min:
            return f"{self.year_min}-{self.year_max}"
        return str(self.year_min)

    def song_length(self, song: int) -> timedelta:
        """Duration of a 1-based song number, zero if unknown."""
        if 1 <= song <= len(self.song_lengths):
            return self.song_lengths[song - 1]
        return timedelta(0)

    def add_release(self, release: Release) -> bool:
        """Attach a release unless one with the same id is already attached."""
        if any(r.id == release.id for r in self.releases):
            return False
        self.releases.append(release)
        return True

    def list_name(self) -> str:
        """Path without leading slash and '.sid' suffix, as shown in tune lists."""
        name = self.path.lstrip("/")
        if name.lower().endswith(".sid"):
            name = name[:-4]
        return name
