"""
Configuration for the SID Catalog

All settings come from environment variables:

    HVSC_BASE                 Root of the HVSC collection (required)
    SID_CATALOG_CACHE_DIR     Where tunes.json.gz is kept (default: HVSC_BASE)
    SID_CATALOG_SNAPSHOT_URL  Template for prebuilt snapshots, ``{release}`` is
                              replaced by the collection version
    SID_CATALOG_RELEASES      Optional JSON file of releases to cross-reference
    SID_PLAYER                Player command line (default: sidplayfp)
    SID_CATALOG_LOG_LEVEL     loguru level (default: INFO)
    SID_CATALOG_PORT          Port of the web API (default: 8890)
"""

import os
import shlex
import sys
from pathlib import Path
from typing import List, Optional

from loguru import logger
from pydantic import BaseModel, Field

from .errors import ConfigError

SONG_LENGTHS_FILE = "DOCUMENTS/Songlengths.txt"
VERSION_FILE = "DOCUMENTS/hv_sids.txt"
SNAPSHOT_FILE = "tunes.json.gz"
DEFAULT_SNAPSHOT_URL = (
    "https://github.com/lhz/sidtune-index/raw/master/hvsc-{release}/tunes.json.gz"
)

_LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSSSSS}</green> | "
    "<level>{level: <8}</level> | {message}"
)


class Settings(BaseModel):
    """Resolved runtime settings."""

    hvsc_base: Path = Field(..., description="Root directory of the collection")
    cache_dir: Optional[Path] = Field(None, description="Snapshot directory (default: hvsc_base)")
    snapshot_url: str = Field(DEFAULT_SNAPSHOT_URL, description="Remote snapshot URL template")
    releases_path: Optional[Path] = Field(None, description="Releases JSON document")
    player_command: List[str] = Field(default_factory=lambda: ["sidplayfp"])
    log_level: str = "INFO"
    port: int = 8890

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the environment; HVSC_BASE is required."""
        base = os.environ.get("HVSC_BASE")
        if not base:
            raise ConfigError("HVSC_BASE is not set — point it at your HVSC directory.")

        cache_dir = os.environ.get("SID_CATALOG_CACHE_DIR")
        releases = os.environ.get("SID_CATALOG_RELEASES")
        player = os.environ.get("SID_PLAYER", "sidplayfp")
        try:
            port = int(os.environ.get("SID_CATALOG_PORT", "8890"))
        except ValueError as e:
            raise ConfigError(f"SID_CATALOG_PORT must be an integer: {e}") from e

        return cls(
            hvsc_base=Path(base).expanduser(),
            cache_dir=Path(cache_dir).expanduser() if cache_dir else None,
            snapshot_url=os.environ.get("SID_CATALOG_SNAPSHOT_URL", DEFAULT_SNAPSHOT_URL),
            releases_path=Path(releases).expanduser() if releases else None,
            player_command=shlex.split(player),
            log_level=os.environ.get("SID_CATALOG_LOG_LEVEL", "INFO").upper(),
            port=port,
        )

    def hvsc_path(self, relative: str) -> Path:
        """Absolute path of a collection-relative path like '/MUSICIANS/...'."""
        return self.hvsc_base / relative.lstrip("/")

    @property
    def song_lengths_path(self) -> Path:
        return self.hvsc_path(SONG_LENGTHS_FILE)

    @property
    def version_path(self) -> Path:
        return self.hvsc_path(VERSION_FILE)

    @property
    def snapshot_path(self) -> Path:
        return (self.cache_dir or self.hvsc_base) / SNAPSHOT_FILE


def configure_logging(level: str = "INFO") -> None:
    """Send loguru output to stderr with microsecond timestamps."""
    logger.remove()
    logger.add(sys.stderr, level=level.upper(), format=_LOG_FORMAT)
