"""Shared fixtures: a miniature HVSC tree with real 124-byte SID headers."""

import struct
from pathlib import Path

import pytest

from sid_catalog.config import Settings

_HEADER = struct.Struct(">4s7HI32s32s32sH4B")

MONTY = "/MUSICIANS/H/Hubbard_Rob/Monty_on_the_Run.sid"
COMMANDO = "/MUSICIANS/H/Hubbard_Rob/Commando.sid"
WIZBALL = "/MUSICIANS/G/Galway_Martin/Wizball.sid"
LAST_NINJA = "/MUSICIANS/D/Daglish_Ben/Last_Ninja.sid"
EDGE = "/DEMOS/A-F/Edge_of_Disgrace.sid"

SONG_LENGTHS_TXT = f"""\
[Database]
; {MONTY}
5e8a4bd6b9a1c7a0e5f1e0bd0f3c0d19=5:47 0:10 0:05
; {COMMANDO}
0a1b2c3d4e5f60718293a4b5c6d7e8f9=4:35
; {WIZBALL}
c0ffee00c0ffee00c0ffee00c0ffee00=6:29 2:03
; {LAST_NINJA}
deadbeefdeadbeefdeadbeefdeadbeef=3:12
(subtune two) 1:05
; {EDGE}
0123456789abcdef0123456789abcdef=8:01
"""


def make_header_bytes(
    magic=b"PSID", version=2, data_offset=124, load=0, init=0x1000, play=0x1003,
    songs=1, start_song=1, speed=0, name="<?>", author="<?>", released="<?>",
    flags=0, start_page=0, page_length=0, sid2=0, sid3=0,
) -> bytes:
    return _HEADER.pack(
        magic, version, data_offset, load, init, play, songs, start_song, speed,
        name.encode("latin-1"), author.encode("latin-1"), released.encode("latin-1"),
        flags, start_page, page_length, sid2, sid3,
    )


def write_sid(root: Path, path: str, payload: bytes = b"\xa9\x00\x60", **fields) -> Path:
    target = root / path.lstrip("/")
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(make_header_bytes(**fields) + payload)
    return target


@pytest.fixture
def hvsc_dir(tmp_path):
    root = tmp_path / "C64Music"
    docs = root / "DOCUMENTS"
    docs.mkdir(parents=True)
    (docs / "Songlengths.txt").write_text(SONG_LENGTHS_TXT, encoding="latin-1")
    (docs / "hv_sids.txt").write_text("82\n", encoding="latin-1")

    write_sid(root, MONTY, name="Monty on the Run", author="Rob Hubbard",
              released="1985 Gremlin Graphics", songs=3)
    write_sid(root, COMMANDO, name="Commando", author="Rob Hubbard",
              released="1985 Elite")
    write_sid(root, WIZBALL, name="Wizball", author="Martin Galway",
              released="1987 Ocean", songs=3, start_song=2)
    write_sid(root, LAST_NINJA, name="The Last Ninja", author="Ben Daglish",
              released="1987-88 System 3", songs=2)
    write_sid(root, EDGE, magic=b"RSID", data_offset=124, name="Edge of Disgrace",
              author="J\xf6rg Jammer", released="2008 Booze Design", sid2=0x42)
    return root


@pytest.fixture
def settings(hvsc_dir, tmp_path):
    return Settings(hvsc_base=hvsc_dir, cache_dir=tmp_path / "cache")
