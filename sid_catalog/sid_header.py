"""
SID Header Decoder

Decodes the fixed 124-byte PSID/RSID header at the start of every tune file.
All multi-byte fields are big-endian.  Text fields are 32 bytes wide and
null-terminated; each byte is one Latin-1 code point.

Layout (byte offsets):
    0   magic id (4)        18  speed (4)
    4   version             22  name (32)
    6   data offset         54  author (32)
    8   load address        86  released (32)
    10  init address        118 flags
    12  play address        120 start page (1)
    14  songs               121 page length (1)
    16  start song          122 second SID nibble (1)
                            123 third SID nibble (1)
"""

import struct
from pathlib import Path
from typing import Union

from .errors import TruncatedHeaderError
from .models import HEADER_SIZE, SID_BASE_ADDRESS, SidHeader

_HEADER_STRUCT = struct.Struct(">4s7HI32s32s32sH4B")
TEXT_ENCODING = "latin-1"


def _extract_text(field: bytes) -> str:
    """Return the run of non-zero bytes at the start of a text field."""
    end = field.find(b"\x00")
    if end >= 0:
        field = field[:end]
    return field.decode(TEXT_ENCODING)


def _sid_address(nibble: int):
    if nibble == 0:
        return None
    return nibble * 16 + SID_BASE_ADDRESS


def decode_sid_header(data: bytes) -> SidHeader:
    """Decode the first 124 bytes of ``data`` into a SidHeader.

    The magic id is taken verbatim; unknown tags are accepted.
    """
    if len(data) < HEADER_SIZE:
        raise TruncatedHeaderError(
            f"SID header needs {HEADER_SIZE} bytes, got {len(data)}"
        )
    (
        magic, version, data_offset, load_address, init_address, play_address,
        songs, start_song, speed, name, author, released, flags,
        start_page, page_length, sid2, sid3,
    ) = _HEADER_STRUCT.unpack_from(data)

    return SidHeader(
        magic_id=magic.decode(TEXT_ENCODING),
        version=version,
        data_offset=data_offset,
        load_address=load_address,
        init_address=init_address,
        play_address=play_address,
        songs=songs,
        start_song=start_song,
        speed=speed,
        name=_extract_text(name),
        author=_extract_text(author),
        released=_extract_text(released),
        flags=flags,
        start_page=start_page,
        page_length=page_length,
        sid2_address=_sid_address(sid2),
        sid3_address=_sid_address(sid3),
    )


def read_sid_header(file_path: Union[str, Path]) -> SidHeader:
    """Read and decode the header of a tune file.

    Raises:
        OSError: the file cannot be opened or read.
        TruncatedHeaderError: the file holds fewer than 124 bytes.
    """
    with open(file_path, "rb") as fh:
        data = fh.read(HEADER_SIZE)
    if len(data) < HEADER_SIZE:
        raise TruncatedHeaderError(
            f"{file_path}: SID header needs {HEADER_SIZE} bytes, got {len(data)}"
        )
    return decode_sid_header(data)
