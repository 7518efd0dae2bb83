"""
Song-Length Table Parser

Parses the HVSC ``Songlengths.txt`` document:

    [Database]
    ; /MUSICIANS/H/Hubbard_Rob/Commando.sid
    b0f9d1ba0c3e1e4cc8b1e0c9f6ad6a43=4:35 0:11 0:09

A line starting with ``;`` names a tune.  Every ``m:ss`` token on the lines
that follow belongs to that tune, in song order, whatever text surrounds it.
"""

import re
from datetime import timedelta
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple, Union

from loguru import logger

MARKER = ";"
_PATH_PREFIX_LEN = 2  # "; "
_LENGTH_RE = re.compile(r"[0-9]{1,2}:[0-9]{2}")
DOCUMENT_ENCODING = "latin-1"


def parse_song_length(value: str) -> timedelta:
    """Convert an ``m:ss`` token to a duration; malformed tokens become zero."""
    try:
        minutes, seconds = value.split(":")
        return timedelta(minutes=int(minutes), seconds=int(seconds))
    except ValueError:
        logger.debug(f"Unparseable song length {value!r}, using 0")
        return timedelta(0)


def iter_song_lengths(
    lines: Iterator[str],
) -> Iterator[Tuple[str, List[timedelta]]]:
    """Yield ``(path, durations)`` for each record, in document order.

    Single pass over ``lines``; a record is yielded once the next marker
    line (or the end of input) is reached.
    """
    path: Optional[str] = None
    lengths: List[timedelta] = []

    for line in lines:
        line = line.rstrip("\r\n")
        if not line:
            continue
        if line[0] == MARKER:
            if path is not None:
                yield path, lengths
            path = line[_PATH_PREFIX_LEN:].strip()
            lengths = []
            continue
        if path is None:
            continue
        lengths.extend(parse_song_length(tok) for tok in _LENGTH_RE.findall(line))

    if path is not None:
        yield path, lengths


def read_song_lengths(
    file_path: Union[str, Path],
) -> Iterator[Tuple[str, List[timedelta]]]:
    """Stream the records of a song-length document from disk.

    Raises:
        OSError: the document cannot be opened or read.
    """
    with open(file_path, "r", encoding=DOCUMENT_ENCODING) as fh:
        yield from iter_song_lengths(fh)


def parse_song_lengths(file_path: Union[str, Path]) -> Dict[str, List[timedelta]]:
    """Read the whole document into an ordered ``path -> durations`` mapping."""
    table: Dict[str, List[timedelta]] = {}
    for path, lengths in read_song_lengths(file_path):
        table[path] = lengths
    logger.debug(f"Parsed song lengths for {len(table)} tunes from {file_path}")
    return table
