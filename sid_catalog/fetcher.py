"""
Remote snapshot fetcher.

Prebuilt snapshots are published per HVSC release.  The release number is
read from ``DOCUMENTS/hv_sids.txt`` in the collection, which holds a plain
integer such as ``82``.
"""

import re
from pathlib import Path

import requests
from loguru import logger

from .errors import FetchError, ReleaseDetectionError

_INT_RE = re.compile(r"[0-9]+")
DOWNLOAD_TIMEOUT = 60
_CHUNK_SIZE = 64 * 1024


def detect_release(version_path: Path) -> int:
    """Return the first integer in the version marker document.

    Raises:
        ReleaseDetectionError: the document is unreadable or holds no integer.
    """
    try:
        content = version_path.read_text(encoding="latin-1")
    except OSError as e:
        raise ReleaseDetectionError(f"Unable to detect HVSC version: {e}") from e

    match = _INT_RE.search(content)
    if match is None:
        raise ReleaseDetectionError(
            f"Unable to detect HVSC version from {content.strip()[:40]!r}."
        )
    release = int(match.group())
    logger.debug(f"Detected HVSC release {release} from {version_path}")
    return release


def snapshot_url(release: int, template: str) -> str:
    return template.format(release=release)


def download_snapshot(url: str, dest: Path, timeout: int = DOWNLOAD_TIMEOUT) -> int:
    """Download ``url`` verbatim to ``dest``; returns the byte count.

    One blocking attempt, no retries.

    Raises:
        FetchError: on network errors, HTTP status >= 400 or write errors.
    """
    logger.info(f"Downloading index of tunes and releases from {url}")
    try:
        response = requests.get(url, stream=True, timeout=timeout)
    except requests.RequestException as e:
        raise FetchError(f"Error while downloading {url!r}: {e}") from e

    tmp = dest.with_suffix(".part")
    length = 0
    try:
        if response.status_code >= 400:
            raise FetchError(
                f"Error while downloading {url!r}: {response.status_code} {response.reason}"
            )
        dest.parent.mkdir(parents=True, exist_ok=True)
        with tmp.open("wb") as out:
            for chunk in response.iter_content(chunk_size=_CHUNK_SIZE):
                out.write(chunk)
                length += len(chunk)
        tmp.replace(dest)
    except requests.RequestException as e:
        tmp.unlink(missing_ok=True)
        raise FetchError(f"Error while downloading {url!r}: {e}") from e
    except OSError as e:
        tmp.unlink(missing_ok=True)
        raise FetchError(f"Error while writing {dest}: {e}") from e
    finally:
        response.close()

    logger.info(f"{length / 1_000_000:.2f}MB downloaded to {dest}")
    return length
