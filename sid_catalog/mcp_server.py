"""
FastMCP Server — catalog search tools for MCP clients.

Stdio (default):
  python -m sid_catalog.mcp_server

HTTP (SSE):
  python -m sid_catalog.mcp_server --transport sse [--host 127.0.0.1] [--port 8000]

Requires HVSC_BASE in the server's environment.
"""

import signal
import sys
from typing import Any, Dict, List, Optional

from fastmcp import FastMCP
from loguru import logger

from .catalog import Catalog, open_catalog
from .config import Settings
from .tune_filter import TuneFilter

# ---------------------------------------------------------------------------
# Global state
# ---------------------------------------------------------------------------

mcp = FastMCP("SID Catalog")

catalog: Optional[Catalog] = None
tune_filter: Optional[TuneFilter] = None


def _ensure_initialized() -> None:
    """Lazy-load the catalog on first tool call."""
    global catalog, tune_filter
    if catalog is not None:
        return
    logger.info("Initializing SID catalog MCP server...")
    try:
        catalog = open_catalog(Settings.from_env())
    except Exception as e:
        logger.error(f"Failed to open catalog: {e}")
        raise RuntimeError(f"Catalog unavailable: {e}") from e
    tune_filter = TuneFilter(catalog)
    logger.info(f"MCP server ready with {catalog.num_tunes} tunes")


def _tune_dict(index: int) -> Dict[str, Any]:
    t = catalog[index]
    return {
        "index": t.index,
        "path": t.path,
        "title": t.header.name,
        "author": t.header.author,
        "released": t.header.released,
        "year": t.year_label(),
        "songs": t.header.songs,
        "start_song": t.header.start_song,
        "song_lengths": [int(d.total_seconds()) for d in t.song_lengths],
        "sid_chips": t.header.chip_count,
        "releases": [
            {"id": r.id, "name": r.name, "group": r.group, "year": r.year}
            for r in t.releases
        ],
    }


# ---------------------------------------------------------------------------
# Tools
# ---------------------------------------------------------------------------

@mcp.tool()
async def search_tunes(query: str = "", limit: int = 20, offset: int = 0) -> Dict[str, Any]:
    """
    Search the High Voltage SID Collection by title, author or path.

    Matching is a case-insensitive substring test.  An empty query lists the
    whole collection in catalog order.

    Args:
        query: Text to look for, e.g. "hubbard" or "commando".
        limit: Maximum tunes to return (default 20, max 200).
        offset: Number of matches to skip, for paging.

    Returns:
        Dict with ``count`` (total matches) and ``tunes`` (the requested page).
    """
    _ensure_initialized()
    view = tune_filter.apply(query)
    page = view.page(offset, min(max(limit, 0), 200))
    return {
        "count": view.count,
        "tunes": [
            {"index": t.index, "path": t.path, "title": t.header.name,
             "author": t.header.author, "year": t.year_label()}
            for t in page
        ],
    }


@mcp.tool()
async def get_tune(path: Optional[str] = None, index: Optional[int] = None) -> Dict[str, Any]:
    """
    Full details of one tune: header credits, song lengths (seconds) and releases.

    Args:
        path: Collection path, e.g. "/MUSICIANS/H/Hubbard_Rob/Commando.sid".
        index: Catalog position, used when no path is given.
    """
    _ensure_initialized()
    if path is not None:
        index = catalog.index_of(path)
    if index is None or not 0 <= index < catalog.num_tunes:
        return {"error": "Tune not found"}
    return _tune_dict(index)


@mcp.tool()
async def get_catalog_stats() -> Dict[str, Any]:
    """Summary of the catalog: HVSC release, tune/song counts, year range."""
    _ensure_initialized()
    return catalog.stats()


@mcp.tool()
async def list_release_tunes(release_name: str, limit: int = 50) -> List[Dict[str, Any]]:
    """
    Tunes used by releases whose name contains ``release_name`` (case-insensitive).
    """
    _ensure_initialized()
    needle = release_name.strip().lower()
    results = []
    for t in catalog:
        if any(needle in r.name.lower() for r in t.releases):
            results.append({"index": t.index, "path": t.path, "title": t.header.name,
                            "releases": [r.name for r in t.releases]})
            if len(results) >= limit:
                break
    return results


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main():
    """Run the MCP server."""
    import argparse

    def handle_shutdown(sig, frame):
        logger.info("Shutting down MCP server...")
        sys.exit(0)

    signal.signal(signal.SIGINT, handle_shutdown)
    signal.signal(signal.SIGTERM, handle_shutdown)

    parser = argparse.ArgumentParser()
    parser.add_argument("--transport", default="stdio", choices=["stdio", "sse"])
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    args = parser.parse_args()

    logger.info("Starting SID catalog MCP server...")
    if args.transport == "sse":
        mcp.run(transport="sse", host=args.host, port=args.port)
    else:
        mcp.run()


if __name__ == "__main__":
    main()
