"""
FastAPI Web Application — read-only HTTP access to the tune catalog.

Endpoints:
  GET  /api/catalog/stats          - Catalog summary
  GET  /api/tunes                  - Search/page tunes (?search=&offset=&limit=)
  GET  /api/tunes/by-path          - One tune by collection path (?path=)
  GET  /api/tunes/{index}          - One tune by catalog position
"""

from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

import uvicorn
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from .catalog import Catalog, open_catalog
from .config import Settings
from .errors import CatalogError
from .models import SidTune
from .tune_filter import TuneFilter

MAX_PAGE = 500


def _tune_summary(t: SidTune) -> Dict[str, Any]:
    return {
        "index": t.index,
        "path": t.path,
        "name": t.header.name,
        "author": t.header.author,
        "released": t.header.released,
        "year": t.year_label(),
        "songs": t.header.songs,
    }


def _tune_detail(t: SidTune) -> Dict[str, Any]:
    detail = _tune_summary(t)
    detail["header"] = t.header.model_dump(mode="json")
    detail["song_lengths"] = [int(d.total_seconds()) for d in t.song_lengths]
    detail["year_min"] = t.year_min
    detail["year_max"] = t.year_max
    detail["releases"] = [
        r.model_dump(mode="json", exclude_none=True, exclude={"sids"}) for r in t.releases
    ]
    return detail


def create_app(catalog: Optional[Catalog] = None) -> FastAPI:
    """Build the app; without a catalog, one is opened from the environment at startup."""
    state: Dict[str, Any] = {"catalog": None, "filter": None}

    def _install(cat: Catalog) -> None:
        state["catalog"] = cat
        state["filter"] = TuneFilter(cat)

    if catalog is not None:
        _install(catalog)

    @asynccontextmanager
    async def lifespan(app_instance: FastAPI):
        if state["catalog"] is None:
            try:
                _install(open_catalog(Settings.from_env()))
            except (CatalogError, OSError) as e:
                logger.error(f"Failed to open catalog: {e}")
                raise RuntimeError(f"Catalog unavailable: {e}") from e
        logger.info(f"SID catalog API ready. {state['catalog'].num_tunes} tunes loaded.")
        yield

    app = FastAPI(title="SID Catalog", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    def _catalog() -> Catalog:
        if state["catalog"] is None:
            raise HTTPException(status_code=503, detail="Catalog not loaded")
        return state["catalog"]

    # -----------------------------------------------------------------------
    # Routes
    # -----------------------------------------------------------------------

    @app.get("/api/catalog/stats")
    async def catalog_stats():
        """Catalog summary stats."""
        return JSONResponse(_catalog().stats())

    @app.get("/api/tunes")
    async def list_tunes(search: Optional[str] = None, offset: int = 0, limit: int = 100):
        """Search/list tunes; ``count`` is the size of the whole filtered view."""
        _catalog()
        view = state["filter"].apply(search or "")
        page = view.page(offset, min(limit, MAX_PAGE))
        return JSONResponse({
            "query": view.query,
            "count": view.count,
            "offset": max(0, offset),
            "tunes": [_tune_summary(t) for t in page],
        })

    @app.get("/api/tunes/by-path")
    async def tune_by_path(path: str):
        """Look up a tune by its collection path."""
        tune = _catalog().get_by_path(path)
        if tune is None:
            raise HTTPException(status_code=404, detail="Tune not found")
        return JSONResponse(_tune_detail(tune))

    @app.get("/api/tunes/{index}")
    async def tune_by_index(index: int):
        """Look up a tune by catalog position."""
        cat = _catalog()
        if not 0 <= index < cat.num_tunes:
            raise HTTPException(status_code=404, detail="Tune not found")
        return JSONResponse(_tune_detail(cat[index]))

    return app


app = create_app()


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main():
    settings = Settings.from_env()
    logger.info(f"Starting SID catalog API on port {settings.port}")
    uvicorn.run(
        "sid_catalog.app:app",
        host="0.0.0.0",
        port=settings.port,
        reload=False,
    )


if __name__ == "__main__":
    main()
