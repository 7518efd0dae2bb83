"""Tests for the MCP tools, run against a catalog built from the test collection."""

import asyncio

import pytest

import sid_catalog.mcp_server as mcp_server
from sid_catalog.catalog import build_catalog
from sid_catalog.models import Release
from sid_catalog.tune_filter import TuneFilter

from conftest import COMMANDO, EDGE, LAST_NINJA, MONTY, WIZBALL


def call(tool, **kwargs):
    """Run a registered tool's coroutine function."""
    fn = getattr(tool, "fn", tool)
    return asyncio.run(fn(**kwargs))


@pytest.fixture
def loaded(settings, monkeypatch):
    cat = build_catalog(settings, release=82)
    cat.get_by_path(EDGE).add_release(Release(id=11634, name="Edge of Disgrace", group="Booze Design"))
    cat.get_by_path(WIZBALL).add_release(Release(id=500, name="Ocean Loader 3"))
    cat.get_by_path(LAST_NINJA).add_release(Release(id=501, name="ocean loader collection"))
    monkeypatch.setattr(mcp_server, "catalog", cat)
    monkeypatch.setattr(mcp_server, "tune_filter", TuneFilter(cat))
    return cat


class TestSearchTunes:
    def test_search(self, loaded):
        result = call(mcp_server.search_tunes, query="hubbard")
        assert result["count"] == 2
        assert [t["path"] for t in result["tunes"]] == [MONTY, COMMANDO]

    def test_paging(self, loaded):
        result = call(mcp_server.search_tunes, query="", limit=2, offset=1)
        assert result["count"] == 5
        assert [t["index"] for t in result["tunes"]] == [1, 2]


class TestGetTune:
    def test_by_path(self, loaded):
        tune = call(mcp_server.get_tune, path=WIZBALL)
        assert tune["index"] == 2
        assert tune["start_song"] == 2
        assert tune["song_lengths"] == [389, 123, 0]

    def test_by_index(self, loaded):
        tune = call(mcp_server.get_tune, index=4)
        assert tune["path"] == EDGE
        assert tune["sid_chips"] == 2
        assert tune["releases"] == [
            {"id": 11634, "name": "Edge of Disgrace", "group": "Booze Design", "year": None},
        ]

    def test_path_takes_precedence(self, loaded):
        assert call(mcp_server.get_tune, path=MONTY, index=4)["path"] == MONTY

    @pytest.mark.parametrize("kwargs", [
        {"path": "/NOT/THERE.sid"},
        {"path": "/NOT/THERE.sid", "index": 0},
        {"index": 99},
        {},
    ])
    def test_not_found(self, loaded, kwargs):
        assert call(mcp_server.get_tune, **kwargs) == {"error": "Tune not found"}


class TestReleaseTools:
    def test_release_name_match(self, loaded):
        result = call(mcp_server.list_release_tunes, release_name="OCEAN LOADER")
        assert [t["path"] for t in result] == [WIZBALL, LAST_NINJA]

    def test_limit(self, loaded):
        assert len(call(mcp_server.list_release_tunes, release_name="ocean", limit=1)) == 1

    def test_no_match(self, loaded):
        assert call(mcp_server.list_release_tunes, release_name="Crest") == []

    def test_stats(self, loaded):
        stats = call(mcp_server.get_catalog_stats)
        assert stats["num_tunes"] == 5
        assert stats["with_releases"] == 3
