"""Tests for release providers and the release cross-reference."""

import json

import pytest

from sid_catalog.catalog import Catalog
from sid_catalog.config import Settings
from sid_catalog.errors import ReleaseFileError
from sid_catalog.models import Release, SidTune
from sid_catalog.releases import (
    JsonReleaseProvider,
    StaticReleaseProvider,
    cross_reference,
)

A = "/MUSICIANS/G/Galway_Martin/Parallax.sid"
B = "/MUSICIANS/T/Tel_Jeroen/Cybernoid.sid"
C = "/GAMES/S-Z/Wizball.sid"


@pytest.fixture
def catalog():
    return Catalog([SidTune(path=A), SidTune(path=B), SidTune(path=C)])


class TestCrossReference:
    def test_attaches_to_listed_tunes(self, catalog):
        release = Release(id=100, name="Ocean Music Disk", group="Ocean", sids=[A, C])
        stats = cross_reference(catalog, [release])

        assert [r.name for r in catalog.get_by_path(A).releases] == ["Ocean Music Disk"]
        assert catalog.get_by_path(B).releases == []
        assert [r.id for r in catalog.get_by_path(C).releases] == [100]
        assert stats == {"releases": 1, "attached": 2, "unknown": 0}

    def test_attached_copy_has_no_paths(self, catalog):
        release = Release(id=1, name="Demo", sids=[A])
        cross_reference(catalog, [release])
        assert catalog.get_by_path(A).releases[0].sids == []
        assert release.sids == [A]

    def test_unknown_path_skipped(self, catalog):
        release = Release(id=2, name="Lost", sids=["/NOT/THERE.sid", B])
        stats = cross_reference(catalog, [release])

        assert catalog.num_tunes == 3
        assert catalog.get_by_path("/NOT/THERE.sid") is None
        assert [r.id for r in catalog.get_by_path(B).releases] == [2]
        assert stats["unknown"] == 1

    def test_unknown_path_does_not_stop_later_releases(self, catalog):
        stats = cross_reference(catalog, [
            Release(id=20, name="Broken Links", sids=["/NOT/THERE.sid"]),
            Release(id=21, name="Crest Tune Disk", sids=[B]),
        ])
        assert [r.id for r in catalog.get_by_path(B).releases] == [21]
        assert stats == {"releases": 2, "attached": 1, "unknown": 1}

    def test_same_release_not_attached_twice(self, catalog):
        release = Release(id=3, name="Twice", sids=[A, A])
        cross_reference(catalog, [release, release])
        assert len(catalog.get_by_path(A).releases) == 1

    def test_several_releases_on_one_tune(self, catalog):
        cross_reference(catalog, [
            Release(id=4, name="First", sids=[B]),
            Release(id=5, name="Second", sids=[B]),
        ])
        assert [r.id for r in catalog.get_by_path(B).releases] == [4, 5]

    def test_no_releases(self, catalog):
        assert cross_reference(catalog, []) == {"releases": 0, "attached": 0, "unknown": 0}


class TestJsonReleaseProvider:
    def test_reads_document(self, tmp_path):
        f = tmp_path / "releases.json"
        f.write_text(json.dumps([
            {"id": 11634, "name": "Edge of Disgrace", "group": "Booze Design",
             "year": 2008, "type": "C64 Demo", "sids": [A]},
            {"id": 7, "name": "Minimal"},
        ]))
        releases = JsonReleaseProvider(f).read_releases()
        assert [r.id for r in releases] == [11634, 7]
        assert releases[0].group == "Booze Design"
        assert releases[0].sids == [A]
        assert releases[1].sids == []

    def test_missing_file_yields_nothing(self, tmp_path):
        assert JsonReleaseProvider(tmp_path / "releases.json").read_releases() == []

    @pytest.mark.parametrize("content", [
        "{broken",
        json.dumps([{"name": "no id"}]),
        json.dumps({"id": 1, "name": "not a list"}),
    ])
    def test_invalid_document(self, tmp_path, content):
        f = tmp_path / "releases.json"
        f.write_text(content)
        with pytest.raises(ReleaseFileError):
            JsonReleaseProvider(f).read_releases()

    def test_from_settings_unconfigured(self, tmp_path):
        assert JsonReleaseProvider.from_settings(Settings(hvsc_base=tmp_path)) is None

    def test_from_settings_configured(self, tmp_path):
        settings = Settings(hvsc_base=tmp_path, releases_path=tmp_path / "r.json")
        provider = JsonReleaseProvider.from_settings(settings)
        assert provider.json_path == tmp_path / "r.json"


class TestStaticReleaseProvider:
    def test_returns_copy(self):
        provider = StaticReleaseProvider([Release(id=1, name="X")])
        first = provider.read_releases()
        first.clear()
        assert len(provider.read_releases()) == 1
