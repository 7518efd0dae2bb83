"""Tests for the playback worker, using a sleeping Python process as the player."""

import sys
import time

import pytest

from sid_catalog.models import SidHeader, SidTune
from sid_catalog.player import Player

SLEEPER = [sys.executable, "-c", "import time; time.sleep(30)"]
BRIEF = [sys.executable, "-c", "import time; time.sleep(0.5)"]


def poll(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.02)
    return False


@pytest.fixture
def tune():
    return SidTune(path="/GAMES/S-Z/Wizball.sid", header=SidHeader(songs=3, start_song=2))


@pytest.fixture
def player(tmp_path):
    p = Player(SLEEPER, tmp_path)
    yield p
    p.quit()
    p.wait(timeout=10)


class TestPlayer:
    def test_idle(self, player):
        assert not player.playing
        assert player.current_tune is None
        assert player.elapsed().total_seconds() == 0

    def test_play_uses_start_song(self, player, tune):
        player.play(tune)
        assert poll(lambda: player.playing)
        assert player.current_tune is tune
        assert player.current_song == 2

    def test_play_explicit_song(self, player, tune):
        player.play(tune, song=3)
        assert poll(lambda: player.current_song == 3)

    def test_stop(self, player, tune):
        player.play(tune)
        assert poll(lambda: player.playing)
        player.stop()
        assert poll(lambda: not player.playing)
        assert player.current_tune is None

    def test_play_replaces_current(self, player, tune):
        player.play(tune, song=1)
        assert poll(lambda: player.current_song == 1)
        first = player._process
        player.play(tune, song=3)
        assert poll(lambda: player.current_song == 3)
        assert first.poll() is not None

    def test_quit_stops_process(self, tmp_path, tune):
        p = Player(SLEEPER, tmp_path)
        p.play(tune)
        assert poll(lambda: p.playing)
        process = p._process
        p.quit()
        p.wait(timeout=10)
        assert not p._thread.is_alive()
        assert process.poll() is not None

    def test_finished_process_reaped(self, tmp_path, tune):
        p = Player(BRIEF, tmp_path)
        try:
            p.play(tune)
            assert poll(lambda: p.current_tune is tune)
            assert poll(lambda: p.current_tune is None)
            assert not p.playing
        finally:
            p.quit()
            p.wait(timeout=10)

    def test_missing_player_binary(self, tmp_path, tune):
        p = Player(["definitely-not-a-sid-player"], tmp_path)
        try:
            p.play(tune)
            p.quit()
            p.wait(timeout=10)
            assert not p.playing
        finally:
            p.wait(timeout=10)

    def test_wait_without_start(self, tmp_path):
        Player(SLEEPER, tmp_path).wait(timeout=1)
