"""
Playback worker — runs an external SID player (sidplayfp by default).

One background thread owns the player process.  ``play`` and ``stop`` post
commands to it; ``quit`` asks it to stop the process and exit, and ``wait``
blocks until it has.  Callers must call ``quit()`` and ``wait()`` before the
program exits so no player process is left running.
"""

import queue
import subprocess
import threading
import time
from datetime import timedelta
from pathlib import Path
from typing import List, Optional, Tuple

from loguru import logger

from .models import SidTune

_POLL_INTERVAL = 0.1
_TERMINATE_TIMEOUT = 3.0


class Player:
    """Supervises one external player process from a worker thread."""

    def __init__(self, command: List[str], hvsc_base: Path) -> None:
        self.command = list(command)
        self.hvsc_base = Path(hvsc_base)
        self._commands: "queue.Queue[Tuple[str, Optional[SidTune], int]]" = queue.Queue()
        self._lock = threading.Lock()
        self._process: Optional[subprocess.Popen] = None
        self._current_tune: Optional[SidTune] = None
        self._current_song = 0
        self._started_at: Optional[float] = None
        self._thread: Optional[threading.Thread] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(target=self._run, name="sid-player", daemon=True)
        self._thread.start()

    def play(self, tune: SidTune, song: int = 0) -> None:
        """Play a 1-based song of ``tune``; 0 means the tune's start song."""
        self.start()
        self._commands.put(("play", tune, song or tune.header.start_song))

    def stop(self) -> None:
        self._commands.put(("stop", None, 0))

    def quit(self) -> None:
        self._commands.put(("quit", None, 0))

    def wait(self, timeout: Optional[float] = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def playing(self) -> bool:
        with self._lock:
            return self._process is not None and self._process.poll() is None

    @property
    def current_tune(self) -> Optional[SidTune]:
        with self._lock:
            return self._current_tune

    @property
    def current_song(self) -> int:
        with self._lock:
            return self._current_song

    def elapsed(self) -> timedelta:
        with self._lock:
            if self._started_at is None:
                return timedelta(0)
            return timedelta(seconds=int(time.monotonic() - self._started_at))

    # ------------------------------------------------------------------
    # Worker
    # ------------------------------------------------------------------

    def _run(self) -> None:
        while True:
            try:
                action, tune, song = self._commands.get(timeout=_POLL_INTERVAL)
            except queue.Empty:
                self._reap()
                continue
            if action == "play":
                self._terminate()
                self._spawn(tune, song)
            elif action == "stop":
                self._terminate()
            elif action == "quit":
                self._terminate()
                logger.debug("Player worker stopped")
                return

    def _spawn(self, tune: SidTune, song: int) -> None:
        file_path = self.hvsc_base / tune.path.lstrip("/")
        cmd = self.command + [f"-o{song}", str(file_path)]
        logger.info(f"Playing {tune.path} song {song}/{tune.header.songs}")
        try:
            process = subprocess.Popen(
                cmd,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                stdin=subprocess.DEVNULL,
            )
        except (subprocess.SubprocessError, OSError) as e:
            logger.error(f"Failed to start player {self.command[0]!r}: {e}")
            return
        with self._lock:
            self._process = process
            self._current_tune = tune
            self._current_song = song
            self._started_at = time.monotonic()

    def _terminate(self) -> None:
        with self._lock:
            process = self._process
            self._process = None
            self._current_tune = None
            self._current_song = 0
            self._started_at = None
        if process is None or process.poll() is not None:
            return
        process.terminate()
        try:
            process.wait(timeout=_TERMINATE_TIMEOUT)
        except subprocess.TimeoutExpired:
            logger.warning("Player did not exit, killing it")
            process.kill()
            process.wait()

    def _reap(self) -> None:
        with self._lock:
            process = self._process
            if process is None or process.poll() is None:
                return
            self._process = None
            self._current_tune = None
            self._current_song = 0
            self._started_at = None
        logger.debug(f"Player exited with status {process.returncode}")
