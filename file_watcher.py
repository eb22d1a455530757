"""
file_watcher.py - Polls a fixed list of files and reports modifications.

Each file gets its own livereload Watcher and its own timer thread, so a slow
or missing file never delays the checks of the others.
"""

import logging
import os
import threading

from livereload.watcher import Watcher

logger = logging.getLogger(__name__)

POLL_INTERVAL = 0.5


class PollTimer(threading.Thread):
    """Checks one file's modification time every `interval` seconds."""

    def __init__(self, path, on_change, interval=POLL_INTERVAL):
        super().__init__(name=f'watch:{os.path.basename(path)}', daemon=True)
        self.path = path
        self.interval = interval
        self._on_change = on_change
        self._stopped = threading.Event()
        self._watcher = Watcher()
        self._watcher.watch(path, self._changed)

    def _changed(self):
        self._on_change(self.path)

    def check(self):
        # livereload reports a deleted file as a change and forgets its mtime,
        # so a missing file is not examined at all until it comes back.
        if not os.path.isfile(self.path):
            return
        self._watcher.examine()

    def run(self):
        while not self._stopped.wait(self.interval):
            try:
                self.check()
            except OSError as e:
                # File vanished between the existence check and the stat.
                logger.debug("Could not stat %s: %s", self.path, e)

    def stop(self):
        self._stopped.set()


class FileWatcher:
    """A set of independent PollTimers sharing one change callback."""

    def __init__(self, paths, on_change, interval=POLL_INTERVAL):
        self.paths = tuple(paths)
        self._timers = [PollTimer(p, on_change, interval) for p in self.paths]

    def start(self):
        for timer in self._timers:
            timer.start()

    def poll(self):
        """Run one check of every watched file on the calling thread."""
        for timer in self._timers:
            timer.check()

    def stop(self, timeout=None):
        for timer in self._timers:
            timer.stop()
        for timer in self._timers:
            if timer.is_alive():
                timer.join(timeout)
