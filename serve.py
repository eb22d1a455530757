#!/usr/bin/env python3
"""Live-reload dev server: static files plus a reload event stream on port 5500."""

import logging
import os
import signal
import sys
import threading

from werkzeug.serving import make_server

from app import EVENTS_PATH, HTML_FILE, ROOT, WATCHED_FILES, create_app
from file_watcher import POLL_INTERVAL, FileWatcher
from reload_hub import HEARTBEAT_INTERVAL, ReloadHub

logger = logging.getLogger(__name__)

HOST = os.environ.get('LIVE_RELOAD_HOST', '127.0.0.1')
PORT = int(os.environ.get('LIVE_RELOAD_PORT', '5500'))


class DevServer:
    """HTTP server, reload hub and file watcher with a shared lifecycle."""

    def __init__(self, host=HOST, port=PORT, root=ROOT, html_file=HTML_FILE,
                 watched_files=WATCHED_FILES, interval=POLL_INTERVAL, heartbeat=HEARTBEAT_INTERVAL):
        self.root = root
        self.hub = ReloadHub()
        self.app = create_app(root, html_file, self.hub, heartbeat)
        self.watcher = FileWatcher(watched_files, self.notify, interval)
        self.httpd = make_server(host, port, self.app, threaded=True)
        self._thread = None

    @property
    def url(self):
        host, port = self.httpd.server_address[:2]
        return f"http://{host}:{port}"

    def notify(self, path):
        logger.info("%s changed. Sending reload event to %d client(s).", os.path.basename(path), len(self.hub))
        self.hub.broadcast()

    def start(self):
        self.watcher.start()
        self._thread = threading.Thread(target=self.httpd.serve_forever, name='httpd', daemon=True)
        self._thread.start()

    def stop(self):
        self.watcher.stop()
        closed = self.hub.close_all()
        logger.info("Closed %d live reload client(s).", closed)
        if self._thread is not None:
            self.httpd.shutdown()
            self._thread.join()
            self._thread = None
        self.httpd.server_close()


def main():
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    server = DevServer()
    stop = threading.Event()

    def request_stop(signum, frame):
        stop.set()

    signal.signal(signal.SIGINT, request_stop)
    signal.signal(signal.SIGTERM, request_stop)

    server.start()
    logger.info("Live server → %s (events at %s)", server.url, EVENTS_PATH)
    logger.info("Serving files from: %s", server.root)
    if server.watcher.paths:
        names = ', '.join(os.path.basename(p) for p in server.watcher.paths)
        logger.info("Watching for changes in: %s", names)

    stop.wait()
    logger.info("Gracefully shutting down...")
    server.stop()
    sys.exit(0)


if __name__ == "__main__":
    main()
