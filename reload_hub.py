"""
reload_hub.py - Fan-out of live-reload events to connected browsers.

Every browser tab that opens the event stream gets a ClientStream. The hub
keeps the set of open streams and pushes the reload payload to all of them
when the file watcher reports a change.
"""

import contextlib
import logging
import queue
import threading

logger = logging.getLogger(__name__)

RELOAD_PAYLOAD = 'data: reload\n\n'
# SSE comment line written to idle streams; a failed write ends the stream.
HEARTBEAT = ':\n\n'
HEARTBEAT_INTERVAL = 15.0


class StreamClosed(Exception):
    """Raised when writing to or closing a stream that is already closed."""


class ClientStream:
    """One open event stream. Payloads are queued until the response reads them."""

    def __init__(self):
        self._queue = queue.Queue()
        self._closed = False

    @property
    def closed(self):
        return self._closed

    def push(self, payload):
        if self._closed:
            raise StreamClosed('push to a closed stream')
        self._queue.put(payload)

    def close(self):
        if self._closed:
            raise StreamClosed('stream already closed')
        self._closed = True
        # Wake the reader so the response generator can finish.
        self._queue.put(None)

    def receive(self, timeout=None):
        """
        Return the next payload, or None once the stream is closed.

        Raises queue.Empty if `timeout` elapses first.
        """
        return self._queue.get(timeout=timeout)

    def stream(self, heartbeat=None):
        """
        Yield queued payloads until the stream is closed.

        With `heartbeat` set, HEARTBEAT is yielded after that many idle seconds.
        """
        while True:
            try:
                payload = self.receive(timeout=heartbeat)
            except queue.Empty:
                yield HEARTBEAT
                continue
            if payload is None:
                return
            yield payload


class ReloadHub:
    """Owns the active client set."""

    def __init__(self):
        self._clients = set()
        self._lock = threading.Lock()

    def __len__(self):
        with self._lock:
            return len(self._clients)

    def __contains__(self, client):
        with self._lock:
            return client in self._clients

    def connect(self):
        client = ClientStream()
        with self._lock:
            self._clients.add(client)
            total = len(self._clients)
        logger.info("Client connected for live reload. Total clients: %d", total)
        return client

    def disconnect(self, client):
        """Remove and close `client`. Safe to call for a client that is already gone."""
        with self._lock:
            present = client in self._clients
            self._clients.discard(client)
            total = len(self._clients)
        _close_quietly(client)
        if present:
            logger.info("Client disconnected from live reload. Total clients: %d", total)

    def broadcast(self, payload=RELOAD_PAYLOAD):
        """Push `payload` to every connected client; returns how many received it."""
        with self._lock:
            snapshot = list(self._clients)

        delivered = 0
        for client in snapshot:
            try:
                client.push(payload)
            except StreamClosed:
                logger.warning("Failed to send reload event to a client, removing.")
                with self._lock:
                    self._clients.discard(client)
                _close_quietly(client)
                continue
            delivered += 1
        return delivered

    def close_all(self):
        with self._lock:
            clients = list(self._clients)
            self._clients.clear()
        for client in clients:
            _close_quietly(client)
        return len(clients)


def _close_quietly(client):
    with contextlib.suppress(StreamClosed):
        client.close()
