import http.client
import logging
import os
import socket
import time

import pytest

from reload_hub import RELOAD_PAYLOAD
from serve import DevServer


@pytest.fixture
def server(site):
    srv = DevServer(
        host="127.0.0.1",
        port=0,
        root=str(site),
        html_file=str(site / "index.html"),
        watched_files=[str(site / "index.html"), str(site / "style.css")],
        interval=0.01,
    )
    yield srv
    srv.stop()


def wait_for(predicate, timeout=5):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return False


def test_serves_static_files_over_http(server):
    server.start()
    host, port = server.httpd.server_address[:2]
    conn = http.client.HTTPConnection(host, port, timeout=5)
    try:
        conn.request("GET", "/style.css")
        response = conn.getresponse()
        assert response.status == 200
        assert response.getheader("Content-Type") == "text/css; charset=utf-8"
        assert response.read() == b"body { color: red; }"
    finally:
        conn.close()


def test_notify_logs_and_broadcasts(server, caplog):
    caplog.set_level(logging.INFO)
    client = server.hub.connect()
    server.notify(str(server.root) + "/index.html")
    assert client.receive(timeout=0) == RELOAD_PAYLOAD
    assert "index.html changed. Sending reload event to 1 client(s)." in caplog.text


def test_file_change_reaches_connected_browser(server, site):
    server.watcher.poll()
    server.start()
    host, port = server.httpd.server_address[:2]
    conn = http.client.HTTPConnection(host, port, timeout=5)
    try:
        conn.request("GET", "/live-reload-events")
        assert wait_for(lambda: len(server.hub) == 1)

        os.utime(site / "index.html", (2_000_000, 2_000_000))
        response = conn.getresponse()
        assert response.status == 200
        assert response.getheader("Content-Type") == "text/event-stream"
        assert response.read(len(RELOAD_PAYLOAD)) == RELOAD_PAYLOAD.encode()
    finally:
        conn.close()


def test_stop_clears_clients_and_timers(server):
    server.start()
    clients = [server.hub.connect() for _ in range(3)]
    server.stop()
    assert len(server.hub) == 0
    assert all(c.closed for c in clients)
    assert not any(t.is_alive() for t in server.watcher._timers)


def test_closed_browser_is_dropped_without_a_broadcast(site):
    server = DevServer(
        host="127.0.0.1",
        port=0,
        root=str(site),
        html_file=str(site / "index.html"),
        watched_files=[],
        heartbeat=0.05,
    )
    server.start()
    try:
        host, port = server.httpd.server_address[:2]
        sock = socket.create_connection((host, port), timeout=5)
        try:
            sock.sendall(b"GET /live-reload-events HTTP/1.1\r\nHost: localhost\r\n\r\n")
            head = b""
            while b"\r\n\r\n" not in head:
                chunk = sock.recv(1024)
                assert chunk
                head += chunk
            assert head.startswith(b"HTTP/1.1 200")
            assert b"text/event-stream" in head
            assert len(server.hub) == 1
        finally:
            sock.close()

        assert wait_for(lambda: len(server.hub) == 0)
    finally:
        server.stop()
