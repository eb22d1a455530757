from flask import Flask, Response, abort, request
from werkzeug.exceptions import InternalServerError
import logging
import os
from reload_hub import HEARTBEAT_INTERVAL, ReloadHub

logger = logging.getLogger(__name__)

ROOT = os.path.abspath(os.environ.get('LIVE_RELOAD_ROOT') or os.path.dirname(os.path.abspath(__file__)))
HTML_FILE = os.path.join(ROOT, "index.html")
WATCHED_FILES = [
    HTML_FILE,
    os.path.join(ROOT, "style.css"),
    os.path.join(ROOT, "style-start.css"),
]

EVENTS_PATH = "/live-reload-events"

DEFAULT_CONTENT_TYPE = 'application/octet-stream'
CONTENT_TYPES = {
    '.html': 'text/html; charset=utf-8',
    '.css': 'text/css; charset=utf-8',
    '.js': 'application/javascript; charset=utf-8',
}


def content_type_for(path):
    for ext, content_type in CONTENT_TYPES.items():
        if path.endswith(ext):
            return content_type
    return DEFAULT_CONTENT_TYPE


def is_within(root, candidate):
    root = os.path.realpath(root)
    candidate = os.path.realpath(candidate)
    return candidate == root or candidate.startswith(root.rstrip(os.sep) + os.sep)


def resolve_asset(root, html_file, request_path):
    """
    Map a request path to a file path under `root`.

    Returns None when the path escapes the root.
    """
    if request_path in ('/', '/index.html'):
        return html_file
    candidate = os.path.join(root, request_path.lstrip('/'))
    if not is_within(root, candidate):
        return None
    return os.path.realpath(candidate)


def read_asset(path):
    """Return the file's bytes, or None if it is missing or unreadable."""
    try:
        if not os.path.isfile(path):
            return None
        with open(path, 'rb') as f:
            return f.read()
    except (OSError, ValueError) as e:
        logger.error("Error serving file %s: %s", path, e)
        return None


def create_app(root=ROOT, html_file=HTML_FILE, hub=None, heartbeat=HEARTBEAT_INTERVAL):
    app = Flask(__name__, static_folder=None)
    hub = hub if hub is not None else ReloadHub()
    app.extensions['reload_hub'] = hub

    @app.route(EVENTS_PATH)
    def live_reload_events():
        client = hub.connect()

        def stream():
            try:
                # Empty first chunk makes the server send the headers right away.
                yield b''
                for payload in client.stream(heartbeat):
                    yield payload.encode('utf-8')
            finally:
                hub.disconnect(client)

        response = Response(stream(), content_type='text/event-stream')
        response.headers['Cache-Control'] = 'no-cache'
        response.headers['Connection'] = 'keep-alive'
        # The response may be closed before the generator ever runs.
        response.call_on_close(lambda: hub.disconnect(client))
        return response

    def serve_asset(request_path):
        try:
            path = resolve_asset(root, html_file, request_path)
        except ValueError as e:
            # Unrepresentable on the filesystem, e.g. an embedded NUL byte.
            logger.error("Error serving file %r: %s", request_path, e)
            path = data = None
        else:
            if path is None:
                abort(403)
            data = read_asset(path)

        if data is not None:
            return Response(data, content_type=content_type_for(path))

        logger.info("File not found: %s (requested path: %s)", path, request_path)
        return Response("Page Not Found", status=404)

    @app.route("/")
    @app.route("/index.html")
    def index():
        return serve_asset(request.path)

    @app.route("/<path:asset_path>")
    def static_files(asset_path):
        return serve_asset('/' + asset_path)

    @app.errorhandler(403)
    def forbidden(e):
        return Response("Forbidden", status=403)

    # Flask has already logged the traceback by the time this runs.
    @app.errorhandler(InternalServerError)
    def internal_error(e):
        return Response("Internal Server Error", status=500)

    return app
