import os

import pytest

from app import create_app
from reload_hub import ReloadHub

# Far enough in the past that livereload never treats the first look as a change.
OLD_MTIME = 1_000_000


@pytest.fixture
def site(tmp_path):
    root = tmp_path / "site"
    root.mkdir()
    (root / "index.html").write_text("<h1>home</h1>")
    (root / "style.css").write_text("body { color: red; }")
    (root / "style-start.css").write_text("* { margin: 0; }")
    (root / "app.js").write_text("console.log('hi');")
    (root / "logo.png").write_bytes(b"\x89PNG\r\n\x1a\n")
    (root / "nested").mkdir()
    (root / "nested" / "page.html").write_text("<p>nested</p>")
    (tmp_path / "secret.txt").write_text("top secret")
    for entry in root.iterdir():
        if entry.is_file():
            os.utime(entry, (OLD_MTIME, OLD_MTIME))
    return root


@pytest.fixture
def hub():
    return ReloadHub()


@pytest.fixture
def app(site, hub):
    return create_app(str(site), str(site / "index.html"), hub)


@pytest.fixture
def client(app):
    return app.test_client()
