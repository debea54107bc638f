"""Pytest configuration and shared fixtures."""

from pathlib import Path

import pytest
from docshelf.config import Config
from docshelf.library import Library
from docshelf.server import create_app

PASSWORD = "s3cret"


@pytest.fixture
def docs_root(tmp_path: Path) -> Path:
    """A small document root with hidden, excluded and nested entries."""
    root = tmp_path / "docs"
    root.mkdir()
    (root / "index.html").write_text("<h1>Hello</h1>")
    (root / "notes.md").write_text("# Notes\n\nSome *text*.")
    (root / ".hidden.txt").write_text("secret")
    (root / ".git").mkdir()
    (root / ".git" / "HEAD").write_text("ref")
    (root / "CLAUDE.md").write_text("metadata")
    (root / "docshelf").mkdir()
    (root / "docshelf" / "app.js").write_text("console.log(1)")
    assets = root / "assets"
    assets.mkdir()
    (assets / "image.png").write_bytes(b"\x89PNG\r\n\x1a\nfake")
    (assets / "CLAUDE.md").write_text("nested metadata")
    (assets / "docshelf").mkdir()
    (root / "empty").mkdir()
    return root


@pytest.fixture
def config(docs_root: Path, tmp_path: Path) -> Config:
    return Config.from_dict({
        "root": str(docs_root),
        "password": PASSWORD,
        "output_dir": str(tmp_path / "out" / "api"),
        "files_dir": str(tmp_path / "out" / "files"),
    })


@pytest.fixture
def library(config: Config) -> Library:
    return Library(config)


@pytest.fixture
def client(config: Config):
    app = create_app(config)
    app.testing = True
    return app.test_client()
