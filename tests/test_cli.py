"""Tests for the docshelf command line."""

import json
from pathlib import Path
from unittest.mock import patch

import pytest
from docshelf.__main__ import main


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for var in ("DOCSHELF_CONFIG", "DOCSHELF_ROOT", "DOCSHELF_PASSWORD", "GITHUB_ACTIONS"):
        monkeypatch.delenv(var, raising=False)


class TestMain:
    """Tests for main."""

    def test_export(self, docs_root: Path, tmp_path: Path) -> None:
        out, files = tmp_path / "api", tmp_path / "files"
        code = main([
            "--config", str(tmp_path / "none.json"), "--root", str(docs_root),
            "export", "--output-dir", str(out), "--files-dir", str(files),
        ])

        assert code == 0
        names = {n["name"] for n in json.loads((out / "files.json").read_text())}
        assert names == {"index.html", "notes.md", "assets", "empty"}
        assert (files / "assets" / "image.png").exists()

    def test_serve_uses_overrides(self, docs_root: Path, tmp_path: Path) -> None:
        with patch("docshelf.__main__.serve") as serve:
            code = main(["--config", str(tmp_path / "none.json"), "--root", str(docs_root), "serve", "--port", "4000"])

        assert code == 0
        config = serve.call_args.args[0]
        assert config.port == 4000
        assert config.root == docs_root.resolve()

    def test_missing_root(self, tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
        code = main(["--config", str(tmp_path / "none.json"), "export"])
        assert code == 2
        assert "root directory" in capsys.readouterr().err
