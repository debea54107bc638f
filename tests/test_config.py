"""Unit tests for configuration loading."""

import json
from pathlib import Path

import pytest
from docshelf.config import Config, load_config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for var in ("DOCSHELF_CONFIG", "DOCSHELF_ROOT", "DOCSHELF_PASSWORD", "GITHUB_ACTIONS"):
        monkeypatch.delenv(var, raising=False)


class TestConfig:
    """Tests for Config.from_dict."""

    def test_defaults(self, tmp_path: Path) -> None:
        cfg = Config.from_dict({"root": str(tmp_path)})
        assert cfg.root == tmp_path.resolve()
        assert cfg.max_upload_bytes == 50 * 1024 * 1024
        assert cfg.excluded_root_names == frozenset({"docshelf", "CLAUDE.md"})
        assert ".pdf" in cfg.allowed_upload_extensions

    def test_root_required(self) -> None:
        with pytest.raises(ValueError):
            Config.from_dict({})

    def test_unknown_keys_ignored(self, tmp_path: Path) -> None:
        cfg = Config.from_dict({"root": str(tmp_path), "colour": "blue"})
        assert not hasattr(cfg, "colour")

    def test_extensions_lowercased(self, tmp_path: Path) -> None:
        cfg = Config.from_dict({"root": str(tmp_path), "allowed_upload_extensions": [".PDF"]})
        assert cfg.allowed_upload_extensions == frozenset({".pdf"})


class TestLoadConfig:
    """Tests for load_config."""

    def test_reads_file(self, tmp_path: Path) -> None:
        path = tmp_path / "docshelf.config.json"
        path.write_text(json.dumps({"root": str(tmp_path), "password": "pw", "port": 9000}))

        cfg = load_config(path)

        assert cfg.password == "pw"
        assert cfg.port == 9000

    def test_env_overrides_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        path = tmp_path / "docshelf.config.json"
        path.write_text(json.dumps({"root": "/nowhere", "password": "pw"}))
        monkeypatch.setenv("DOCSHELF_ROOT", str(tmp_path))
        monkeypatch.setenv("DOCSHELF_PASSWORD", "from-env")

        cfg = load_config(path)

        assert cfg.root == tmp_path.resolve()
        assert cfg.password == "from-env"

    def test_keyword_overrides_win(self, tmp_path: Path) -> None:
        cfg = load_config(tmp_path / "missing.json", root=str(tmp_path), port=1234, host=None)
        assert cfg.port == 1234
        assert cfg.host == "127.0.0.1"

    def test_bad_file_falls_back(self, tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
        path = tmp_path / "docshelf.config.json"
        path.write_text("{not json")

        cfg = load_config(path, root=str(tmp_path))

        assert cfg.password == "change-me"
        assert "could not load" in capsys.readouterr().out

    def test_github_actions_uses_cwd(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("GITHUB_ACTIONS", "true")
        monkeypatch.chdir(tmp_path)
        cfg = load_config(tmp_path / "missing.json")
        assert cfg.root == tmp_path.resolve()

    def test_no_root_anywhere(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError):
            load_config(tmp_path / "missing.json")
