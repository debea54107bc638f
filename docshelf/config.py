import json
import os
from dataclasses import dataclass
from pathlib import Path

CONFIG_FILENAME = "docshelf.config.json"

_DEFAULTS = {
    "root": None,
    "password": "change-me",
    "host": "127.0.0.1",
    "port": 3001,
    "output_dir": "public/api",
    "files_dir": "public/files",
    "excluded_root_names": ["docshelf", "CLAUDE.md"],
    "allowed_upload_extensions": [".pdf", ".html", ".htm", ".jpg", ".jpeg", ".png", ".gif", ".webp", ".svg"],
    "max_upload_bytes": 50 * 1024 * 1024,
    "cors_origin": "*",
}


@dataclass(frozen=True)
class Config:
    root: Path
    password: str
    host: str = _DEFAULTS["host"]
    port: int = _DEFAULTS["port"]
    output_dir: Path = Path(_DEFAULTS["output_dir"])
    files_dir: Path = Path(_DEFAULTS["files_dir"])
    excluded_root_names: frozenset = frozenset(_DEFAULTS["excluded_root_names"])
    allowed_upload_extensions: frozenset = frozenset(_DEFAULTS["allowed_upload_extensions"])
    max_upload_bytes: int = _DEFAULTS["max_upload_bytes"]
    cors_origin: str = _DEFAULTS["cors_origin"]

    @classmethod
    def from_dict(cls, raw: dict) -> "Config":
        cfg = dict(_DEFAULTS)
        cfg.update({k: v for k, v in raw.items() if k in _DEFAULTS})
        if not cfg["root"]:
            raise ValueError("A root directory must be configured")
        return cls(
            root=Path(cfg["root"]).expanduser().resolve(),
            password=str(cfg["password"]),
            host=cfg["host"],
            port=int(cfg["port"]),
            output_dir=Path(cfg["output_dir"]),
            files_dir=Path(cfg["files_dir"]),
            excluded_root_names=frozenset(cfg["excluded_root_names"]),
            allowed_upload_extensions=frozenset(e.lower() for e in cfg["allowed_upload_extensions"]),
            max_upload_bytes=int(cfg["max_upload_bytes"]),
            cors_origin=cfg["cors_origin"],
        )


def _read_config_file(path: Path) -> dict:
    if not path.is_file():
        return {}
    try:
        with open(path) as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        print(f"Warning: could not load {path.name}: {e}")
        return {}
    if not isinstance(data, dict):
        print(f"Warning: {path.name} must contain a JSON object, ignoring it")
        return {}
    return data


def load_config(path: str | Path | None = None, **overrides) -> Config:
    """Build a Config from the JSON file, environment and explicit overrides.

    Precedence, lowest first: built-in defaults, the config file
    (``DOCSHELF_CONFIG`` or ``./docshelf.config.json``), ``DOCSHELF_ROOT`` /
    ``DOCSHELF_PASSWORD``, then keyword overrides that are not None.
    """
    if path is None:
        path = os.environ.get("DOCSHELF_CONFIG", CONFIG_FILENAME)
    raw = _read_config_file(Path(path))

    if os.environ.get("DOCSHELF_ROOT"):
        raw["root"] = os.environ["DOCSHELF_ROOT"]
    if os.environ.get("DOCSHELF_PASSWORD"):
        raw["password"] = os.environ["DOCSHELF_PASSWORD"]
    raw.update({k: v for k, v in overrides.items() if v is not None})

    # CI checkouts export the repository they run in.
    if not raw.get("root") and os.environ.get("GITHUB_ACTIONS"):
        raw["root"] = os.getcwd()
    return Config.from_dict(raw)
