"""Path-scoped access to the document root.

Everything that touches the filesystem on behalf of a client goes through
this module: containment checks, tree scans, content classification and
the mutating operations of the development server.
"""

import logging
import mimetypes
import os
import re
import shutil
import stat
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from .config import Config
from .errors import (
    AlreadyExists,
    DocShelfError,
    InvalidRequest,
    NotAFile,
    NotFound,
    OperationFailed,
    PathTraversal,
    Unauthorized,
    UnsupportedType,
)

logger = logging.getLogger(__name__)

MARKUP_EXTENSIONS = {".html", ".htm"}
TEXT_EXTENSIONS = {".txt", ".md", ".js", ".ts", ".json", ".css"}
BINARY_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".webp", ".svg", ".pdf"}

ROOT_SENTINEL = "root"

_FOLDER_NAME_RE = re.compile(r"^[A-Za-z0-9\-_ .]+$")


def resolve_path(root: Path, raw_path: str) -> Path:
    """Join ``raw_path`` onto ``root`` and refuse anything that lands outside it.

    Containment is checked segment by segment on the canonical paths, so a
    sibling such as ``/docs-old`` never passes for a root of ``/docs``.
    """
    root = root.resolve()
    try:
        candidate = (root / raw_path).resolve()
        candidate.relative_to(root)
    except (ValueError, OSError):
        raise PathTraversal() from None
    return candidate


def resolve_entry(root: Path, raw_path: str) -> Path:
    """Like resolve_path, but the last segment is not dereferenced.

    Only the parent is canonicalized, so a symlink names the link itself
    rather than whatever it points to.
    """
    norm = os.path.normpath(raw_path) if raw_path else "."
    name = os.path.basename(norm)
    if name in ("", ".", ".."):
        return resolve_path(root, norm)
    return resolve_path(root, os.path.dirname(norm)) / name


def relative_path(root: Path, path: Path) -> str:
    rel = path.relative_to(root.resolve())
    return "" if rel == Path(".") else rel.as_posix()


def _is_hidden(name: str) -> bool:
    return name.startswith(".")


def _list_entries(directory: Path) -> list:
    with os.scandir(directory) as it:
        return list(it)


def scan_tree(root: Path, rel: str = "", excluded: frozenset = frozenset()) -> list:
    """Recursively list ``root/rel`` as FileNode dicts.

    ``excluded`` names are only skipped directly under the root. A directory
    that cannot be read contributes an empty list instead of failing the scan.
    """
    current = root / rel if rel else root
    items = []
    try:
        entries = _list_entries(current)
    except OSError as e:
        logger.warning("Error scanning directory %s: %s", current, e)
        return items
    for entry in entries:
        if _is_hidden(entry.name):
            continue
        if rel == "" and entry.name in excluded:
            continue
        node_path = str(PurePosixPath(rel) / entry.name) if rel else entry.name
        if entry.is_dir(follow_symlinks=False):
            children = scan_tree(root, node_path, excluded)
            items.append({"name": entry.name, "path": node_path, "isDirectory": True, "children": children})
        else:
            items.append({"name": entry.name, "path": node_path, "isDirectory": False})
    return items


def list_folders(root: Path, rel: str = "", excluded: frozenset = frozenset()) -> list:
    """Flatten every directory under ``root`` into ``{name, path}`` entries, parents first."""
    return _flatten_folders(scan_tree(root, rel, excluded))


def _flatten_folders(nodes: list) -> list:
    folders = []
    for node in nodes:
        if node["isDirectory"]:
            folders.append({"name": node["name"], "path": node["path"]})
            folders.extend(_flatten_folders(node["children"]))
    return folders


def count_contents(directory: Path) -> tuple[int, int]:
    """Return ``(files, folders)`` beneath ``directory``, ignoring hidden entries."""
    files = folders = 0
    try:
        entries = _list_entries(directory)
    except OSError as e:
        logger.warning("Error counting directory %s: %s", directory, e)
        return files, folders
    for entry in entries:
        if _is_hidden(entry.name):
            continue
        if entry.is_dir(follow_symlinks=False):
            folders += 1
            sub_files, sub_folders = count_contents(Path(entry.path))
            files += sub_files
            folders += sub_folders
        else:
            files += 1
    return files, folders


def next_free_name(directory: Path, name: str) -> str:
    """Return ``name``, or ``stem_N.ext`` with the smallest N not taken in ``directory``."""
    if not os.path.lexists(directory / name):
        return name
    stem, ext = os.path.splitext(name)
    counter = 1
    while True:
        candidate = f"{stem}_{counter}{ext}"
        if not os.path.lexists(directory / candidate):
            return candidate
        counter += 1


@dataclass
class ContentResult:
    """What a client gets back for a file: decoded text or a path to stream."""

    kind: str
    path: Path
    content: str | None = None
    mimetype: str | None = None

    @property
    def is_text(self) -> bool:
        return self.kind == "text"


def classify(name: str) -> str | None:
    ext = PurePosixPath(name).suffix.lower()
    if ext in MARKUP_EXTENSIONS:
        return "markup"
    if ext in TEXT_EXTENSIONS:
        return "text"
    if ext in BINARY_EXTENSIONS:
        return "binary"
    return None


def resolve_content(root: Path, raw_path: str) -> ContentResult:
    fpath = resolve_path(root, raw_path)
    try:
        st = fpath.stat()
    except FileNotFoundError:
        raise NotFound(f"File not found: {raw_path}") from None
    except OSError as e:
        raise OperationFailed(f"Failed to read file: {e}") from e
    if not stat.S_ISREG(st.st_mode):
        raise NotAFile()

    kind = classify(fpath.name)
    if kind is None:
        raise UnsupportedType()
    if kind == "text":
        try:
            content = fpath.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            raise OperationFailed(f"Failed to read file: {e}") from e
        return ContentResult("text", fpath, content=content)
    mime, _ = mimetypes.guess_type(fpath.name)
    return ContentResult("stream", fpath, mimetype=mime or "application/octet-stream")


class Library:
    """The document root plus the operations clients may run against it."""

    def __init__(self, config: Config):
        self.config = config
        self.root = config.root

    def resolve(self, raw_path: str) -> Path:
        return resolve_path(self.root, raw_path)

    def relative(self, path: Path) -> str:
        return relative_path(self.root, path)

    def scan(self) -> list:
        return scan_tree(self.root, "", self.config.excluded_root_names)

    def folders(self) -> list:
        return list_folders(self.root, "", self.config.excluded_root_names)

    def content(self, raw_path: str) -> ContentResult:
        return resolve_content(self.root, raw_path)

    def check_secret(self, secret: str | None) -> None:
        # Plain equality against one operator-provisioned string; this is a
        # single-operator convenience gate, not an authentication scheme.
        if secret is None or secret != self.config.password:
            raise Unauthorized()

    def _resolve_below_root(self, raw_path: str) -> Path:
        target = resolve_entry(self.root, raw_path)
        if target == self.root.resolve():
            raise PathTraversal("The root directory cannot be modified")
        return target

    def create_folder(self, name: str, parent: str | None = None) -> str:
        name = (name or "").strip()
        if not name:
            raise InvalidRequest("Folder name is required")
        if not _FOLDER_NAME_RE.match(name):
            raise InvalidRequest(
                "Folder name can only contain letters, numbers, spaces, hyphens, underscores, and dots"
            )
        if name.startswith(".") or ".." in name:
            raise InvalidRequest("Invalid folder name")

        raw = f"{parent.strip('/')}/{name}" if parent else name
        target = self.resolve(raw)
        if os.path.lexists(target):
            raise AlreadyExists(f"Folder '{name}' already exists")
        try:
            target.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise OperationFailed(f"Failed to create folder: {e}") from e
        rel = self.relative(target)
        logger.info("Created folder %s", rel)
        return rel

    def place_upload(self, temp_path: Path, filename: str, target_folder: str | None = None) -> str:
        """Move an already received upload into the root.

        The temporary file is removed whenever the upload is refused.
        """
        try:
            raw = f"{target_folder.strip('/')}/{filename}" if target_folder else filename
            dest = self.resolve(raw)
            if os.path.lexists(dest):
                raise AlreadyExists(f"File '{filename}' already exists")
            dest.parent.mkdir(parents=True, exist_ok=True)
            shutil.move(str(temp_path), str(dest))
        except DocShelfError:
            _discard(temp_path)
            raise
        except OSError as e:
            _discard(temp_path)
            raise OperationFailed(f"Failed to store upload: {e}") from e
        rel = self.relative(dest)
        logger.info("Stored upload %s", rel)
        return rel

    def delete(self, raw_path: str, secret: str | None) -> str:
        self.check_secret(secret)
        target = self._resolve_below_root(raw_path)
        if not os.path.lexists(target):
            raise NotFound(f"Path not found: {raw_path}")
        try:
            if os.path.islink(target) or not target.is_dir():
                target.unlink()
            else:
                shutil.rmtree(target)
        except FileNotFoundError:
            raise NotFound(f"Path not found: {raw_path}") from None
        except OSError as e:
            raise OperationFailed(f"Failed to delete: {e}") from e
        rel = self.relative(target)
        logger.info("Deleted %s", rel)
        return rel

    def move_folder_contents(self, source: str, destination: str | None, secret: str | None) -> tuple[int, str]:
        """Move every visible child of ``source`` into ``destination`` and drop ``source``.

        Returns the number of moved entries and the destination's relative
        path, or ``ROOT_SENTINEL`` when the contents went to the root.
        """
        self.check_secret(secret)
        src = self._resolve_below_root(source)
        if not os.path.lexists(src):
            raise NotFound(f"Source folder not found: {source}")
        if os.path.islink(src) or not src.is_dir():
            raise InvalidRequest("Source path is not a folder")

        dest = self.resolve(destination) if destination else self.root.resolve()
        if not dest.is_dir():
            raise NotFound(f"Destination folder not found: {destination}")
        if dest == src or src in dest.parents:
            raise InvalidRequest("Destination cannot be the source folder or inside it")

        moved = 0
        try:
            for entry in _list_entries(src):
                if _is_hidden(entry.name):
                    continue
                new_name = next_free_name(dest, entry.name)
                os.rename(entry.path, dest / new_name)
                moved += 1
            src.rmdir()
        except OSError as e:
            raise OperationFailed(f"Failed to move folder contents: {e}") from e

        label = self.relative(dest) or ROOT_SENTINEL
        logger.info("Moved %d item(s) from %s to %s", moved, self.relative(src), label)
        return moved, label

    def folder_contents(self, raw_path: str) -> dict:
        target = self.resolve(raw_path)
        if not target.exists():
            raise NotFound(f"Folder not found: {raw_path}")
        if not target.is_dir():
            raise InvalidRequest("Path is not a folder")
        files, folders = count_contents(target)
        return {
            "folderName": target.name,
            "path": self.relative(target),
            "fileCount": files,
            "folderCount": folders,
        }


def _discard(path: Path) -> None:
    try:
        os.unlink(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning("Could not remove temporary upload %s: %s", path, e)
