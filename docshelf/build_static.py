import json
import logging
import shutil
from pathlib import Path

from .library import scan_tree

logger = logging.getLogger(__name__)

MANIFEST_NAME = "files.json"


def write_manifest(tree: list, output_dir: Path) -> Path:
    output_dir.mkdir(parents=True, exist_ok=True)
    manifest = output_dir / MANIFEST_NAME
    manifest.write_text(json.dumps(tree, indent=2), encoding="utf-8")
    return manifest


def output_roots(root: Path, *dirs: Path) -> set:
    """Top-level names under ``root`` that hold any of ``dirs``."""
    names = set()
    for d in dirs:
        try:
            rel = d.resolve().relative_to(root)
        except ValueError:
            continue
        if rel.parts:
            names.add(rel.parts[0])
    return names


def copy_files(root: Path, items: list, files_dir: Path) -> tuple[int, int]:
    """Mirror every leaf file of ``items`` under ``files_dir``.

    Returns ``(copied, failed)``. A file that cannot be copied is logged and
    skipped.
    """
    copied = failed = 0
    for item in items:
        if item["isDirectory"]:
            sub_copied, sub_failed = copy_files(root, item.get("children", []), files_dir)
            copied += sub_copied
            failed += sub_failed
            continue
        src = root / item["path"]
        dst = files_dir / item["path"]
        try:
            dst.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(src, dst)
        except OSError as e:
            logger.warning("Error copying %s: %s", item["path"], e)
            failed += 1
            continue
        copied += 1
    return copied, failed


def export(root: Path, output_dir: Path, files_dir: Path,
           excluded: frozenset = frozenset(), clean: bool = False) -> list:
    """Snapshot ``root`` into ``output_dir/files.json`` plus copies under ``files_dir``.

    Every run rewrites the manifest and re-copies every file. With ``clean``
    the files directory is emptied first so deleted sources do not linger.
    """
    root = Path(root).resolve()
    output_dir = Path(output_dir)
    files_dir = Path(files_dir)

    print(f"Exporting {root}...")
    if clean and files_dir.exists():
        shutil.rmtree(files_dir)
    files_dir.mkdir(parents=True, exist_ok=True)

    # An export written inside the root must not be picked up by the next run.
    excluded = frozenset(excluded) | output_roots(root, output_dir, files_dir)
    tree = scan_tree(root, "", excluded)
    manifest = write_manifest(tree, output_dir)
    print(f"  {manifest}")

    copied, failed = copy_files(root, tree, files_dir)
    print(f"  {copied} files copied to {files_dir}")
    if failed:
        print(f"  {failed} files could not be copied (see log)")

    print("\nStatic data generated successfully!")
    return tree


def export_config(config, clean: bool = False) -> list:
    return export(config.root, config.output_dir, config.files_dir,
                  config.excluded_root_names, clean=clean)
