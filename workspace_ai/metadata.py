"""
Sidecar metadata store.

A single JSON document kept next to the workspace contents holding per-path
tags, comments and favorites, recents, share links and the registry of
user-created top-level workspaces.

The store is read-modify-written as a whole with no locking. Concurrent
writers can lose updates (last write wins); callers accept that.
"""

import json
from pathlib import Path

from .utils import load_json, save_json

META_FILENAME = ".file-organizer-meta.json"


def empty_metadata() -> dict:
    return {"recents": [], "meta": {}, "sharedLinks": {}, "userWorkspaces": []}


class MetadataStore:
    """Whole-document read/write access to the sidecar file."""

    def __init__(self, root: Path):
        self.path = Path(root) / META_FILENAME

    def read(self) -> dict:
        try:
            data = load_json(self.path)
        except (FileNotFoundError, json.JSONDecodeError):
            return empty_metadata()
        if not isinstance(data, dict):
            return empty_metadata()
        for key, default in empty_metadata().items():
            data.setdefault(key, default)
        return data

    def write(self, data: dict) -> None:
        save_json(data, self.path)


def entry_for(data: dict, path: str) -> dict:
    """Return (creating if needed) the metadata record for ``path``."""
    record = data.setdefault("meta", {}).setdefault(path, {})
    record.setdefault("tags", [])
    record.setdefault("comments", "")
    record.setdefault("starred", False)
    return record


def _is_under(candidate: str, prefix_path: str) -> bool:
    prefix = prefix_path.rstrip("/") + "/"
    return candidate == prefix_path or candidate.startswith(prefix)


def remove_paths(data: dict, deleted_paths: list[str]) -> dict:
    """
    Drop deleted paths from meta, recents and sharedLinks.

    Anything below a deleted directory is dropped as well.
    """
    known = [
        *data.get("meta", {}).keys(),
        *data.get("recents", []),
        *data.get("sharedLinks", {}).keys(),
    ]
    to_remove = set(deleted_paths)
    for deleted in deleted_paths:
        to_remove.update(p for p in known if _is_under(p, deleted))

    data["recents"] = [p for p in data.get("recents", []) if p not in to_remove]
    data["meta"] = {p: v for p, v in data.get("meta", {}).items() if p not in to_remove}
    data["sharedLinks"] = {p: v for p, v in data.get("sharedLinks", {}).items() if p not in to_remove}
    return data


def rename_paths(data: dict, old_path: str, new_path: str) -> dict:
    """Re-key every record at or below ``old_path`` to live under ``new_path``."""

    def rekey(p: str) -> str:
        if _is_under(p, old_path):
            return new_path + p[len(old_path):]
        return p

    data["recents"] = [rekey(p) for p in data.get("recents", [])]
    data["meta"] = {rekey(p): v for p, v in data.get("meta", {}).items()}
    data["sharedLinks"] = {rekey(p): v for p, v in data.get("sharedLinks", {}).items()}
    return data


def register_workspace(data: dict, name: str) -> dict:
    workspaces = data.setdefault("userWorkspaces", [])
    if name not in workspaces:
        workspaces.append(name)
    return data


def unregister_workspace(data: dict, name: str) -> dict:
    data["userWorkspaces"] = [w for w in data.get("userWorkspaces", []) if w != name]
    return data
