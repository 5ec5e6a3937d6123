"""
Workspace facade: sandbox + filesystem + sidecar metadata.

Listing and walking helpers here always skip hidden entries (leading ".")
and yield DirectoryEntry objects with workspace-relative paths.
"""

import os
from pathlib import Path
from typing import Generator

from .actions import DirectoryEntry
from .errors import NotFound
from .filesystem import FileStat, LocalFilesystem
from .metadata import MetadataStore
from .sandbox import Sandbox
from .utils import is_hidden


def join_rel(base: str, name: str) -> str:
    """Join workspace-relative segments with forward slashes."""
    base = (base or "").strip("/")
    return f"{base}/{name}" if base else name


def parent_rel(rel: str) -> str:
    rel = (rel or "").strip("/")
    return rel.rsplit("/", 1)[0] if "/" in rel else ""


def basename_rel(rel: str) -> str:
    return (rel or "").strip("/").rsplit("/", 1)[-1]


class Workspace:
    """Everything the executor needs to touch a single sandboxed workspace."""

    def __init__(
        self,
        root: Path | str,
        fs: LocalFilesystem | None = None,
        meta: MetadataStore | None = None,
        disk_label: str = "Local Disk",
    ):
        self.sandbox = Sandbox(root)
        self.root = self.sandbox.root
        self.fs = fs or LocalFilesystem()
        self.meta = meta or MetadataStore(self.root)
        self.disk_label = disk_label

    @classmethod
    def from_settings(cls, settings) -> "Workspace":
        root = Path(settings.workspace_path)
        root.mkdir(parents=True, exist_ok=True)
        return cls(root, disk_label=settings.disk_label)

    # -- path helpers ------------------------------------------------------

    def path(self, rel: str | None) -> Path:
        """Absolute, containment-checked path for ``rel``."""
        return self.sandbox.checked(rel)

    def normalize(self, rel: str | None) -> str:
        return self.sandbox.safe_relative(rel)

    def exists(self, rel: str) -> bool:
        return self.fs.exists(self.path(rel))

    def stat(self, rel: str) -> FileStat:
        return self.fs.stat(self.path(rel))

    # -- listings ----------------------------------------------------------

    def list_entries(self, rel: str = "", with_stats: bool = False) -> list[DirectoryEntry]:
        """
        Immediate, non-hidden children of ``rel``.

        Raises:
            NotFound: If the directory does not exist.
        """
        base = self.normalize(rel)
        directory = self.path(base)
        entries = []
        for name, is_dir in sorted(self.fs.list(directory), key=lambda e: e[0].lower()):
            if is_hidden(name):
                continue
            entry = DirectoryEntry(
                name=name,
                path=join_rel(base, name),
                type="directory" if is_dir else "file",
            )
            if with_stats:
                try:
                    st = self.fs.stat(directory / name)
                    entry.size = st.size if st.is_file else None
                    entry.modified = st.modified
                except NotFound:
                    continue
            entries.append(entry)
        return entries

    def try_list_entries(self, rel: str = "") -> list[DirectoryEntry]:
        """list_entries() that returns [] for a missing directory."""
        try:
            return self.list_entries(rel)
        except NotFound:
            return []

    def walk(self, rel: str = "") -> Generator[DirectoryEntry, None, None]:
        """Recursively yield every non-hidden entry below ``rel``."""
        base = self.normalize(rel)
        top = self.path(base)
        for dirpath, dirnames, filenames in os.walk(top):
            dirnames[:] = sorted(d for d in dirnames if not is_hidden(d))
            rel_dir = self.sandbox.to_relative(dirpath)
            for d in dirnames:
                yield DirectoryEntry(name=d, path=join_rel(rel_dir, d), type="directory")
            for f in sorted(filenames):
                if is_hidden(f):
                    continue
                yield DirectoryEntry(name=f, path=join_rel(rel_dir, f), type="file")

    def total_size(self, rel: str = "") -> tuple[int, int]:
        """
        Recursive (byte total, file count) below ``rel``.

        A file path returns its own size and a count of 1.
        """
        target = self.path(rel)
        st = self.fs.stat(target)
        if st.is_file:
            return st.size, 1

        size = 0
        count = 0
        for entry in self.walk(rel):
            if entry.is_dir:
                continue
            try:
                size += self.fs.stat(self.root / entry.path).size
                count += 1
            except NotFound:
                continue
        return size, count

    def workspaces(self) -> list[str]:
        """Registered top-level workspaces that still exist on disk."""
        existing = {e.name for e in self.try_list_entries("") if e.is_dir}
        return [name for name in self.meta.read().get("userWorkspaces", []) if name in existing]
