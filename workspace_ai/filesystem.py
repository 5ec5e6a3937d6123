"""
Local filesystem capability.

Thin wrappers around os/shutil. Callers pass absolute paths that have
already been checked by the Sandbox; nothing here validates containment.
OS errors with a clear meaning are translated into WorkspaceError types.
"""

import os
import shutil
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from .errors import InvalidArgument, NotFound


@dataclass
class FileStat:
    is_dir: bool
    is_file: bool
    size: int
    modified: str
    created: str


def _iso(timestamp: float) -> str:
    return datetime.fromtimestamp(timestamp).isoformat(timespec='seconds')


@contextmanager
def _translate_errors(path: Path):
    try:
        yield
    except FileNotFoundError:
        raise NotFound(f"Not found: {path.name or path}")
    except FileExistsError:
        raise InvalidArgument(f"Already exists: {path.name or path}")
    except (IsADirectoryError, NotADirectoryError) as e:
        raise InvalidArgument(str(e))


class LocalFilesystem:
    """Blocking filesystem primitives used by the Workspace."""

    def list(self, path: Path) -> list[tuple[str, bool]]:
        """Return (name, is_directory) for each child, hidden entries included."""
        with _translate_errors(path):
            with os.scandir(path) as it:
                return [(entry.name, entry.is_dir()) for entry in it]

    def stat(self, path: Path) -> FileStat:
        with _translate_errors(path):
            st = path.stat()
        # st_birthtime only exists on some platforms
        created = getattr(st, "st_birthtime", st.st_ctime)
        return FileStat(
            is_dir=path.is_dir(),
            is_file=path.is_file(),
            size=st.st_size,
            modified=_iso(st.st_mtime),
            created=_iso(created),
        )

    def exists(self, path: Path) -> bool:
        return path.exists()

    def mkdir(self, path: Path, recursive: bool = False) -> None:
        with _translate_errors(path):
            path.mkdir(parents=recursive, exist_ok=recursive)

    def rename(self, src: Path, dst: Path) -> None:
        with _translate_errors(src):
            os.rename(src, dst)

    def copy_recursive(self, src: Path, dst: Path) -> None:
        with _translate_errors(src):
            if src.is_dir():
                shutil.copytree(src, dst)
            else:
                shutil.copy2(src, dst)

    def remove_recursive(self, path: Path) -> None:
        with _translate_errors(path):
            shutil.rmtree(path)

    def unlink(self, path: Path) -> None:
        with _translate_errors(path):
            path.unlink()

    def read_bytes(self, path: Path) -> bytes:
        with _translate_errors(path):
            return path.read_bytes()

    def read_text(self, path: Path, limit: int | None = None) -> str:
        with _translate_errors(path):
            with open(path, 'r', encoding='utf-8', errors='replace') as f:
                return f.read(limit) if limit else f.read()
