"""
Path sandbox guard.

Every user-supplied path is treated as relative to a single sandbox root.
Paths are normalized, leading ``../`` sequences are dropped, and anything
that still resolves outside the root (for example through a symlink) is
rejected with AccessDenied rather than clamped.
"""

import os
import posixpath
import re
from pathlib import Path

from .errors import AccessDenied

_LEADING_PARENT = re.compile(r'^(\.\.(/|$))+')


class Sandbox:
    """Maps workspace-relative paths to absolute paths under ``root``."""

    def __init__(self, root: Path | str):
        self.root = Path(root).resolve()

    @staticmethod
    def safe_relative(rel: str | None) -> str:
        """
        Normalize a relative path to forward-slash form with no ``..`` prefix.

        "a/./b/../c" -> "a/c", "../../etc" -> "etc", "/x" -> "x", "." -> "".
        """
        text = (rel or "").replace("\\", "/").strip()
        if not text:
            return ""
        norm = posixpath.normpath(text)
        norm = _LEADING_PARENT.sub("", norm)
        # normpath keeps a single leading slash for absolute input
        norm = norm.lstrip("/")
        if norm in (".", ".."):
            return ""
        return norm

    def resolve(self, rel: str | None) -> Path:
        """Join the normalized relative path onto the sandbox root."""
        safe = self.safe_relative(rel)
        return self.root / safe if safe else self.root

    def is_inside(self, path: Path | str) -> bool:
        """True if ``path`` (after following symlinks) is the root or below it."""
        real = Path(os.path.realpath(path))
        return real == self.root or self.root in real.parents

    def checked(self, rel: str | None) -> Path:
        """
        Resolve ``rel`` and verify containment.

        Raises:
            AccessDenied: If the resolved location is outside the root.
        """
        path = self.resolve(rel)
        if not self.is_inside(path):
            raise AccessDenied(f"Access denied: {rel}")
        return path

    def to_relative(self, path: Path | str) -> str:
        """Inverse of resolve(): absolute path -> forward-slash relative path."""
        rel = Path(path).relative_to(self.root).as_posix()
        return "" if rel == "." else rel
