"""
Item resolution: map a fuzzy name a user typed to a real directory entry.

One ordered list of match strategies is applied to one candidate set;
the first strategy that hits wins. Comparisons are case-insensitive.
"""

import re
from pathlib import PurePosixPath
from typing import Callable, Iterable

from ..actions import DirectoryEntry

_QUOTES = "\"'`‘’“”"
_COPY_SUFFIX = re.compile(r'^(.*?)(?:\s*\((\d+)\)|\s+-?\s*copy)$', re.IGNORECASE)


def normalize_phrase(phrase: str | None) -> str:
    """Lower-case a user phrase and strip quotes, @-mentions and slashes."""
    text = (phrase or "").strip().strip(_QUOTES).strip()
    text = text.lstrip("@").replace("\\", "/")
    if text.startswith("./"):
        text = text[2:]
    return text.strip("/").lower()


MATCH_STRATEGIES: list[tuple[str, Callable[[str, DirectoryEntry], bool]]] = [
    ("exact_path", lambda q, e: e.path.lower() == q),
    ("exact_name", lambda q, e: e.name.lower() == q),
    ("substring", lambda q, e: q in e.name.lower()),
    ("path_suffix", lambda q, e: e.path.lower().endswith("/" + q)),
]


def match_entry(
    phrase: str,
    candidates: Iterable[DirectoryEntry],
    kind: str | None = None,
) -> DirectoryEntry | None:
    """
    Run the match cascade over ``candidates``.

    Args:
        phrase: Raw name or path as typed.
        candidates: Entries to choose from.
        kind: "file" or "directory" to restrict the pool.

    Returns:
        The first entry hit by the highest-priority strategy, or None.
    """
    query = normalize_phrase(phrase)
    if not query:
        return None
    pool = [c for c in candidates if kind is None or c.type == kind]
    for _name, matches in MATCH_STRATEGIES:
        for entry in pool:
            if matches(query, entry):
                return entry
    return None


def merge_candidates(*listings: Iterable[DirectoryEntry]) -> list[DirectoryEntry]:
    """Concatenate listings, keeping the first entry seen for each path."""
    seen = set()
    merged = []
    for listing in listings:
        for entry in listing:
            key = entry.path.replace("\\", "/").strip("/")
            if key in seen:
                continue
            seen.add(key)
            merged.append(entry)
    return merged


class ItemResolver:
    """
    Two-tier resolution: the known candidate set first, then a live read
    of the current directory, using the same cascade both times.
    """

    def __init__(self, workspace, current_path: str, candidates: list[DirectoryEntry]):
        self.workspace = workspace
        self.current_path = current_path
        self.candidates = candidates

    def resolve(self, phrase: str, kind: str | None = None) -> DirectoryEntry | None:
        hit = match_entry(phrase, self.candidates, kind)
        if hit is not None:
            return hit
        live = self.workspace.try_list_entries(self.current_path)
        return match_entry(phrase, live, kind)

    def resolve_directory(self, phrase: str) -> DirectoryEntry | None:
        return self.resolve(phrase, kind="directory")


def split_name(name: str) -> tuple[str, str]:
    suffix = PurePosixPath(name).suffix
    if not suffix or suffix == name:
        return name, ""
    return name[:-len(suffix)], suffix


def next_free_name(
    name: str,
    exists: Callable[[str], bool],
    separator: str = " ",
    split_extension: bool = True,
) -> str:
    """
    First non-colliding variant of ``name``.

    "a.txt" -> "a (2).txt", "a (3).txt", ... with the default separator;
    folders use ``separator=""`` and ``split_extension=False``: "Name(2)".
    """
    if not exists(name):
        return name
    stem, ext = split_name(name) if split_extension else (name, "")
    n = 2
    while True:
        candidate = f"{stem}{separator}({n}){ext}"
        if not exists(candidate):
            return candidate
        n += 1


def copy_suffix_key(name: str) -> tuple[str, bool]:
    """
    Group key for duplicate detection.

    "report (2).pdf" -> ("report.pdf", True); "report copy.pdf" -> ("report.pdf", True);
    "report.pdf" -> ("report.pdf", False)
    """
    stem, ext = split_name(name)
    match = _COPY_SUFFIX.match(stem)
    if match and match.group(1):
        return (match.group(1) + ext).lower(), True
    return name.lower(), False
