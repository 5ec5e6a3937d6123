"""
Data model shared by the matchers, the model parser and the executor.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ActionKind(str, Enum):
    LIST = "list"
    CREATE_FOLDER = "create_folder"
    MOVE = "move"
    COPY = "copy"
    DELETE = "delete"
    RENAME = "rename"
    INFO = "info"
    SEARCH = "search"
    SEMANTIC_SEARCH = "semantic_search"
    SUGGEST = "suggest"
    ORGANIZE = "organize"
    NAVIGATE = "navigate"
    ADD_FAVORITE = "add_favorite"
    REMOVE_FAVORITE = "remove_favorite"
    ADD_TAG = "add_tag"
    ADD_COMMENT = "add_comment"
    REMOVE_DUPLICATES = "remove_duplicates"
    DIRECTORY_SIZE = "directory_size"


ACTION_NAMES = frozenset(kind.value for kind in ActionKind)

# Steps of these kinds always need confirmation, whatever the planner said
DESTRUCTIVE_ACTIONS = frozenset({ActionKind.DELETE.value, ActionKind.MOVE.value})


def is_known_action(name: Any) -> bool:
    return isinstance(name, str) and name in ACTION_NAMES


@dataclass
class DirectoryEntry:
    """A listing entry. ``path`` is workspace-relative with forward slashes."""
    name: str
    path: str
    type: str  # "file" | "directory"
    size: int | None = None
    modified: str | None = None

    @property
    def is_dir(self) -> bool:
        return self.type == "directory"

    def to_dict(self) -> dict:
        data = {"name": self.name, "path": self.path, "type": self.type}
        if self.size is not None:
            data["size"] = self.size
        if self.modified is not None:
            data["modified"] = self.modified
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "DirectoryEntry":
        path = str(data.get("path") or data.get("name") or "").replace("\\", "/").strip("/")
        name = data.get("name") or path.rsplit("/", 1)[-1]
        entry_type = "directory" if data.get("type") in ("directory", "dir", "folder") else "file"
        return cls(name=name, path=path, type=entry_type,
                   size=data.get("size"), modified=data.get("modified"))


@dataclass
class CanonicalAction:
    """
    One executable step.

    ``requires_confirm`` is forced on for destructive kinds at construction.
    """
    action: str
    params: dict = field(default_factory=dict)
    requires_confirm: bool = False

    def __post_init__(self):
        self.action = (self.action or "").strip().lower()
        if self.params is None:
            self.params = {}
        if self.action in DESTRUCTIVE_ACTIONS:
            self.requires_confirm = True

    def to_dict(self) -> dict:
        return {
            "action": self.action,
            "params": dict(self.params),
            "requiresConfirm": self.requires_confirm,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CanonicalAction":
        """Create a step from planner/model JSON."""
        params = data.get("params")
        return cls(
            action=str(data.get("action") or ""),
            params=params if isinstance(params, dict) else {},
            requires_confirm=bool(data.get("requiresConfirm") or data.get("requires_confirm")),
        )


def enforce_confirmation(steps: list[CanonicalAction]) -> list[CanonicalAction]:
    """
    Boundary between planning and execution.

    Re-applies the destructive flag so that a step mutated after construction
    still cannot reach the executor without ``requires_confirm``.
    """
    for step in steps:
        if step.action in DESTRUCTIVE_ACTIONS:
            step.requires_confirm = True
    return steps
