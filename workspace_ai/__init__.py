"""
Workspace AI
============

A sandboxed workspace folder driven by natural-language commands: pattern
rules and a Gemini fallback turn requests like "move report.pdf to new
workspace" into canonical file actions, which are then executed safely.
"""

__version__ = "1.0.0"

from .actions import ActionKind, CanonicalAction, DirectoryEntry, enforce_confirmation
from .errors import (
    AccessDenied,
    InvalidArgument,
    InvalidModelResponse,
    ModelTransportError,
    ModelUnavailable,
    NotFound,
    Unsupported,
    WorkspaceError,
)
from .executor import execute_action, execute_approved_steps, run_plan
from .pipeline import plan_goal, run_command
from .workspace import Workspace

__all__ = [
    "ActionKind",
    "CanonicalAction",
    "DirectoryEntry",
    "enforce_confirmation",
    "AccessDenied",
    "InvalidArgument",
    "InvalidModelResponse",
    "ModelTransportError",
    "ModelUnavailable",
    "NotFound",
    "Unsupported",
    "WorkspaceError",
    "execute_action",
    "execute_approved_steps",
    "run_plan",
    "plan_goal",
    "run_command",
    "Workspace",
]
