"""
Natural-language command pipeline.

Flow for one request:
    filler stripping -> pattern rules -> (model parser) -> executor

Requests nobody can interpret fall back to listing the current folder,
flagged with "fallback": True so the caller can tell the user.
"""

from typing import Callable

from .actions import CanonicalAction, DirectoryEntry, enforce_confirmation
from .commands import (
    CommandContext,
    interpret_model_output,
    match_command,
    merge_candidates,
    parse_with_model,
    plan_with_model,
    strip_filler,
)
from .errors import InvalidArgument, InvalidModelResponse
from .executor import Confirm, execute_action, run_plan
from .llm import call_llm
from .suggestions import PdfExtractor
from .utils import print_info, print_warning
from .workspace import Workspace

FALLBACK_MESSAGE = "Could not understand the request, showing the current folder instead."


def _candidate_entries(workspace: Workspace, current_path: str, items: list | None) -> list[DirectoryEntry]:
    """Root entries first, then the current folder, then anything the caller already knows about."""
    known = [i if isinstance(i, DirectoryEntry) else DirectoryEntry.from_dict(i) for i in items or []]
    listings = [workspace.try_list_entries("")]
    if current_path:
        listings.append(workspace.try_list_entries(current_path))
    return merge_candidates(*listings, known)


def _fallback(workspace: Workspace, current_path: str, reason: str) -> dict:
    print_warning(f"Falling back to list: {reason}")
    result = execute_action(workspace, "list", {}, current_path)
    result.update(fallback=True, message=FALLBACK_MESSAGE, source="fallback")
    return result


def run_command(
    workspace: Workspace,
    query: str,
    current_path: str = "",
    items: list | None = None,
    llm: Callable[..., str] = call_llm,
    confirm: Confirm | None = None,
    pdf_extractor: PdfExtractor | None = None,
) -> dict:
    """
    Interpret and execute one free-text request.

    Args:
        workspace: The sandboxed workspace.
        query: The user's request.
        current_path: Workspace-relative folder the user is looking at.
        items: Extra known entries (dicts or DirectoryEntry) to resolve names against.
        llm: Model callable, replaced by a fake in tests.
        confirm: Called for steps that need confirmation; returning False cancels.
        pdf_extractor: Optional PDF text extractor for semantic search.

    Returns:
        The action result for a single step, or {"action": "multi_step",
        "results": [...]} for several. Always carries "source": "rule",
        "model" or "fallback".

    Raises:
        InvalidArgument: Empty request, or a recognized request missing a required part.
        ModelTransportError: The model could not be reached.
        WorkspaceError: Raised by the executor; a failing step aborts the rest.
    """
    current = workspace.normalize(current_path)
    text = " ".join(strip_filler(query).split())
    if not text:
        raise InvalidArgument("Empty command")

    candidates = _candidate_entries(workspace, current, items)
    matched = match_command(text, CommandContext(workspace, current, candidates))

    if matched is not None:
        rule_name, steps = matched
        print_info(f"Matched rule '{rule_name}'")
        source = {"source": "rule", "rule": rule_name}
    else:
        try:
            parsed = parse_with_model(text, current, candidates, llm=llm)
        except InvalidModelResponse as e:
            return _fallback(workspace, current, str(e))
        steps = interpret_model_output(parsed)
        if steps is None:
            return _fallback(workspace, current, "no usable action in model response")
        source = {"source": "model"}

    results = run_plan(workspace, steps, current, llm=llm, confirm=confirm, pdf_extractor=pdf_extractor)
    if len(steps) == 1:
        return {**results[0], **source}
    return {
        "success": all(r.get("success") for r in results) and len(results) == len(steps),
        "action": "multi_step",
        "steps": [s.to_dict() for s in steps],
        "results": results,
        **source,
    }


def plan_goal(
    workspace: Workspace,
    goal: str,
    current_path: str = "",
    llm: Callable[..., str] = call_llm,
) -> dict:
    """
    Ask the model for a plan toward ``goal`` without executing it.

    move and delete steps always come back with requiresConfirm set.
    """
    goal = (goal or "").strip()
    if not goal:
        raise InvalidArgument("Goal required")
    current = workspace.normalize(current_path)
    entries = workspace.list_entries(current, with_stats=True)
    steps, summary = plan_with_model(goal, current, entries, llm=llm)
    steps = enforce_confirmation(steps)
    return {
        "success": True,
        "action": "plan",
        "path": current,
        "steps": [s.to_dict() for s in steps],
        "summary": summary,
        "itemCount": len(entries),
    }


def steps_from_dicts(raw_steps: list[dict]) -> list[CanonicalAction]:
    """Rebuild steps from JSON (for example a saved plan) and re-apply the confirmation flag."""
    return enforce_confirmation([CanonicalAction.from_dict(s) for s in raw_steps if isinstance(s, dict)])
