"""
Model-backed intent parsing.

Used when no pattern rule recognizes a request. The model sees the current
folder, the merged root + current listing and the action catalogue, and
answers with {"action", "params"} or {"steps": [...]}.
"""

from typing import Callable

from ..actions import CanonicalAction, DirectoryEntry, is_known_action
from ..llm import build_agent_prompt, build_command_prompt, call_llm, parse_llm_json


def parse_with_model(
    query: str,
    current_path: str,
    entries: list[DirectoryEntry],
    llm: Callable[..., str] = call_llm,
) -> dict:
    """
    Ask the model to interpret ``query``.

    Returns:
        The parsed JSON object.

    Raises:
        InvalidModelResponse: If no JSON object can be extracted.
        ModelTransportError: If the model call fails.
    """
    prompt = build_command_prompt(query, current_path, [e.to_dict() for e in entries])
    return parse_llm_json(llm(prompt, purpose="command"))


def _as_step(data) -> CanonicalAction | None:
    if not isinstance(data, dict) or not is_known_action(str(data.get("action") or "").strip().lower()):
        return None
    return CanonicalAction.from_dict(data)


def interpret_model_output(parsed: dict) -> list[CanonicalAction] | None:
    """
    Turn the model's JSON into canonical steps.

    A "steps" list wins over a top-level action. Steps with unknown actions
    are dropped.

    Returns:
        The steps, or None when nothing usable came back (the caller falls
        back to listing the current folder).
    """
    raw_steps = parsed.get("steps")
    if isinstance(raw_steps, list) and raw_steps:
        steps = [s for s in (_as_step(item) for item in raw_steps) if s is not None]
        return steps or None

    step = _as_step(parsed)
    return [step] if step else None


def plan_with_model(
    goal: str,
    current_path: str,
    entries: list[DirectoryEntry],
    llm: Callable[..., str] = call_llm,
) -> tuple[list[CanonicalAction], str]:
    """
    Ask the model for a step-by-step plan toward ``goal``.

    Returns:
        (steps, summary). Steps keep the model's order; unknown actions are dropped.
    """
    prompt = build_agent_prompt(goal, current_path, [e.to_dict() for e in entries])
    parsed = parse_llm_json(llm(prompt, purpose="plan"))
    raw_steps = parsed.get("steps") if isinstance(parsed.get("steps"), list) else []
    steps = [s for s in (_as_step(item) for item in raw_steps) if s is not None]
    summary = parsed.get("summary")
    return steps, summary.strip() if isinstance(summary, str) else ""
