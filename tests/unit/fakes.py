"""Shared test doubles and fixtures."""

import json
from pathlib import Path


class FakeLLM:
    """
    Stands in for call_llm.

    Returns queued responses in order (dicts are JSON-encoded, exceptions are
    raised) and records every call as (purpose, parts).
    """

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def __call__(self, parts, purpose="command"):
        self.calls.append((purpose, parts))
        if not self.responses:
            raise AssertionError(f"unexpected model call (purpose={purpose})")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response if isinstance(response, str) else json.dumps(response)


def no_model(parts, purpose="command"):
    raise AssertionError("model must not be called")


def make_tree(root: Path, files: dict) -> None:
    """Create files under root. Values are bytes, str, or None for an empty directory."""
    for rel, content in files.items():
        path = root / rel
        if content is None:
            path.mkdir(parents=True, exist_ok=True)
            continue
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content, encoding="utf-8")
