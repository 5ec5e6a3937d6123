"""
LLM integration module for workspace_ai.

Provides:
- Gemini API client with one-shot fallback model
- JSON extraction/repair for model output
- Prompt builders
- Model configurations
"""

from .client import call_llm, configure_gemini, inline_binary, parse_llm_json
from .models import GEMINI_MODELS, DEFAULT_MODEL, FALLBACK_MODEL
from .prompts import (
    build_command_prompt,
    build_agent_prompt,
    build_suggestions_prompt,
    build_semantic_prompt,
    build_tags_prompt,
    build_comment_prompt,
)

__all__ = [
    "call_llm",
    "configure_gemini",
    "inline_binary",
    "parse_llm_json",
    "GEMINI_MODELS",
    "DEFAULT_MODEL",
    "FALLBACK_MODEL",
    "build_command_prompt",
    "build_agent_prompt",
    "build_suggestions_prompt",
    "build_semantic_prompt",
    "build_tags_prompt",
    "build_comment_prompt",
]
