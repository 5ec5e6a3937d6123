"""
Command interpretation: item resolution, pattern rules and model parsing.
"""

from .resolver import ItemResolver, match_entry, merge_candidates, next_free_name
from .matchers import COMMAND_RULES, CommandContext, CommandRule, is_filler, match_command, strip_filler
from .parser import interpret_model_output, parse_with_model, plan_with_model

__all__ = [
    "ItemResolver",
    "match_entry",
    "merge_candidates",
    "next_free_name",
    "COMMAND_RULES",
    "CommandContext",
    "CommandRule",
    "is_filler",
    "match_command",
    "strip_filler",
    "interpret_model_output",
    "parse_with_model",
    "plan_with_model",
]
