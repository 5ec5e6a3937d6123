"""
LLM model configurations.
"""

# Supported Gemini models with their full identifiers
GEMINI_MODELS = {
    "flash": "gemini-2.0-flash",            # Default, fast and cheap
    "flash-lite": "gemini-2.0-flash-lite",  # Even faster/cheaper
    "flash-1.5": "gemini-1.5-flash",        # Fallback when the default id is rejected
    "pro": "gemini-2.5-pro",                # Best quality, limited free tier
}

# Default model for API calls
DEFAULT_MODEL = "flash"
FALLBACK_MODEL = "flash-1.5"

# Per-purpose generation settings
MODEL_CONFIG = {
    "command": {
        "max_output_tokens": 2048,
        "temperature": 0.2,
    },
    "plan": {
        "max_output_tokens": 4096,
        "temperature": 0.2,
    },
    "suggest": {
        "max_output_tokens": 4096,
        "temperature": 0.3,
    },
    "semantic": {
        "max_output_tokens": 2048,
        "temperature": 0.1,
    },
    "tags": {
        "max_output_tokens": 512,
        "temperature": 0.3,
    },
    "comment": {
        "max_output_tokens": 512,
        "temperature": 0.4,
    },
}


def resolve_model_id(model_name: str | None) -> str:
    """Map a short name to its full id; unknown names are used verbatim."""
    if not model_name:
        return GEMINI_MODELS[DEFAULT_MODEL]
    return GEMINI_MODELS.get(model_name, model_name)


def get_model_config(purpose: str) -> dict:
    """
    Get generation settings for a prompt purpose.

    Args:
        purpose: One of the MODEL_CONFIG keys (command, plan, suggest, ...).

    Returns:
        Configuration dict with max_output_tokens and temperature.
    """
    return MODEL_CONFIG.get(purpose, MODEL_CONFIG["command"])
