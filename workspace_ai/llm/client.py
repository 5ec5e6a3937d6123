"""
Gemini API client for workspace_ai.

The model is called with a list of prompt parts (text, or inline binary
blobs built with inline_binary()) and asked for a JSON response. A rejected
or unavailable model id gets exactly one retry against the fallback model.
"""

import json
import re
from enum import Enum
from typing import Any

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions

from ..config import Settings, load_settings
from ..errors import InvalidModelResponse, ModelTransportError, ModelUnavailable
from ..utils import print_warning
from .models import FALLBACK_MODEL, get_model_config, resolve_model_id

_configured_key: str | None = None

# 400/404-class errors and timeouts take the fallback path
_FALLBACK_ERRORS = (
    google_exceptions.NotFound,
    google_exceptions.InvalidArgument,
    google_exceptions.DeadlineExceeded,
)


class ModelAttempt(Enum):
    PRIMARY = "primary"
    FALLBACK = "fallback"
    FAILED = "failed"


def configure_gemini(api_key: str | None) -> bool:
    """
    Configure the Gemini API client.

    Returns:
        True if configuration succeeded, False if no key is available.
    """
    global _configured_key
    if not api_key:
        return False
    if _configured_key == api_key:
        return True
    genai.configure(api_key=api_key)
    _configured_key = api_key
    return True


def inline_binary(mime_type: str, data: bytes) -> dict:
    """Build an inline binary prompt part."""
    return {"mime_type": mime_type, "data": data}


def _generate(model_id: str, parts: list, purpose: str, timeout: float) -> str:
    config = get_model_config(purpose)
    model = genai.GenerativeModel(model_id)

    generation_config = genai.types.GenerationConfig(
        max_output_tokens=config["max_output_tokens"],
        temperature=config["temperature"],
        response_mime_type="application/json",
    )

    response = model.generate_content(
        parts,
        generation_config=generation_config,
        request_options={"timeout": timeout},
    )

    try:
        text = response.text
    except ValueError:
        # Raised when the candidate was blocked or has no text part
        raise InvalidModelResponse("No response text from model")
    if not text:
        raise InvalidModelResponse("No response text from model")
    return text


def call_llm(
    parts: list | str,
    purpose: str = "command",
    model_name: str | None = None,
    settings: Settings | None = None,
) -> str:
    """
    Call the Gemini LLM with prompt parts.

    Args:
        parts: Prompt text or a list of text / inline_binary() parts.
        purpose: Key into MODEL_CONFIG selecting temperature and token limits.
        model_name: Short or full model name overriding the configured one.
        settings: Settings to use instead of the environment.

    Returns:
        The raw response text from the LLM.

    Raises:
        ModelUnavailable: If no API key is configured.
        ModelTransportError: If the call fails (after one fallback attempt).
        InvalidModelResponse: If the response carries no text.
    """
    settings = settings or load_settings()
    if not configure_gemini(settings.api_key):
        raise ModelUnavailable("GOOGLE_API_KEY not set. Add it to .env for AI commands.")

    if isinstance(parts, str):
        parts = [parts]

    primary = resolve_model_id(model_name or settings.model)
    fallback = resolve_model_id(settings.fallback_model or FALLBACK_MODEL)

    state = ModelAttempt.PRIMARY
    while state is not ModelAttempt.FAILED:
        model_id = primary if state is ModelAttempt.PRIMARY else fallback
        try:
            return _generate(model_id, parts, purpose, settings.timeout)
        except _FALLBACK_ERRORS as e:
            if state is ModelAttempt.PRIMARY and fallback != primary:
                print_warning(f"Model '{model_id}' failed ({e.__class__.__name__}), retrying with '{fallback}'")
                state = ModelAttempt.FALLBACK
                continue
            state = ModelAttempt.FAILED
            error = e
        except google_exceptions.GoogleAPIError as e:
            state = ModelAttempt.FAILED
            error = e

    raise ModelTransportError(f"Gemini API error: {error}") from error


def parse_llm_json(response_text: str) -> dict[str, Any]:
    """
    Parse a JSON object from an LLM response.

    Tolerates markdown code fences, prose around the object, and output
    truncated mid-object.

    Raises:
        InvalidModelResponse: If no JSON object can be recovered.
    """
    text = (response_text or "").strip()
    if not text:
        raise InvalidModelResponse("Empty response from model")

    candidates = [text]

    # ```json ... ``` or ``` ... ```
    if "```" in text:
        fence = re.search(r'```(?:json)?\s*([\s\S]*?)```', text)
        if fence:
            candidates.append(fence.group(1).strip())

    # Largest top-level brace span
    first_brace = text.find('{')
    last_brace = text.rfind('}')
    if first_brace != -1 and last_brace > first_brace:
        candidates.append(text[first_brace:last_brace + 1])

    for candidate in candidates:
        try:
            data = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(data, dict):
            return data

    if first_brace != -1:
        try:
            data = _try_recover_truncated_json(text[first_brace:])
        except json.JSONDecodeError:
            data = None
        if isinstance(data, dict):
            print_warning("Recovered truncated JSON from model response")
            return data

    raise InvalidModelResponse("Invalid JSON from model")


_CLOSERS = {'{': '}', '[': ']'}


def _open_containers(text: str) -> list[str]:
    """Openers of the containers still unclosed at the end of ``text``, outermost first."""
    stack = []
    in_string = escaped = False
    for char in text:
        if escaped:
            escaped = False
        elif in_string:
            if char == '\\':
                escaped = True
            elif char == '"':
                in_string = False
        elif char == '"':
            in_string = True
        elif char in _CLOSERS:
            stack.append(char)
        elif stack and char == _CLOSERS[stack[-1]]:
            stack.pop()
    return stack


def _try_recover_truncated_json(text: str) -> Any:
    """
    Close a response that was cut off mid-object.

    The unfinished string and the partial key/value pair at the end are
    dropped, then every open container is closed.

    Raises:
        json.JSONDecodeError: If the result still does not parse.
    """
    if text.count('{') <= text.count('}') and text.count('[') <= text.count(']'):
        return json.loads(text)

    if text.count('"') % 2 == 1:
        text = text[:text.rfind('"')]

    cut = max(text.rfind(','), text.rfind('{'), text.rfind('['))
    if cut > 0:
        text = text[:cut] if text[cut] == ',' else text[:cut + 1]

    return json.loads(text + "".join(_CLOSERS[c] for c in reversed(_open_containers(text))))
