"""
Runtime configuration for workspace_ai.

Values come from the environment, optionally seeded from a .env file.
"""

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


@dataclass
class Settings:
    workspace_path: Path
    api_key: str | None = None
    model: str = "flash"
    fallback_model: str = "flash-1.5"
    timeout: float = 60.0
    disk_label: str = "Local Disk"


def _env(name: str) -> str | None:
    value = os.environ.get(name)
    if value is None:
        return None
    value = value.strip()
    return value or None


def load_settings() -> Settings:
    """
    Build Settings from environment variables.

    GOOGLE_API_KEY takes precedence over GEMINI_API_KEY.
    """
    workspace = _env("WORKSPACE_PATH") or str(Path.cwd() / "workspace")

    timeout = 60.0
    raw_timeout = _env("GEMINI_TIMEOUT")
    if raw_timeout:
        try:
            timeout = float(raw_timeout)
        except ValueError:
            timeout = 60.0

    return Settings(
        workspace_path=Path(workspace),
        api_key=_env("GOOGLE_API_KEY") or _env("GEMINI_API_KEY"),
        model=_env("GEMINI_MODEL") or "flash",
        fallback_model=_env("GEMINI_FALLBACK_MODEL") or "flash-1.5",
        timeout=timeout,
        disk_label=_env("DISK_LABEL") or "Local Disk",
    )
