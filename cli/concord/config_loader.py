"""Configuration loader - environment lookups for credentials and storage."""

import os
from pathlib import Path
from typing import Optional


def get_openrouter_api_key(explicit: Optional[str] = None) -> Optional[str]:
    """
    Get OpenRouter API key with fallback:
    1. Use the explicitly supplied key
    2. Check OPENROUTER_API_KEY environment variable
    """
    if explicit:
        return explicit

    env_key = os.environ.get("OPENROUTER_API_KEY")
    if env_key:
        return env_key

    return None


def get_policy_path() -> Optional[Path]:
    """Location of the JSON policy store (CONCORD_POLICY_PATH), if configured."""
    path = os.environ.get("CONCORD_POLICY_PATH")
    return Path(path) if path else None
