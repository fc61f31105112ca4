"""
config.py — Environment, model table and image option enums.

Reads .env on import (GEMINI_API_KEY plus optional overrides):

  GEMINI_API_KEY=...
  BRANDSTUDIO_STRATEGY_MODEL=gemini-3-pro-preview   # any MODEL_NAMES key
  BRANDSTUDIO_MAX_ATTEMPTS=2
  BRANDSTUDIO_BASE_DELAY_MS=1000
"""

from __future__ import annotations

import os
from enum import Enum
from typing import Dict, Optional

from dotenv import load_dotenv
from google import genai

load_dotenv()


# ── Models ────────────────────────────────────────────────────────────────────

_DEFAULT_MODELS: Dict[str, str] = {
    "strategy": "gemini-3-pro-preview",
    "logo": "gemini-3-pro-image-preview",
    "image_edit": "gemini-2.5-flash-image",   # Nano Banana
    "chat": "gemini-3-pro-preview",
    "research": "gemini-2.5-flash",
    "analysis": "gemini-3-pro-preview",
}


def _model_table() -> Dict[str, str]:
    return {
        key: os.environ.get(f"BRANDSTUDIO_{key.upper()}_MODEL") or default
        for key, default in _DEFAULT_MODELS.items()
    }


MODEL_NAMES: Dict[str, str] = _model_table()

# Models offered for logo rendering, best quality first
IMAGE_GENERATION_MODELS: Dict[str, str] = {
    "gemini-3-pro-image-preview": "Gemini 3 Pro (High Quality)",
    "gemini-2.5-flash-image": "Gemini 2.5 Flash (Fastest)",
}

# Only these accept an explicit output resolution
SIZED_IMAGE_MODELS = frozenset({"gemini-3-pro-image-preview"})


# ── Image options ─────────────────────────────────────────────────────────────

class AspectRatio(str, Enum):
    SQUARE = "1:1"
    PORTRAIT_2_3 = "2:3"
    LANDSCAPE_3_2 = "3:2"
    PORTRAIT_3_4 = "3:4"
    LANDSCAPE_4_3 = "4:3"
    PORTRAIT_9_16 = "9:16"
    LANDSCAPE_16_9 = "16:9"
    CINEMATIC_21_9 = "21:9"


class ImageSize(str, Enum):
    SIZE_1K = "1K"
    SIZE_2K = "2K"
    SIZE_4K = "4K"


DEFAULT_ASPECT_RATIO = AspectRatio.SQUARE
DEFAULT_IMAGE_SIZE = ImageSize.SIZE_1K


# ── Retry defaults ────────────────────────────────────────────────────────────

def env_int(name: str, default: int) -> int:
    """Integer setting from the environment; blank or unset means default."""
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


DEFAULT_MAX_ATTEMPTS = env_int("BRANDSTUDIO_MAX_ATTEMPTS", 2)
DEFAULT_BASE_DELAY_MS = env_int("BRANDSTUDIO_BASE_DELAY_MS", 1000)


# ── Client ────────────────────────────────────────────────────────────────────

_client: Optional[genai.Client] = None


def get_api_key() -> Optional[str]:
    return os.environ.get("GEMINI_API_KEY") or None


def get_client() -> genai.Client:
    """Lazy initialization of the shared Gemini client."""
    global _client
    if _client is None:
        api_key = get_api_key()
        if not api_key:
            raise RuntimeError("GEMINI_API_KEY environment variable not set")
        _client = genai.Client(api_key=api_key)
    return _client
