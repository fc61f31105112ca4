"""
service.py — Async Gemini adapter: the one external collaborator.

Call shapes:
  generate_structured  (model, prompt, schema)             → JSON text
  generate_image       (model, prompt, aspect, size)       → GeneratedImage
  edit_image           (model, image, instruction)         → GeneratedImage
  analyze_image        (model, image, prompt)              → text
  grounded_search      (model, query) + Google Search tool → GroundedAnswer
  stream_chat          (model, history, message)           → async text fragments

Empty payloads come back as None / "". Deciding whether that is an error
belongs to the caller. SDK and transport failures are translated into the
errors.py taxonomy with the status code and message kept.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import re
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Iterator, List, Optional, Sequence, Union

import httpx
from google import genai
from google.genai import errors, types

from .config import SIZED_IMAGE_MODELS, get_client
from .errors import TransientServiceError, error_for_status


# ── Data model ────────────────────────────────────────────────────────────────

_DATA_URL_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+);base64,(?P<data>.*)$", re.DOTALL)


def _sniff_mime(data: bytes) -> str:
    if data.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    if data.startswith((b"GIF87a", b"GIF89a")):
        return "image/gif"
    return "image/png"


@dataclass(frozen=True)
class GeneratedImage:
    """Inline image bytes plus their MIME type."""
    data: bytes
    mime_type: str = "image/png"

    def to_data_url(self) -> str:
        return f"data:{self.mime_type};base64,{base64.b64encode(self.data).decode('ascii')}"

    @classmethod
    def from_data_url(cls, url: str) -> "GeneratedImage":
        match = _DATA_URL_RE.match(url.strip())
        if not match:
            raise ValueError("not a base64 image data URL")
        try:
            data = base64.b64decode(match.group("data"), validate=True)
        except binascii.Error as exc:
            raise ValueError(f"invalid base64 image payload: {exc}") from exc
        return cls(data=data, mime_type=match.group("mime"))

    @classmethod
    def coerce(cls, value: Union["GeneratedImage", bytes, str]) -> "GeneratedImage":
        """Accept an image, raw bytes or a data URL."""
        if isinstance(value, GeneratedImage):
            return value
        if isinstance(value, (bytes, bytearray)):
            data = bytes(value)
            if not data:
                raise ValueError("image data is empty")
            return cls(data=data, mime_type=_sniff_mime(data))
        if isinstance(value, str):
            return cls.from_data_url(value)
        raise TypeError(f"unsupported image source: {type(value).__name__}")


@dataclass
class GroundedAnswer:
    """Text plus raw grounding chunks from a search-grounded call."""
    text: str = ""
    chunks: List[Any] = field(default_factory=list)


# ── Error translation ─────────────────────────────────────────────────────────

@contextmanager
def translated_errors() -> Iterator[None]:
    """Re-raise SDK / transport failures as errors.py service errors."""
    try:
        yield
    except errors.APIError as exc:
        message = getattr(exc, "message", None) or str(exc)
        raise error_for_status(exc.code, message) from exc
    except (httpx.TransportError, asyncio.TimeoutError) as exc:
        raise TransientServiceError(str(exc) or type(exc).__name__) from exc


def first_inline_image(response: Any) -> Optional[GeneratedImage]:
    """Return the first inline image part in a response, if any."""
    for candidate in getattr(response, "candidates", None) or []:
        content = getattr(candidate, "content", None)
        for part in getattr(content, "parts", None) or []:
            inline = getattr(part, "inline_data", None)
            if inline and inline.data:
                data = inline.data
                if isinstance(data, str):
                    data = base64.b64decode(data)
                return GeneratedImage(data=data, mime_type=inline.mime_type or "image/png")
    return None


def grounding_chunks(response: Any) -> List[Any]:
    """Grounding chunks of the first candidate (empty when ungrounded)."""
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return []
    metadata = getattr(candidates[0], "grounding_metadata", None)
    return list(getattr(metadata, "grounding_chunks", None) or [])


# ── Service ───────────────────────────────────────────────────────────────────

class GeminiService:
    """Thin async wrapper over ``genai.Client.aio``."""

    def __init__(self, client: Optional[genai.Client] = None) -> None:
        self._client = client

    @property
    def client(self) -> genai.Client:
        if self._client is None:
            self._client = get_client()
        return self._client

    async def generate_structured(
        self,
        model: str,
        prompt: str,
        schema: Any,
        thinking_budget: Optional[int] = None,
    ) -> Optional[str]:
        config = types.GenerateContentConfig(
            response_mime_type="application/json",
            response_schema=schema,
            thinking_config=(
                types.ThinkingConfig(thinking_budget=thinking_budget)
                if thinking_budget is not None else None
            ),
        )
        with translated_errors():
            response = await self.client.aio.models.generate_content(
                model=model,
                contents=prompt,
                config=config,
            )
        return response.text or None

    async def generate_image(
        self,
        model: str,
        prompt: str,
        aspect_ratio: str,
        image_size: Optional[str] = None,
    ) -> Optional[GeneratedImage]:
        image_config = types.ImageConfig(
            aspect_ratio=aspect_ratio,
            image_size=image_size if model in SIZED_IMAGE_MODELS else None,
        )
        with translated_errors():
            response = await self.client.aio.models.generate_content(
                model=model,
                contents=prompt,
                config=types.GenerateContentConfig(
                    response_modalities=["IMAGE", "TEXT"],
                    image_config=image_config,
                ),
            )
        return first_inline_image(response)

    async def edit_image(
        self,
        model: str,
        image: GeneratedImage,
        instruction: str,
    ) -> Optional[GeneratedImage]:
        parts = [
            types.Part.from_bytes(data=image.data, mime_type=image.mime_type),
            types.Part.from_text(text=instruction),
        ]
        with translated_errors():
            response = await self.client.aio.models.generate_content(
                model=model,
                contents=parts,
                config=types.GenerateContentConfig(
                    response_modalities=["IMAGE", "TEXT"],
                ),
            )
        return first_inline_image(response)

    async def analyze_image(
        self,
        model: str,
        image: GeneratedImage,
        prompt: str,
    ) -> Optional[str]:
        parts = [
            types.Part.from_bytes(data=image.data, mime_type=image.mime_type),
            types.Part.from_text(text=prompt),
        ]
        with translated_errors():
            response = await self.client.aio.models.generate_content(
                model=model,
                contents=parts,
            )
        return response.text or None

    async def grounded_search(self, model: str, query: str) -> GroundedAnswer:
        search_tool = types.Tool(google_search=types.GoogleSearch())
        with translated_errors():
            response = await self.client.aio.models.generate_content(
                model=model,
                contents=query,
                config=types.GenerateContentConfig(tools=[search_tool]),
            )
        return GroundedAnswer(text=response.text or "", chunks=grounding_chunks(response))

    async def stream_chat(
        self,
        model: str,
        history: Sequence[Any],
        message: str,
    ) -> AsyncIterator[str]:
        """
        Yield reply fragments as they arrive.

        ``history`` items only need ``role`` ("user" | "model") and ``text``.
        """
        chat = self.client.aio.chats.create(
            model=model,
            history=[
                types.Content(role=turn.role, parts=[types.Part.from_text(text=turn.text)])
                for turn in history
            ],
        )
        with translated_errors():
            stream = await chat.send_message_stream(message)
            async for chunk in stream:
                if chunk.text:
                    yield chunk.text
