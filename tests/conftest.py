"""
Shared fixtures: an in-memory stand-in for GeminiService and a retry
policy that records its delays instead of sleeping.
"""

from __future__ import annotations

import asyncio
import copy
import json
from collections import defaultdict, deque
from typing import Any, Deque, Dict, List, Optional

import pytest

from brandstudio.backoff import RetryPolicy
from brandstudio.service import GeneratedImage, GroundedAnswer


class FakeService:
    """
    Records every call. Responses are queued per call type; a queued
    Exception is raised instead of returned. Image calls can be held on
    ``image_gate`` to keep them in flight.
    """

    def __init__(self) -> None:
        self.calls: Dict[str, List[tuple]] = defaultdict(list)
        self.structured: Deque[Any] = deque()
        self.images: Deque[Any] = deque()
        self.edits: Deque[Any] = deque()
        self.analyses: Deque[Any] = deque()
        self.searches: Deque[Any] = deque()
        self.chat_fragments: List[str] = []
        self.chat_error: Optional[BaseException] = None
        self.image_gate: Optional[asyncio.Event] = None
        self._image_counter = 0

    @staticmethod
    def _next(queue: Deque[Any], default: Any) -> Any:
        item = queue.popleft() if queue else default
        if isinstance(item, BaseException):
            raise item
        return item

    async def generate_structured(self, model, prompt, schema, thinking_budget=None):
        self.calls["structured"].append((model, prompt, schema, thinking_budget))
        return self._next(self.structured, None)

    async def generate_image(self, model, prompt, aspect_ratio, image_size=None):
        self.calls["image"].append((model, prompt, aspect_ratio, image_size))
        if self.image_gate is not None:
            await self.image_gate.wait()
        self._image_counter += 1
        default = GeneratedImage(data=f"{prompt}#{self._image_counter}".encode())
        return self._next(self.images, default)

    async def edit_image(self, model, image, instruction):
        self.calls["edit"].append((model, image, instruction))
        default = GeneratedImage(data=image.data + b"|" + instruction.encode())
        return self._next(self.edits, default)

    async def analyze_image(self, model, image, prompt):
        self.calls["analyze"].append((model, image, prompt))
        return self._next(self.analyses, "A warm, earthy palette.")

    async def grounded_search(self, model, query):
        self.calls["search"].append((model, query))
        return self._next(self.searches, GroundedAnswer(text="summary", chunks=[]))

    async def stream_chat(self, model, history, message):
        self.calls["chat"].append((model, list(history), message))
        for fragment in self.chat_fragments:
            await asyncio.sleep(0)
            yield fragment
        if self.chat_error is not None:
            raise self.chat_error


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


def make_strategy_dict(**overrides) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "brandName": "Verdant Roast",
        "tagline": "Grown slow. Brewed bold.",
        "brandVoice": {
            "tone": "Warm and grounded, quietly confident",
            "keywords": ["earthy", "honest", "crafted"],
            "copyExamples": {
                "website": "Coffee from farms we know by name.",
                "social": "New harvest just landed. Taste the highlands.",
            },
        },
        "palette": [
            {"hex": f"#{i:02X}{i:02X}{i:02X}", "name": f"Tone {i}", "usage": "Backgrounds"}
            for i in range(8)
        ],
        "typography": {
            "headerFont": "Fraunces",
            "bodyFont": "Inter",
            "reasoning": "A soft serif for warmth, a clean sans for reading.",
        },
        "logoConcepts": [
            {
                "title": f"Concept {i}",
                "description": f"Direction {i}",
                "primaryPrompt": f"primary prompt {i}",
                "secondaryPrompt": f"secondary prompt {i}",
            }
            for i in range(5)
        ],
    }
    data.update(overrides)
    return copy.deepcopy(data)


def make_strategy_json(**overrides) -> str:
    return json.dumps(make_strategy_dict(**overrides))


@pytest.fixture
def service() -> FakeService:
    return FakeService()


@pytest.fixture
def sleeper() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def retry(sleeper) -> RetryPolicy:
    return RetryPolicy(max_attempts=2, base_delay_ms=1000, sleep=sleeper)
