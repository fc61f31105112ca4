"""
analyzer.py — Brand-perspective reading of an uploaded image.
"""

from __future__ import annotations

from typing import Optional

from .backoff import RetryPolicy
from .config import MODEL_NAMES
from .editor import ImageSource
from .service import GeneratedImage

DEFAULT_ANALYSIS_PROMPT = (
    "Analyze this image from a brand perspective. What is the color palette? "
    "What is the mood/vibe? What font styles would match this?"
)
NO_ANALYSIS = "No analysis available."


class ImageAnalyzer:
    def __init__(
        self,
        service,
        model: str = MODEL_NAMES["analysis"],
        retry: Optional[RetryPolicy] = None,
    ) -> None:
        self.service = service
        self.model = model
        self.retry = retry or RetryPolicy()

    async def analyze(self, image: ImageSource, prompt: str = DEFAULT_ANALYSIS_PROMPT) -> str:
        source = GeneratedImage.coerce(image)
        text = await self.retry.run(
            lambda: self.service.analyze_image(self.model, source, prompt)
        )
        return text or NO_ANALYSIS
