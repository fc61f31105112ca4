"""
editor.py — Natural-language image edits.

ImageEditor.edit() is stateless: one source image + one instruction in,
one edited image out. EditCanvas layers the chaining on top: each edit
is applied to the latest result, so edits accumulate on a single working
image until it is reset or a new original is loaded.
"""

from __future__ import annotations

import logging
from typing import Optional, Union

from .backoff import RetryPolicy
from .config import MODEL_NAMES
from .errors import GenerationEmptyError
from .service import GeneratedImage

logger = logging.getLogger(__name__)

ImageSource = Union[GeneratedImage, bytes, str]


class ImageEditor:
    def __init__(
        self,
        service,
        model: str = MODEL_NAMES["image_edit"],
        retry: Optional[RetryPolicy] = None,
    ) -> None:
        self.service = service
        self.model = model
        self.retry = retry or RetryPolicy()

    async def edit(self, source: ImageSource, instruction: str) -> GeneratedImage:
        """
        Apply an instruction to an image.

        Args:
            source:      GeneratedImage, raw bytes or a base64 data URL
            instruction: What to change, e.g. "Add cinematic lighting"

        Raises:
            ValueError:           empty instruction or unreadable source
            GenerationEmptyError: the model answered without an image
        """
        instruction = (instruction or "").strip()
        if not instruction:
            raise ValueError("edit instruction must be a non-empty string")
        image = GeneratedImage.coerce(source)

        async def _attempt() -> GeneratedImage:
            edited = await self.service.edit_image(self.model, image, instruction)
            if edited is None:
                raise GenerationEmptyError("Image edit failed or returned no image.")
            return edited

        return await self.retry.run(_attempt)


class EditCanvas:
    """A working image that successive edits build on."""

    def __init__(self, editor: ImageEditor, original: ImageSource) -> None:
        self.editor = editor
        self.original = GeneratedImage.coerce(original)
        self.result: Optional[GeneratedImage] = None

    @property
    def current(self) -> GeneratedImage:
        return self.result or self.original

    async def apply(self, instruction: str) -> GeneratedImage:
        edited = await self.editor.edit(self.current, instruction)
        self.result = edited
        logger.info("Canvas edit applied: %s", instruction[:60])
        return edited

    def load(self, original: ImageSource) -> None:
        self.original = GeneratedImage.coerce(original)
        self.result = None

    def reset(self) -> None:
        self.result = None
