"""
assets.py — Logo image generation for the 5 concepts of one strategy.

Each concept has two slots:
  primary    — rendered with the caller's aspect ratio / size / model
  secondary  — simplified mark, always 1:1 at 1K, same model

Per (concept, slot) the state moves through

    absent → loading → ready            (or back to absent, with the error)
    ready  → regenerating → ready       (new image, or old image + error)

At most one generation per concept and one regeneration per slot is in
flight; a second request for a busy key is a no-op, not a cancellation.
All bookkeeping happens between awaits on the event loop, so no locks.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, List, Optional, Sequence, Set, Tuple

from .backoff import RetryPolicy
from .config import (
    DEFAULT_ASPECT_RATIO,
    DEFAULT_IMAGE_SIZE,
    IMAGE_GENERATION_MODELS,
    MODEL_NAMES,
    AspectRatio,
    ImageSize,
)
from .errors import GenerationEmptyError
from .schema import LogoConcept
from .service import GeneratedImage

logger = logging.getLogger(__name__)


class Slot(str, Enum):
    PRIMARY = "primary"
    SECONDARY = "secondary"


class SlotState(str, Enum):
    ABSENT = "absent"
    LOADING = "loading"
    READY = "ready"
    REGENERATING = "regenerating"


class AssetOutcome(str, Enum):
    SKIPPED = "skipped"       # key already busy / already done
    COMPLETED = "completed"
    FAILED = "failed"         # logged and recorded on the slot


@dataclass(frozen=True)
class ImageSettings:
    """Caller-selected render settings for primary logos."""
    aspect_ratio: AspectRatio = DEFAULT_ASPECT_RATIO
    image_size: ImageSize = DEFAULT_IMAGE_SIZE
    model: str = MODEL_NAMES["logo"]


@dataclass(frozen=True)
class SlotRecord:
    state: SlotState = SlotState.ABSENT
    image: Optional[GeneratedImage] = None
    error: Optional[BaseException] = None


_EMPTY = SlotRecord()

Key = Tuple[int, Slot]


class AssetCoordinator:
    """Owns the slot state for one strategy's logo concepts."""

    def __init__(
        self,
        concepts: Sequence[LogoConcept],
        service,
        settings: Optional[ImageSettings] = None,
        retry: Optional[RetryPolicy] = None,
    ) -> None:
        self._concepts: List[LogoConcept] = list(concepts)
        self._service = service
        self._retry = retry or RetryPolicy()
        self.settings = settings or ImageSettings()

        self._slots: Dict[Key, SlotRecord] = {}
        self._loading: Set[int] = set()
        self._regenerating: Set[Key] = set()

    # ── Read side ─────────────────────────────────────────────────────────────

    @property
    def concept_count(self) -> int:
        return len(self._concepts)

    def slot(self, index: int, slot: str) -> SlotRecord:
        return self._slots.get((index, Slot(slot)), _EMPTY)

    def image(self, index: int, slot: str) -> Optional[GeneratedImage]:
        return self.slot(index, slot).image

    def is_loading(self, index: int) -> bool:
        return index in self._loading

    def is_regenerating(self, index: int, slot: str) -> bool:
        return (index, Slot(slot)) in self._regenerating

    def is_complete(self, index: int) -> bool:
        return all(self.slot(index, s).image is not None for s in Slot)

    def select_model(self, model: str) -> None:
        """Switch the image model used by later requests."""
        if model not in IMAGE_GENERATION_MODELS:
            raise ValueError(f"unsupported image model: {model!r}")
        self.settings = replace(self.settings, model=model)

    # ── Generation ────────────────────────────────────────────────────────────

    async def generate_concept_assets(self, index: int) -> AssetOutcome:
        """
        Render both logos of a concept.

        No-op when the concept is already loading or both slots hold an
        image. Failures are logged and recorded on the slots, not raised,
        so the caller can simply try again.
        """
        concept = self._concept(index)
        if index in self._loading or self.is_complete(index):
            return AssetOutcome.SKIPPED

        self._loading.add(index)
        try:
            for slot in Slot:
                self._slots[(index, slot)] = SlotRecord(state=SlotState.LOADING)

            # primary + secondary go out together and are applied together
            results = await asyncio.gather(
                self._render(concept, Slot.PRIMARY),
                self._render(concept, Slot.SECONDARY),
                return_exceptions=True,
            )
            error = next((r for r in results if isinstance(r, BaseException)), None)
            if error is not None:
                logger.warning("Failed to generate logos for concept %d: %s", index, error)
                for slot in Slot:
                    self._slots[(index, slot)] = SlotRecord(error=error)
                return AssetOutcome.FAILED

            for slot, image in zip(Slot, results):
                self._slots[(index, slot)] = SlotRecord(state=SlotState.READY, image=image)
            logger.info("Logos ready for concept %d", index)
            return AssetOutcome.COMPLETED
        finally:
            # cancelled mid-flight: nothing was applied
            for slot in Slot:
                if self.slot(index, slot).state is SlotState.LOADING:
                    self._slots[(index, slot)] = _EMPTY
            self._loading.discard(index)

    async def regenerate_slot(self, index: int, slot: str) -> AssetOutcome:
        """
        Re-render one slot, leaving its sibling alone.

        No-op when that slot is already regenerating, the concept is
        loading, or the slot has nothing to regenerate yet.
        """
        concept = self._concept(index)
        slot = Slot(slot)
        key = (index, slot)
        current = self.slot(index, slot)
        if key in self._regenerating or index in self._loading or current.image is None:
            return AssetOutcome.SKIPPED

        self._regenerating.add(key)
        self._slots[key] = SlotRecord(state=SlotState.REGENERATING, image=current.image)
        try:
            image = await self._render(concept, slot)
        except Exception as e:
            logger.warning("Failed to regenerate %s logo for concept %d: %s", slot.value, index, e)
            self._slots[key] = SlotRecord(state=SlotState.READY, image=current.image, error=e)
            return AssetOutcome.FAILED
        else:
            self._slots[key] = SlotRecord(state=SlotState.READY, image=image)
            return AssetOutcome.COMPLETED
        finally:
            if self._slots[key].state is SlotState.REGENERATING:
                self._slots[key] = SlotRecord(state=SlotState.READY, image=current.image)
            self._regenerating.discard(key)

    # ── Internals ─────────────────────────────────────────────────────────────

    def _concept(self, index: int) -> LogoConcept:
        if not 0 <= index < len(self._concepts):
            raise IndexError(f"logo concept index out of range: {index}")
        return self._concepts[index]

    async def _render(self, concept: LogoConcept, slot: Slot) -> GeneratedImage:
        settings = self.settings
        if slot is Slot.PRIMARY:
            ratio, size = settings.aspect_ratio, settings.image_size
        else:
            ratio, size = AspectRatio.SQUARE, ImageSize.SIZE_1K
        prompt = concept.prompt_for(slot.value)

        async def _attempt() -> GeneratedImage:
            image = await self._service.generate_image(
                settings.model,
                prompt,
                AspectRatio(ratio).value,
                ImageSize(size).value,
            )
            if image is None:
                raise GenerationEmptyError(f"No image generated for {slot.value} logo")
            return image

        return await self._retry.run(_attempt)
