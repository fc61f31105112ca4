"""
studio.py — Ties the components together for an app or CLI.

BrandStudio holds the components that live for the whole app (researcher,
editor, analyzer) and at most one BrandSession. A session belongs to one
mission: its strategy, its logo asset state and its chat transcript are
created together and dropped together when the next mission starts.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .analyzer import ImageAnalyzer
from .assets import AssetCoordinator, ImageSettings
from .backoff import RetryPolicy
from .chat import ChatAssistant
from .editor import EditCanvas, ImageEditor, ImageSource
from .research import MarketResearcher
from .schema import BrandStrategy
from .service import GeminiService
from .strategist import StrategyGenerator

logger = logging.getLogger(__name__)


@dataclass
class BrandSession:
    """Everything generated for one mission."""
    mission: str
    strategy: BrandStrategy
    assets: AssetCoordinator
    chat: ChatAssistant


class BrandStudio:
    def __init__(self, service=None, retry: Optional[RetryPolicy] = None) -> None:
        self.service = service if service is not None else GeminiService()
        self.retry = retry or RetryPolicy()

        self.strategist = StrategyGenerator(self.service, retry=self.retry)
        self.researcher = MarketResearcher(self.service, retry=self.retry)
        self.editor = ImageEditor(self.service, retry=self.retry)
        self.analyzer = ImageAnalyzer(self.service, retry=self.retry)

        self.session: Optional[BrandSession] = None

    async def start_session(
        self,
        mission: str,
        settings: Optional[ImageSettings] = None,
        generate_first_concept: bool = True,
    ) -> BrandSession:
        """
        Generate a strategy and open a fresh session around it.

        If the strategy call fails the error propagates and the previous
        session, if any, stays current.
        """
        strategy = await self.strategist.generate(mission)

        session = BrandSession(
            mission=mission.strip(),
            strategy=strategy,
            assets=AssetCoordinator(
                strategy.logo_concepts,
                self.service,
                settings=settings,
                retry=self.retry,
            ),
            chat=ChatAssistant(self.service),
        )
        self.session = session
        logger.info("Session started for %s", strategy.brand_name)

        if generate_first_concept:
            await session.assets.generate_concept_assets(0)
        return session

    def end_session(self) -> None:
        self.session = None

    def canvas(self, image: ImageSource) -> EditCanvas:
        """A new edit canvas over ``image``."""
        return EditCanvas(self.editor, image)
