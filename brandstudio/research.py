"""
research.py — Market research using Gemini Search Grounding.

Provides:
  MarketResearcher.search(query) → SearchReport
    - One grounded call with the Google Search tool enabled
    - Summary text + citations pulled from the grounding metadata

  normalize_citations(chunks) → list[Citation]
    - Drops chunks without a web citation (or without a URL)
    - Keeps the order the grounded call returned; repeats are kept too
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional

from .backoff import RetryPolicy
from .config import MODEL_NAMES

logger = logging.getLogger(__name__)


# ── Data model ────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Citation:
    title: str
    url: str


@dataclass
class SearchReport:
    """Output from MarketResearcher.search()."""
    query: str
    summary: str
    citations: List[Citation] = field(default_factory=list)


RESEARCH_PROMPT_TEMPLATE = (
    "Conduct market research for: {query}. "
    "Provide a concise summary of competitors or trends."
)
NO_RESULTS = "No results found."


# ── Normalizer ────────────────────────────────────────────────────────────────

def _get(obj: Any, name: str) -> Any:
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def normalize_citations(chunks: Optional[Iterable[Any]]) -> List[Citation]:
    """
    Reduce raw grounding chunks to ``Citation(title, url)``.

    Accepts SDK ``GroundingChunk`` objects or their dict form
    (``{"web": {"uri": ..., "title": ...}}``).
    """
    citations: List[Citation] = []
    for chunk in chunks or []:
        web = _get(chunk, "web")
        url = _get(web, "uri") if web is not None else None
        if not url:
            continue
        citations.append(Citation(title=_get(web, "title") or url, url=url))
    return citations


# ── Researcher ────────────────────────────────────────────────────────────────

class MarketResearcher:
    """Runs grounded market searches; keeps only the latest report."""

    def __init__(
        self,
        service,
        model: str = MODEL_NAMES["research"],
        retry: Optional[RetryPolicy] = None,
    ) -> None:
        self.service = service
        self.model = model
        self.retry = retry or RetryPolicy()
        self.latest: Optional[SearchReport] = None

    async def search(self, query: str) -> SearchReport:
        query = (query or "").strip()
        if not query:
            raise ValueError("search query must be a non-empty string")

        self.latest = None
        prompt = RESEARCH_PROMPT_TEMPLATE.format(query=query)
        answer = await self.retry.run(lambda: self.service.grounded_search(self.model, prompt))

        citations = normalize_citations(answer.chunks)
        report = SearchReport(
            query=query,
            summary=answer.text or NO_RESULTS,
            citations=citations,
        )
        logger.info("Market research for %r: %d citation(s)", query[:60], len(citations))
        self.latest = report
        return report
