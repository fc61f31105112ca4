"""
Strategist — turns a mission statement into a validated BrandStrategy.

One structured Gemini call per mission, constrained by the schema in
schema.py and retried by the shared backoff policy. The output covers:
  - Brand name + tagline
  - Brand voice (tone, 3–5 keywords, website + social copy)
  - 8-color palette (5 core + 3 accents) with usage notes
  - Typography pairing
  - 5 logo concepts, each with a primary and a secondary image prompt
"""

from __future__ import annotations

import logging
from typing import Optional

from rich.console import Console
from rich.panel import Panel

from .backoff import RetryPolicy
from .config import MODEL_NAMES
from .schema import BrandStrategy, parse_strategy, response_schema

console = Console()
logger = logging.getLogger(__name__)

THINKING_BUDGET = 2048   # reasoning tokens per strategy call


# ── Prompt ────────────────────────────────────────────────────────────────────

STRATEGY_PROMPT = """\
You are a world-class brand strategist. Create a comprehensive brand identity for the following company mission: "{mission}".

Requirements:
1. **Color Palette**: Generate exactly 8 colors. 5 core brand colors and 3 specific accent colors. Provide specific usage instructions for each.
2. **Brand Voice**: Define the tone, provide 3-5 keywords, and write sample copy for a website and a social post.
3. **Logos**: Create 5 distinct design concepts for the logo. Each concept must have a Primary Logo prompt and a Secondary Mark prompt.
"""


# ── Generator ─────────────────────────────────────────────────────────────────

class StrategyGenerator:
    """Issues the structured strategy request and validates the result."""

    def __init__(
        self,
        service,
        model: str = MODEL_NAMES["strategy"],
        retry: Optional[RetryPolicy] = None,
    ) -> None:
        self.service = service
        self.model = model
        self.retry = retry or RetryPolicy()

    async def generate(self, mission: str) -> BrandStrategy:
        """
        Generate a brand strategy for a mission.

        Raises:
            ValueError:            empty mission
            GenerationEmptyError:  service returned nothing (after retries)
            SchemaValidationError: payload broke the contract (not retried)
            ServiceError:          the underlying call failed
        """
        mission = (mission or "").strip()
        if not mission:
            raise ValueError("mission must be a non-empty string")

        prompt = STRATEGY_PROMPT.format(mission=mission)

        async def _attempt() -> BrandStrategy:
            payload = await self.service.generate_structured(
                self.model,
                prompt,
                response_schema(),
                thinking_budget=THINKING_BUDGET,
            )
            return parse_strategy(payload)

        strategy = await self.retry.run(_attempt)
        logger.info("Strategy generated for %r: %s", mission[:60], strategy.brand_name)
        return strategy


# ── Display helpers ───────────────────────────────────────────────────────────

def display_strategy(strategy: BrandStrategy) -> None:
    """Pretty-print a strategy to the terminal."""
    voice = strategy.brand_voice
    console.print(
        Panel(
            f"[italic]{strategy.tagline}[/italic]\n\n"
            f"[bold]Tone:[/bold] {voice.tone}\n"
            f"[bold]Keywords:[/bold] {', '.join(voice.keywords)}\n\n"
            f"[bold]Website:[/bold] {voice.copy_examples.website}\n"
            f"[bold]Social:[/bold] {voice.copy_examples.social}",
            title=f"[bold]{strategy.brand_name}[/bold]",
            border_style="blue",
        )
    )

    palette_str = "\n".join(
        f"[{c.hex}]■■■[/{c.hex}] [bold]{c.name}[/bold] {c.hex} — {c.usage}"
        for c in strategy.palette
    )
    console.print(Panel(palette_str, title="[bold]Palette[/bold]", border_style="magenta"))

    typo = strategy.typography
    console.print(
        Panel(
            f"[bold]Headers:[/bold] {typo.header_font}\n"
            f"[bold]Body:[/bold] {typo.body_font}\n"
            f"{typo.reasoning}",
            title="[bold]Typography[/bold]",
            border_style="yellow",
        )
    )

    for i, concept in enumerate(strategy.logo_concepts, start=1):
        console.print(
            Panel(
                f"{concept.description}\n\n"
                f"[bold]Primary:[/bold] [dim]{concept.primary_prompt}[/dim]\n"
                f"[bold]Secondary:[/bold] [dim]{concept.secondary_prompt}[/dim]",
                title=f"[bold]Concept {i} — {concept.title}[/bold]",
                border_style="green",
            )
        )
