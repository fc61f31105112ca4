"""
Brand Studio — command line entry point

Usage:
  python -m brandstudio.main generate --mission "Sustainable coffee for remote teams"
  python -m brandstudio.main generate --mission "..." --logos --aspect-ratio 16:9 --image-size 2K
  python -m brandstudio.main research --query "specialty coffee subscriptions"
  python -m brandstudio.main chat

Required env vars (in .env):
  GEMINI_API_KEY=...
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.prompt import Prompt
from rich.rule import Rule
from rich.table import Table

from .assets import AssetCoordinator, ImageSettings, Slot
from .chat import ChatAssistant
from .config import IMAGE_GENERATION_MODELS, MODEL_NAMES, AspectRatio, ImageSize, get_api_key
from .errors import GenerationError
from .strategist import display_strategy
from .studio import BrandStudio

console = Console()
logger = logging.getLogger(__name__)


# ── CLI ───────────────────────────────────────────────────────────────────────

def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Brand Studio — AI brand identity generator"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    gen = sub.add_parser("generate", help="Generate a brand strategy from a mission")
    gen.add_argument("--mission", required=True, help="Company mission statement")
    gen.add_argument(
        "--aspect-ratio",
        choices=[r.value for r in AspectRatio],
        default=AspectRatio.SQUARE.value,
        help="Aspect ratio for primary logos",
    )
    gen.add_argument(
        "--image-size",
        choices=[s.value for s in ImageSize],
        default=ImageSize.SIZE_1K.value,
        help="Resolution for primary logos (Pro image model only)",
    )
    gen.add_argument(
        "--model",
        choices=list(IMAGE_GENERATION_MODELS),
        default=MODEL_NAMES["logo"],
        help="Image model for logo rendering",
    )
    gen.add_argument("--logos", action="store_true", help="Render logos for all 5 concepts")
    gen.add_argument("--json", type=Path, default=None, help="Also write the strategy JSON here")

    research = sub.add_parser("research", help="Grounded market research")
    research.add_argument("--query", required=True, help="What to research")

    sub.add_parser("chat", help="Chat with the brand assistant")
    return parser.parse_args(argv)


# ── Output helpers ────────────────────────────────────────────────────────────

def _slot_table(assets: AssetCoordinator, titles: List[str]) -> Table:
    table = Table(title="Logo assets")
    table.add_column("#", justify="right")
    table.add_column("Concept")
    for slot in Slot:
        table.add_column(slot.value.title())

    for index, title in enumerate(titles):
        cells = []
        for slot in Slot:
            record = assets.slot(index, slot)
            if record.image is not None:
                cells.append(f"[green]✓ {len(record.image.data) // 1024} KB[/green]")
            elif record.error is not None:
                cells.append(f"[red]✗ {record.error}[/red]")
            else:
                cells.append(f"[dim]{record.state.value}[/dim]")
        table.add_row(str(index + 1), title, *cells)
    return table


# ── Commands ──────────────────────────────────────────────────────────────────

async def run_generate(studio: BrandStudio, args: argparse.Namespace) -> None:
    settings = ImageSettings(
        aspect_ratio=AspectRatio(args.aspect_ratio),
        image_size=ImageSize(args.image_size),
        model=args.model,
    )
    console.print("\n[bold cyan]→ Gemini is building the brand strategy...[/bold cyan]")
    session = await studio.start_session(
        args.mission,
        settings=settings,
        generate_first_concept=False,
    )
    display_strategy(session.strategy)

    if args.json:
        args.json.write_text(session.strategy.model_dump_json(by_alias=True, indent=2), encoding="utf-8")
        console.print(f"  [dim]strategy saved → {args.json}[/dim]")

    if args.logos:
        console.print("\n[bold cyan]→ Rendering logos for all concepts...[/bold cyan]")
        assets = session.assets
        await asyncio.gather(
            *(assets.generate_concept_assets(i) for i in range(assets.concept_count))
        )
        titles = [c.title for c in session.strategy.logo_concepts]
        console.print(_slot_table(assets, titles))


async def run_research(studio: BrandStudio, args: argparse.Namespace) -> None:
    console.print("  [dim]Researching market context (Gemini + Search)...[/dim]")
    report = await studio.researcher.search(args.query)
    console.print(Rule(f"[bold]{report.query}[/bold]"))
    console.print(report.summary)
    if report.citations:
        console.print("\n[bold]Sources:[/bold]")
        for c in report.citations:
            console.print(f"  • {c.title} [dim]{c.url}[/dim]")


async def run_chat(studio: BrandStudio) -> None:
    assistant = ChatAssistant(studio.service)
    console.print(f"[bold magenta]Assistant:[/bold magenta] {assistant.transcript.last.text}")
    while True:
        message = await asyncio.to_thread(Prompt.ask, "\n[bold]You[/bold]", default="")
        if message.strip().lower() in ("", "exit", "quit"):
            break
        console.print("[bold magenta]Assistant:[/bold magenta] ", end="")
        try:
            async for fragment in assistant.send(message):
                console.print(fragment, end="", markup=False, highlight=False)
            console.print()
        except GenerationError:
            console.print(f"\n[red]{assistant.transcript.last.error_message}[/red]")


async def run(args: argparse.Namespace) -> int:
    studio = BrandStudio()
    try:
        if args.command == "generate":
            await run_generate(studio, args)
        elif args.command == "research":
            await run_research(studio, args)
        elif args.command == "chat":
            await run_chat(studio)
    except GenerationError as e:
        logger.error("Generation failed: %s", e)
        console.print("[red]✗ Something went wrong during generation. Please try again.[/red]")
        return 1
    return 0


def main(argv: Optional[List[str]] = None) -> None:
    args = parse_args(argv)
    logging.basicConfig(
        format="%(asctime)s — %(levelname)s — %(name)s — %(message)s",
        level=logging.DEBUG if args.verbose else logging.INFO,
    )

    if not get_api_key():
        logger.error("GEMINI_API_KEY not set in environment / .env")
        sys.exit(1)

    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
