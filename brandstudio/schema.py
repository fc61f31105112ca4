"""
schema.py — Declarative contract for the structured brand strategy call.

The pydantic models below are used twice: passed as ``response_schema``
when the request is built, and used to validate the JSON that comes back.
Cardinalities are part of the contract: exactly 8 palette colors,
exactly 5 logo concepts, 3–5 voice keywords. A payload that breaks any of
them is rejected, never trimmed or padded. Text values have surrounding
whitespace stripped before the other rules apply, so " #FFFFFF " is read
as "#FFFFFF" and a blank value counts as missing.
"""

from __future__ import annotations

from typing import Annotated, List, Optional

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, ValidationError
from pydantic.alias_generators import to_camel

from .errors import GenerationEmptyError, SchemaValidationError

SCHEMA_VERSION = "1.0"

PALETTE_SIZE = 8
LOGO_CONCEPT_COUNT = 5
KEYWORD_RANGE = (3, 5)
HEX_PATTERN = r"^#[0-9A-Fa-f]{6}$"

Keyword = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class _Contract(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


# ── Pydantic schema for structured Gemini output ─────────────────────────────

class CopyExamples(_Contract):
    website: str = Field(min_length=1, description="Example website copy demonstrating the voice.")
    social: str = Field(min_length=1, description="Example social media post demonstrating the voice.")


class BrandVoice(_Contract):
    tone: str = Field(
        min_length=1,
        description="A description of the brand's tone (e.g., authoritative but approachable).",
    )
    keywords: List[Keyword] = Field(
        min_length=KEYWORD_RANGE[0],
        max_length=KEYWORD_RANGE[1],
        description="3-5 descriptive words for the voice.",
    )
    copy_examples: CopyExamples


class ColorDefinition(_Contract):
    hex: str = Field(pattern=HEX_PATTERN, description="Hex color code (e.g., #FFFFFF).")
    name: str = Field(min_length=1, description="Creative name for the color.")
    usage: str = Field(
        min_length=1,
        description="Specific usage recommendation (e.g., 'Use for CTA buttons', 'Use for backgrounds').",
    )


class Typography(_Contract):
    header_font: str = Field(min_length=1, description="A Google Font name for headers.")
    body_font: str = Field(min_length=1, description="A Google Font name for body text.")
    reasoning: str = Field(min_length=1, description="Why these fonts were chosen.")


class LogoConcept(_Contract):
    title: str = Field(
        min_length=1,
        description="A short title for this design direction (e.g., 'Minimalist', 'Abstract').",
    )
    description: str = Field(min_length=1, description="Reasoning behind this concept.")
    primary_prompt: str = Field(
        min_length=1,
        description="A highly detailed image generation prompt for the primary logo.",
    )
    secondary_prompt: str = Field(
        min_length=1,
        description="A detailed prompt for a simplified secondary brand mark or icon.",
    )

    def prompt_for(self, slot: str) -> str:
        if slot == "primary":
            return self.primary_prompt
        if slot == "secondary":
            return self.secondary_prompt
        raise ValueError(f"unknown logo slot: {slot!r}")


class BrandStrategy(_Contract):
    brand_name: str = Field(min_length=1, description="A creative name for the brand based on the mission.")
    tagline: str = Field(min_length=1, description="A catchy tagline.")
    brand_voice: BrandVoice
    palette: List[ColorDefinition] = Field(
        min_length=PALETTE_SIZE,
        max_length=PALETTE_SIZE,
        description="A cohesive palette of 8 colors (5 primary + 3 accents).",
    )
    typography: Typography
    logo_concepts: List[LogoConcept] = Field(
        min_length=LOGO_CONCEPT_COUNT,
        max_length=LOGO_CONCEPT_COUNT,
        description="5 distinct logo design variations based on the mission.",
    )


# ── Contract helpers ──────────────────────────────────────────────────────────

def response_schema() -> type:
    """Schema object handed to the structured-generation request."""
    return BrandStrategy


def parse_strategy(payload: Optional[str]) -> BrandStrategy:
    """
    Validate a structured response against the contract.

    Raises:
        GenerationEmptyError:  no payload at all
        SchemaValidationError: payload is not JSON or breaks the contract
    """
    if payload is None or not payload.strip():
        raise GenerationEmptyError("No strategy generated")
    try:
        return BrandStrategy.model_validate_json(payload)
    except ValidationError as exc:
        problems = exc.errors(include_url=False)
        where = ", ".join(
            ".".join(str(p) for p in err.get("loc", ())) or "<root>" for err in problems[:5]
        )
        raise SchemaValidationError(
            f"Strategy payload failed schema v{SCHEMA_VERSION} ({exc.error_count()} error(s) at {where})",
            errors=problems,
        ) from exc
