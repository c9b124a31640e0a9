"""Data models for menu-lens."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator

Confidence = Literal["high", "medium", "low", "estimated"]
RoundStatus = Literal["success", "empty", "error"]

CONFIDENCE_LEVELS: tuple[str, ...] = ("high", "medium", "low", "estimated")


class MenuItemCandidate(BaseModel):
    """Provisional menu item recovered from model output."""

    name: str
    description: str | None = None
    price: int | float | str | None = None
    calories: int | float | str | None = None
    tags: list[str] = Field(default_factory=list)
    review: str | None = None
    confidence: Confidence | None = None
    section: str | None = None

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("name must not be empty")
        return value

    @field_validator("tags", mode="before")
    @classmethod
    def _clean_tags(cls, value: object) -> list[str]:
        if not value:
            return []
        if isinstance(value, str):
            value = [value]
        tags: list[str] = []
        seen: set[str] = set()
        for raw in value:
            tag = str(raw).strip()
            if not tag or tag.lower() in seen:
                continue
            seen.add(tag.lower())
            tags.append(tag)
        return tags

    @field_validator("confidence", mode="before")
    @classmethod
    def _coerce_confidence(cls, value: object) -> str | None:
        if not isinstance(value, str):
            return None
        lowered = value.strip().lower()
        return lowered if lowered in CONFIDENCE_LEVELS else None

    @property
    def key(self) -> str:
        """Case-insensitive identity used for de-duplication."""
        return self.name.lower()


class Nutrition(BaseModel):
    calories: int | None = None
    ai_review: str | None = None


class NormalizedMenuItem(BaseModel):
    """Menu item ready to hand to persistence."""

    name: str
    description: str | None = None
    price: float | None = None
    section: str | None = None
    tags: list[str] = Field(default_factory=list)
    nutrition: Nutrition | None = None


class MenuBatch(BaseModel):
    """Items and continuation flags recovered from one model response."""

    items: list[MenuItemCandidate] = Field(default_factory=list)
    has_more: bool = False
    truncated: bool = False
    coerced_from_text: bool = False


class TokenUsage(BaseModel):
    prompt_tokens: int | None = None
    completion_tokens: int | None = None


class RoundRecord(BaseModel):
    """Audit entry for a single model request attempt."""

    batch_index: int | None = None
    variant: str
    model: str | None = None
    prompt: str
    status: RoundStatus
    item_count: int = 0
    usage: TokenUsage | None = None
    error: str | None = None


class MenuExtractionResult(BaseModel):
    """Final output of a menu extraction call."""

    items: list[NormalizedMenuItem] = Field(default_factory=list)
    generated_at: datetime
    provider: str
    variant: str | None = None
    partial: bool = False
    rounds: list[RoundRecord] = Field(default_factory=list)
