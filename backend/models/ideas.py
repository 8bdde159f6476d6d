"""Idea suggestion models"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class IdeaChip(BaseModel):
    """A suggested prompt: a short chip label and the full prompt it expands to"""

    model_config = ConfigDict(populate_by_name=True)

    short_label: str = Field(alias="short")
    long_prompt: str = Field(alias="long")


class IdeaFetchResult(BaseModel):
    success: bool
    ideas: list[IdeaChip] = []
    error: str | None = None


class IdeasResponse(BaseModel):
    source: str  # "model" or "fallback"
    ideas: list[IdeaChip]
