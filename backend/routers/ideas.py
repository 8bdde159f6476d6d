"""Idea suggestion API endpoints"""

from __future__ import annotations

from fastapi import APIRouter, Request

from models.ideas import IdeasResponse
from services.config_manager import ConfigManager
from services.idea_service import FALLBACK_IDEAS, IdeaService

from .deps import build_llm_service

router = APIRouter()


@router.get("", response_model=IdeasResponse)
async def get_ideas(request: Request) -> IdeasResponse:
    """Model-generated ideas, or the built-in set when that is not possible"""
    api_key = ConfigManager.get_instance().get_api_key()
    if not api_key:
        return IdeasResponse(source="fallback", ideas=FALLBACK_IDEAS)

    ideas, from_model = await IdeaService(build_llm_service(request)).ideas_or_fallback(api_key)
    return IdeasResponse(source="model" if from_model else "fallback", ideas=ideas)
