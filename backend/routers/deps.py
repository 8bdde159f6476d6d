"""Shared accessors for per-app services"""

from __future__ import annotations

from fastapi import HTTPException, Request

from services.config_manager import ConfigManager
from services.llm_service import LLMService
from services.session_controller import GenerationSession
from services.static_context import StaticContext


def get_static_context(request: Request) -> StaticContext:
    """The app-wide context, created on first use when the lifespan did not run"""
    state = request.app.state
    if getattr(state, "static_context", None) is None:
        state.static_context = StaticContext.from_config(ConfigManager.get_instance().get_config())
    return state.static_context


def build_llm_service(request: Request) -> LLMService:
    config = ConfigManager.get_instance().get_config()
    return LLMService(config, get_static_context(request))


def get_session(request: Request) -> GenerationSession:
    state = request.app.state
    if getattr(state, "session", None) is None:
        state.session = GenerationSession(
            build_llm_service(request),
            ConfigManager.get_instance().get_api_key,
        )
    return state.session


def require_api_key(api_key: str | None = None) -> str:
    """Explicit key from the request, else the stored one; 401 when neither exists"""
    key = (api_key or "").strip() or ConfigManager.get_instance().get_api_key()
    if not key:
        raise HTTPException(status_code=401, detail="Gemini API key is required")
    return key
