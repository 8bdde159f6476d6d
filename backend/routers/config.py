"""Configuration API endpoints"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

from services.config_manager import API_KEY_FIELD, ConfigManager, mask_key

from .deps import build_llm_service

router = APIRouter()


class ConfigUpdateRequest(BaseModel):
    """Request to update configuration"""

    model: str | None = None
    includeHelper: bool | None = None
    includeSampleCode: bool | None = None
    gemini: dict | None = None
    context: dict | None = None
    proxy: dict | None = None


class ConfigResponse(BaseModel):
    """Configuration response"""

    geminiApiKey: str
    hasApiKey: bool
    model: str
    includeHelper: bool
    includeSampleCode: bool
    gemini: dict
    context: dict
    proxy: dict


class ApiKeyRequest(BaseModel):
    apiKey: str


class ValidateResponse(BaseModel):
    """Validation response"""

    valid: bool
    message: str


@router.get("", response_model=ConfigResponse)
async def get_config() -> ConfigResponse:
    """Get current configuration with the API key masked"""
    config = ConfigManager.get_instance().get_config()
    api_key = config.get(API_KEY_FIELD, "")

    return ConfigResponse(
        geminiApiKey=mask_key(api_key),
        hasApiKey=bool(api_key),
        model=config.get("model", "gemini-2.5-pro"),
        includeHelper=config.get("includeHelper", True),
        includeSampleCode=config.get("includeSampleCode", True),
        gemini=config.get("gemini", {}),
        context=config.get("context", {}),
        proxy=config.get("proxy", {}),
    )


@router.put("")
async def update_config(request: ConfigUpdateRequest) -> dict[str, Any]:
    """Update configuration"""
    config_manager = ConfigManager.get_instance()
    current_config = config_manager.get_config()

    for field in ("model", "includeHelper", "includeSampleCode"):
        value = getattr(request, field)
        if value is not None:
            current_config[field] = value
    for section in ("gemini", "context", "proxy"):
        value = getattr(request, section)
        if value:
            current_config[section] = {**current_config.get(section, {}), **value}

    config_manager.save_config(current_config)

    return {"status": "success", "message": "Configuration updated"}


@router.post("/api-key")
async def save_api_key(body: ApiKeyRequest, request: Request) -> dict[str, Any]:
    """Verify a Gemini API key and store it"""
    api_key = body.apiKey.strip()
    if not api_key:
        raise HTTPException(status_code=400, detail="API key is required")

    if not await build_llm_service(request).verify_key(api_key):
        raise HTTPException(status_code=400, detail="Invalid API key. Please check and try again.")

    ConfigManager.get_instance().set_api_key(api_key)
    return {"success": True, "message": "API key verified and saved", "maskedKey": mask_key(api_key)}


@router.post("/validate", response_model=ValidateResponse)
async def validate_config(request: Request) -> ValidateResponse:
    """Check the stored API key against the list-models endpoint"""
    api_key = ConfigManager.get_instance().get_api_key()
    if not api_key:
        return ValidateResponse(valid=False, message="No Gemini API key configured")

    if await build_llm_service(request).verify_key(api_key):
        return ValidateResponse(valid=True, message="Gemini API key is valid")
    return ValidateResponse(valid=False, message="Stored Gemini API key is invalid")
