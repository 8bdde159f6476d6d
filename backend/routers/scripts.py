"""Drive save / publish API endpoints"""

from __future__ import annotations

from fastapi import APIRouter, Request

from models.scripts import (
    CreateScriptRequest,
    CreateScriptResult,
    PublishScriptRequest,
    PublishScriptResult,
    ScriptNameRequest,
    ScriptNameResponse,
)
from services.config_manager import ConfigManager
from services.script_publisher import ScriptPublisher

from .deps import build_llm_service

router = APIRouter()


def _publisher() -> ScriptPublisher:
    return ScriptPublisher.from_config(ConfigManager.get_instance().get_config())


@router.post("/name", response_model=ScriptNameResponse)
async def suggest_name(body: ScriptNameRequest, request: Request) -> ScriptNameResponse:
    api_key = body.apiKey or ConfigManager.get_instance().get_api_key()
    name = await build_llm_service(request).suggest_script_name(body.description, api_key)
    return ScriptNameResponse(name=name)


@router.post("/create", response_model=CreateScriptResult)
async def create_script(body: CreateScriptRequest) -> CreateScriptResult:
    return await _publisher().create_script(body.scriptContent, body.accessToken, body.fileName)


@router.post("/publish", response_model=PublishScriptResult)
async def publish_script(body: PublishScriptRequest) -> PublishScriptResult:
    return await _publisher().publish_script(body.scriptId, body.accessToken, body.description)
