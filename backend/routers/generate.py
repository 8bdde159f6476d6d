"""Script generation API endpoints"""

from __future__ import annotations

from fastapi import APIRouter, Request
from sse_starlette.sse import EventSourceResponse

from models.generation import GenerateBody, GenerationResult
from services.config_manager import ConfigManager
from services.llm_service import NO_CONTENT_ERROR

from .deps import build_llm_service, require_api_key

router = APIRouter()


def _options(body: GenerateBody) -> tuple[str, bool, bool]:
    config = ConfigManager.get_instance().get_config()
    model_id = body.model or config.get("model")
    include_helper = config.get("includeHelper", True) if body.includeHelper is None else body.includeHelper
    include_sample_code = (
        config.get("includeSampleCode", True) if body.includeSampleCode is None else body.includeSampleCode
    )
    return model_id, include_helper, include_sample_code


@router.post("", response_model=GenerationResult)
async def generate(body: GenerateBody, request: Request) -> GenerationResult:
    """Generate a script (non-streaming)"""
    api_key = require_api_key(body.apiKey)
    model_id, include_helper, include_sample_code = _options(body)
    llm_service = build_llm_service(request)
    return await llm_service.generate(body.prompt, api_key, model_id, include_helper, include_sample_code)


@router.post("/stream")
async def generate_stream(body: GenerateBody, request: Request):
    """Generate a script as SSE: text chunks, then one result event with the split output"""
    api_key = require_api_key(body.apiKey)
    model_id, include_helper, include_sample_code = _options(body)
    llm_service = build_llm_service(request)
    stream = llm_service.generate_stream(body.prompt, api_key, model_id, include_helper, include_sample_code)

    async def event_generator():
        final = None
        try:
            async for chunk in stream:
                yield {"event": "chunk", "data": chunk.model_dump_json()}
                if chunk.is_final:
                    final = chunk
        finally:
            await stream.aclose()

        if final is None or final.error:
            result = GenerationResult(
                success=False,
                error=final.error if final else "Stream ended unexpectedly",
                response_time_ms=final.elapsed_ms if final else None,
            )
        elif not stream.text:
            result = GenerationResult(success=False, error=NO_CONTENT_ERROR, response_time_ms=final.elapsed_ms)
        else:
            processed = llm_service.split(stream.text, include_helper)
            result = GenerationResult(
                success=True,
                raw_content=stream.text,
                code=processed.code,
                explanation=processed.explanation,
                response_time_ms=final.elapsed_ms,
            )
        yield {"event": "result", "data": result.model_dump_json()}

    return EventSourceResponse(event_generator())
