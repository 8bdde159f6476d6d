"""
LLM Service - Gemini client for script generation, key checks and small helper calls

Every public generation entry point returns a result object instead of
raising, so callers only need to look at ``success``.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, Optional

import aiohttp

from models.generation import GenerationRequest, GenerationResult, ModelChoice, StreamChunk

from .prompt_builder import build_script_name_prompt, build_system_prompt
from .response_splitter import split_response
from .static_context import StaticContext

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_MODEL = ModelChoice.GEMINI_25_PRO.value

# Provider ids carry preview suffixes that change more often than the UI choices
DEFAULT_MODEL_MAP: dict[str, str] = {
    ModelChoice.GEMINI_25_PRO.value: "gemini-2.5-pro",
    ModelChoice.GEMINI_25_FLASH.value: "gemini-2.5-flash",
    ModelChoice.GEMINI_PRO.value: "gemini-1.5-pro",
    ModelChoice.GEMINI_FLASH.value: "gemini-1.5-flash",
}

UTILITY_MODEL = "gemini-2.0-flash"
NO_CONTENT_ERROR = "No content was generated"
FALLBACK_SCRIPT_NAME = "VibeScript"


class LLMServiceError(Exception):
    """Gemini call failed; ``status`` is set for HTTP errors"""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


def resolve_model(model_id: str | None, model_map: dict[str, str] | None = None) -> str:
    """Map a user-facing model id to a provider model id.

    Unknown ids fall back to the default model.
    """
    mapping = {**DEFAULT_MODEL_MAP, **(model_map or {})}
    if model_id in mapping:
        return mapping[model_id]
    return mapping[DEFAULT_MODEL]


def _elapsed_ms(started: float) -> int:
    return max(0, int((time.perf_counter() - started) * 1000))


class GenerationStream:
    """Pull-based async sequence of StreamChunk.

    Ends with exactly one ``is_final`` chunk, which carries ``error`` when the
    request failed. A stream can only be iterated once.
    """

    def __init__(self, fragments_factory: Callable[[], AsyncIterator[str]]):
        self._fragments_factory = fragments_factory
        self._fragments: AsyncIterator[str] | None = None
        self._started_at: float | None = None
        self._finished = False
        self._parts: list[str] = []
        self.error: str | None = None

    @property
    def text(self) -> str:
        """Text received so far"""
        return "".join(self._parts)

    @property
    def finished(self) -> bool:
        return self._finished

    def __aiter__(self) -> "GenerationStream":
        if self._started_at is not None:
            raise RuntimeError("GenerationStream cannot be restarted; start a new generation instead")
        self._started_at = time.perf_counter()
        self._fragments = self._fragments_factory()
        return self

    async def __anext__(self) -> StreamChunk:
        if self._fragments is None:
            self.__aiter__()
        if self._finished:
            raise StopAsyncIteration

        try:
            delta = await self._fragments.__anext__()
        except StopAsyncIteration:
            self._finished = True
            return StreamChunk(is_final=True, elapsed_ms=_elapsed_ms(self._started_at))
        except asyncio.TimeoutError:
            return await self._fail("Request timed out")
        except Exception as e:
            return await self._fail(str(e) or e.__class__.__name__)

        self._parts.append(delta)
        return StreamChunk(text_delta=delta, elapsed_ms=_elapsed_ms(self._started_at))

    async def _fail(self, message: str) -> StreamChunk:
        logger.error("[LLMService] Stream failed: %s", message)
        self._finished = True
        self.error = message
        await self.aclose()
        return StreamChunk(is_final=True, error=message, elapsed_ms=_elapsed_ms(self._started_at))

    async def aclose(self):
        """Release the underlying HTTP response early"""
        self._finished = True
        if self._fragments is not None and hasattr(self._fragments, "aclose"):
            await self._fragments.aclose()


class LLMService:
    """Service for the Gemini generateContent API"""

    def __init__(
        self,
        config: dict[str, Any],
        context: Optional[StaticContext] = None,
        session_factory: Callable[..., Any] | None = None,
    ):
        self.config = config
        self.context = context
        self._session_factory = session_factory or aiohttp.ClientSession

    # ========== Config Helpers ==========

    @property
    def _gemini_cfg(self) -> dict[str, Any]:
        return self.config.get("gemini", {})

    @property
    def base_url(self) -> str:
        return self._gemini_cfg.get("baseUrl", DEFAULT_BASE_URL).rstrip("/")

    def resolve_model(self, model_id: str | None) -> str:
        return resolve_model(model_id, self._gemini_cfg.get("modelMap"))

    def _timeout(self, seconds: int | None = None) -> aiohttp.ClientTimeout:
        return aiohttp.ClientTimeout(total=seconds or self._gemini_cfg.get("timeoutSeconds", 120))

    # ========== Payload Builders ==========

    def _build_gemini_payload(self, parts: list[str], **overrides: Any) -> dict[str, Any]:
        """Build a generateContent payload; each prompt piece is its own part"""
        cfg = self._gemini_cfg
        generation_config = {
            "temperature": cfg.get("temperature", 0.7),
            "topK": cfg.get("topK", 40),
            "topP": cfg.get("topP", 0.95),
            "maxOutputTokens": cfg.get("maxOutputTokens", 8192),
        }
        generation_config.update(overrides)
        return {
            "contents": [{"role": "user", "parts": [{"text": text} for text in parts]}],
            "generationConfig": generation_config,
        }

    # ========== Response Parsers ==========

    def _extract_gemini_text(self, data: dict[str, Any]) -> str | None:
        """Extract text from Gemini response data"""
        candidates = data.get("candidates") if isinstance(data, dict) else None
        if not isinstance(candidates, list) or not candidates or not isinstance(candidates[0], dict):
            return None
        content = candidates[0].get("content")
        if not isinstance(content, dict):
            return None
        parts = content.get("parts")
        if not isinstance(parts, list) or not parts or not isinstance(parts[0], dict):
            return None
        text = parts[0].get("text")
        return text if isinstance(text, str) else None

    @staticmethod
    def _error_message(status: int, body: str) -> str:
        """``API error (<status>): <provider message>``"""
        message = "Unknown error"
        try:
            data = json.loads(body)
            error = data.get("error") if isinstance(data, dict) else None
            if isinstance(error, dict):
                message = error.get("message") or message
            elif isinstance(error, str) and error.strip():
                message = error.strip()
        except json.JSONDecodeError:
            if body.strip():
                message = body.strip()
        return f"API error ({status}): {message}"

    def _parse_stream_line(self, line_text: str) -> str | None:
        """Parse one line of the SSE stream; malformed fragments are skipped"""
        if line_text.startswith("data:"):
            line_text = line_text[5:].strip()
        if not line_text or line_text == "[DONE]":
            return None
        try:
            data = json.loads(line_text)
        except json.JSONDecodeError:
            logger.warning("[LLMService] Skipping unparseable stream fragment: %.80s", line_text)
            return None
        if not isinstance(data, dict):
            return None
        error = data.get("error")
        if isinstance(error, dict):
            raise LLMServiceError(f"API error: {error.get('message') or 'Unknown error'}")
        if isinstance(error, str) and error.strip():
            raise LLMServiceError(f"API error: {error.strip()}")
        return self._extract_gemini_text(data)

    # ========== HTTP ==========

    @asynccontextmanager
    async def _request(self, url: str, payload: dict[str, Any], timeout_seconds: int | None = None):
        """POST with automatic session cleanup; non-200 raises LLMServiceError"""
        async with self._session_factory(timeout=self._timeout(timeout_seconds)) as session:
            async with session.post(url, json=payload, headers={"Content-Type": "application/json"}) as response:
                if response.status != 200:
                    error_text = await response.text()
                    message = self._error_message(response.status, error_text)
                    logger.error("[LLMService] Gemini %s", message)
                    raise LLMServiceError(message, status=response.status)
                yield response

    async def generate_text(self, api_key: str, model: str, parts: list[str], **overrides: Any) -> str:
        """Single buffered call; raises LLMServiceError on any API-level failure"""
        if not api_key:
            raise LLMServiceError("Gemini API key not configured")

        url = f"{self.base_url}/models/{model}:generateContent?key={api_key}"
        payload = self._build_gemini_payload(parts, **overrides)
        logger.info("[LLMService] Calling Gemini API with model: %s", model)

        async with self._request(url, payload) as response:
            data = await response.json()

        text = self._extract_gemini_text(data)
        if not text:
            raise LLMServiceError(NO_CONTENT_ERROR)
        logger.info("[LLMService] Received response from %s (length: %d chars)", model, len(text))
        return text

    async def _prepare_context(self, include_helper: bool, include_sample_code: bool):
        if self.context is not None and (include_helper or include_sample_code):
            await self.context.ensure_loaded()

    def _helper_source(self) -> str:
        return self.context.helper_source if self.context is not None else ""

    # ========== Script generation ==========

    async def generate(
        self,
        prompt: str,
        api_key: str | None,
        model_id: str | None = None,
        include_helper: bool = True,
        include_sample_code: bool = True,
    ) -> GenerationResult:
        """Generate a script and split it into code and explanation"""
        started = time.perf_counter()
        try:
            await self._prepare_context(include_helper, include_sample_code)
            system_prompt = build_system_prompt(include_helper, include_sample_code, self.context)
            content = await self.generate_text(api_key or "", self.resolve_model(model_id), [system_prompt, prompt])
        except LLMServiceError as e:
            return GenerationResult(success=False, error=str(e), response_time_ms=_elapsed_ms(started))
        except asyncio.TimeoutError:
            logger.error("[LLMService] Gemini request timed out")
            return GenerationResult(success=False, error="Request timed out", response_time_ms=_elapsed_ms(started))
        except (aiohttp.ClientError, ValueError) as e:
            logger.error("[LLMService] Script generation error: %s", e)
            return GenerationResult(
                success=False, error=str(e) or e.__class__.__name__, response_time_ms=_elapsed_ms(started)
            )

        processed = split_response(content, include_helper, self._helper_source())
        return GenerationResult(
            success=True,
            raw_content=content,
            code=processed.code,
            explanation=processed.explanation,
            response_time_ms=_elapsed_ms(started),
        )

    async def generate_for(self, request: GenerationRequest, api_key: str | None) -> GenerationResult:
        return await self.generate(
            request.prompt,
            api_key,
            model_id=request.model_id,
            include_helper=request.include_helper,
            include_sample_code=request.include_sample_code,
        )

    def generate_stream(
        self,
        prompt: str,
        api_key: str | None,
        model_id: str | None = None,
        include_helper: bool = True,
        include_sample_code: bool = True,
    ) -> GenerationStream:
        """Streaming variant of generate(); nothing is sent until iteration starts"""

        async def fragments():
            if not api_key:
                raise LLMServiceError("Gemini API key not configured")
            await self._prepare_context(include_helper, include_sample_code)
            model = self.resolve_model(model_id)
            system_prompt = build_system_prompt(include_helper, include_sample_code, self.context)
            url = f"{self.base_url}/models/{model}:streamGenerateContent?alt=sse&key={api_key}"
            payload = self._build_gemini_payload([system_prompt, prompt])
            logger.info("[LLMService] Streaming from Gemini model: %s", model)

            async with self._request(url, payload) as response:
                async for line in response.content:
                    content = self._parse_stream_line(line.decode("utf-8", errors="replace").strip())
                    if content:
                        yield content

        return GenerationStream(fragments)

    def split(self, content: str, include_helper: bool):
        """Split a finished (e.g. streamed) response the same way generate() does"""
        return split_response(content, include_helper, self._helper_source())

    # ========== Key verification ==========

    async def verify_key(self, api_key: str) -> bool:
        """True iff the list-models call succeeds and returns at least one model"""
        if not api_key:
            return False

        url = f"{self.base_url}/models?key={api_key}"
        try:
            async with self._session_factory(timeout=self._timeout(10)) as session:
                async with session.get(url) as response:
                    if response.status != 200:
                        logger.warning("[LLMService] API key verification failed: HTTP %s", response.status)
                        return False
                    data = await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.warning("[LLMService] API key verification error: %s", e)
            return False

        models = data.get("models") if isinstance(data, dict) else None
        return isinstance(models, list) and len(models) > 0

    # ========== Script names ==========

    async def suggest_script_name(self, description: str, api_key: str | None) -> str:
        """Short CamelCase file name for a script; falls back to the description's first words"""
        if not description.strip():
            return FALLBACK_SCRIPT_NAME
        try:
            text = await self.generate_text(
                api_key or "",
                UTILITY_MODEL,
                [build_script_name_prompt(description)],
                temperature=0.2,
                maxOutputTokens=64,
            )
        except (LLMServiceError, aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.warning("[LLMService] Script name generation failed, using fallback: %s", e)
            return fallback_script_name(description)

        lines = text.strip().splitlines()
        name = re.sub(r"[^A-Za-z0-9]", "", lines[0]) if lines else ""
        return name or fallback_script_name(description)


def fallback_script_name(description: str) -> str:
    words = [re.sub(r"[^A-Za-z0-9]", "", word) for word in description.split()]
    words = [word for word in words if word][:3]
    if not words:
        return FALLBACK_SCRIPT_NAME
    return "".join(word[0].upper() + word[1:].lower() for word in words) + "Script"
