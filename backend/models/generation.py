"""Generation data models"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class ModelChoice(str, Enum):
    """User-facing model identifiers"""

    GEMINI_25_PRO = "gemini-2.5-pro"
    GEMINI_25_FLASH = "gemini-2.5-flash"
    GEMINI_PRO = "gemini-pro"
    GEMINI_FLASH = "gemini-flash"


class GenerationRequest(BaseModel):
    """A single request sent to the model; never mutated after dispatch"""

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    prompt: str
    model_id: str = ModelChoice.GEMINI_25_PRO.value
    include_helper: bool = True
    include_sample_code: bool = True
    sequence: int = 0


class GenerationResult(BaseModel):
    """Normalized outcome of one generation request"""

    success: bool
    raw_content: str | None = None
    code: str | None = None
    explanation: str | None = None
    error: str | None = None
    response_time_ms: int | None = None


class StreamChunk(BaseModel):
    """One element of a streamed generation"""

    is_final: bool = False
    text_delta: str | None = None
    error: str | None = None
    elapsed_ms: int = 0


class GenerateBody(BaseModel):
    """HTTP body for /api/generate"""

    prompt: str
    model: str | None = None
    includeHelper: bool | None = None
    includeSampleCode: bool | None = None
    apiKey: str | None = None
