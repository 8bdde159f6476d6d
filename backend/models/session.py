"""Session state models"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict

from .generation import GenerationResult


class SessionPhase(str, Enum):
    """Phase of the running generate/review/refine turn"""

    IDLE = "idle"
    GENERATING = "generating"
    REVIEWING = "reviewing"
    REFINING = "refining"


class SessionState(BaseModel):
    """Everything the UI needs to render the current turn"""

    model_config = ConfigDict(protected_namespaces=())

    phase: SessionPhase = SessionPhase.IDLE
    prompt: str = ""
    model_id: str = "gemini-2.5-pro"
    include_helper: bool = True
    include_sample_code: bool = True
    elapsed_seconds: int = 0
    result: GenerationResult | None = None
    error: str | None = None
    feedback_given: bool = False
    feedback_positive: bool | None = None
    refine_text: str = ""


class SubmitBody(BaseModel):
    """HTTP body for a session submit"""

    prompt: str
    model: str | None = None
    includeHelper: bool | None = None
    includeSampleCode: bool | None = None


class FeedbackBody(BaseModel):
    positive: bool


class RefineBody(BaseModel):
    text: str
