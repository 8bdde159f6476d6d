"""Models module - Pydantic data models"""

from .generation import (
    GenerateBody,
    GenerationRequest,
    GenerationResult,
    ModelChoice,
    StreamChunk,
)
from .ideas import IdeaChip, IdeaFetchResult, IdeasResponse
from .scripts import (
    CreateScriptRequest,
    CreateScriptResult,
    PublishScriptRequest,
    PublishScriptResult,
    ScriptNameRequest,
    ScriptNameResponse,
)
from .session import FeedbackBody, RefineBody, SessionPhase, SessionState, SubmitBody

__all__ = [
    # Generation models
    "GenerateBody",
    "GenerationRequest",
    "GenerationResult",
    "ModelChoice",
    "StreamChunk",
    # Idea models
    "IdeaChip",
    "IdeaFetchResult",
    "IdeasResponse",
    # Script publishing models
    "CreateScriptRequest",
    "CreateScriptResult",
    "PublishScriptRequest",
    "PublishScriptResult",
    "ScriptNameRequest",
    "ScriptNameResponse",
    # Session models
    "FeedbackBody",
    "RefineBody",
    "SessionPhase",
    "SessionState",
    "SubmitBody",
]
