"""Services module - Business logic layer"""

from .config_manager import ConfigManager
from .idea_service import FALLBACK_IDEAS, IdeaService
from .llm_service import GenerationStream, LLMService, LLMServiceError, resolve_model
from .prompt_builder import build_refinement_prompt, build_system_prompt
from .response_splitter import SplitResponse, split_response
from .script_publisher import ScriptPublisher
from .session_controller import GenerationSession, SessionHooks
from .static_context import StaticContext

__all__ = [
    "ConfigManager",
    "FALLBACK_IDEAS",
    "GenerationSession",
    "GenerationStream",
    "IdeaService",
    "LLMService",
    "LLMServiceError",
    "ScriptPublisher",
    "SessionHooks",
    "SplitResponse",
    "StaticContext",
    "build_refinement_prompt",
    "build_system_prompt",
    "resolve_model",
    "split_response",
]
