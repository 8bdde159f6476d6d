"""Routers module - FastAPI route handlers"""

from . import config, generate, ideas, scripts, session

__all__ = ["config", "generate", "ideas", "scripts", "session"]
