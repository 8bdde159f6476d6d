"""
VibeScript Backend - FastAPI Application Entry Point
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from routers import config, generate, ideas, scripts, session
from services.config_manager import ConfigManager
from services.llm_service import LLMService
from services.session_controller import GenerationSession
from services.static_context import StaticContext

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s [%(name)s] %(message)s")
logger = logging.getLogger("vibescript")

CONTEXT_DIR = Path(__file__).parent / "context"


async def check_stored_key(llm_service: LLMService, api_key: str | None):
    """Re-verify a previously saved key; an invalid one is only reported"""
    if not api_key:
        logger.info("No Gemini API key stored yet")
        return
    if not await llm_service.verify_key(api_key):
        logger.warning("Stored Gemini API key is invalid, update it via PUT /api/config/api-key")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager - startup and shutdown logic"""
    logger.info("Starting VibeScript backend...")
    config_manager = ConfigManager.get_instance()
    app_config = config_manager.get_config()
    logger.info("Config loaded from %s", config_manager.config_file)

    # One context object for the whole process. The bundled files are read
    # from disk since the socket is not bound yet; a remote location loads in
    # the background and generation calls retry it lazily if it is still empty
    static_context = StaticContext.from_config(app_config, bundled_dir=CONTEXT_DIR)
    llm_service = LLMService(app_config, static_context)
    app.state.static_context = static_context
    app.state.session = GenerationSession(llm_service, config_manager.get_api_key)
    startup_tasks = [asyncio.create_task(check_stored_key(llm_service, config_manager.get_api_key()))]
    if static_context.local_dir is not None:
        await static_context.load()
    else:
        startup_tasks.append(asyncio.create_task(static_context.load()))

    yield

    for task in startup_tasks:
        if not task.done():
            task.cancel()
    logger.info("Shutting down VibeScript backend...")


app = FastAPI(
    title="VibeScript Backend",
    description="Describe an automation, get a Google Apps Script back",
    version="1.0.0",
    lifespan=lifespan,
)

# The browser UI is served from a different origin during development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(generate.router, prefix="/api/generate", tags=["generate"])
app.include_router(session.router, prefix="/api/session", tags=["session"])
app.include_router(ideas.router, prefix="/api/ideas", tags=["ideas"])
app.include_router(scripts.router, prefix="/api/scripts", tags=["scripts"])
app.include_router(config.router, prefix="/api/config", tags=["config"])
app.mount("/context", StaticFiles(directory=CONTEXT_DIR), name="context")


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "service": "vibescript-backend"}


if __name__ == "__main__":
    import uvicorn

    server = ConfigManager.get_instance().get_config().get("server", {})
    uvicorn.run(app, host=server.get("host", "0.0.0.0"), port=server.get("port", 8000))
