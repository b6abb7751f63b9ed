import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api import analytics, chains, chat, health, mcp
from .config import Settings, settings
from .core.assistant import Assistant
from .core.fallback import FallbackResponder
from .logging_config import setup_logging
from .mcp.supervisor import ProcessSupervisor, SupervisorConfig
from .providers.tatum import TatumProvider

logger = logging.getLogger(__name__)


def build_services(app: FastAPI, config: Optional[Settings] = None) -> None:
    """Wire provider, supervisor, responder and assistant into ``app.state``."""
    config = config or settings
    provider = TatumProvider(api_key=config.tatum_api_key)
    supervisor = ProcessSupervisor(SupervisorConfig.from_settings(config))
    responder = FallbackResponder(provider, chain_timeout=config.chain_request_timeout_seconds)

    app.state.provider = provider
    app.state.supervisor = supervisor
    app.state.responder = responder
    app.state.assistant = Assistant(supervisor, responder)


async def _start_mcp(supervisor: ProcessSupervisor) -> None:
    connected = await supervisor.start()
    if connected:
        logger.info("MCP server ready for AI chat")
    else:
        logger.warning("MCP server failed to start, using fallback responses")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Start the MCP supervisor in the background and stop it on shutdown."""
    setup_logging()
    if not getattr(app.state, "supervisor", None):
        build_services(app)

    if not settings.has_tatum_key:
        logger.warning("TATUM_API_KEY not configured; fallback analysis will return setup notices")

    supervisor: ProcessSupervisor = app.state.supervisor
    startup: Optional[asyncio.Task] = None
    if settings.mcp_enabled:
        startup = asyncio.create_task(_start_mcp(supervisor), name="mcp-startup")
    else:
        supervisor.enable_fallback_mode("MCP disabled by configuration")

    logger.info("ChainLens API started on %s:%s", settings.host, settings.port)
    yield

    logger.info("Shutting down ChainLens API")
    if startup is not None and not startup.done():
        startup.cancel()
        await asyncio.gather(startup, return_exceptions=True)
    await supervisor.stop()


# Create FastAPI app
app = FastAPI(
    title="ChainLens API",
    description="Multi-chain blockchain analytics backend with MCP fallback",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(chat.router, tags=["Chat"])
app.include_router(mcp.router, tags=["MCP"])
app.include_router(chains.router, tags=["Chains"])
app.include_router(analytics.router, tags=["Analytics"])


@app.get("/")
async def root():
    """Root endpoint with basic info"""
    return {
        "name": "ChainLens API",
        "version": "1.0.0",
        "description": "Multi-chain blockchain analytics backend with MCP fallback",
        "docs": "/docs",
        "health": "/healthz",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "chainlens.main:app",
        host=settings.host,
        port=settings.port,
        reload=True,
        log_level=settings.log_level.lower(),
    )
