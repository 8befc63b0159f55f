"""
FastAPI backend for the Medical Consultation Engine.

Exposes consultation start, status, blocking poll and quick complexity
triage over REST.
"""

import logging
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.routes import consultations, health
from medconsult import __version__
from medconsult.config import Settings
from medconsult.orchestration.factory import build_consultation_manager
from medconsult.utils.logging import setup_logging

load_dotenv()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown."""
    settings = Settings.from_env()
    setup_logging(settings.log_level, settings.log_file)

    # A manager injected beforehand (tests) is left in place.
    if getattr(app.state, "manager", None) is None:
        app.state.manager = build_consultation_manager(settings)

    logger.info(f"Medical Consultation API {__version__} starting")
    yield
    active = await app.state.manager.registry.active_count()
    logger.info(f"API shutting down with {active} active consultations")


app = FastAPI(
    title="Medical Consultation API",
    description="Complexity-driven multi-agent consultation with safety-gated consensus",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router, tags=["Health"])
app.include_router(consultations.router, prefix="/api", tags=["Consultations"])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
