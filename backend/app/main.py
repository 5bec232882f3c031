import logging
import os
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv

from app.auth import get_auth_settings
from app.db import CosmosStore, get_settings
from app.routers import learn_router, progress_router
from app.sessions import SessionRegistry

load_dotenv()

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    settings = get_settings()
    auth_settings = get_auth_settings()

    if auth_settings.enabled:
        logger.info("Authentication enabled: principal read from %s", auth_settings.principal_header)
    else:
        logger.warning("Authentication DISABLED - using X-User-Id header fallback (dev mode)")

    store = CosmosStore(settings)
    if settings.is_configured():
        store.open()
        if store.verify():
            logger.info("Connected to Cosmos DB")
        else:
            logger.error("Failed to connect to Cosmos DB - check configuration")
    else:
        logger.warning("Cosmos DB not configured (COSMOS_ENDPOINT/COSMOS_EMULATOR not set)")

    app.state.store = store
    app.state.sessions = SessionRegistry()

    yield

    # Shutdown
    store.close()


app = FastAPI(
    title="Wordloop API",
    description="Spaced-repetition scheduling API for vocabulary study",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS configuration
cors_origins = os.getenv(
    "CORS_ORIGINS", "http://localhost:3000,http://localhost:5173"
).split(",")
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(learn_router)
app.include_router(progress_router)


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "name": "Wordloop API",
        "version": "1.0.0",
        "endpoints": {
            "health": "/healthz",
            "answer": "/learn/answer",
            "session": "/learn/session",
            "progress": "/progress",
        },
    }


@app.get("/healthz")
async def healthz():
    """Health check endpoint."""
    return {"status": "healthy"}
