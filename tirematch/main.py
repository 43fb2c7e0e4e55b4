"""FastAPI app entry point for the GCI Tire matching API."""

import asyncio
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from tirematch.api.deps import close_clients
from tirematch.api.routes import limiter, router
from tirematch.core.config import get_settings, missing_settings
from tirematch.core.logging import log_error, log_request, log_response, logger, setup_logging
from tirematch.core.readiness import ReadinessGate
from tirematch.services.recommender import LanguageModel, build_language_model


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: start LM initialization, close clients on shutdown."""
    settings = get_settings()
    setup_logging(settings.log_level)
    logger.info("Starting GCI Tire matching API...")

    for problem in missing_settings(settings):
        logger.warning(f"Configuration: {problem}")

    gate: ReadinessGate[LanguageModel] = ReadinessGate("language model")
    gate.start(lambda: asyncio.to_thread(build_language_model, settings))
    app.state.llm_gate = gate

    yield

    logger.info("Shutting down...")
    await gate.close()
    await close_clients()


app = FastAPI(
    title="GCI Tire Matching API",
    description="AI tire recommendations, installer directory and checkout for GCI Tires",
    version="1.0.0",
    lifespan=lifespan,
)

# Rate limiting
app.state.limiter = limiter


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    log_error("Rate limit exceeded", client=get_remote_address(request))
    return _rate_limit_exceeded_handler(request, exc)


# CORS
settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
    allow_headers=[
        "Accept",
        "Authorization",
        "Content-Type",
        "X-Requested-With",
        "X-CSRF-Token",
        "X-Api-Version",
    ],
)


# Request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.time()
    log_request(request.method, request.url.path)

    response = await call_next(request)

    duration_ms = (time.time() - start) * 1000
    log_response(request.method, request.url.path, response.status_code, duration_ms)

    return response


# Routes
app.include_router(router, prefix="/api")


@app.get("/health")
async def health():
    settings = get_settings()
    gate = getattr(app.state, "llm_gate", None)
    return {
        "status": "ok",
        "service": "gci-tire-matching",
        "llm": gate.state.value if gate else "not_started",
        "shopify_configured": settings.shopify_configured,
        "airtable_configured": settings.airtable_configured,
    }
