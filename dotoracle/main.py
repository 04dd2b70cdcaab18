import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from dotoracle.config import get_settings
from dotoracle.deck import validate_deck
from dotoracle.errors import (
    FeatureLockedError,
    GatingDeniedError,
    InterpretationError,
    InvalidInputError,
    NotFoundError,
    RateLimitExceeded,
)
from dotoracle.routes.character_routes import router as character_router
from dotoracle.routes.deck_routes import router as deck_router
from dotoracle.routes.draw_routes import router as draw_router
from dotoracle.routes.gating_routes import router as gating_router
from dotoracle.routes.reward_routes import router as reward_router
from dotoracle.routes.spread_routes import router as spread_router

settings = get_settings()
logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
log = logging.getLogger("dotoracle")

# Fail fast on a broken card catalogue
validate_deck()

app = FastAPI(title="Dot Oracle", version="0.1.0")

app.include_router(deck_router)
app.include_router(character_router)
app.include_router(draw_router)
app.include_router(spread_router)
app.include_router(gating_router)
app.include_router(reward_router)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(InvalidInputError)
async def invalid_input(request: Request, exc: InvalidInputError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(NotFoundError)
async def not_found(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(GatingDeniedError)
async def gating_denied(request: Request, exc: GatingDeniedError):
    return JSONResponse(status_code=403, content={"detail": str(exc)})


@app.exception_handler(FeatureLockedError)
async def feature_locked(request: Request, exc: FeatureLockedError):
    return JSONResponse(status_code=403, content={"detail": str(exc)})


@app.exception_handler(RateLimitExceeded)
async def rate_limited(request: Request, exc: RateLimitExceeded):
    return JSONResponse(
        status_code=429,
        content={"detail": str(exc), "reset_at": exc.reset_at},
    )


@app.exception_handler(InterpretationError)
async def interpretation_failed(request: Request, exc: InterpretationError):
    log.warning("interpretation error: %s", exc)
    return JSONResponse(status_code=502, content={"detail": str(exc)})


@app.get("/health")
def health():
    return {"ok": True}


@app.get("/debug/env")
def debug_env():
    """Debug endpoint to check configuration"""
    return {
        "openai_api_key_set": bool(settings.openai_api_key),
        "ai_model": settings.ai_model,
        "rate_limit_per_day": settings.rate_limit_per_day,
        "locale": settings.locale,
    }
