from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Query, Request, Response
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST
from pydantic import BaseModel, Field

from feelflick.cache.request_cache import RequestCache
from feelflick.core.config import settings
from feelflick.core.constants import (
    DEFAULT_RECOMMENDATION_LIMIT,
    DEFAULT_SLIDER_VALUE,
    TABLE_MOVIES,
)
from feelflick.core.exceptions import FeelFlickError, ValidationError
from feelflick.core.logging import setup_logging
from feelflick.integrations.supabase import SupabaseClient
from feelflick.services.recommendations import RecommendationService

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    client = await SupabaseClient.connect()
    cache = RequestCache(default_ttl=settings.recommendation_cache_ttl_secs)
    app.state.client = client
    app.state.cache = cache
    app.state.service = RecommendationService(client, cache)
    try:
        yield
    finally:
        await client.aclose()


app = FastAPI(
    title="FeelFlick API",
    description="Mood-based movie recommendations on top of the hosted datastore",
    version="0.1.0",
    lifespan=lifespan,
)


def get_service(request: Request) -> RecommendationService:
    return request.app.state.service


def get_cache(request: Request) -> RequestCache:
    return request.app.state.cache


def get_client(request: Request) -> SupabaseClient:
    return request.app.state.client


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=422, content={"detail": exc.user_message})


@app.exception_handler(FeelFlickError)
async def feelflick_error_handler(request: Request, exc: FeelFlickError):
    logger.error("Request %s failed: %s", request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": exc.user_message})


class MoodSessionIn(BaseModel):
    user_id: str
    mood_id: int
    viewing_context_id: int
    experience_type_id: int
    energy_level: int = Field(default=DEFAULT_SLIDER_VALUE)
    intensity_openness: int = Field(default=DEFAULT_SLIDER_VALUE)


@app.get("/")
async def root():
    return {"status": "ok", "message": "FeelFlick API"}


@app.get("/health")
async def health():
    """Health check endpoint for load balancers and monitoring."""
    return {"status": "healthy"}


@app.get("/ready")
async def ready(client: SupabaseClient = Depends(get_client)):
    """Readiness check that verifies the datastore answers."""
    try:
        await client.ping(TABLE_MOVIES)
        return {"status": "ready", "datastore": "connected"}
    except FeelFlickError as e:
        return {"status": "not_ready", "datastore": "disconnected", "error": str(e)}


@app.get("/metrics")
async def metrics(cache: RequestCache = Depends(get_cache)):
    return Response(content=cache.metrics.exposition(), media_type=CONTENT_TYPE_LATEST)


@app.get("/recommendations/mood")
async def mood_recommendations(
    user_id: str,
    mood_id: int,
    viewing_context_id: int,
    experience_type_id: int,
    energy_level: int = DEFAULT_SLIDER_VALUE,
    intensity_openness: int = DEFAULT_SLIDER_VALUE,
    limit: int = Query(default=DEFAULT_RECOMMENDATION_LIMIT),
    service: RecommendationService = Depends(get_service),
):
    items = await service.get_mood_recommendations(
        user_id,
        mood_id=mood_id,
        viewing_context_id=viewing_context_id,
        experience_type_id=experience_type_id,
        energy_level=energy_level,
        intensity_openness=intensity_openness,
        limit=limit,
    )
    return {"items": items, "count": len(items)}


@app.delete("/cache/users/{user_id}")
async def invalidate_user_cache(user_id: str, service: RecommendationService = Depends(get_service)):
    return {"removed": service.on_history_changed(user_id)}


@app.post("/mood-sessions", status_code=201)
async def create_mood_session(body: MoodSessionIn, service: RecommendationService = Depends(get_service)):
    session_id = await service.create_mood_session(
        body.user_id,
        mood_id=body.mood_id,
        viewing_context_id=body.viewing_context_id,
        experience_type_id=body.experience_type_id,
        energy_level=body.energy_level,
        intensity_openness=body.intensity_openness,
    )
    return {"id": session_id}


@app.post("/mood-sessions/{session_id}/end")
async def end_mood_session(session_id: int, service: RecommendationService = Depends(get_service)):
    if not await service.end_mood_session(session_id):
        return JSONResponse(status_code=404, content={"detail": "Mood session not found"})
    return {"id": session_id, "ended": True}
