"""Main FastAPI application."""

import logging
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import Depends, FastAPI, HTTPException, Request

from .config import settings
from .goals import periods
from .goals.engine import GoalEngine
from .goals.errors import RemoteUnavailable
from .pos.client import PosApiClient
from .pos.models import Track
from .web.models import (
    CelebrationResponse,
    GoalRequest,
    GoalStateResponse,
    ProgressResponse,
)

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the goal engine for the configured store and stop it on shutdown."""
    client = PosApiClient(settings.pos_api_url, settings.pos_api_token, settings.request_timeout)
    engine = GoalEngine.from_settings(settings, client)
    app.state.client = client
    app.state.engine = engine

    if settings.store_id:
        engine.start()
    else:
        logger.warning("STORE_ID not set, goal tracking disabled")

    try:
        yield
    finally:
        await engine.teardown()
        await client.aclose()


# Initialize FastAPI app
app = FastAPI(
    title="POS Sales Goals",
    description="Daily and monthly sales goal tracking for a POS store",
    version="1.0.0",
    lifespan=lifespan,
)


def get_engine(request: Request) -> GoalEngine:
    """Goal engine for the current app."""
    return request.app.state.engine


def get_client(request: Request) -> PosApiClient:
    """POS API client for the current app."""
    return request.app.state.client


def snapshot(engine: GoalEngine) -> GoalStateResponse:
    return GoalStateResponse(
        store_id=engine.store_scope,
        daily_goal=engine.daily_goal,
        monthly_goal=engine.monthly_goal,
        daily_progress=ProgressResponse.from_progress(engine.daily_progress),
        monthly_progress=ProgressResponse.from_progress(engine.monthly_progress),
        last_celebration=CelebrationResponse.from_celebration(engine.last_celebration),
        from_cache=engine.from_cache,
        loading=engine.loading,
        error=engine.error,
    )


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "POS Sales Goals",
        "version": "1.0.0",
        "endpoints": {
            "goals": "/api/goals",
            "refresh": "/api/goals/refresh",
            "progress": "/api/goals/progress",
            "achievements": "/api/goals/achievements/check",
            "celebration": "/api/goals/celebration",
            "status": "/status",
        },
    }


@app.get("/status")
async def status(engine: GoalEngine = Depends(get_engine)):
    """Server status endpoint."""
    return {
        "status": "running",
        "version": "1.0.0",
        "timestamp": datetime.now().isoformat(),
        "pos_api_url": settings.pos_api_url,
        "store_id": engine.store_scope,
        "polling": engine.running,
    }


@app.get("/api/goals", response_model=GoalStateResponse)
async def goals_endpoint(engine: GoalEngine = Depends(get_engine)):
    """Current goals, progress and any pending celebration."""
    return snapshot(engine)


@app.post("/api/goals", response_model=GoalStateResponse)
async def create_goal_endpoint(
    body: GoalRequest,
    engine: GoalEngine = Depends(get_engine),
    client: PosApiClient = Depends(get_client),
):
    """
    Create a goal for the current day or month.

    The new goal takes precedence over reconciliation until its period ends.
    """
    if not engine.store_scope:
        raise HTTPException(status_code=409, detail="No store configured for goal tracking")

    start, end = periods.window_for(body.goal_type, engine.clock())
    try:
        goal = await client.create_goal(
            body.goal_type, body.target_amount, start, end, engine.store_scope
        )
    except RemoteUnavailable as e:
        logger.warning(f"Failed to create {body.goal_type.value} goal: {e}")
        raise HTTPException(status_code=503, detail="POS API unavailable")

    if body.goal_type == Track.daily:
        engine.set_daily_goal(goal)
    else:
        engine.set_monthly_goal(goal)

    await engine.update_progress()
    return snapshot(engine)


@app.post("/api/goals/refresh", response_model=GoalStateResponse)
async def refresh_endpoint(engine: GoalEngine = Depends(get_engine)):
    """Run a full reconciliation cycle now."""
    logger.info("Manual goal refresh requested")
    await engine.load_goals()
    return snapshot(engine)


@app.post("/api/goals/progress", response_model=GoalStateResponse)
async def progress_endpoint(engine: GoalEngine = Depends(get_engine)):
    """Refresh sales progress for the current goals."""
    await engine.update_progress()
    return snapshot(engine)


@app.post("/api/goals/achievements/check", response_model=GoalStateResponse)
async def achievements_endpoint(engine: GoalEngine = Depends(get_engine)):
    """Evaluate achievements against the latest progress."""
    await engine.check_achievements()
    return snapshot(engine)


@app.delete("/api/goals/celebration", response_model=GoalStateResponse)
async def clear_celebration_endpoint(engine: GoalEngine = Depends(get_engine)):
    """Dismiss the pending celebration."""
    engine.clear_last_celebration()
    return snapshot(engine)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host=settings.server_host,
        port=settings.server_port,
        log_level=settings.log_level.lower(),
    )
