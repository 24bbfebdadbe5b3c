"""
Focus Time OS API Server - REST control of one FocusApp.

Build with create_app(focus_app); the CLI `serve` command runs it under
uvicorn. Clients that cannot hold a connection poll /api/events?since=N
for timer, blocking and session events.
"""

import logging
import os
from datetime import UTC, datetime

import uvicorn
from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from focus_os import __version__
from focus_os.api.response_models import (
    AppStateRequest,
    BlockingResponse,
    EventListResponse,
    HealthResponse,
    ListResponse,
    MethodRequest,
    MutationResponse,
    RecommendationResponse,
    SlotResponse,
    SlotSearchRequest,
    StartRequest,
    StatsResponse,
    StopRequest,
    StudyStatsResponse,
    TimerResponse,
)
from focus_os.app import FocusApp
from focus_os.db import PersistenceError
from focus_os.methods import format_time
from focus_os.session.timer import TimerState

logger = logging.getLogger(__name__)


def get_focus_app(request: Request) -> FocusApp:
    return request.app.state.focus_app


def timer_payload(state: TimerState) -> dict:
    return {
        "method_key": state.method_key,
        "duration_seconds": state.duration_seconds,
        "remaining_seconds": state.remaining_seconds,
        "formatted_time": format_time(state.remaining_seconds),
        "progress": round(state.progress, 4),
        "status": state.status.value,
        "session_started_at": (
            state.session_started_at.isoformat() if state.session_started_at else None
        ),
        "elapsed_at_pause": state.elapsed_at_pause,
        "session_id": state.session_id,
    }


def blocking_payload(focus: FocusApp) -> dict:
    state = focus.blocking.state()
    return {
        "enabled": state.enabled,
        "level": state.level.value,
        "switch_attempts": state.switch_attempts,
        "armed": state.armed,
        "degraded": focus.blocking.degraded,
    }


# ==== Timer ====

timer_router = APIRouter(prefix="/api", tags=["Timer"])


@timer_router.get("/methods", response_model=ListResponse)
def list_methods(focus: FocusApp = Depends(get_focus_app)) -> dict:
    items = [
        {
            "key": m.key,
            "name": m.name,
            "duration_seconds": m.duration_seconds,
            "duration_minutes": m.duration_minutes,
            "description": m.description,
        }
        for m in focus.methods.values()
    ]
    return {"items": items, "total": len(items)}


@timer_router.get("/timer", response_model=TimerResponse)
def timer_state(focus: FocusApp = Depends(get_focus_app)) -> dict:
    return timer_payload(focus.timer.state())


@timer_router.post("/timer/start", response_model=TimerResponse)
def timer_start(body: StartRequest | None = None, focus: FocusApp = Depends(get_focus_app)) -> dict:
    body = body or StartRequest()
    focus.start(blocking=body.blocking, level=body.level)
    return timer_payload(focus.timer.state())


@timer_router.post("/timer/pause", response_model=TimerResponse)
def timer_pause(focus: FocusApp = Depends(get_focus_app)) -> dict:
    focus.pause()
    return timer_payload(focus.timer.state())


@timer_router.post("/timer/stop", response_model=MutationResponse)
def timer_stop(body: StopRequest | None = None, focus: FocusApp = Depends(get_focus_app)) -> dict:
    body = body or StopRequest()
    was_active = focus.timer.status.value in ("running", "paused")
    record = focus.stop(log=body.log)
    return {
        "success": was_active,
        "record": record.to_dict() if record else None,
        "timer": timer_payload(focus.timer.state()),
    }


@timer_router.post("/timer/reset", response_model=TimerResponse)
def timer_reset(focus: FocusApp = Depends(get_focus_app)) -> dict:
    focus.reset()
    return timer_payload(focus.timer.state())


@timer_router.post("/timer/method", response_model=MutationResponse)
def timer_method(body: MethodRequest, focus: FocusApp = Depends(get_focus_app)) -> dict:
    if body.method not in focus.methods:
        raise HTTPException(status_code=404, detail=f"Unknown study method: {body.method}")
    changed = focus.change_method(body.method)
    return {"success": changed, "timer": timer_payload(focus.timer.state())}


# ==== Blocking ====

blocking_router = APIRouter(prefix="/api/blocking", tags=["Blocking"])


@blocking_router.get("", response_model=BlockingResponse)
def blocking_state(focus: FocusApp = Depends(get_focus_app)) -> dict:
    return blocking_payload(focus)


@blocking_router.post("/disable", response_model=BlockingResponse)
def blocking_disable(focus: FocusApp = Depends(get_focus_app)) -> dict:
    focus.disable_blocking()
    return blocking_payload(focus)


@blocking_router.post("/app-state", response_model=BlockingResponse)
def blocking_app_state(body: AppStateRequest, focus: FocusApp = Depends(get_focus_app)) -> dict:
    try:
        focus.app_state(body.state)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Invalid app state: {body.state}") from e
    return blocking_payload(focus)


# ==== Slots ====

slots_router = APIRouter(prefix="/api/slots", tags=["Slots"])


@slots_router.post("", response_model=list[SlotResponse])
def search_slots(body: SlotSearchRequest, focus: FocusApp = Depends(get_focus_app)) -> list:
    slots = focus.find_slots(
        body.events,
        body.window_start,
        body.window_end,
        body.min_duration_minutes,
        use_preferences=body.use_preferences,
    )
    if body.max_slots:
        slots = slots[: body.max_slots]
    return [s.to_dict() for s in slots]


@slots_router.post("/recommend", response_model=list[RecommendationResponse])
def recommend_slots(body: SlotSearchRequest, focus: FocusApp = Depends(get_focus_app)) -> list:
    recommendations = focus.recommend_slots(
        body.events, body.window_start, body.window_end, max_slots=body.max_slots
    )
    return [r.to_dict() for r in recommendations]


# ==== Sessions & stats ====

stats_router = APIRouter(prefix="/api", tags=["Stats"])


@stats_router.get("/sessions", response_model=ListResponse)
def list_sessions(
    days: int | None = Query(None, ge=1, description="Only the last N days, newest first"),
    focus: FocusApp = Depends(get_focus_app),
) -> dict:
    records = focus.aggregator.history(days) if days else focus.store.all()
    return {"items": [r.to_dict() for r in records], "total": len(records)}


@stats_router.delete("/sessions/{record_id}", response_model=MutationResponse)
def delete_session(record_id: str, focus: FocusApp = Depends(get_focus_app)) -> dict:
    if not focus.store.delete(record_id):
        raise HTTPException(status_code=404, detail=f"Session {record_id} not found")
    return {"success": True, "id": record_id}


@stats_router.get("/sessions/export")
def export_sessions(focus: FocusApp = Depends(get_focus_app)) -> dict:
    return focus.store.export()


@stats_router.get("/stats", response_model=StatsResponse)
def stats(focus: FocusApp = Depends(get_focus_app)) -> dict:
    return focus.stats().to_dict()


@stats_router.get("/stats/study", response_model=StudyStatsResponse)
def study_stats(
    days: int = Query(7, ge=1, le=365), focus: FocusApp = Depends(get_focus_app)
) -> dict:
    return focus.aggregator.study_stats(days)


@stats_router.get("/storage")
def storage(focus: FocusApp = Depends(get_focus_app)) -> dict:
    return focus.store.storage_info()


# ==== Events ====

events_router = APIRouter(prefix="/api", tags=["Events"])


@events_router.get("/events", response_model=EventListResponse)
def events(
    since: int = Query(0, ge=0, description="Return events with seq greater than this"),
    event_type: str | None = Query(None),
    focus: FocusApp = Depends(get_focus_app),
) -> dict:
    items = [e.to_dict() for e in focus.bus.history(since, event_type)]
    return {"items": items, "last_seq": focus.bus.last_seq}


# ==== Factory ====


def create_app(focus_app: FocusApp | None = None) -> FastAPI:
    """Build the API around one FocusApp (a default one if omitted)."""
    app = FastAPI(
        title="Focus Time OS API",
        description="Study timer, app-switch blocking, free slots and streaks",
        version=__version__,
    )

    cors_origins_env = os.getenv("CORS_ORIGINS", "*")
    cors_origins = (
        ["*"] if cors_origins_env == "*" else [o.strip() for o in cors_origins_env.split(",")]
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.focus_app = focus_app or FocusApp()

    @app.exception_handler(PersistenceError)
    async def persistence_error_handler(request: Request, exc: PersistenceError):
        logger.error(f"{request.method} {request.url.path}: {exc}")
        return JSONResponse(status_code=503, content={"detail": str(exc)})

    @app.get("/health", response_model=HealthResponse)
    def health() -> dict:
        return {
            "status": "healthy",
            "version": __version__,
            "timestamp": datetime.now(UTC).isoformat(),
        }

    for router in (timer_router, blocking_router, slots_router, stats_router, events_router):
        app.include_router(router)
    return app


def serve(focus_app: FocusApp | None = None, host: str = "127.0.0.1", port: int = 8420) -> None:
    app = create_app(focus_app)
    logger.info("Serving Focus Time OS API on http://%s:%d", host, port)
    try:
        uvicorn.run(app, host=host, port=port, log_config=None)
    finally:
        app.state.focus_app.close()
