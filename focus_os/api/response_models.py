"""
Pydantic request/response models for the Focus Time OS API.

These give FastAPI accurate OpenAPI schemas for every endpoint.

Usage:
    from focus_os.api.response_models import TimerResponse

    @router.get("/timer", response_model=TimerResponse)
    def timer_state(): ...
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

# ==== Generic envelopes ====


class ListResponse(BaseModel):
    """Standard list endpoint response."""

    items: list[Any] = Field(default_factory=list, description="Result items")
    total: int = Field(description="Total count")


class MutationResponse(BaseModel):
    """Standard mutation result."""

    success: bool = Field(description="Whether the operation changed anything")

    model_config = {"extra": "allow"}


class HealthResponse(BaseModel):
    status: str = Field(description="healthy or error")
    version: str
    timestamp: str = Field(description="ISO timestamp")


# ==== Timer ====


class TimerResponse(BaseModel):
    """Snapshot of the session timer."""

    method_key: str
    duration_seconds: int
    remaining_seconds: int = Field(ge=0)
    formatted_time: str = Field(description="Remaining time as MM:SS")
    progress: float = Field(ge=0, le=1)
    status: str = Field(description="idle, running, paused or completed")
    session_started_at: str | None = None
    elapsed_at_pause: int = 0
    session_id: str | None = None


class StartRequest(BaseModel):
    blocking: bool | None = Field(default=None, description="Arm app-switch blocking")
    level: str | None = Field(default=None, description="standard, strict or screen_time")


class StopRequest(BaseModel):
    log: bool = Field(default=False, description="Log the partial session")


class MethodRequest(BaseModel):
    method: str


class MethodResponse(BaseModel):
    key: str
    name: str
    duration_seconds: int
    duration_minutes: int
    description: str = ""


# ==== Blocking ====


class BlockingResponse(BaseModel):
    enabled: bool
    level: str
    switch_attempts: int = Field(ge=0)
    armed: bool
    degraded: bool = False


class AppStateRequest(BaseModel):
    state: str = Field(description="foreground or background")


# ==== Slots ====


class SlotSearchRequest(BaseModel):
    """Calendar events plus the window to search."""

    events: list[dict[str, Any]] = Field(default_factory=list)
    window_start: datetime
    window_end: datetime
    min_duration_minutes: float | None = None
    use_preferences: bool = False
    max_slots: int | None = Field(default=None, ge=1)


class SlotResponse(BaseModel):
    start_time: str
    end_time: str
    duration_minutes: int
    quality_score: int = Field(ge=0, le=100)
    suggested_method: str | None = None
    time_of_day: str


class RecommendationResponse(SlotResponse):
    priority: int
    reason: str
    confidence: int = Field(ge=0, le=100)


# ==== Sessions & stats ====


class SessionRecordResponse(BaseModel):
    id: str
    date: str
    start_time: str
    end_time: str
    duration_minutes: int
    method_key: str
    completed: bool
    session_id: str | None = None


class StatsResponse(BaseModel):
    todays_minutes: int
    weekly_minutes: int
    current_streak: int
    longest_streak: int
    sessions_today: int
    total_sessions: int
    errors: list[str] = Field(default_factory=list)


class StudyStatsResponse(BaseModel):
    total_sessions: int
    total_minutes: int
    average_session: int
    method_breakdown: dict[str, int] = Field(default_factory=dict)
    best_time_of_day: str | None = None
    consistency: int = Field(description="Percent of days in the window with a session")


# ==== Events ====


class EventResponse(BaseModel):
    seq: int
    event_type: str
    data: Any = None
    timestamp: str


class EventListResponse(BaseModel):
    items: list[EventResponse] = Field(default_factory=list)
    last_seq: int
