"""
Behavior API Routes

Raw behavior telemetry is student-private: students log and read their own
record, nobody else reads it.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from classpulse.api.dependencies import get_behavior, get_privacy
from classpulse.api.security import get_current_principal, require_student
from classpulse.core.services.auth import Principal
from classpulse.core.services.behavior_service import MAX_COUNT, BehaviorService
from classpulse.core.services.privacy_service import PrivacyFilter

router = APIRouter(prefix="/api/behavior", tags=["behavior"])


class BehaviorLog(BaseModel):
    """Only supplied fields are written; omitted fields keep their stored value."""

    login_frequency: Optional[int] = Field(None, le=MAX_COUNT)
    assignment_submission_tendency: Optional[str] = None
    time_spent_on_materials_minutes: Optional[int] = Field(None, le=MAX_COUNT)
    missed_deadlines_count: Optional[int] = Field(None, le=MAX_COUNT)
    ai_chat_usage_count: Optional[int] = Field(None, le=MAX_COUNT)
    timetable_adherence_percent: Optional[float] = None


@router.get("", response_model=dict)
async def read_my_behavior(
    actor: Principal = Depends(get_current_principal),
    privacy: PrivacyFilter = Depends(get_privacy),
):
    return privacy.read_behavior(actor, actor.id)


@router.post("/log", response_model=dict)
async def log_behavior(
    payload: BehaviorLog,
    actor: Principal = Depends(require_student),
    behavior: BehaviorService = Depends(get_behavior),
):
    record = behavior.log_behavior(actor, **payload.model_dump(exclude_none=True))
    return {"message": "Behavior data logged successfully", "behavior": record}
