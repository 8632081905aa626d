"""
Profile API Routes

Profiles hold categorical labels only. They are recomputed on demand, so a
profile may lag behind the latest behavior log until ``/generate`` is called.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from classpulse.api.dependencies import get_behavior, get_privacy
from classpulse.api.security import get_current_principal
from classpulse.core.services.auth import Principal
from classpulse.core.services.behavior_service import BehaviorService
from classpulse.core.services.privacy_service import PrivacyFilter

router = APIRouter(prefix="/api/profile", tags=["profile"])


class ProfileGenerate(BaseModel):
    student_id: Optional[int] = None


@router.post("/generate", response_model=dict)
async def generate_profile(
    payload: Optional[ProfileGenerate] = None,
    actor: Principal = Depends(get_current_principal),
    privacy: PrivacyFilter = Depends(get_privacy),
    behavior: BehaviorService = Depends(get_behavior),
):
    requested = payload.student_id if payload else None
    student_id = privacy.authorize_recompute(actor, requested)
    profile = behavior.recompute(student_id, actor_id=actor.id)
    return {"message": "Profile generated successfully", "profile": profile}


@router.get("/{student_id}", response_model=dict)
async def read_profile(
    student_id: int,
    actor: Principal = Depends(get_current_principal),
    privacy: PrivacyFilter = Depends(get_privacy),
):
    return privacy.read_profile(actor, student_id)
