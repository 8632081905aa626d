from fastapi import APIRouter, Depends

from classpulse.api.dependencies import get_privacy
from classpulse.api.security import get_current_principal
from classpulse.core.services.auth import Principal
from classpulse.core.services.privacy_service import PrivacyFilter

router = APIRouter(prefix="/api/insights", tags=["insights"])


@router.get("/{student_id}", response_model=dict)
async def read_insight(
    student_id: int,
    actor: Principal = Depends(get_current_principal),
    privacy: PrivacyFilter = Depends(get_privacy),
):
    """Supportive study-habit message, visible to the student it is about only."""
    return privacy.read_insight(actor, student_id)
