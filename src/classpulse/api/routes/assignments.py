"""
Assignment API Routes

Teacher-side management and grading, student-side submission.
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from classpulse.api.dependencies import get_lifecycle
from classpulse.api.security import (
    get_current_principal,
    require_teacher,
)
from classpulse.core.services.assignment_service import (
    MAX_TOTAL_POINTS,
    AssignmentLifecycle,
)
from classpulse.core.services.auth import Principal

router = APIRouter(prefix="/api/assignments", tags=["assignments"])


# --- Pydantic Models ---


class AssignmentUpdate(BaseModel):
    """Partial update; fields outside the editable set are accepted and ignored."""

    title: Optional[str] = None
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    total_points: Optional[int] = Field(None, le=MAX_TOTAL_POINTS)
    instructions: Optional[str] = None
    attachments: Optional[List[str]] = None
    status: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class SubmissionCreate(BaseModel):
    content: Optional[str] = None
    attachments: List[str] = []


class GradeRequest(BaseModel):
    grade: float = Field(allow_inf_nan=False)
    feedback: Optional[str] = None


# --- Routes ---


@router.get("/{assignment_id}", response_model=dict)
async def get_assignment(
    assignment_id: int,
    actor: Principal = Depends(get_current_principal),
    lifecycle: AssignmentLifecycle = Depends(get_lifecycle),
):
    return lifecycle.get_assignment(assignment_id, actor)


@router.put("/{assignment_id}", response_model=dict)
async def update_assignment(
    assignment_id: int,
    payload: AssignmentUpdate,
    actor: Principal = Depends(require_teacher),
    lifecycle: AssignmentLifecycle = Depends(get_lifecycle),
):
    return lifecycle.update(
        assignment_id, actor, payload.model_dump(exclude_unset=True)
    )


@router.delete("/{assignment_id}", response_model=dict)
async def delete_assignment(
    assignment_id: int,
    actor: Principal = Depends(require_teacher),
    lifecycle: AssignmentLifecycle = Depends(get_lifecycle),
):
    lifecycle.delete(assignment_id, actor)
    return {"message": "Assignment deleted successfully"}


@router.post("/{assignment_id}/submit", response_model=dict)
async def submit_assignment(
    assignment_id: int,
    payload: SubmissionCreate,
    actor: Principal = Depends(get_current_principal),
    lifecycle: AssignmentLifecycle = Depends(get_lifecycle),
):
    submission = lifecycle.submit(
        assignment_id, actor, content=payload.content, attachments=payload.attachments
    )
    return {"message": "Assignment submitted successfully", "submission": submission}


@router.get("/{assignment_id}/submissions", response_model=List[dict])
async def list_submissions(
    assignment_id: int,
    actor: Principal = Depends(require_teacher),
    lifecycle: AssignmentLifecycle = Depends(get_lifecycle),
):
    return lifecycle.list_submissions(assignment_id, actor)


@router.put("/{assignment_id}/submissions/{submission_id}/grade", response_model=dict)
async def grade_submission(
    assignment_id: int,
    submission_id: int,
    payload: GradeRequest,
    actor: Principal = Depends(require_teacher),
    lifecycle: AssignmentLifecycle = Depends(get_lifecycle),
):
    submission = lifecycle.grade(
        assignment_id, actor, submission_id, payload.grade, payload.feedback
    )
    return {"message": "Grade submitted successfully", "submission": submission}
