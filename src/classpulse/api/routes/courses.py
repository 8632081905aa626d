"""
Course API Routes

Public catalog, teacher course management, student enrollment and the
per-course assignment list.
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field

from classpulse.api.dependencies import get_lifecycle, get_registry
from classpulse.api.security import (
    get_current_principal,
    get_optional_principal,
    require_student,
    require_teacher,
)
from classpulse.core.services.assignment_service import (
    MAX_TOTAL_POINTS,
    AssignmentLifecycle,
)
from classpulse.core.services.auth import Principal
from classpulse.core.services.enrollment_service import EnrollmentRegistry

router = APIRouter(prefix="/api/courses", tags=["courses"])


# --- Pydantic Models ---


class CourseCreate(BaseModel):
    title: str
    subject: str
    grade: str
    description: Optional[str] = None
    join_code: Optional[str] = Field(
        None, description="Explicit class code; generated when omitted"
    )
    status: Optional[str] = None


class JoinRequest(BaseModel):
    code: str


class AssignmentCreate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    total_points: Optional[int] = Field(None, le=MAX_TOTAL_POINTS)
    instructions: Optional[str] = None
    attachments: Optional[List[str]] = None


# --- Routes ---


@router.get("", response_model=List[dict])
async def list_courses(
    status_filter: str = Query("active", alias="status"),
    subject: Optional[str] = Query(None),
    grade: Optional[str] = Query(None),
    registry: EnrollmentRegistry = Depends(get_registry),
):
    """Public course catalog (no rosters, no class codes)."""
    return registry.list_courses(status=status_filter, subject=subject, grade=grade)


@router.post("", response_model=dict, status_code=status.HTTP_201_CREATED)
async def create_course(
    payload: CourseCreate,
    actor: Principal = Depends(require_teacher),
    registry: EnrollmentRegistry = Depends(get_registry),
):
    return registry.create_course(
        actor,
        title=payload.title,
        subject=payload.subject,
        grade=payload.grade,
        description=payload.description,
        join_code=payload.join_code,
        status=payload.status,
    )


@router.get("/mine", response_model=List[dict])
async def list_my_courses(
    actor: Principal = Depends(require_teacher),
    registry: EnrollmentRegistry = Depends(get_registry),
):
    return registry.list_teacher_courses(actor)


@router.post("/join", response_model=dict)
async def join_course(
    payload: JoinRequest,
    actor: Principal = Depends(require_student),
    registry: EnrollmentRegistry = Depends(get_registry),
):
    return registry.join_by_code(payload.code, actor)


@router.get("/{course_id}", response_model=dict)
async def get_course(
    course_id: int,
    actor: Optional[Principal] = Depends(get_optional_principal),
    registry: EnrollmentRegistry = Depends(get_registry),
):
    return registry.get_course(course_id, actor)


@router.delete("/{course_id}", response_model=dict)
async def delete_course(
    course_id: int,
    actor: Principal = Depends(require_teacher),
    registry: EnrollmentRegistry = Depends(get_registry),
):
    registry.delete_course(course_id, actor)
    return {"message": "Course deleted successfully"}


@router.post("/{course_id}/enroll", response_model=dict)
async def enroll(
    course_id: int,
    actor: Principal = Depends(require_student),
    registry: EnrollmentRegistry = Depends(get_registry),
):
    return registry.enroll_direct(course_id, actor)


@router.get("/{course_id}/assignments", response_model=List[dict])
async def list_course_assignments(
    course_id: int,
    actor: Principal = Depends(get_current_principal),
    registry: EnrollmentRegistry = Depends(get_registry),
):
    return registry.list_course_assignments(course_id, actor)


@router.post(
    "/{course_id}/assignments",
    response_model=dict,
    status_code=status.HTTP_201_CREATED,
)
async def create_assignment(
    course_id: int,
    payload: AssignmentCreate,
    actor: Principal = Depends(require_teacher),
    lifecycle: AssignmentLifecycle = Depends(get_lifecycle),
):
    return lifecycle.create(course_id, actor, payload.model_dump(exclude_unset=True))
