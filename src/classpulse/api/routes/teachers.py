"""
Teacher API Routes

Read-only overview of a teacher's own courses: dashboard counts, all owned
assignments with their submissions, and the students across their rosters.
"""

from typing import List

from fastapi import APIRouter, Depends

from classpulse.api.dependencies import get_lifecycle, get_registry
from classpulse.api.security import require_teacher
from classpulse.core.services.assignment_service import AssignmentLifecycle
from classpulse.core.services.auth import Principal
from classpulse.core.services.enrollment_service import EnrollmentRegistry

router = APIRouter(prefix="/api/teachers", tags=["teachers"])


@router.get("/dashboard", response_model=dict)
async def get_dashboard(
    actor: Principal = Depends(require_teacher),
    registry: EnrollmentRegistry = Depends(get_registry),
):
    return registry.teacher_dashboard(actor)


@router.get("/assignments", response_model=List[dict])
async def list_my_assignments(
    actor: Principal = Depends(require_teacher),
    lifecycle: AssignmentLifecycle = Depends(get_lifecycle),
):
    return lifecycle.list_teacher_assignments(actor)


@router.get("/students", response_model=List[dict])
async def list_my_students(
    actor: Principal = Depends(require_teacher),
    registry: EnrollmentRegistry = Depends(get_registry),
):
    return registry.list_teacher_students(actor)
