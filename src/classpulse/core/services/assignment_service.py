"""
Assignment lifecycle - assignment CRUD and the submission/grading state machine

Per student and assignment: NOT_SUBMITTED -> SUBMITTED -> GRADED, where
GRADED may be re-entered (re-grading overwrites) and nothing leads back to
NOT_SUBMITTED. At-most-one submission per (assignment, student) is the
``uq_submission_assignment_student`` constraint; the lookup in ``submit`` only
produces the friendly error for the sequential case.
"""

import math
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload

from ..exceptions import (
    AlreadySubmitted,
    AssignmentNotFound,
    CourseNotFound,
    Forbidden,
    NotEnrolled,
    NotOwner,
    SubmissionNotFound,
    ValidationError,
)
from ..models import (
    Assignment,
    AssignmentStatus,
    Course,
    Submission,
    UserRole,
    utcnow,
)
from ..roles import has_role, require_role
from .database import get_db_service
from .logging import get_logging_service

# Fields a teacher may change after creation; anything else in a patch is ignored
UPDATABLE_FIELDS = (
    "title",
    "description",
    "due_date",
    "total_points",
    "instructions",
    "attachments",
    "status",
)

DEFAULT_TOTAL_POINTS = 100
MAX_TOTAL_POINTS = 100000


def parse_due_date(value: Any) -> datetime:
    """Parse an ISO-8601 string or datetime into a naive UTC datetime."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            raise ValidationError(f"Invalid due date: {value}")
    else:
        raise ValidationError("Due date is required")

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _parse_total_points(value: Any) -> int:
    if value is None:
        return DEFAULT_TOTAL_POINTS
    if isinstance(value, bool):
        raise ValidationError("Total points must be a whole number")
    try:
        points = int(value)
    except (TypeError, ValueError, OverflowError):
        raise ValidationError("Total points must be a whole number")
    if points != value and not isinstance(value, str):
        raise ValidationError("Total points must be a whole number")
    if points < 0:
        raise ValidationError("Total points cannot be negative")
    if points > MAX_TOTAL_POINTS:
        raise ValidationError(f"Total points cannot exceed {MAX_TOTAL_POINTS}")
    return points


def _parse_status(value: Any) -> AssignmentStatus:
    if isinstance(value, AssignmentStatus):
        return value
    try:
        return AssignmentStatus(str(value).lower())
    except ValueError:
        raise ValidationError(f"Invalid assignment status: {value}")


def _parse_attachments(value: Any) -> List[str]:
    if value is None:
        return []
    if not isinstance(value, (list, tuple)):
        raise ValidationError("Attachments must be a list")
    return [str(item) for item in value]


def _required_text(value: Any, label: str) -> str:
    text = str(value).strip() if value is not None else ""
    if not text:
        raise ValidationError(f"{label} is required")
    return text


class AssignmentLifecycle:
    """Assignment management for course owners and submission for enrolled students"""

    def __init__(self):
        self.log = get_logging_service()

    @property
    def db(self):
        return get_db_service()

    def _load_assignment(self, session, assignment_id: int) -> Assignment:
        assignment = session.execute(
            select(Assignment)
            .options(
                selectinload(Assignment.course).selectinload(Course.enrollments),
                selectinload(Assignment.submissions),
            )
            .where(Assignment.id == assignment_id)
        ).scalar_one_or_none()
        if assignment is None:
            raise AssignmentNotFound()
        return assignment

    def _require_owner(self, assignment: Assignment, actor, action: str) -> None:
        # Ownership is the exact teacher id, an admin role does not confer it
        if assignment.teacher_id != actor.id:
            self.log.log_access_denied(
                action,
                user_id=actor.id,
                reason="not_owner",
                assignment_id=assignment.id,
            )
            raise NotOwner()

    # --- teacher operations ---

    def create(self, course_id: int, actor, fields: Dict[str, Any]) -> Dict[str, Any]:
        """Create a published assignment in a course the actor owns."""
        with self.db.get_session() as session:
            course = session.get(Course, course_id)
            if course is None:
                raise CourseNotFound()
            if course.teacher_id != actor.id:
                self.log.log_access_denied(
                    "create_assignment",
                    user_id=actor.id,
                    reason="not_owner",
                    course_id=course_id,
                )
                raise NotOwner()

            assignment = Assignment(
                course_id=course.id,
                teacher_id=course.teacher_id,
                title=_required_text(fields.get("title"), "Title"),
                description=_required_text(fields.get("description"), "Description"),
                due_date=parse_due_date(fields.get("due_date")),
                total_points=_parse_total_points(fields.get("total_points")),
                instructions=fields.get("instructions"),
                attachments=_parse_attachments(fields.get("attachments")),
                status=AssignmentStatus.PUBLISHED,
            )
            session.add(assignment)
            session.commit()
            session.refresh(assignment)

            self.log.log_crud_operation(
                "create",
                "assignment",
                assignment.id,
                user_id=actor.id,
                course_id=course_id,
            )
            return assignment.to_dict()

    def update(
        self, assignment_id: int, actor, patch: Dict[str, Any]
    ) -> Dict[str, Any]:
        """Apply the allow-listed fields present in ``patch``."""
        with self.db.get_session() as session:
            assignment = self._load_assignment(session, assignment_id)
            self._require_owner(assignment, actor, "update_assignment")

            changed = []
            for field in UPDATABLE_FIELDS:
                if field not in patch:
                    continue
                value = patch[field]
                if field in ("title", "description"):
                    value = _required_text(value, field.capitalize())
                elif field == "due_date":
                    value = parse_due_date(value)
                elif field == "total_points":
                    if value is None:
                        raise ValidationError("Total points cannot be empty")
                    value = _parse_total_points(value)
                elif field == "attachments":
                    value = _parse_attachments(value)
                elif field == "status":
                    value = _parse_status(value)
                setattr(assignment, field, value)
                changed.append(field)

            session.commit()
            session.refresh(assignment)

            self.log.log_crud_operation(
                "update",
                "assignment",
                assignment_id,
                user_id=actor.id,
                fields=changed,
            )
            return assignment.to_dict()

    def delete(self, assignment_id: int, actor) -> None:
        """Delete an assignment together with its submissions."""
        with self.db.get_session() as session:
            assignment = self._load_assignment(session, assignment_id)
            self._require_owner(assignment, actor, "delete_assignment")
            session.delete(assignment)
            session.commit()

        self.log.log_crud_operation(
            "delete", "assignment", assignment_id, user_id=actor.id
        )

    def grade(
        self,
        assignment_id: int,
        actor,
        submission_id: int,
        grade: Any,
        feedback: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Grade (or re-grade) a submission; previous grading fields are overwritten."""
        if isinstance(grade, bool) or not isinstance(grade, (int, float)):
            raise ValidationError("Grade must be a number")
        if not math.isfinite(grade):
            raise ValidationError("Grade must be a finite number")
        if grade < 0:
            raise ValidationError("Grade cannot be negative")

        with self.db.get_session() as session:
            assignment = self._load_assignment(session, assignment_id)
            self._require_owner(assignment, actor, "grade_submission")

            submission = next(
                (s for s in assignment.submissions.values() if s.id == submission_id),
                None,
            )
            if submission is None:
                raise SubmissionNotFound()

            submission.grade = float(grade)
            submission.feedback = feedback
            submission.graded_at = utcnow()
            submission.graded_by = actor.id
            session.commit()
            session.refresh(submission)

            self.log.log_crud_operation(
                "grade",
                "submission",
                submission_id,
                user_id=actor.id,
                assignment_id=assignment_id,
            )
            return submission.to_dict()

    def list_submissions(self, assignment_id: int, actor) -> List[Dict[str, Any]]:
        """All submissions of an assignment, for its owning teacher only."""
        with self.db.get_session() as session:
            assignment = self._load_assignment(session, assignment_id)
            self._require_owner(assignment, actor, "list_submissions")
            submissions = sorted(assignment.submissions.values(), key=lambda s: s.id)
            return [s.to_dict() for s in submissions]

    def list_teacher_assignments(self, actor) -> List[Dict[str, Any]]:
        """Every assignment the teacher owns, across courses, with its submissions."""
        require_role(actor, UserRole.TEACHER)
        with self.db.get_session() as session:
            assignments = (
                session.execute(
                    select(Assignment)
                    .options(
                        selectinload(Assignment.course),
                        selectinload(Assignment.submissions),
                    )
                    .where(Assignment.teacher_id == actor.id)
                    .order_by(Assignment.id)
                )
                .scalars()
                .all()
            )

            results = []
            for assignment in assignments:
                data = assignment.to_dict()
                data["course"] = {
                    "id": assignment.course.id,
                    "title": assignment.course.title,
                    "subject": assignment.course.subject,
                }
                data["submissions"] = [
                    s.to_dict()
                    for s in sorted(assignment.submissions.values(), key=lambda s: s.id)
                ]
                results.append(data)
            return results

    # --- student operations ---

    def _find_submission(
        self, session, assignment_id: int, student_id: int
    ) -> Optional[Submission]:
        return session.execute(
            select(Submission).where(
                Submission.assignment_id == assignment_id,
                Submission.student_id == student_id,
            )
        ).scalar_one_or_none()

    def submit(
        self,
        assignment_id: int,
        actor,
        content: Optional[str] = None,
        attachments: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        """Record the acting student's single submission."""
        with self.db.get_session() as session:
            assignment = self._load_assignment(session, assignment_id)
            if (
                not has_role(actor, UserRole.STUDENT)
                or actor.id not in assignment.course.student_ids
            ):
                self.log.log_access_denied(
                    "submit",
                    user_id=actor.id,
                    reason="not_enrolled",
                    assignment_id=assignment_id,
                )
                raise NotEnrolled()

            attachments = _parse_attachments(attachments)
            if not (content and content.strip()) and not attachments:
                raise ValidationError("Submission needs content or attachments")

            if self._find_submission(session, assignment_id, actor.id) is not None:
                raise AlreadySubmitted()

            # Added directly rather than through the keyed collection so a
            # duplicate reaches the unique constraint instead of replacing a row
            submission = Submission(
                assignment_id=assignment_id,
                student_id=actor.id,
                content=content,
                attachments=attachments,
                submitted_at=utcnow(),
            )
            session.add(submission)
            try:
                session.commit()
            except IntegrityError:
                session.rollback()
                raise AlreadySubmitted()
            session.refresh(submission)

            self.log.log_crud_operation(
                "create",
                "submission",
                submission.id,
                user_id=actor.id,
                assignment_id=assignment_id,
            )
            return submission.to_dict()

    # --- reads ---

    def get_assignment(self, assignment_id: int, actor) -> Dict[str, Any]:
        """Assignment view for its teacher (all submissions) or an enrolled student (own only)."""
        with self.db.get_session() as session:
            assignment = self._load_assignment(session, assignment_id)
            data = assignment.to_dict()

            if assignment.teacher_id == actor.id:
                data["submissions"] = [
                    s.to_dict()
                    for s in sorted(assignment.submissions.values(), key=lambda s: s.id)
                ]
                return data

            if actor.id in assignment.course.student_ids:
                mine = assignment.submissions.get(actor.id)
                data["my_submission"] = mine.to_dict() if mine else None
                return data

            self.log.log_access_denied(
                "get_assignment", user_id=actor.id, assignment_id=assignment_id
            )
            raise Forbidden("Not authorized to view this assignment")


_assignment_lifecycle: Optional[AssignmentLifecycle] = None


def get_assignment_lifecycle() -> AssignmentLifecycle:
    """Get or create assignment lifecycle singleton"""
    global _assignment_lifecycle
    if _assignment_lifecycle is None:
        _assignment_lifecycle = AssignmentLifecycle()
    return _assignment_lifecycle
