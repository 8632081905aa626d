"""
Enrollment registry - course rosters and join codes

Two invariants are enforced by the store, not by read-then-write checks:
join codes are UNIQUE on ``courses`` and (course, student) pairs are UNIQUE on
``course_enrollments``. The application-level checks below only give the
common case a clean error; the constraint decides every race.
"""

import re
import secrets
import string
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload

from ..exceptions import (
    AlreadyEnrolled,
    CodeSpaceExhausted,
    CourseHasStudents,
    CourseNotFound,
    Forbidden,
    JoinCodeTaken,
    NotOwner,
    ValidationError,
)
from ..models import (
    Assignment,
    Course,
    CourseEnrollment,
    CourseStatus,
    Submission,
    User,
    UserRole,
)
from ..roles import require_role
from .database import get_db_service
from .logging import get_logging_service
from .settings_config_service import get_settings_service

JOIN_CODE_ALPHABET = string.ascii_uppercase + string.digits
JOIN_CODE_PATTERN = re.compile(r"^[A-Z0-9]{4,12}$")


def generate_code(length: int = 6) -> str:
    """Short upper-case alphanumeric class code."""
    return "".join(secrets.choice(JOIN_CODE_ALPHABET) for _ in range(length))


def normalize_join_code(code: str) -> str:
    """Stored codes are always upper-case; lookups are case-insensitive."""
    return (code or "").strip().upper()


def _is_join_code_collision(exc: IntegrityError) -> bool:
    """True when the failed insert violated the unique join code, not another constraint."""
    return "courses.join_code" in str(exc.orig)


def _require_text(fields: Dict[str, Any], *names: str) -> None:
    missing = [n for n in names if not str(fields.get(n) or "").strip()]
    if missing:
        raise ValidationError(f"Missing required field(s): {', '.join(missing)}")


class EnrollmentRegistry:
    """Course membership and join-code management"""

    def __init__(self, code_generator: Optional[Callable[[int], str]] = None):
        defaults = get_settings_service().get_enrollment_defaults()
        self.code_length = defaults["join_code_length"]
        self.max_attempts = max(1, defaults["join_code_max_attempts"])
        self.code_generator = code_generator or generate_code
        self.log = get_logging_service()

    @property
    def db(self):
        return get_db_service()

    # --- courses ---

    def create_course(
        self,
        actor,
        title: str,
        subject: str,
        grade: str,
        description: Optional[str] = None,
        join_code: Optional[str] = None,
        status: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Create a course owned by ``actor``, with an explicit or generated join code."""
        require_role(actor, UserRole.TEACHER)
        fields = {"title": title, "subject": subject, "grade": grade}
        _require_text(fields, "title", "subject", "grade")

        course_status = CourseStatus.ACTIVE
        if status is not None:
            try:
                course_status = CourseStatus(status)
            except ValueError:
                raise ValidationError(f"Invalid course status: {status}")

        values = {
            "teacher_id": actor.id,
            "title": title.strip(),
            "subject": subject.strip(),
            "grade": str(grade).strip(),
            "description": description,
            "status": course_status,
        }

        if join_code is not None and join_code.strip():
            code = normalize_join_code(join_code)
            if not JOIN_CODE_PATTERN.match(code):
                raise ValidationError("Class code must be 4-12 letters or digits")
            created = self._try_insert_course(values, code)
            if created is None:
                raise JoinCodeTaken()
            return created

        for attempt in range(1, self.max_attempts + 1):
            code = normalize_join_code(self.code_generator(self.code_length))
            created = self._try_insert_course(values, code)
            if created is not None:
                return created
            self.log.log_event(
                "enrollment",
                "WARNING",
                "enrollment.join_code_collision",
                user_id=actor.id,
                attempt=attempt,
            )

        self.log.log_error(
            "code_space_exhausted",
            f"No unique join code after {self.max_attempts} attempts",
            user_id=actor.id,
        )
        raise CodeSpaceExhausted()

    def _try_insert_course(
        self, values: Dict[str, Any], code: str
    ) -> Optional[Dict[str, Any]]:
        """Insert the course; None when the join code is already taken."""
        with self.db.get_session() as session:
            course = Course(join_code=code, **values)
            session.add(course)
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                if not _is_join_code_collision(exc):
                    raise
                return None
            course = self._load_course(session, course.id)
            self.log.log_crud_operation(
                "create", "course", course.id, user_id=values["teacher_id"]
            )
            return course.to_dict(include_roster=True)

    def _load_course(self, session, course_id: int) -> Optional[Course]:
        return session.execute(
            select(Course)
            .options(selectinload(Course.enrollments), selectinload(Course.assignments))
            .where(Course.id == course_id)
        ).scalar_one_or_none()

    def get_course(self, course_id: int, actor=None) -> Dict[str, Any]:
        """Public course info; the owner also gets roster and join code."""
        with self.db.get_session() as session:
            course = self._load_course(session, course_id)
            if course is None:
                raise CourseNotFound()
            is_owner = actor is not None and course.teacher_id == actor.id
            return course.to_dict(include_roster=is_owner)

    def list_courses(
        self,
        status: str = CourseStatus.ACTIVE.value,
        subject: Optional[str] = None,
        grade: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """Public catalog (no rosters, no join codes)"""
        try:
            status_enum = CourseStatus(status)
        except ValueError:
            raise ValidationError(f"Invalid course status: {status}")

        stmt = select(Course).where(Course.status == status_enum)
        if subject:
            stmt = stmt.where(Course.subject == subject)
        if grade:
            stmt = stmt.where(Course.grade == grade)

        with self.db.get_session() as session:
            courses = session.execute(stmt.order_by(Course.id)).scalars().all()
            return [c.to_dict() for c in courses]

    def list_teacher_courses(self, actor) -> List[Dict[str, Any]]:
        require_role(actor, UserRole.TEACHER)
        with self.db.get_session() as session:
            courses = (
                session.execute(
                    select(Course)
                    .options(
                        selectinload(Course.enrollments),
                        selectinload(Course.assignments),
                    )
                    .where(Course.teacher_id == actor.id)
                    .order_by(Course.id)
                )
                .scalars()
                .all()
            )
            return [c.to_dict(include_roster=True) for c in courses]

    def delete_course(self, course_id: int, actor) -> None:
        """Delete a course and its assignments; refused while students are enrolled."""
        with self.db.get_session() as session:
            course = self._load_course(session, course_id)
            if course is None:
                raise CourseNotFound()
            if course.teacher_id != actor.id:
                self.log.log_access_denied(
                    "delete_course", user_id=actor.id, reason="not_owner"
                )
                raise NotOwner()
            if course.enrollments:
                raise CourseHasStudents()

            session.delete(course)
            try:
                session.commit()
            except IntegrityError:
                # A student enrolled between the check and the delete
                session.rollback()
                raise CourseHasStudents()

        self.log.log_crud_operation("delete", "course", course_id, user_id=actor.id)

    # --- enrollment ---

    def enroll_direct(self, course_id: int, actor) -> Dict[str, Any]:
        """Add the acting student to the course; a repeat call fails AlreadyEnrolled."""
        require_role(actor, UserRole.STUDENT)
        return self._enroll(course_id, actor.id)

    def join_by_code(self, code: str, actor) -> Dict[str, Any]:
        """Enroll the acting student into the course holding ``code``."""
        require_role(actor, UserRole.STUDENT)
        normalized = normalize_join_code(code)
        if not normalized:
            raise ValidationError("Class code is required")

        with self.db.get_session() as session:
            course_id = session.execute(
                select(Course.id).where(Course.join_code == normalized)
            ).scalar_one_or_none()
        if course_id is None:
            raise CourseNotFound("No course found for this class code")

        return self._enroll(course_id, actor.id)

    def _enroll(self, course_id: int, student_id: int) -> Dict[str, Any]:
        with self.db.get_session() as session:
            course = self._load_course(session, course_id)
            if course is None:
                raise CourseNotFound()
            if student_id in course.student_ids:
                raise AlreadyEnrolled()

            session.add(CourseEnrollment(course_id=course_id, student_id=student_id))
            try:
                session.commit()
            except IntegrityError:
                session.rollback()
                # Lost a race: either a duplicate enrollment or a deleted course
                still_there = session.execute(
                    select(Course.id).where(Course.id == course_id)
                ).first()
                if still_there is None:
                    raise CourseNotFound()
                raise AlreadyEnrolled()

        self.log.log_crud_operation(
            "create", "enrollment", course_id, user_id=student_id
        )
        return {
            "message": "Successfully enrolled in course",
            "course_id": course_id,
            "student_id": student_id,
        }

    def teaches_student(self, teacher_id: int, student_id: int) -> bool:
        """True when the teacher owns a course the student is enrolled in."""
        with self.db.get_session() as session:
            return (
                session.execute(
                    select(CourseEnrollment.id)
                    .join(Course, Course.id == CourseEnrollment.course_id)
                    .where(
                        Course.teacher_id == teacher_id,
                        CourseEnrollment.student_id == student_id,
                    )
                    .limit(1)
                ).first()
                is not None
            )

    def list_course_assignments(self, course_id: int, actor) -> List[Dict[str, Any]]:
        """Assignments of a course, for its enrolled students or its teacher."""
        with self.db.get_session() as session:
            course = self._load_course(session, course_id)
            if course is None:
                raise CourseNotFound()

            is_teacher = course.teacher_id == actor.id
            if not is_teacher and actor.id not in course.student_ids:
                self.log.log_access_denied(
                    "list_course_assignments", user_id=actor.id, course_id=course_id
                )
                raise Forbidden("Not authorized to view assignments for this course")

            return [a.to_dict() for a in course.assignments]

    # --- teacher overview ---

    def list_teacher_students(self, actor) -> List[Dict[str, Any]]:
        """Distinct students across the teacher's courses, with the courses they share."""
        require_role(actor, UserRole.TEACHER)
        with self.db.get_session() as session:
            rows = session.execute(
                select(User, CourseEnrollment.course_id)
                .join(CourseEnrollment, CourseEnrollment.student_id == User.id)
                .join(Course, Course.id == CourseEnrollment.course_id)
                .where(Course.teacher_id == actor.id)
                .order_by(User.id, CourseEnrollment.course_id)
            ).all()

            students: Dict[int, Dict[str, Any]] = {}
            for user, course_id in rows:
                entry = students.setdefault(
                    user.id,
                    {
                        "id": user.id,
                        "email": user.email,
                        "display_name": user.display_name,
                        "course_ids": [],
                    },
                )
                entry["course_ids"].append(course_id)
            return list(students.values())

    def teacher_dashboard(self, actor) -> Dict[str, Any]:
        """Course count, distinct student count and assignments awaiting grading."""
        require_role(actor, UserRole.TEACHER)
        with self.db.get_session() as session:
            courses_count = session.execute(
                select(func.count(Course.id)).where(Course.teacher_id == actor.id)
            ).scalar_one()
            students_count = session.execute(
                select(func.count(func.distinct(CourseEnrollment.student_id)))
                .join(Course, Course.id == CourseEnrollment.course_id)
                .where(Course.teacher_id == actor.id)
            ).scalar_one()
            pending_count = session.execute(
                select(func.count(func.distinct(Assignment.id)))
                .join(Submission, Submission.assignment_id == Assignment.id)
                .where(Assignment.teacher_id == actor.id, Submission.grade.is_(None))
            ).scalar_one()

        return {
            "courses_count": courses_count,
            "students_count": students_count,
            "pending_assignments_count": pending_count,
        }


_enrollment_registry: Optional[EnrollmentRegistry] = None


def get_enrollment_registry() -> EnrollmentRegistry:
    """Get or create enrollment registry singleton"""
    global _enrollment_registry
    if _enrollment_registry is None:
        _enrollment_registry = EnrollmentRegistry()
    return _enrollment_registry
