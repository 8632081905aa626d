"""
SQLAlchemy models for ClassPulse

Courses own their assignments, assignments own their submissions. Behavior
records and the derived profiles are keyed by student id only.
"""

import enum
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from sqlalchemy import (
    Column,
    Integer,
    String,
    DateTime,
    Boolean,
    ForeignKey,
    Text,
    Float,
    Enum as SQLEnum,
    UniqueConstraint,
    CheckConstraint,
)
from sqlalchemy.orm import declarative_base, relationship, attribute_keyed_dict
from sqlalchemy.sql import func
from sqlalchemy.dialects.sqlite import JSON

Base = declarative_base()


class UserRole(enum.Enum):
    """Closed set of principal roles"""

    STUDENT = "student"
    TEACHER = "teacher"
    ADMIN = "admin"


class CourseStatus(enum.Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class AssignmentStatus(enum.Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    CLOSED = "closed"


class SubmissionState(enum.Enum):
    """Per-student state of an assignment: NOT_SUBMITTED -> SUBMITTED -> GRADED"""

    NOT_SUBMITTED = "not_submitted"
    SUBMITTED = "submitted"
    GRADED = "graded"


class SubmissionTendency(enum.Enum):
    ON_TIME = "onTime"
    LATE = "late"
    MISSED = "missed"


class Level(enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


def utcnow() -> datetime:
    """Naive UTC timestamp (SQLite stores datetimes without zone)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


class User(Base):
    """Account backing a Principal"""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    # Accounts provisioned by an external identity provider carry no hash
    password_hash = Column(String(255), nullable=True)
    display_name = Column(String(200), nullable=False)
    role = Column(SQLEnum(UserRole), nullable=False, index=True)
    active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=func.now(), nullable=False)
    last_login = Column(DateTime, nullable=True)

    taught_courses = relationship("Course", back_populates="teacher")

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role={self.role.value})>"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "email": self.email,
            "display_name": self.display_name,
            "role": self.role.value if self.role else None,
            "active": self.active,
            "created_at": _iso(self.created_at),
            "last_login": _iso(self.last_login),
        }


class Course(Base):
    """Teacher-owned roster with an optional, globally unique join code"""

    __tablename__ = "courses"

    id = Column(Integer, primary_key=True)
    teacher_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    subject = Column(String(100), nullable=False)
    grade = Column(String(50), nullable=False)
    join_code = Column(String(16), unique=True, nullable=True, index=True)
    status = Column(
        SQLEnum(CourseStatus), default=CourseStatus.ACTIVE, nullable=False, index=True
    )
    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(
        DateTime, default=func.now(), onupdate=func.now(), nullable=False
    )

    teacher = relationship("User", back_populates="taught_courses")
    # No cascade: the FK makes deleting a course with a roster fail at the store
    enrollments = relationship(
        "CourseEnrollment", back_populates="course", passive_deletes="all"
    )
    assignments = relationship(
        "Assignment",
        back_populates="course",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Assignment.id",
    )

    def __repr__(self):
        return f"<Course(id={self.id}, title='{self.title}', code={self.join_code})>"

    @property
    def student_ids(self) -> set:
        return {e.student_id for e in self.enrollments}

    def to_dict(self, include_roster: bool = False) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "teacher_id": self.teacher_id,
            "title": self.title,
            "description": self.description,
            "subject": self.subject,
            "grade": self.grade,
            "status": self.status.value if self.status else None,
            "created_at": _iso(self.created_at),
        }
        if include_roster:
            data["join_code"] = self.join_code
            data["student_ids"] = sorted(self.student_ids)
            data["assignment_ids"] = [a.id for a in self.assignments]
        return data


class CourseEnrollment(Base):
    """Membership of one student in one course"""

    __tablename__ = "course_enrollments"
    __table_args__ = (
        UniqueConstraint("course_id", "student_id", name="uq_enrollment_course_student"),
    )

    id = Column(Integer, primary_key=True)
    course_id = Column(Integer, ForeignKey("courses.id"), nullable=False, index=True)
    student_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    enrolled_at = Column(DateTime, default=func.now(), nullable=False)

    course = relationship("Course", back_populates="enrollments")

    def __repr__(self):
        return f"<CourseEnrollment(course={self.course_id}, student={self.student_id})>"


class Assignment(Base):
    """Gradable unit of work belonging to exactly one course"""

    __tablename__ = "assignments"

    id = Column(Integer, primary_key=True)
    course_id = Column(
        Integer,
        ForeignKey("courses.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    teacher_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    instructions = Column(Text, nullable=True)
    due_date = Column(DateTime, nullable=False)
    total_points = Column(Integer, default=100, nullable=False)
    attachments = Column(JSON, nullable=False, default=list)
    status = Column(
        SQLEnum(AssignmentStatus),
        default=AssignmentStatus.PUBLISHED,
        nullable=False,
        index=True,
    )
    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(
        DateTime, default=func.now(), onupdate=func.now(), nullable=False
    )

    course = relationship("Course", back_populates="assignments")
    # Keyed by student id: one submission per student
    submissions = relationship(
        "Submission",
        back_populates="assignment",
        collection_class=attribute_keyed_dict("student_id"),
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self):
        return f"<Assignment(id={self.id}, title='{self.title}')>"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "course_id": self.course_id,
            "teacher_id": self.teacher_id,
            "title": self.title,
            "description": self.description,
            "instructions": self.instructions,
            "due_date": _iso(self.due_date),
            "total_points": self.total_points,
            "attachments": list(self.attachments or []),
            "status": self.status.value if self.status else None,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class Submission(Base):
    """A student's single attempt at an assignment"""

    __tablename__ = "submissions"
    __table_args__ = (
        UniqueConstraint(
            "assignment_id", "student_id", name="uq_submission_assignment_student"
        ),
        CheckConstraint(
            "grade IS NOT NULL OR "
            "(feedback IS NULL AND graded_at IS NULL AND graded_by IS NULL)",
            name="ck_submission_grade_fields",
        ),
    )

    id = Column(Integer, primary_key=True)
    assignment_id = Column(
        Integer,
        ForeignKey("assignments.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    student_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    content = Column(Text, nullable=True)
    attachments = Column(JSON, nullable=False, default=list)
    submitted_at = Column(DateTime, nullable=False)
    grade = Column(Float, nullable=True)
    feedback = Column(Text, nullable=True)
    graded_at = Column(DateTime, nullable=True)
    graded_by = Column(Integer, ForeignKey("users.id"), nullable=True)

    assignment = relationship("Assignment", back_populates="submissions")

    def __repr__(self):
        return f"<Submission(id={self.id}, assignment={self.assignment_id}, student={self.student_id})>"

    @property
    def state(self) -> SubmissionState:
        if self.grade is not None:
            return SubmissionState.GRADED
        return SubmissionState.SUBMITTED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "assignment_id": self.assignment_id,
            "student_id": self.student_id,
            "content": self.content,
            "attachments": list(self.attachments or []),
            "submitted_at": _iso(self.submitted_at),
            "grade": self.grade,
            "feedback": self.feedback,
            "graded_at": _iso(self.graded_at),
            "graded_by": self.graded_by,
            "state": self.state.value,
        }


class BehaviorRecord(Base):
    """Raw engagement telemetry, one row per student (student-private)"""

    __tablename__ = "behavior_records"

    id = Column(Integer, primary_key=True)
    student_id = Column(
        Integer, ForeignKey("users.id"), unique=True, nullable=False, index=True
    )
    login_frequency = Column(Integer, default=0, nullable=False)
    assignment_submission_tendency = Column(
        SQLEnum(SubmissionTendency), default=SubmissionTendency.ON_TIME, nullable=False
    )
    time_spent_on_materials_minutes = Column(Integer, default=0, nullable=False)
    missed_deadlines_count = Column(Integer, default=0, nullable=False)
    ai_chat_usage_count = Column(Integer, default=0, nullable=False)
    timetable_adherence_percent = Column(Float, default=100.0, nullable=False)
    last_updated = Column(DateTime, default=func.now(), nullable=False)

    def __repr__(self):
        return f"<BehaviorRecord(student_id={self.student_id})>"

    def to_dict(self) -> Dict[str, Any]:
        tendency = self.assignment_submission_tendency
        return {
            "student_id": self.student_id,
            "login_frequency": self.login_frequency,
            "assignment_submission_tendency": tendency.value if tendency else None,
            "time_spent_on_materials_minutes": self.time_spent_on_materials_minutes,
            "missed_deadlines_count": self.missed_deadlines_count,
            "ai_chat_usage_count": self.ai_chat_usage_count,
            "timetable_adherence_percent": self.timetable_adherence_percent,
            "last_updated": _iso(self.last_updated),
        }


class StudentProfile(Base):
    """Latest categorical snapshot derived from a BehaviorRecord (no history)"""

    __tablename__ = "student_profiles"

    id = Column(Integer, primary_key=True)
    student_id = Column(
        Integer, ForeignKey("users.id"), unique=True, nullable=False, index=True
    )
    engagement_level = Column(SQLEnum(Level), nullable=False)
    consistency_level = Column(SQLEnum(Level), nullable=False)
    stress_risk = Column(SQLEnum(Level), nullable=False)
    last_updated = Column(DateTime, default=func.now(), nullable=False)

    def __repr__(self):
        return f"<StudentProfile(student_id={self.student_id})>"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "student_id": self.student_id,
            "engagement_level": self.engagement_level.value,
            "consistency_level": self.consistency_level.value,
            "stress_risk": self.stress_risk.value,
            "last_updated": _iso(self.last_updated),
        }
