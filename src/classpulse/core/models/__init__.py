"""
Models package for ClassPulse

This package contains all database models and enums for the application.
"""

from .models import (
    Base,
    User,
    Course,
    CourseEnrollment,
    Assignment,
    Submission,
    BehaviorRecord,
    StudentProfile,
    UserRole,
    CourseStatus,
    AssignmentStatus,
    SubmissionState,
    SubmissionTendency,
    Level,
    utcnow,
)

__all__ = [
    "Base",
    "User",
    "Course",
    "CourseEnrollment",
    "Assignment",
    "Submission",
    "BehaviorRecord",
    "StudentProfile",
    "UserRole",
    "CourseStatus",
    "AssignmentStatus",
    "SubmissionState",
    "SubmissionTendency",
    "Level",
    "utcnow",
]
