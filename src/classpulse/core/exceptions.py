"""
Custom exceptions for ClassPulse

Every business-rule failure is raised as one of these. The five kind bases
mirror how a failure is surfaced to a caller (401/403/404/409/400); concrete
subclasses carry a stable ``code`` for API clients.
"""

from typing import Optional


class ClassPulseError(Exception):
    """Base exception for all ClassPulse exceptions"""

    status_code = 500
    code = "classpulse_error"
    default_message = "ClassPulse error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"detail": self.message, "code": self.code}


class UnexpectedError(ClassPulseError):
    """Raised for unclassified internal failures (details are never exposed)"""

    code = "unexpected_error"
    default_message = "An unexpected error occurred"


# --- Authentication (401) ---


class AuthenticationError(ClassPulseError):
    """Raised when the caller cannot be authenticated"""

    status_code = 401
    code = "unauthenticated"
    default_message = "Authentication required"


class NoCredential(AuthenticationError):
    code = "no_credential"
    default_message = "No token provided"


class InvalidCredential(AuthenticationError):
    code = "invalid_credential"
    default_message = "Invalid token"


class UnknownPrincipal(AuthenticationError):
    code = "unknown_principal"
    default_message = "User not found"


class InvalidLogin(AuthenticationError):
    code = "invalid_login"
    default_message = "Invalid email or password"


# --- Authorization (403) ---


class AuthorizationError(ClassPulseError):
    """Raised when an authenticated caller may not perform the action"""

    status_code = 403
    code = "forbidden"
    default_message = "Not authorized"


class Forbidden(AuthorizationError):
    """Wrong role, or outside the privacy scope of the target"""


class NotOwner(AuthorizationError):
    """Right role, wrong instance"""

    code = "not_owner"
    default_message = "Not the owner of this resource"


class NotEnrolled(AuthorizationError):
    code = "not_enrolled"
    default_message = "Not enrolled in this course"


# --- Not found (404) ---


class NotFoundError(ClassPulseError):
    status_code = 404
    code = "not_found"
    default_message = "Not found"


class CourseNotFound(NotFoundError):
    code = "course_not_found"
    default_message = "Course not found"


class AssignmentNotFound(NotFoundError):
    code = "assignment_not_found"
    default_message = "Assignment not found"


class SubmissionNotFound(NotFoundError):
    code = "submission_not_found"
    default_message = "Submission not found"


class NoBehaviorData(NotFoundError):
    code = "no_behavior_data"
    default_message = "No behavior data found for this student. Log behavior first."


class ProfileNotFound(NotFoundError):
    code = "profile_not_found"
    default_message = "Profile not found"


# --- Conflict (400/409) ---


class ConflictError(ClassPulseError):
    status_code = 409
    code = "conflict"
    default_message = "Conflict"


class AlreadyEnrolled(ConflictError):
    status_code = 400
    code = "already_enrolled"
    default_message = "Already enrolled in this course"


class AlreadySubmitted(ConflictError):
    status_code = 400
    code = "already_submitted"
    default_message = "Assignment already submitted"


class JoinCodeTaken(ConflictError):
    status_code = 400
    code = "join_code_taken"
    default_message = "Class code already in use. Please choose a different code."


class CourseHasStudents(ConflictError):
    status_code = 400
    code = "course_has_students"
    default_message = "Cannot delete a course with enrolled students"


class CodeSpaceExhausted(ConflictError):
    code = "code_space_exhausted"
    default_message = "Could not generate a unique class code"


class AccountExists(ConflictError):
    code = "account_exists"
    default_message = "An account with this email already exists"


# --- Validation (400) ---


class ValidationError(ClassPulseError):
    """Raised when a required field is missing or malformed"""

    status_code = 400
    code = "validation_error"
    default_message = "Invalid input"
