"""
Core module for ClassPulse
"""

from .models import (
    Base,
    User,
    UserRole,
    Course,
    Assignment,
    Submission,
    BehaviorRecord,
    StudentProfile,
)
from .exceptions import ClassPulseError
from .services import (
    DatabaseService,
    get_db_service,
    init_db_service,
    Principal,
    get_principal_resolver,
    LoggingService,
    get_logging_service,
    get_logger,
)

__all__ = [
    # Models
    "Base",
    "User",
    "UserRole",
    "Course",
    "Assignment",
    "Submission",
    "BehaviorRecord",
    "StudentProfile",
    "ClassPulseError",
    # Services
    "DatabaseService",
    "get_db_service",
    "init_db_service",
    "Principal",
    "get_principal_resolver",
    "LoggingService",
    "get_logging_service",
    "get_logger",
]
