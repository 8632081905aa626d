"""
Core services for ClassPulse
"""

from .database import DatabaseService, get_db_service, init_db_service
from .auth import (
    AuthService,
    JwtCredentialVerifier,
    Principal,
    PrincipalResolver,
    get_auth_service,
    get_principal_resolver,
)
from .logging import LoggingService, get_logging_service, get_logger

# Domain services
from .enrollment_service import EnrollmentRegistry, get_enrollment_registry
from .assignment_service import AssignmentLifecycle, get_assignment_lifecycle
from .behavior_service import BehaviorService, get_behavior_service
from .privacy_service import PrivacyFilter, get_privacy_filter
from .insight_service import InsightService, get_insight_service

__all__ = [
    "DatabaseService",
    "get_db_service",
    "init_db_service",
    "AuthService",
    "JwtCredentialVerifier",
    "Principal",
    "PrincipalResolver",
    "get_auth_service",
    "get_principal_resolver",
    "LoggingService",
    "get_logging_service",
    "get_logger",
    # Domain services
    "EnrollmentRegistry",
    "get_enrollment_registry",
    "AssignmentLifecycle",
    "get_assignment_lifecycle",
    "BehaviorService",
    "get_behavior_service",
    "PrivacyFilter",
    "get_privacy_filter",
    "InsightService",
    "get_insight_service",
]
