"""
Service dependencies for route handlers

Each delegates to the core singleton so tests and the API share the same
instances regardless of import path; tests may swap any of them through
``app.dependency_overrides``.
"""

from classpulse.core.services.assignment_service import (
    AssignmentLifecycle,
    get_assignment_lifecycle,
)
from classpulse.core.services.behavior_service import (
    BehaviorService,
    get_behavior_service,
)
from classpulse.core.services.enrollment_service import (
    EnrollmentRegistry,
    get_enrollment_registry,
)
from classpulse.core.services.privacy_service import PrivacyFilter, get_privacy_filter


def get_registry() -> EnrollmentRegistry:
    return get_enrollment_registry()


def get_lifecycle() -> AssignmentLifecycle:
    return get_assignment_lifecycle()


def get_behavior() -> BehaviorService:
    return get_behavior_service()


def get_privacy() -> PrivacyFilter:
    return get_privacy_filter()
