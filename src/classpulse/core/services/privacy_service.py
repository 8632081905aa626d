"""
Privacy filter for behavior data

Read boundary between the three tiers of student data:

- raw BehaviorRecord and free-text insight: the student themself only
- categorical StudentProfile labels: the student, an admin, or a teacher who
  teaches the student in at least one course

Every read of these tables outside the services that write them goes
through this module. Authorization is decided before existence, so a denied
caller cannot discover which students have data.
"""

from typing import Any, Dict, Optional

from sqlalchemy import select

from ..exceptions import Forbidden, NoBehaviorData, ProfileNotFound, ValidationError
from ..models import BehaviorRecord, StudentProfile, UserRole
from ..roles import has_role, is_admin, is_teacher
from .database import get_db_service
from .enrollment_service import get_enrollment_registry
from .insight_service import get_insight_service
from .logging import get_logging_service


class PrivacyFilter:
    """Capability checks in front of behavior, profile and insight reads"""

    def __init__(self):
        self.log = get_logging_service()

    @property
    def db(self):
        return get_db_service()

    # --- predicates ---

    def can_read_behavior(self, actor, student_id: int) -> bool:
        return has_role(actor, UserRole.STUDENT) and actor.id == student_id

    def can_read_insight(self, actor, student_id: int) -> bool:
        return has_role(actor, UserRole.STUDENT) and actor.id == student_id

    def can_read_profile(self, actor, student_id: int) -> bool:
        if actor.id == student_id:
            return True
        if is_admin(actor):
            return True
        if is_teacher(actor):
            return get_enrollment_registry().teaches_student(actor.id, student_id)
        return False

    def _deny(self, action: str, actor, student_id: int, message: str):
        self.log.log_access_denied(
            action, user_id=actor.id, reason="privacy", student_id=student_id
        )
        raise Forbidden(message)

    # --- guarded reads ---

    def read_behavior(self, actor, student_id: int) -> Dict[str, Any]:
        """Raw behavior record, for the student it belongs to."""
        if not self.can_read_behavior(actor, student_id):
            self._deny(
                "read_behavior",
                actor,
                student_id,
                "Behavior data is private to the student",
            )
        record = self._get_record(student_id)
        if record is None:
            raise NoBehaviorData("Behavior data not found")
        return record

    def read_profile(self, actor, student_id: int) -> Dict[str, Any]:
        """Categorical profile labels only."""
        if not self.can_read_profile(actor, student_id):
            self._deny(
                "read_profile",
                actor,
                student_id,
                "Not authorized to view this student's profile",
            )
        with self.db.get_session() as session:
            profile = session.execute(
                select(StudentProfile).where(StudentProfile.student_id == student_id)
            ).scalar_one_or_none()
            if profile is None:
                raise ProfileNotFound()
            return profile.to_dict()

    def read_insight(self, actor, student_id: int) -> Dict[str, Any]:
        """Generated insight text, for the student it is about."""
        if not self.can_read_insight(actor, student_id):
            self._deny(
                "read_insight",
                actor,
                student_id,
                "Detailed insights are private to the student",
            )
        record = self._get_record(student_id)
        if record is None:
            raise NoBehaviorData("No behavior data found to generate insights")
        return get_insight_service().generate(student_id, record)

    def authorize_recompute(self, actor, student_id: Optional[int] = None) -> int:
        """Resolve whose profile ``actor`` may recompute.

        Students always recompute their own profile, whatever id they send.
        Teachers and admins must name a student and are scoped like profile
        reads.
        """
        if has_role(actor, UserRole.STUDENT):
            return actor.id
        if student_id is None:
            raise ValidationError("Student ID is required")
        if not self.can_read_profile(actor, student_id):
            self._deny(
                "recompute_profile",
                actor,
                student_id,
                "Not authorized to generate this student's profile",
            )
        return student_id

    def _get_record(self, student_id: int) -> Optional[Dict[str, Any]]:
        with self.db.get_session() as session:
            record = session.execute(
                select(BehaviorRecord).where(BehaviorRecord.student_id == student_id)
            ).scalar_one_or_none()
            return record.to_dict() if record else None


_privacy_filter: Optional[PrivacyFilter] = None


def get_privacy_filter() -> PrivacyFilter:
    """Get or create privacy filter singleton"""
    global _privacy_filter
    if _privacy_filter is None:
        _privacy_filter = PrivacyFilter()
    return _privacy_filter
