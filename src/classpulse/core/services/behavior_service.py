"""
Behavior telemetry and on-demand profile recomputation

Logging behavior never refreshes the profile; a profile is only as fresh as
the last explicit ``recompute`` call.
"""

from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from ..exceptions import NoBehaviorData, ValidationError
from ..models import (
    BehaviorRecord,
    StudentProfile,
    SubmissionTendency,
    UserRole,
    utcnow,
)
from ..profiling import BehaviorMetrics, classify
from ..roles import require_role
from .database import get_db_service
from .logging import get_logging_service

COUNT_FIELDS = (
    "login_frequency",
    "time_spent_on_materials_minutes",
    "missed_deadlines_count",
    "ai_chat_usage_count",
)

# Upper bound for every count field
MAX_COUNT = 2**31 - 1


def _validate_metrics(metrics: Dict[str, Any]) -> Dict[str, Any]:
    """Validated values for the metric fields that were supplied (None = not supplied)."""
    values: Dict[str, Any] = {}
    for field in COUNT_FIELDS:
        value = metrics.get(field)
        if value is None:
            continue
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValidationError(f"{field} must be a whole number")
        if value < 0:
            raise ValidationError(f"{field} cannot be negative")
        if value > MAX_COUNT:
            raise ValidationError(f"{field} cannot exceed {MAX_COUNT}")
        values[field] = value

    tendency = metrics.get("assignment_submission_tendency")
    if tendency is not None:
        try:
            values["assignment_submission_tendency"] = SubmissionTendency(
                getattr(tendency, "value", tendency)
            )
        except ValueError:
            raise ValidationError(
                "assignment_submission_tendency must be one of: "
                + ", ".join(t.value for t in SubmissionTendency)
            )

    adherence = metrics.get("timetable_adherence_percent")
    if adherence is not None:
        if isinstance(adherence, bool) or not isinstance(adherence, (int, float)):
            raise ValidationError("timetable_adherence_percent must be a number")
        if not 0 <= adherence <= 100:
            raise ValidationError("timetable_adherence_percent must be between 0 and 100")
        values["timetable_adherence_percent"] = float(adherence)

    return values


class BehaviorService:
    """Student behavior upserts and profile recomputation"""

    def __init__(self):
        self.log = get_logging_service()

    @property
    def db(self):
        return get_db_service()

    def log_behavior(self, actor, **metrics) -> Dict[str, Any]:
        """Upsert the acting student's record; only supplied fields overwrite."""
        require_role(actor, UserRole.STUDENT)
        values = _validate_metrics(metrics)

        try:
            record = self._upsert(actor.id, values)
        except IntegrityError:
            # A concurrent first log created the row; apply ours as an update
            record = self._upsert(actor.id, values)

        self.log.log_crud_operation(
            "upsert", "behavior_record", actor.id, user_id=actor.id, fields=sorted(values)
        )
        return record

    def _upsert(self, student_id: int, values: Dict[str, Any]) -> Dict[str, Any]:
        with self.db.get_session() as session:
            record = session.execute(
                select(BehaviorRecord).where(BehaviorRecord.student_id == student_id)
            ).scalar_one_or_none()
            if record is None:
                record = BehaviorRecord(
                    student_id=student_id,
                    login_frequency=0,
                    assignment_submission_tendency=SubmissionTendency.ON_TIME,
                    time_spent_on_materials_minutes=0,
                    missed_deadlines_count=0,
                    ai_chat_usage_count=0,
                    timetable_adherence_percent=100.0,
                )
                session.add(record)

            for field, value in values.items():
                setattr(record, field, value)
            record.last_updated = utcnow()

            try:
                session.commit()
            except IntegrityError:
                session.rollback()
                raise
            session.refresh(record)
            return record.to_dict()

    def recompute(
        self, student_id: int, actor_id: Optional[int] = None
    ) -> Dict[str, Any]:
        """Classify the current record and replace the student's profile snapshot."""
        with self.db.get_session() as session:
            record = session.execute(
                select(BehaviorRecord).where(BehaviorRecord.student_id == student_id)
            ).scalar_one_or_none()
            if record is None:
                raise NoBehaviorData()
            levels = classify(BehaviorMetrics.from_record(record))

        try:
            profile = self._store_profile(student_id, levels)
        except IntegrityError:
            profile = self._store_profile(student_id, levels)

        self.log.log_crud_operation(
            "recompute",
            "student_profile",
            student_id,
            user_id=actor_id if actor_id is not None else student_id,
        )
        return profile

    def _store_profile(self, student_id: int, levels) -> Dict[str, Any]:
        with self.db.get_session() as session:
            profile = session.execute(
                select(StudentProfile).where(StudentProfile.student_id == student_id)
            ).scalar_one_or_none()
            if profile is None:
                profile = StudentProfile(student_id=student_id)
                session.add(profile)

            # Every field is rewritten: the snapshot is replaced, never merged
            profile.engagement_level = levels.engagement_level
            profile.consistency_level = levels.consistency_level
            profile.stress_risk = levels.stress_risk
            profile.last_updated = utcnow()

            try:
                session.commit()
            except IntegrityError:
                session.rollback()
                raise
            session.refresh(profile)
            return profile.to_dict()


_behavior_service: Optional[BehaviorService] = None


def get_behavior_service() -> BehaviorService:
    """Get or create behavior service singleton"""
    global _behavior_service
    if _behavior_service is None:
        _behavior_service = BehaviorService()
    return _behavior_service
