import pytest

from classpulse.core.exceptions import Forbidden, NoBehaviorData, ValidationError
from classpulse.core.models import BehaviorRecord, StudentProfile
from classpulse.core.services.behavior_service import MAX_COUNT, get_behavior_service


@pytest.fixture
def behavior(db_service):
    return get_behavior_service()


class TestLogBehavior:
    def test_first_log_starts_from_defaults(self, behavior, student):
        record = behavior.log_behavior(student, login_frequency=3)

        assert record["student_id"] == student.id
        assert record["login_frequency"] == 3
        assert record["assignment_submission_tendency"] == "onTime"
        assert record["time_spent_on_materials_minutes"] == 0
        assert record["missed_deadlines_count"] == 0
        assert record["ai_chat_usage_count"] == 0
        assert record["timetable_adherence_percent"] == 100.0
        assert record["last_updated"] is not None

    def test_partial_update_keeps_other_fields(self, behavior, student, db_service):
        behavior.log_behavior(
            student, login_frequency=3, missed_deadlines_count=2, ai_chat_usage_count=7
        )
        record = behavior.log_behavior(
            student, missed_deadlines_count=0, assignment_submission_tendency="late"
        )

        assert record["login_frequency"] == 3
        assert record["missed_deadlines_count"] == 0
        assert record["ai_chat_usage_count"] == 7
        assert record["assignment_submission_tendency"] == "late"
        with db_service.get_session() as session:
            assert session.query(BehaviorRecord).count() == 1

    def test_only_students_log_behavior(self, behavior, teacher):
        with pytest.raises(Forbidden):
            behavior.log_behavior(teacher, login_frequency=1)

    @pytest.mark.parametrize(
        "metrics",
        [
            {"login_frequency": -1},
            {"login_frequency": 10**20},
            {"ai_chat_usage_count": MAX_COUNT + 1},
            {"timetable_adherence_percent": float("nan")},
            {"missed_deadlines_count": 1.5},
            {"timetable_adherence_percent": 101},
            {"timetable_adherence_percent": -0.1},
            {"assignment_submission_tendency": "sometimes"},
        ],
    )
    def test_invalid_metrics_are_rejected(self, behavior, student, metrics):
        with pytest.raises(ValidationError):
            behavior.log_behavior(student, **metrics)

    def test_count_at_upper_bound_is_accepted(self, behavior, student):
        record = behavior.log_behavior(student, time_spent_on_materials_minutes=MAX_COUNT)
        assert record["time_spent_on_materials_minutes"] == MAX_COUNT

    def test_logging_does_not_refresh_profile(self, behavior, student):
        behavior.log_behavior(student, login_frequency=6, time_spent_on_materials_minutes=200)
        first = behavior.recompute(student.id)

        behavior.log_behavior(student, login_frequency=0, time_spent_on_materials_minutes=0)

        from classpulse.core.services.privacy_service import get_privacy_filter

        stored = get_privacy_filter().read_profile(student, student.id)
        assert stored["engagement_level"] == first["engagement_level"] == "high"


class TestRecompute:
    def test_without_behavior_data(self, behavior, student):
        with pytest.raises(NoBehaviorData):
            behavior.recompute(student.id)

    def test_recompute_replaces_snapshot(self, behavior, student, db_service):
        behavior.log_behavior(
            student,
            login_frequency=6,
            assignment_submission_tendency="onTime",
            time_spent_on_materials_minutes=150,
            missed_deadlines_count=0,
            timetable_adherence_percent=95,
        )
        profile = behavior.recompute(student.id)
        assert profile["engagement_level"] == "high"
        assert profile["consistency_level"] == "high"
        assert profile["stress_risk"] == "low"

        behavior.log_behavior(
            student,
            login_frequency=1,
            assignment_submission_tendency="missed",
            time_spent_on_materials_minutes=10,
            missed_deadlines_count=4,
            timetable_adherence_percent=30,
        )
        profile = behavior.recompute(student.id)

        assert profile == {
            "student_id": student.id,
            "engagement_level": "low",
            "consistency_level": "low",
            "stress_risk": "high",
            "last_updated": profile["last_updated"],
        }
        with db_service.get_session() as session:
            assert session.query(StudentProfile).count() == 1
