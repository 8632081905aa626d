"""
Behavior profile heuristics

``classify`` maps raw engagement telemetry to three categorical levels. It is
a pure function: no I/O, no clock, no randomness. These are study-habit
indicators, not a diagnosis of any kind.
"""

from dataclasses import dataclass
from typing import Any, Dict

from .models import BehaviorRecord, Level, SubmissionTendency


@dataclass(frozen=True)
class BehaviorMetrics:
    """The subset of a BehaviorRecord the classifier reads"""

    login_frequency: int
    assignment_submission_tendency: SubmissionTendency
    time_spent_on_materials_minutes: int
    missed_deadlines_count: int
    timetable_adherence_percent: float

    @classmethod
    def from_record(cls, record: BehaviorRecord) -> "BehaviorMetrics":
        return cls(
            login_frequency=record.login_frequency,
            assignment_submission_tendency=record.assignment_submission_tendency,
            time_spent_on_materials_minutes=record.time_spent_on_materials_minutes,
            missed_deadlines_count=record.missed_deadlines_count,
            timetable_adherence_percent=record.timetable_adherence_percent,
        )


@dataclass(frozen=True)
class ProfileLevels:
    engagement_level: Level
    consistency_level: Level
    stress_risk: Level

    def to_dict(self) -> Dict[str, Any]:
        return {
            "engagement_level": self.engagement_level.value,
            "consistency_level": self.consistency_level.value,
            "stress_risk": self.stress_risk.value,
        }


def engagement_level(m: BehaviorMetrics) -> Level:
    if m.login_frequency >= 5 and m.time_spent_on_materials_minutes >= 120:
        return Level.HIGH
    if m.login_frequency >= 3 or m.time_spent_on_materials_minutes >= 60:
        return Level.MEDIUM
    return Level.LOW


def consistency_level(m: BehaviorMetrics) -> Level:
    tendency = m.assignment_submission_tendency
    if (
        tendency == SubmissionTendency.ON_TIME
        and m.missed_deadlines_count == 0
        and m.timetable_adherence_percent >= 90
    ):
        return Level.HIGH
    if (
        tendency != SubmissionTendency.MISSED
        and m.missed_deadlines_count <= 1
        and m.timetable_adherence_percent >= 70
    ):
        return Level.MEDIUM
    return Level.LOW


def stress_risk(m: BehaviorMetrics) -> Level:
    if (
        m.missed_deadlines_count >= 3
        or m.timetable_adherence_percent < 50
        or m.login_frequency < 2
    ):
        return Level.HIGH
    if m.missed_deadlines_count >= 1 or m.timetable_adherence_percent < 70:
        return Level.MEDIUM
    return Level.LOW


def classify(metrics: BehaviorMetrics) -> ProfileLevels:
    """Derive engagement, consistency and stress-risk levels from behavior metrics."""
    return ProfileLevels(
        engagement_level=engagement_level(metrics),
        consistency_level=consistency_level(metrics),
        stress_risk=stress_risk(metrics),
    )
