"""
Supportive insight text for a student

The text generator is pluggable (any ``prompt -> text`` callable, typically a
language-model client); without one, or when it produces nothing, a fixed
encouraging message is returned. Insight text is private to the student and
is never logged.
"""

from typing import Any, Callable, Dict, Optional

from ..models import utcnow
from .logging import get_logging_service

InsightGenerator = Callable[[str], Optional[str]]

FALLBACK_MESSAGE = (
    "You're making progress! Remember that every small step counts towards "
    "your goals. Let's try to focus on one task today."
)

PROMPT_MARKER = "Output:"


def build_prompt(record: Dict[str, Any]) -> str:
    """Non-judgmental prompt about study habits built from a behavior record dict."""
    return (
        "Based on this student data: "
        f"{record.get('login_frequency', 0)} logins per week, "
        f"{record.get('assignment_submission_tendency', 'onTime')} submissions, "
        f"{record.get('time_spent_on_materials_minutes', 0)} minutes spent on materials, "
        f"{record.get('missed_deadlines_count', 0)} missed deadlines. "
        "Generate a supportive, non-judgmental motivational message.\n"
        "Rules:\n"
        "- Tone: Empathetic and encouraging\n"
        "- No mental health diagnosis\n"
        "- No medical claims\n"
        "- Focus on study habits and motivation only\n"
        f"{PROMPT_MARKER}"
    )


def clean_generated_text(text: Optional[str]) -> str:
    """Drop an echoed prompt: keep only what follows the last output marker."""
    if not text:
        return ""
    return text.split(PROMPT_MARKER)[-1].strip()


class InsightService:
    def __init__(self, generator: Optional[InsightGenerator] = None):
        self.generator = generator
        self.log = get_logging_service()

    def generate(self, student_id: int, record: Dict[str, Any]) -> Dict[str, Any]:
        message = ""
        if self.generator is not None:
            message = clean_generated_text(self.generator(build_prompt(record)))
        used_fallback = not message
        if used_fallback:
            message = FALLBACK_MESSAGE

        self.log.log_event(
            "insights",
            "INFO",
            "insight.generated",
            user_id=student_id,
            fallback=used_fallback,
        )
        return {
            "student_id": student_id,
            "insight": message,
            "timestamp": utcnow().isoformat(),
        }


_insight_service: Optional[InsightService] = None


def get_insight_service() -> InsightService:
    """Get or create insight service singleton"""
    global _insight_service
    if _insight_service is None:
        _insight_service = InsightService()
    return _insight_service


def set_insight_generator(generator: Optional[InsightGenerator]) -> None:
    """Install (or clear, with None) the text generator used for insights"""
    get_insight_service().generator = generator
