"""
Onboarding

Seeds a new subject's stats from the onboarding questionnaire.

Answers map onto the 1-5 starting band:
- 1-10 self ratings: ((v - 1) / 9) * 4 + 1
- workout sessions per week (0-7): (v / 7) * 4 + 1
- study hours per week (0-40): rescaled to 1-10 first, then as a rating
- habit resistance (0-10) is averaged into focus

Unanswered questions leave the stat at 1.0. A subject is created exactly once,
before any activity record exists.
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from progression.core.exceptions import ValidationError
from progression.enums import StatType
from progression.schemas import Subject, full_stat_map
from progression.services.activity_history import ActivityHistory

logger = logging.getLogger(__name__)

MIN_STARTING_STAT = 1.0
MAX_STARTING_STAT = 5.0


class QuestionType(str, Enum):
    SCALE = "scale"
    FREQUENCY = "frequency"
    TEXT = "text"


@dataclass(frozen=True)
class OnboardingQuestion:
    id: str
    question: str
    type: QuestionType
    min_value: Optional[int] = None
    max_value: Optional[int] = None
    is_required: bool = True


QUESTIONS: List[OnboardingQuestion] = [
    OnboardingQuestion(
        "physical_strength",
        "On a scale of 1-10, what's your current physical strength/fitness level?",
        QuestionType.SCALE, 1, 10,
    ),
    OnboardingQuestion(
        "workout_frequency",
        "How many workout sessions do you do per week on average (0-7)?",
        QuestionType.FREQUENCY, 0, 7,
    ),
    OnboardingQuestion(
        "agility_flexibility",
        "On a scale of 1-10, how would you rate your agility/flexibility?",
        QuestionType.SCALE, 1, 10,
    ),
    OnboardingQuestion(
        "study_hours",
        "How many hours per week do you spend studying/learning seriously?",
        QuestionType.FREQUENCY, 0, 40,
    ),
    OnboardingQuestion(
        "mental_focus",
        "On a scale of 1-10, your mental focus/discipline?",
        QuestionType.SCALE, 1, 10,
    ),
    OnboardingQuestion(
        "habit_resistance",
        "How often do you successfully resist bad habits daily (0=never, 10=always)?",
        QuestionType.SCALE, 0, 10,
    ),
    OnboardingQuestion(
        "social_charisma",
        "On a scale of 1-10, your social charisma/confidence?",
        QuestionType.SCALE, 1, 10,
    ),
    OnboardingQuestion(
        "achievements",
        "Any recent achievements or baselines (optional text field)?",
        QuestionType.TEXT,
        is_required=False,
    ),
]

_QUESTIONS_BY_ID = {q.id: q for q in QUESTIONS}


def _clamp(value: float) -> float:
    return min(MAX_STARTING_STAT, max(MIN_STARTING_STAT, value))


def _scale_rating(value: int) -> float:
    """1-10 rating -> 1-5 stat."""
    return _clamp(((value - 1) / 9) * 4 + 1)


def validate_answer(question: OnboardingQuestion, answer: Any) -> bool:
    if answer is None:
        return not question.is_required

    if question.type is QuestionType.TEXT:
        return isinstance(answer, str)

    if isinstance(answer, bool) or not isinstance(answer, int):
        return False
    low = question.min_value if question.min_value is not None else 0
    high = question.max_value if question.max_value is not None else 10
    return low <= answer <= high


def unanswered_required_questions(answers: Mapping[str, Any]) -> List[OnboardingQuestion]:
    return [
        q for q in QUESTIONS
        if q.is_required and not validate_answer(q, answers.get(q.id))
    ]


def completion_percentage(answers: Mapping[str, Any]) -> float:
    required = [q for q in QUESTIONS if q.is_required]
    if not required:
        return 1.0
    return (len(required) - len(unanswered_required_questions(answers))) / len(required)


def initial_stats(answers: Mapping[str, Any]) -> Dict[StatType, float]:
    """
    Starting StatMap from questionnaire answers.

    Raises:
        ValidationError: an answer is present but out of range
    """
    for question_id, answer in answers.items():
        question = _QUESTIONS_BY_ID.get(question_id)
        if question is None:
            raise ValidationError(f"Unknown onboarding question: {question_id}", field="question")
        if answer is not None and not validate_answer(question, answer):
            raise ValidationError(f"Invalid answer for {question_id}: {answer!r}", field=question_id)

    stats = full_stat_map()

    if answers.get("physical_strength") is not None:
        stats[StatType.STRENGTH] = _scale_rating(answers["physical_strength"])

    if answers.get("workout_frequency") is not None:
        stats[StatType.ENDURANCE] = _clamp((answers["workout_frequency"] / 7) * 4 + 1)

    if answers.get("agility_flexibility") is not None:
        stats[StatType.AGILITY] = _scale_rating(answers["agility_flexibility"])

    if answers.get("study_hours") is not None:
        scaled = min(10.0, max(1.0, (answers["study_hours"] / 40) * 10))
        # half-up, not banker's rounding
        stats[StatType.INTELLIGENCE] = _scale_rating(int(math.floor(scaled + 0.5)))

    if answers.get("mental_focus") is not None:
        stats[StatType.FOCUS] = _scale_rating(answers["mental_focus"])

    if answers.get("habit_resistance") is not None:
        habit_focus = _scale_rating(answers["habit_resistance"])
        stats[StatType.FOCUS] = _clamp((stats[StatType.FOCUS] + habit_focus) / 2)

    if answers.get("social_charisma") is not None:
        stats[StatType.CHARISMA] = _scale_rating(answers["social_charisma"])

    return stats


def create_subject(
    answers: Mapping[str, Any],
    history: ActivityHistory,
    name: str = "Player",
    now: Optional[datetime] = None,
) -> Subject:
    """
    Create the subject at the end of onboarding.

    Raises:
        ValidationError: invalid answers, or activities already exist
    """
    if not history.is_empty():
        raise ValidationError("Onboarding must complete before any activity is logged", field="history")

    when = now or datetime.now(timezone.utc)
    subject = Subject(
        name=name,
        stat_values=initial_stats(answers),
        created_at=when,
        last_active=when,
    )
    logger.info("Created subject %s from onboarding", subject.id)
    return subject
