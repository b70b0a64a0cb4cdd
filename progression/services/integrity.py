"""
Subject Integrity

Checks a persisted subject against the engine's invariants:
- every stat present, finite and >= 1.0
- total EXP finite and >= 0
- cached level == level_for(total_exp)

check_subject() reports, repair_subject() fixes in place, and
assert_consistent() raises InvariantViolation. A violation seen outside a
mutation is a defect; repair exists for data restored from old backups.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List

from progression.core.exceptions import InvariantViolation
from progression.enums import StatType
from progression.schemas import STAT_FLOOR, Subject
from progression.services import level_ladder
from progression.services.value_sanitizer import is_finite

logger = logging.getLogger(__name__)


class IssueType(str, Enum):
    INVALID_STAT = "invalid_stat"
    INVALID_EXP = "invalid_exp"
    LEVEL_MISMATCH = "level_mismatch"


@dataclass(frozen=True)
class IntegrityIssue:
    issue_type: IssueType
    field: str
    description: str


def check_subject(subject: Subject) -> List[IntegrityIssue]:
    issues: List[IntegrityIssue] = []

    for stat in StatType:
        value = subject.stat_values.get(stat)
        if value is None or not is_finite(value) or value < STAT_FLOOR:
            issues.append(IntegrityIssue(
                IssueType.INVALID_STAT, stat.value, f"{stat.value} is {value!r}, expected >= {STAT_FLOOR}",
            ))

    exp_valid = is_finite(subject.total_exp) and subject.total_exp >= 0
    if not exp_valid:
        issues.append(IntegrityIssue(
            IssueType.INVALID_EXP, "total_exp", f"total_exp is {subject.total_exp!r}",
        ))

    expected_level = level_ladder.level_for(subject.total_exp if exp_valid else 0.0)
    if subject.level != expected_level:
        issues.append(IntegrityIssue(
            IssueType.LEVEL_MISMATCH, "level", f"level is {subject.level}, total_exp implies {expected_level}",
        ))

    return issues


def repair_subject(subject: Subject) -> List[IntegrityIssue]:
    """Fix every issue in place; returns what was fixed."""
    issues = check_subject(subject)

    for issue in issues:
        if issue.issue_type is IssueType.INVALID_STAT:
            subject.stat_values[StatType(issue.field)] = STAT_FLOOR
        elif issue.issue_type is IssueType.INVALID_EXP:
            subject.total_exp = 0.0

    # Level is re-projected last since an EXP repair changes it
    subject.level = level_ladder.level_for(subject.total_exp)

    if issues:
        logger.warning("Repaired %d integrity issues on %s", len(issues), subject.id)
    return issues


def assert_consistent(subject: Subject) -> None:
    issues = check_subject(subject)
    if issues:
        raise InvariantViolation("; ".join(issue.description for issue in issues))
