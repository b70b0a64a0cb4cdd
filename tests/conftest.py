"""
Pytest configuration and fixtures

Every test works on plain in-memory records: a fresh subject, an empty
history and a fixed clock. Nothing touches storage.
"""
import pytest
import sys
import os
from datetime import datetime, timezone

# Add the repository root to the path so tests run without installing
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from progression.schemas import Subject
from progression.services.activity_history import ActivityHistory
from progression.services.activity_applier import ActivityApplier
from progression.services.reversal_engine import ReversalEngine


# Wednesday
FIXED_NOW = datetime(2025, 3, 5, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def now():
    return FIXED_NOW


@pytest.fixture
def subject(now):
    """Fresh subject: all stats 1.0, exp 0, level 1."""
    return Subject(id="subject_test", created_at=now, last_active=now)


@pytest.fixture
def history():
    return ActivityHistory()


@pytest.fixture
def applier():
    return ActivityApplier()


@pytest.fixture
def engine():
    return ReversalEngine()
