# Progression & Reversal Engine
#
# Deterministic ledger turning logged activities into stat growth, EXP,
# levels and time-based decay, and undoing all of it exactly when a logged
# activity is deleted.
#
# Architecture:
# - Static rate table consulted by every calculator
# - Stateless services over an explicitly passed Subject
# - Receipts persisted on records so reversal never recomputes
# - Storage-agnostic: plain pydantic records in, plain records out

from .enums import ActivityCategory, ActivityType, StatType
from .schemas import ActivityRecord, ProgressionPreferences, Receipt, Subject
from .core.exceptions import (
    InvariantViolation,
    RecordNotFoundError,
    ReversalNotFoundError,
    SanitizationWarning,
    ValidationError,
)
from .services.activity_history import ActivityHistory
from .services.activity_applier import ActivityApplier, ApplyResult
from .services.reversal_engine import ReversalEngine, ReversalResult
from .services.degradation_scheduler import DegradationScheduler, DegradationReport
from .services.stat_ledger import StatLedger

__version__ = "1.0.0"

__all__ = [
    # Records
    'ActivityCategory',
    'ActivityType',
    'StatType',
    'ActivityRecord',
    'ProgressionPreferences',
    'Receipt',
    'Subject',
    'ActivityHistory',

    # Services
    'ActivityApplier',
    'ApplyResult',
    'ReversalEngine',
    'ReversalResult',
    'DegradationScheduler',
    'DegradationReport',
    'StatLedger',

    # Errors
    'InvariantViolation',
    'RecordNotFoundError',
    'ReversalNotFoundError',
    'SanitizationWarning',
    'ValidationError',
]
