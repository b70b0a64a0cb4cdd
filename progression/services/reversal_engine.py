"""
Reversal Engine

Undoes a logged activity when it is deleted.

Receipt source:
- Stored receipt (normal case): subtracted verbatim
- No receipt (legacy record): recomputed from the record's activity type and
  duration against the default rate table. Released rates never change, so
  this reproduces what was granted at apply time. User overrides are never
  consulted here.

Steps, all-or-nothing:
1. Subtract the receipt's stat deltas (floor-clamped; clamping here is an
   expected lossy case, reported, not raised)
2. Remove the EXP through the level ladder, which may drop several levels
3. Delete the record from the history

The mutation runs on a copy of the subject and is committed only once every
step has succeeded. Reversing a record that is no longer in the history
raises ReversalNotFoundError.

Migration helpers backfill receipts onto legacy records so later reversals
take the stored-receipt path.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Union

from progression.core.exceptions import ReversalNotFoundError
from progression.enums import StatType
from progression.schemas import ActivityRecord, Receipt, Subject
from progression.services import stat_gain_calculator
from progression.services.activity_history import ActivityHistory
from progression.services.level_ladder import LevelChange
from progression.services.stat_ledger import StatLedger

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReversalResult:
    """What a reversal subtracted and what it did to the level."""
    record: ActivityRecord
    receipt: Receipt
    used_stored_receipt: bool
    level_change: LevelChange
    clamped_stats: List[StatType] = field(default_factory=list)

    @property
    def leveled_down(self) -> bool:
        return self.level_change.leveled_down

    @property
    def levels_lost(self) -> int:
        return self.level_change.levels_lost

    @property
    def was_lossy(self) -> bool:
        """True when floor clamping kept a stat above its pre-apply value."""
        return bool(self.clamped_stats)


@dataclass(frozen=True)
class MigrationResult:
    total_records: int
    migrated_records: int

    @property
    def completion_percentage(self) -> float:
        if self.total_records == 0:
            return 100.0
        return self.migrated_records / self.total_records * 100.0


@dataclass(frozen=True)
class MigrationStatus:
    total_records: int
    records_needing_migration: int

    @property
    def migration_complete(self) -> bool:
        return self.records_needing_migration == 0

    @property
    def completion_percentage(self) -> float:
        if self.total_records == 0:
            return 100.0
        return (self.total_records - self.records_needing_migration) / self.total_records * 100.0


# =============================================================================
# Receipt resolution / migration
# =============================================================================

def needs_migration(record: ActivityRecord) -> bool:
    return record.receipt is None


def receipt_for(record: ActivityRecord) -> Receipt:
    """Stored receipt, or the default-rate recomputation for a legacy record."""
    if record.receipt is not None:
        return record.receipt
    return stat_gain_calculator.calculate(record.activity_type, record.duration_minutes)


def migrate_record(record: ActivityRecord) -> ActivityRecord:
    """Return the record with a receipt attached (unchanged if it has one)."""
    if not needs_migration(record):
        return record
    return record.model_copy(update={"receipt": receipt_for(record)})


def migrate_history(history: ActivityHistory) -> MigrationResult:
    """Backfill receipts on every legacy record in place."""
    total = len(history)
    migrated = 0
    for record in history:
        if needs_migration(record):
            history.replace(migrate_record(record))
            migrated += 1

    if migrated:
        logger.info("Migrated %d of %d activity records to stored receipts", migrated, total)
    return MigrationResult(total_records=total, migrated_records=migrated)


def migration_status(history: ActivityHistory) -> MigrationStatus:
    return MigrationStatus(
        total_records=len(history),
        records_needing_migration=sum(1 for r in history if needs_migration(r)),
    )


# =============================================================================
# Reversal
# =============================================================================

class ReversalEngine:
    """Applies the exact inverse of a past activity."""

    def reverse(
        self,
        subject: Subject,
        history: ActivityHistory,
        record: Union[ActivityRecord, str],
    ) -> ReversalResult:
        """
        Reverse an activity and delete its record.

        Args:
            subject: Subject to mutate
            history: The subject's records; the reversed record is removed
            record: The record or its id

        Returns:
            ReversalResult

        Raises:
            ReversalNotFoundError: the record is not (or no longer) in history
        """
        record_id = record.id if isinstance(record, ActivityRecord) else record
        stored = history.get(record_id)
        if stored is None:
            logger.warning("Reversal requested for unknown record %s", record_id)
            raise ReversalNotFoundError(record_id)

        receipt = receipt_for(stored)
        used_stored = stored.receipt is not None

        working = subject.model_copy(deep=True)
        ledger = StatLedger(working)
        clamped = ledger.subtract_deltas(receipt.stat_deltas)
        level_change = ledger.remove_exp(receipt.exp_delta)

        # Commit
        for name in Subject.model_fields:
            setattr(subject, name, getattr(working, name))
        history.remove(record_id)

        if clamped:
            logger.warning(
                "Reversal of %s clamped %s at the floor",
                record_id, ", ".join(s.value for s in clamped),
            )
        logger.info(
            "Reversed %s (%s receipt) for %s: exp -%s, level %d -> %d",
            record_id, "stored" if used_stored else "recomputed", subject.id,
            receipt.exp_delta, level_change.previous_level, level_change.new_level,
        )
        return ReversalResult(
            record=stored,
            receipt=receipt,
            used_stored_receipt=used_stored,
            level_change=level_change,
            clamped_stats=clamped,
        )
