"""
Tests for configuration, structured logging and the error hierarchy.
"""
import io
import json
import logging

import pytest
from pydantic import ValidationError as SettingsValidationError

from progression.core.config import Settings, settings
from progression.core.exceptions import (
    InvariantViolation,
    ProgressionError,
    ReversalNotFoundError,
    ValidationError,
)
from progression.core.logging import ENGINE_LOGGER, JSONFormatter, build_formatter, setup_logging


class TestSettings:

    def test_defaults(self):
        fresh = Settings()

        assert fresh.STAT_DECIMAL_PLACES == 9
        assert fresh.MAX_ACTIVITY_MINUTES == 1440
        assert fresh.DEFAULT_RELAXED_WEEKEND_MODE is False

    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("PROGRESSION_DEFAULT_RELAXED_WEEKEND_MODE", "true")

        assert Settings().DEFAULT_RELAXED_WEEKEND_MODE is True

    def test_decimal_places_bounded(self):
        with pytest.raises(SettingsValidationError):
            Settings(STAT_DECIMAL_PLACES=1)

    def test_global_instance(self):
        assert isinstance(settings, Settings)

    def test_only_engine_settings(self):
        assert "DEBUG" not in Settings.model_fields


class TestJSONFormatter:

    def _record(self, **kwargs):
        return logging.LogRecord(
            name="progression.services.reversal_engine",
            level=logging.WARNING,
            pathname=__file__,
            lineno=10,
            msg="Reversal of %s clamped %s at the floor",
            args=("activity_1", "strength"),
            exc_info=None,
            **kwargs,
        )

    def test_structured_fields(self):
        data = json.loads(JSONFormatter().format(self._record()))

        assert data["level"] == "WARNING"
        assert data["logger"] == "progression.services.reversal_engine"
        assert data["message"] == "Reversal of activity_1 clamped strength at the floor"
        assert "timestamp" in data

    def test_extra_fields_merged(self):
        record = self._record()
        record.extra_fields = {"subject_id": "subject_test"}

        data = json.loads(JSONFormatter().format(record))

        assert data["subject_id"] == "subject_test"


class TestExceptions:

    def test_validation_error_dict(self):
        error = ValidationError("Duration must be greater than 0 minutes", field="duration_minutes")

        assert isinstance(error, ProgressionError)
        assert error.to_dict() == {
            "detail": "Duration must be greater than 0 minutes",
            "error_code": "VALIDATION_ERROR_DURATION_MINUTES",
            "field": "duration_minutes",
        }

    def test_validation_error_without_field(self):
        assert ValidationError("bad").error_code == "VALIDATION_ERROR"

    def test_not_found(self):
        error = ReversalNotFoundError("activity_42")

        assert error.record_id == "activity_42"
        assert "activity_42" in str(error)

    def test_invariant_violation(self):
        assert InvariantViolation("level mismatch").error_code == "INVARIANT_VIOLATION"


@pytest.fixture
def engine_logger():
    """Restore the engine logger after setup_logging() reconfigures it."""
    target = logging.getLogger(ENGINE_LOGGER)
    saved = (list(target.handlers), target.level, target.propagate)
    yield target
    target.handlers[:] = saved[0]
    target.setLevel(saved[1])
    target.propagate = saved[2]


class TestSetupLogging:
    """setup_logging() configures only the engine's logger."""

    def test_json_by_default(self, engine_logger, monkeypatch):
        monkeypatch.setattr(settings, "LOG_FORMAT", "json")
        monkeypatch.setattr(settings, "LOG_LEVEL", "INFO")
        stream = io.StringIO()

        setup_logging(stream)
        logging.getLogger("progression.services.activity_applier").info("Applied %s", "meditation")

        data = json.loads(stream.getvalue().strip())
        assert data["message"] == "Applied meditation"
        assert data["logger"] == "progression.services.activity_applier"
        assert engine_logger.level == logging.INFO

    def test_text_in_development(self, engine_logger, monkeypatch):
        monkeypatch.setattr(settings, "LOG_FORMAT", "text")
        monkeypatch.setattr(settings, "ENVIRONMENT", "development")

        assert not isinstance(build_formatter(), JSONFormatter)

    def test_production_forces_json(self, engine_logger, monkeypatch):
        monkeypatch.setattr(settings, "LOG_FORMAT", "text")
        monkeypatch.setattr(settings, "ENVIRONMENT", "production")

        assert isinstance(build_formatter(), JSONFormatter)

    def test_repeat_calls_keep_one_handler(self, engine_logger):
        setup_logging(io.StringIO())
        setup_logging(io.StringIO())

        installed = [h for h in engine_logger.handlers if getattr(h, "_progression_handler", False)]
        assert len(installed) == 1
        assert engine_logger.propagate is False

    def test_host_handlers_untouched(self, engine_logger):
        root = logging.getLogger()
        host_handler = logging.NullHandler()
        root.addHandler(host_handler)
        try:
            before = list(root.handlers)
            setup_logging(io.StringIO())
            assert root.handlers == before
        finally:
            root.removeHandler(host_handler)

    def test_level_from_settings(self, engine_logger, monkeypatch):
        monkeypatch.setattr(settings, "LOG_LEVEL", "warning")

        setup_logging(io.StringIO())

        assert engine_logger.level == logging.WARNING
