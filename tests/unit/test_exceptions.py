"""Unit tests for custom exception hierarchy"""
import pytest
from datetime import datetime

from grow.exceptions import (
    GrowError,
    HabitNotFoundError,
    InsufficientSkillPointsError,
    InvalidQuantityError,
    LevelTableError,
    Outcome,
    PersistenceError,
    ProgressionError,
    RecordNotFoundError,
    SkillAlreadyUnlockedError,
    ValidationError,
    WorkoutAlreadyFinishedError,
    wrap_store_exception,
)


class TestGrowError:
    """Test base exception class"""

    def test_basic_exception(self):
        error = GrowError("Test error")
        assert error.message == "Test error"
        assert error.user_message == "An error occurred. Please try again."
        assert error.request_id is not None
        assert isinstance(error.timestamp, datetime)

    def test_exception_with_context(self):
        error = GrowError(
            message="Commit failed",
            operation="complete_habit",
            context={"habit_id": "abc-123"},
            user_message="Could not save your progress",
        )
        assert error.operation == "complete_habit"
        assert error.context["habit_id"] == "abc-123"
        assert error.user_message == "Could not save your progress"

    def test_to_dict(self):
        error = GrowError("Test error", request_id="req-1")
        data = error.to_dict()

        assert data["error"] == "GrowError"
        assert data["message"] == "Test error"
        assert data["request_id"] == "req-1"
        assert "timestamp" in data


class TestSubclasses:
    """Test specific error types"""

    def test_invalid_quantity(self):
        error = InvalidQuantityError(0)
        assert isinstance(error, ValidationError)
        assert error.field == "value"
        assert error.value == 0

    def test_workout_already_finished(self):
        assert isinstance(WorkoutAlreadyFinishedError("w-1"), ValidationError)

    def test_progression_errors(self):
        assert isinstance(InsufficientSkillPointsError("earlyBird"), ProgressionError)
        assert isinstance(SkillAlreadyUnlockedError("earlyBird"), ProgressionError)
        assert isinstance(LevelTableError(0), ProgressionError)

    def test_not_found(self):
        error = HabitNotFoundError("h-1")
        assert isinstance(error, RecordNotFoundError)
        assert error.record_id == "h-1"


class TestOutcome:

    def test_success(self):
        outcome = Outcome.success(42)
        assert outcome.ok
        assert outcome.unwrap() == 42

    def test_failure_unwrap_raises(self):
        outcome = Outcome.failure(PersistenceError())
        assert not outcome.ok
        with pytest.raises(PersistenceError):
            outcome.unwrap()


class TestWrapStoreException:

    def test_wraps_foreign_exception(self):
        cause = RuntimeError("disk full")
        error = wrap_store_exception(cause, operation="complete_habit")

        assert isinstance(error, PersistenceError)
        assert error.cause is cause
        assert "disk full" in error.message

    def test_passes_grow_errors_through(self):
        original = PersistenceError("already wrapped")
        assert wrap_store_exception(original, operation="undo") is original
