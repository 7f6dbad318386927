"""
Standardized exception hierarchy for the Grow progression engine
Provides rich context, consistent logging, and user-friendly error messages

Ledger operations do not raise these for expected conditions; they return an
Outcome carrying the error instead. Only truly exceptional states (a corrupted
level table lookup) are raised.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Dict, Any, Generic, TypeVar
from uuid import uuid4
import logging

logger = logging.getLogger(__name__)

T = TypeVar("T")


class GrowError(Exception):
    """
    Base exception for all Grow engine errors

    Provides:
    - Automatic timestamping
    - Request ID for tracing
    - User-friendly messages
    - Structured context
    - Automatic logging

    Example:
        raise GrowError(
            message="Failed to flush progression changes",
            operation="complete_habit",
            context={"habit_id": "abc-123"}
        )
    """

    log_level: int = logging.ERROR

    def __init__(
        self,
        message: str,
        request_id: Optional[str] = None,
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        user_message: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.request_id = request_id or str(uuid4())
        self.operation = operation
        self.context = context or {}
        self.cause = cause
        self.user_message = user_message or "An error occurred. Please try again."
        self.timestamp = datetime.now(timezone.utc)

        # Auto-log on creation
        self._log_error()

    def _log_error(self) -> None:
        """Log error with full context"""
        log_data = {
            "error_type": self.__class__.__name__,
            "error_message": self.message,  # Avoid conflict with logging's 'message' field
            "request_id": self.request_id,
            "operation": self.operation,
            "error_context": self.context,
            "timestamp": self.timestamp.isoformat()
        }

        if self.cause:
            log_data["cause"] = str(self.cause)
            logger.log(self.log_level, f"{self.__class__.__name__}: {self.message}", extra=log_data, exc_info=self.cause)
        else:
            logger.log(self.log_level, f"{self.__class__.__name__}: {self.message}", extra=log_data)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize exception for API responses"""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "user_message": self.user_message,
            "request_id": self.request_id,
            "timestamp": self.timestamp.isoformat()
        }


# ==========================================
# Validation Errors (User Input)
# ==========================================

class ValidationError(GrowError):
    """
    Raised when user input fails validation

    Example:
        ValidationError(
            message="Quantity must be positive",
            field="value",
            value=-5
        )
    """

    log_level = logging.WARNING

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        **kwargs
    ):
        self.field = field
        self.value = value
        kwargs.setdefault("user_message", f"Invalid {field}: {message}" if field else message)
        super().__init__(
            message=message,
            context={"field": field, "value": value},
            **kwargs
        )


class InvalidQuantityError(ValidationError):
    """Quantity habit completion submitted with a value <= 0"""

    def __init__(self, value: Any, **kwargs):
        super().__init__(
            message=f"Quantity must be greater than zero, got {value}",
            field="value",
            value=value,
            **kwargs
        )


class WorkoutAlreadyFinishedError(ValidationError):
    """Workout already granted EXP and can no longer change"""

    def __init__(self, workout_id: Any, **kwargs):
        super().__init__(
            message=f"Workout {workout_id} was already finished",
            field="workout_id",
            value=str(workout_id),
            user_message="This workout is already finished.",
            **kwargs
        )


# ==========================================
# Progression Errors
# ==========================================

class ProgressionError(GrowError):
    """Base class for progression rule violations"""

    log_level = logging.WARNING


class InsufficientSkillPointsError(ProgressionError):
    """Skill unlock attempted with no skill points available"""

    def __init__(self, skill_key: Optional[str] = None, **kwargs):
        self.skill_key = skill_key
        super().__init__(
            message=f"No skill points available to unlock {skill_key}",
            user_message="You need a skill point to unlock this skill. Level up to earn one!",
            context={"skill_key": skill_key},
            **kwargs
        )


class SkillAlreadyUnlockedError(ProgressionError):
    """Skill key is already unlocked"""

    def __init__(self, skill_key: Optional[str] = None, **kwargs):
        self.skill_key = skill_key
        super().__init__(
            message=f"Skill {skill_key} is already unlocked",
            user_message="You already have this skill.",
            context={"skill_key": skill_key},
            **kwargs
        )


class LevelTableError(ProgressionError):
    """Level threshold requested for a level outside the table"""

    log_level = logging.ERROR

    def __init__(self, level: Any, **kwargs):
        self.level = level
        super().__init__(
            message=f"No EXP threshold for level {level}",
            context={"level": level},
            **kwargs
        )


# ==========================================
# Lookup Errors
# ==========================================

class RecordNotFoundError(GrowError):
    """Requested record does not exist in the store"""

    log_level = logging.WARNING

    def __init__(
        self,
        message: str,
        record_type: Optional[str] = None,
        record_id: Optional[str] = None,
        **kwargs
    ):
        self.record_type = record_type
        self.record_id = record_id
        kwargs.setdefault("user_message", f"{record_type or 'Record'} not found.")
        super().__init__(
            message=message,
            context={"record_type": record_type, "record_id": record_id},
            **kwargs
        )


class ProfileNotFoundError(RecordNotFoundError):
    """EXP-granting operation invoked before onboarding created a profile"""

    def __init__(self, message: str = "No player profile exists yet", **kwargs):
        super().__init__(
            message=message,
            record_type="PlayerProfile",
            user_message="Finish onboarding before tracking progress.",
            **kwargs
        )


class HabitNotFoundError(RecordNotFoundError):
    """Habit id unknown to the store"""

    def __init__(self, habit_id: Any, **kwargs):
        super().__init__(
            message=f"Habit {habit_id} not found",
            record_type="Habit",
            record_id=str(habit_id),
            **kwargs
        )


class WorkoutNotFoundError(RecordNotFoundError):
    """Workout id unknown to the store"""

    def __init__(self, workout_id: Any, **kwargs):
        super().__init__(
            message=f"Workout {workout_id} not found",
            record_type="Workout",
            record_id=str(workout_id),
            **kwargs
        )


# ==========================================
# Persistence Errors
# ==========================================

class PersistenceError(GrowError):
    """Store failed to flush a unit of changes; nothing was applied"""

    def __init__(self, message: str = "Failed to persist changes", **kwargs):
        kwargs.setdefault("user_message", "We couldn't save your progress. Please try again.")
        super().__init__(message=message, **kwargs)


# ==========================================
# Operation Outcome
# ==========================================

@dataclass
class Outcome(Generic[T]):
    """
    Result of a ledger operation: either a value or a GrowError

    Example:
        outcome = await ledger.unlock_skill(SkillKey.EARLY_BIRD)
        if not outcome.ok:
            show_disabled(outcome.error.user_message)
    """

    value: Optional[T] = None
    error: Optional[GrowError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "Outcome[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: GrowError) -> "Outcome[T]":
        return cls(error=error)

    def unwrap(self) -> T:
        """Return the value or raise the carried error"""
        if self.error is not None:
            raise self.error
        return self.value


# ==========================================
# Helper Functions
# ==========================================

def wrap_store_exception(
    error: Exception,
    operation: str,
    context: Optional[Dict[str, Any]] = None
) -> GrowError:
    """
    Wrap exceptions raised by a Store implementation into our hierarchy

    Example:
        try:
            await store.commit(changes)
        except Exception as e:
            return Outcome.failure(wrap_store_exception(e, operation="complete_habit"))
    """
    if isinstance(error, GrowError):
        return error

    return PersistenceError(
        message=f"{operation} failed to persist: {str(error)}",
        operation=operation,
        context=context,
        cause=error
    )
