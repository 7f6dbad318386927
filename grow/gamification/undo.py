"""
Undo Buffer

Single-slot holder for the compensating action of the last EXP-affecting
operation. The slot carries an explicit expiry timestamp that callers check;
nothing runs on a timer.

- record() replaces whatever was pending (last write wins, no queue)
- take() hands the action out at most once while the window is open
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Optional
import logging

from grow.config import UNDO_WINDOW_SECONDS

logger = logging.getLogger(__name__)

CompensatingAction = Callable[[], Awaitable[None]]


@dataclass(frozen=True)
class PendingUndo:
    description: str
    action: CompensatingAction
    recorded_at: datetime
    expires_at: datetime


class UndoBuffer:
    """Time-boxed single-slot compensating action holder"""

    def __init__(self, window_seconds: int = UNDO_WINDOW_SECONDS):
        self.window = timedelta(seconds=window_seconds)
        self._pending: Optional[PendingUndo] = None

    def record(self, description: str, action: CompensatingAction, now: datetime) -> PendingUndo:
        if self._pending is not None:
            logger.debug(f"Undo for '{self._pending.description}' replaced by '{description}'")
        self._pending = PendingUndo(
            description=description,
            action=action,
            recorded_at=now,
            expires_at=now + self.window,
        )
        return self._pending

    def clear(self) -> None:
        self._pending = None

    def is_available(self, now: datetime) -> bool:
        return self._pending is not None and now < self._pending.expires_at

    @property
    def pending(self) -> Optional[PendingUndo]:
        return self._pending

    def take(self, now: datetime) -> Optional[PendingUndo]:
        """Pop the pending action if its window is still open; the slot is emptied either way"""
        pending = self._pending
        self._pending = None

        if pending is None:
            return None
        if now >= pending.expires_at:
            logger.info(f"Undo for '{pending.description}' expired at {pending.expires_at.isoformat()}")
            return None
        return pending

    def restore(self, pending: PendingUndo) -> None:
        """Put back an action whose compensation could not be persisted"""
        if self._pending is None:
            self._pending = pending
