"""
Service Container - Dependency Injection Container

Simple DI container for the progression engine's services.
Uses lazy loading to only instantiate services when first accessed.
"""

from dataclasses import dataclass, field
from typing import Optional
import logging

from grow.services.store import Store
from grow.utils.datetime_helpers import Clock

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """
    Simple dependency injection container for services.

    Services are lazy-loaded on first access via properties.
    Infrastructure dependencies (store, clock) are injected.
    """

    # Infrastructure dependencies (injected)
    store: Store
    clock: Optional[Clock] = None

    # Services (lazy-loaded via properties)
    _ledger: Optional[object] = field(default=None, init=False, repr=False)
    _leaderboard: Optional[object] = field(default=None, init=False, repr=False)

    @property
    def ledger(self):
        """Get ProgressionLedger instance (lazy-loaded)"""
        if self._ledger is None:
            from grow.services.progression_ledger import ProgressionLedger
            self._ledger = ProgressionLedger(self.store, clock=self.clock)
            logger.debug("ProgressionLedger instantiated")
        return self._ledger

    @property
    def leaderboard(self):
        """Get leaderboard backend (lazy-loaded, in-memory unless injected)"""
        if self._leaderboard is None:
            from grow.gamification.leaderboard import InMemoryLeaderboard
            self._leaderboard = InMemoryLeaderboard()
            logger.debug("InMemoryLeaderboard instantiated")
        return self._leaderboard

    @leaderboard.setter
    def leaderboard(self, backend) -> None:
        self._leaderboard = backend


# Global container instance (optional, initialized by the host)
_container: Optional[ServiceContainer] = None


def get_container() -> ServiceContainer:
    """
    Get the global service container.

    Raises:
        RuntimeError: If container not initialized (call init_container first)
    """
    if _container is None:
        raise RuntimeError(
            "Service container not initialized. "
            "Call init_container() before using services."
        )
    return _container


def init_container(store: Store, clock: Optional[Clock] = None) -> ServiceContainer:
    """
    Initialize the global service container.

    Args:
        store: Persistence collaborator
        clock: Optional calendar adapter (defaults to the configured timezone)

    Returns:
        ServiceContainer: The initialized container
    """
    global _container

    _container = ServiceContainer(store=store, clock=clock)

    logger.info("Service container initialized")
    return _container
