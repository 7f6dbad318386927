"""
Service Layer Package

Stateful services of the progression engine, separated from the pure rules
in grow.gamification.

- ProgressionLedger: habit completions, slips, skills, workouts, undo
- Store / InMemoryStore: all-or-nothing persistence contract
- ServiceContainer: lazily wired services for a host application
"""

from grow.services.container import ServiceContainer, get_container, init_container
from grow.services.progression_ledger import ProgressionLedger
from grow.services.store import InMemoryStore, Store, StoreChanges

__all__ = [
    "ServiceContainer",
    "get_container",
    "init_container",
    "ProgressionLedger",
    "InMemoryStore",
    "Store",
    "StoreChanges",
]
