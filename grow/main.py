"""Entry point helpers for hosting the Grow progression engine"""
import logging
from typing import Optional

from grow.config import LOG_LEVEL, validate_config
from grow.services.container import ServiceContainer, init_container
from grow.services.store import InMemoryStore, Store
from grow.utils.datetime_helpers import Clock

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    """Configure root logging from LOG_LEVEL"""
    logging.basicConfig(
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        level=getattr(logging, LOG_LEVEL.upper())
    )


def build_container(store: Optional[Store] = None, clock: Optional[Clock] = None) -> ServiceContainer:
    """
    Validate configuration and wire the engine's services

    Args:
        store: Persistence collaborator (in-memory when omitted)
        clock: Calendar adapter (configured timezone when omitted)
    """
    logger.info("Validating configuration...")
    validate_config()

    if store is None:
        logger.info("No store given, using in-memory store")
        store = InMemoryStore()

    return init_container(store, clock=clock)


def build_ledger(store: Optional[Store] = None, clock: Optional[Clock] = None):
    """Shortcut for hosts that only need the ProgressionLedger"""
    return build_container(store, clock).ledger
