"""
Service Container - Simple dependency injection for swappable implementations.

Usage:
    from survivor.core import ServiceContainer

    # Get default implementations
    store = ServiceContainer.get_store()
    source = ServiceContainer.get_score_source()

    # Register custom implementations
    ServiceContainer.register_store(PoolStore("/tmp/pool.db"))
    ServiceContainer.register_score_source(FakeScoreboard(events))
"""
from typing import Optional, TYPE_CHECKING
import logging

if TYPE_CHECKING:
    from survivor.store.db import PoolStore
    from .protocols import ScoreSource, ScoreReconciler

logger = logging.getLogger(__name__)


class ServiceContainer:
    """
    Simple dependency injection container.

    Provides lazy initialization of default implementations
    and allows swapping to alternative implementations.
    """

    _store: Optional["PoolStore"] = None
    _score_source: Optional["ScoreSource"] = None
    _reconciler: Optional["ScoreReconciler"] = None

    @classmethod
    def get_store(cls) -> "PoolStore":
        """Get the configured pool store."""
        if cls._store is None:
            from survivor.store.db import get_pool_store
            cls._store = get_pool_store()
            logger.debug("Initialized default SQLite PoolStore")
        return cls._store

    @classmethod
    def get_score_source(cls) -> "ScoreSource":
        """Get the configured score source."""
        if cls._score_source is None:
            from survivor.feed.espn_client import EspnScoreboardClient
            cls._score_source = EspnScoreboardClient()
            logger.debug("Initialized default EspnScoreboardClient")
        return cls._score_source

    @classmethod
    def get_reconciler(cls) -> "ScoreReconciler":
        if cls._reconciler is None:
            from survivor.feed.reconciler import EspnReconciler
            cls._reconciler = EspnReconciler()
        return cls._reconciler

    @classmethod
    def register_store(cls, store: "PoolStore") -> None:
        """Register a custom store."""
        cls._store = store
        logger.info(f"Registered store: {store.db_path}")

    @classmethod
    def register_score_source(cls, source: "ScoreSource") -> None:
        """Register a custom score source."""
        cls._score_source = source
        logger.info(f"Registered score source: {type(source).__name__}")

    @classmethod
    def register_reconciler(cls, reconciler: "ScoreReconciler") -> None:
        cls._reconciler = reconciler
        logger.info(f"Registered reconciler: {type(reconciler).__name__}")

    @classmethod
    def reset(cls) -> None:
        """Reset to defaults (for testing)."""
        cls._store = None
        cls._score_source = None
        cls._reconciler = None
