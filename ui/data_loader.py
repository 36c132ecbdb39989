"""
Centralized Session Data Loading for the Pendency Control Tower

CRITICAL PRINCIPLE:
All ledger access goes through this module.
The store, writer and coordinator live ONCE per browser session; the
processed view is computed ONCE per render cycle and shared by every tab.
"""

import logging
from typing import Any, List

import streamlit as st

from pendency.core.models import ProcessedDocument
from pendency.core.mutation_coordinator import MutationCoordinator
from pendency.core.pendency_store import PendencyStore
from pendency.notifications.in_app_notifier import InAppNotifier, LEVEL_WARNING
from pendency.storage.sheet_feed import FeedError, SheetFeed
from pendency.storage.write_command import WriteCommand

logger = logging.getLogger(__name__)


class DataLoader:
    """
    Session Data Loader with render-cycle caching.

    DESIGN:
    1. Session objects (store, notifier, coordinator) created on first access
    2. First access also performs the initial feed load
    3. Processed view cached per render cycle
    4. invalidate() after mutations forces recomputation
    """

    _SESSION_KEY = "_pendency_session"
    _RENDER_KEY = "_pendency_render_data"

    @staticmethod
    def get_store() -> PendencyStore:
        return DataLoader._session()["store"]

    @staticmethod
    def get_notifier() -> InAppNotifier:
        return DataLoader._session()["notifier"]

    @staticmethod
    def get_coordinator() -> MutationCoordinator:
        return DataLoader._session()["coordinator"]

    @staticmethod
    def get_processed_view() -> List[ProcessedDocument]:
        """
        Processed documents for the current render cycle.

        CACHED: every tab sees the same snapshot reference.
        """
        return DataLoader._get_cached_data("processed", DataLoader.get_store().processed_view)

    @staticmethod
    def refresh() -> bool:
        """Reload the feed now. Failures keep the previous snapshot."""
        ok = DataLoader.get_coordinator().refresh_now()
        DataLoader.invalidate()
        return ok

    @staticmethod
    def invalidate():
        """
        Invalidate the render cache (call after mutations).
        """
        if DataLoader._RENDER_KEY in st.session_state:
            del st.session_state[DataLoader._RENDER_KEY]

    @staticmethod
    def _get_cached_data(key: str, loader_fn) -> Any:
        """Internal: Get data from render cache or load it"""
        if DataLoader._RENDER_KEY not in st.session_state:
            st.session_state[DataLoader._RENDER_KEY] = {}

        cache = st.session_state[DataLoader._RENDER_KEY]

        if key not in cache:
            cache[key] = loader_fn()

        return cache[key]

    @staticmethod
    def _session() -> dict:
        if DataLoader._SESSION_KEY not in st.session_state:
            st.session_state[DataLoader._SESSION_KEY] = DataLoader._build_session()
        return st.session_state[DataLoader._SESSION_KEY]

    @staticmethod
    def _build_session() -> dict:
        """Internal: wire the session objects and run the first load"""
        store = PendencyStore(feed=SheetFeed())
        notifier = InAppNotifier()
        coordinator = MutationCoordinator(store, WriteCommand(), notifier)

        try:
            store.refresh()
        except FeedError as e:
            logger.error(f"Initial load failed: {str(e)}")
            notifier.emit(
                "Não foi possível carregar a planilha. Verifique a conexão e atualize.",
                level=LEVEL_WARNING,
            )

        return {
            "store": store,
            "notifier": notifier,
            "coordinator": coordinator,
        }
