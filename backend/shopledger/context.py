# Overview: Process-wide shop context; built once by create_app and passed to every component.

from __future__ import annotations

import logging

from flask import current_app

from .entities import default_shop_profile
from .services.catalog_service import CatalogService
from .services.entity_store import EntityStore
from .services.error_state import ErrorState, SOURCE_SUBSCRIPTION
from .services.insights_service import InsightsClient
from .services.ledger_service import LedgerEngine
from .services.preferences_service import PreferenceStore
from .services.repository import COLLECTIONS, PersistenceError, Repository
from .services.session_service import SessionGate
from .time_utils import local_today, resolve_timezone

logger = logging.getLogger(__name__)

EXTENSION_KEY = "shopledger"


class ShopContext:
    """
    Owns the repository, the entity store and every service built on them.

    start() loads preferences and subscribes the store to the repository;
    close() releases the subscriptions.
    """

    def __init__(
        self,
        repository: Repository,
        *,
        preferences: PreferenceStore,
        insights: InsightsClient,
        default_pin: str = "1234",
        timezone_name: str = "UTC",
        low_stock_threshold: int = 5,
    ):
        self.repository = repository
        self.preferences = preferences
        self.insights = insights
        self.timezone = resolve_timezone(timezone_name)
        self.low_stock_threshold = low_stock_threshold

        self.errors = ErrorState(language_getter=lambda: self.preferences.language)
        self.store = EntityStore(default_shop_profile(default_pin), errors=self.errors)
        self.ledger = LedgerEngine(self.store, repository, errors=self.errors)
        self.catalog = CatalogService(self.store, repository, errors=self.errors)
        self.gate = SessionGate(self.store, preferences)

    def start(self) -> None:
        try:
            self.preferences.load()
        except PersistenceError as exc:
            logger.error("Could not load preferences: %s", exc)
            self.errors.record(exc, SOURCE_SUBSCRIPTION)
        self.store.attach(self.repository)

    def refresh(self) -> None:
        """
        Re-read preferences and every collection from the database.

        Picks up writes committed by another worker or a CLI command since the
        last delivery; this process only notifies itself about its own batches.
        """
        try:
            self.preferences.load()
        except PersistenceError as exc:
            logger.error("Could not reload preferences: %s", exc)
            self.errors.record(exc, SOURCE_SUBSCRIPTION)
        if self.store.is_attached:
            self.repository.notify(list(COLLECTIONS))

    def close(self) -> None:
        self.store.detach()

    def today(self):
        return local_today(self.timezone)


def get_context() -> ShopContext:
    return current_app.extensions[EXTENSION_KEY]
