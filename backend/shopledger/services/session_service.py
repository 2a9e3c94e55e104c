# Overview: PIN login gate for the single shop operator.

from __future__ import annotations

import logging

from .entity_store import EntityStore
from .preferences_service import PreferenceStore

logger = logging.getLogger(__name__)


class SessionGate:
    """
    Login gate: the entered PIN must equal the shop profile's PIN.

    This is a single-device gate, not an authentication system: plain
    comparison, no lockout, no expiry. The flag survives restarts through the
    preference store.
    """

    def __init__(self, store: EntityStore, preferences: PreferenceStore):
        self._store = store
        self._preferences = preferences

    @property
    def is_logged_in(self) -> bool:
        return self._preferences.is_logged_in

    def login(self, pin: str) -> bool:
        if pin is None:
            return False
        if str(pin) != self._store.shop_profile.pin:
            logger.info("Rejected login attempt")
            return False
        self._preferences.set_logged_in(True)
        logger.info("Operator logged in")
        return True

    def logout(self) -> None:
        self._preferences.set_logged_in(False)
        logger.info("Operator logged out")
