# Overview: Device-local preferences (language, login flag) persisted across restarts.

from __future__ import annotations

import logging
from typing import Any, Callable

from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Preference
from ..validation import ValidationError
from .repository import classify_db_error

logger = logging.getLogger(__name__)

LANGUAGE_KEY = "language"
LOGGED_IN_KEY = "is_logged_in"

SUPPORTED_LANGUAGES = ("en", "bn")
DEFAULT_LANGUAGE = "en"


class PreferenceStore:
    """
    Key-value preferences, read once by load() and written on every change.

    Reads are served from memory; writes go straight to the preferences table.
    """

    def __init__(self, session_factory: Callable[[], Any] | None = None):
        self._session_factory = session_factory or (lambda: db.session)
        self._values: dict[str, Any] = {}

    @property
    def session(self):
        return self._session_factory()

    def load(self) -> None:
        try:
            rows = self.session.query(Preference).all()
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise classify_db_error(exc) from exc
        self._values = {row.key: row.value_json for row in rows}

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    def set(self, key: str, value: Any) -> None:
        session = self.session
        try:
            row = session.get(Preference, key)
            if row is None:
                session.add(Preference(key=key, value_json=value))
            else:
                row.value_json = value
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            raise classify_db_error(exc) from exc
        self._values[key] = value

    @property
    def language(self) -> str:
        language = self.get(LANGUAGE_KEY, DEFAULT_LANGUAGE)
        return language if language in SUPPORTED_LANGUAGES else DEFAULT_LANGUAGE

    def set_language(self, language: str) -> None:
        if language not in SUPPORTED_LANGUAGES:
            raise ValidationError(f"language must be one of {list(SUPPORTED_LANGUAGES)}")
        self.set(LANGUAGE_KEY, language)

    @property
    def is_logged_in(self) -> bool:
        return bool(self.get(LOGGED_IN_KEY, False))

    def set_logged_in(self, value: bool) -> None:
        self.set(LOGGED_IN_KEY, bool(value))
