# Overview: Holds the single most-recent user-visible error.

from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator

from .repository import PersistenceError, PersistencePermissionError, Repository, WriteBatch

SOURCE_WRITE = "write"
SOURCE_SUBSCRIPTION = "subscription"

PERMISSION_DENIED_MESSAGES = {
    "en": "Permission Denied! Please update the database access rules.",
    "bn": "পারমিশন এরর! দয়া করে ডাটাবেস অ্যাক্সেস রুলস আপডেট করুন।",
}


@dataclass(frozen=True)
class ErrorNotice:
    message: str
    code: str
    source: str

    @property
    def persistent(self) -> bool:
        return self.code == PersistencePermissionError.code

    def to_dict(self) -> dict:
        return {
            "message": self.message,
            "code": self.code,
            "source": self.source,
            "persistent": self.persistent,
        }


class ErrorState:
    """
    One error at a time.

    A new error overwrites the previous one. A success from the same source
    (write or subscription) clears it; clear() drops it unconditionally.
    """

    def __init__(self, language_getter=None):
        self._notice: ErrorNotice | None = None
        self._lock = threading.Lock()
        self._language_getter = language_getter or (lambda: "en")

    @property
    def current(self) -> ErrorNotice | None:
        return self._notice

    def record(self, exc: PersistenceError, source: str) -> ErrorNotice:
        if isinstance(exc, PersistencePermissionError):
            language = self._language_getter()
            message = PERMISSION_DENIED_MESSAGES.get(language, PERMISSION_DENIED_MESSAGES["en"])
        else:
            message = str(exc) or "Unknown error occurred"
        notice = ErrorNotice(message=message, code=exc.code, source=source)
        with self._lock:
            self._notice = notice
        return notice

    def resolve(self, source: str) -> None:
        with self._lock:
            if self._notice is not None and self._notice.source == source:
                self._notice = None

    def clear(self) -> None:
        with self._lock:
            self._notice = None


@contextmanager
def tracked_batch(repository: Repository, errors: ErrorState | None) -> Iterator[WriteBatch]:
    """
    repository.batch() that reports its outcome to the error state.

    A persistence failure is recorded as a write error and re-raised; a
    successful commit clears any earlier write error.
    """
    try:
        with repository.batch() as batch:
            yield batch
    except PersistenceError as exc:
        if errors is not None:
            errors.record(exc, SOURCE_WRITE)
        raise
    if errors is not None:
        errors.resolve(SOURCE_WRITE)
