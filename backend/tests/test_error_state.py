"""Error state tests: single notice, per-source clearing, localized permission message."""

import pytest

from shopledger.services.error_state import (
    PERMISSION_DENIED_MESSAGES,
    SOURCE_SUBSCRIPTION,
    SOURCE_WRITE,
    ErrorState,
    tracked_batch,
)
from shopledger.services.repository import PRODUCTS, PersistenceError, PersistencePermissionError


def test_newest_error_overwrites_previous():
    errors = ErrorState()
    errors.record(PersistenceError("first"), SOURCE_WRITE)
    errors.record(PersistenceError("second"), SOURCE_SUBSCRIPTION)

    assert errors.current.message == "second"
    assert errors.current.source == SOURCE_SUBSCRIPTION


def test_success_clears_only_same_source():
    errors = ErrorState()
    errors.record(PersistenceError("write failed"), SOURCE_WRITE)

    errors.resolve(SOURCE_SUBSCRIPTION)
    assert errors.current is not None

    errors.resolve(SOURCE_WRITE)
    assert errors.current is None


def test_clear_is_unconditional():
    errors = ErrorState()
    errors.record(PersistencePermissionError("denied"), SOURCE_SUBSCRIPTION)
    errors.clear()
    assert errors.current is None


@pytest.mark.parametrize("language", ["en", "bn"])
def test_permission_denied_is_persistent_and_localized(language):
    errors = ErrorState(language_getter=lambda: language)
    notice = errors.record(PersistencePermissionError("insufficient privilege"), SOURCE_WRITE)

    assert notice.code == "permission-denied"
    assert notice.persistent
    assert notice.message == PERMISSION_DENIED_MESSAGES[language]


def test_transient_error_keeps_its_message():
    notice = ErrorState().record(PersistenceError("database is locked", code="unavailable"), SOURCE_WRITE)

    assert not notice.persistent
    assert notice.to_dict()["message"] == "database is locked"
    assert notice.to_dict()["code"] == "unavailable"


def test_tracked_batch_records_and_reraises(memory_repo, persistence_error):
    errors = ErrorState()
    memory_repo.fail_next = persistence_error()

    with pytest.raises(PersistenceError):
        with tracked_batch(memory_repo, errors) as batch:
            batch.delete(PRODUCTS, "p1")

    assert errors.current.source == SOURCE_WRITE

    with tracked_batch(memory_repo, errors) as batch:
        batch.delete(PRODUCTS, "p1")
    assert errors.current is None
