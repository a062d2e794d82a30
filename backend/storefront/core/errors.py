# storefront/core/errors.py
"""
Store-level exceptions.

Repositories translate Firestore / google-api-core errors into these so the
action layer never has to know which backend produced them.
"""
from contextlib import contextmanager

from google.api_core.exceptions import GoogleAPICallError, RetryError


class StoreError(Exception):
    """Any failure reported by the backing store."""


class UniqueViolation(StoreError):
    """A row already occupies the logical key the write targeted."""

    def __init__(self, key: tuple):
        super().__init__(f"duplicate key {key!r}")
        self.key = key


@contextmanager
def translate_store_errors():
    """Re-raise google-api-core failures as StoreError."""
    try:
        yield
    except StoreError:
        raise
    except (GoogleAPICallError, RetryError) as exc:
        raise StoreError(str(exc)) from exc
