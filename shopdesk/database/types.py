from sqlalchemy import DateTime, Integer
from sqlalchemy.types import TypeDecorator

from shopdesk.core.dates import ensure_utc
from shopdesk.core.money import from_cents, to_cents


class Money(TypeDecorator):
    """Two-place ``Decimal`` persisted as integer cents so SUM stays exact."""

    impl = Integer
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return to_cents(value)

    def process_result_value(self, value, dialect):
        return from_cents(value)


class UtcDateTime(TypeDecorator):
    """Timestamp stored in UTC and always returned timezone-aware."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return ensure_utc(value)

    def process_result_value(self, value, dialect):
        return ensure_utc(value)


__all__ = ["Money", "UtcDateTime"]
