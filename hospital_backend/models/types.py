"""Column types shared by the ORM models."""

from sqlalchemy import DateTime
from sqlalchemy.types import TypeDecorator

from hospital_backend.scheduling.clock import as_utc


class UTCDateTime(TypeDecorator):
    """Stores naive UTC in the database and always hands back aware UTC."""

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return as_utc(value).replace(tzinfo=None)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return as_utc(value)
