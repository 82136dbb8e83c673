"""Column types and defaults shared by the ledger models."""

import uuid
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import Numeric, String, TypeDecorator
from sqlalchemy.engine import Dialect

# Money is stored exactly and always read back as Decimal.
MONEY_PRECISION = 12
MONEY_SCALE = 4


def money() -> Numeric:  # type: ignore[type-arg]
    """Column type for invoice totals and payment amounts."""
    return Numeric(MONEY_PRECISION, MONEY_SCALE, asdecimal=True)


class UUIDType(TypeDecorator[uuid.UUID]):
    """UUID primary and foreign keys stored as 36-character strings.

    The same schema then runs on the in-memory SQLite used by the tests and
    on PostgreSQL. Values accept ``uuid.UUID`` or its string form on the way
    in and always come back as ``uuid.UUID``.
    """

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value: Any, dialect: Dialect) -> str | None:
        if value is None:
            return value
        if isinstance(value, uuid.UUID):
            return str(value)
        return str(uuid.UUID(value))

    def process_result_value(self, value: Any, dialect: Dialect) -> uuid.UUID | None:
        if value is None:
            return value
        if isinstance(value, uuid.UUID):
            return value
        return uuid.UUID(value)


def generate_uuid() -> uuid.UUID:
    return uuid.uuid4()


def utc_now() -> datetime:
    """Timezone-aware now, used for settlement and payment-received timestamps."""
    return datetime.now(UTC)
