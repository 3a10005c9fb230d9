"""Custom SQLAlchemy types for the application."""

from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from sqlalchemy import JSON, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.engine.interfaces import Dialect
from sqlalchemy.types import TypeDecorator, TypeEngine
from ulid import ULID


class ULIDType(TypeDecorator[str]):
    """SQLAlchemy type that stores ULID as UUID.

    - Database: UUID (native on PostgreSQL, CHAR(32) elsewhere)
    - Python: ULID object or string
    - API: 26-character string
    """

    impl = Uuid
    cache_ok = True

    def process_bind_param(self, value: str | ULID | None, dialect: Any) -> UUID | None:
        """Convert ULID string/object to UUID for storage."""
        if value is None:
            return None
        if isinstance(value, str):
            value = ULID.from_str(value)
        if isinstance(value, ULID):
            return value.to_uuid()
        raise ValueError(f"Cannot convert {type(value)} to ULID")

    def process_result_value(self, value: UUID | None, dialect: Any) -> str | None:
        """Convert UUID back to ULID string."""
        if value is None:
            return None
        return str(ULID.from_uuid(value))


class LineItemData(BaseModel):
    """One ordered product line, as captured by the order form."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    label: str = "Item"
    price: float = 0.0
    special_price: float | None = Field(default=None, alias="specialPrice")
    quantity: float = 0


_LINE_ITEMS_ADAPTER = TypeAdapter(list[LineItemData])


class LineItemList(TypeDecorator[list[LineItemData]]):
    """Order line items stored as a JSON array (JSONB on PostgreSQL)."""

    impl = JSON
    cache_ok = True

    def load_dialect_impl(self, dialect: Dialect) -> TypeEngine[Any]:
        if dialect.name == "postgresql":
            return dialect.type_descriptor(JSONB())
        return dialect.type_descriptor(JSON())

    def process_bind_param(
        self, value: list[LineItemData] | list[dict[str, Any]] | None, dialect: Any
    ) -> list[dict[str, Any]]:
        """Convert LineItemData entries to plain dicts for storage."""
        if not value:
            return []
        return [
            item.model_dump(exclude_none=True) if isinstance(item, LineItemData) else dict(item) for item in value
        ]

    def process_result_value(self, value: list[dict[str, Any]] | None, dialect: Any) -> list[LineItemData]:
        """Convert stored dicts back to LineItemData."""
        if not value:
            return []
        return _LINE_ITEMS_ADAPTER.validate_python(value)
