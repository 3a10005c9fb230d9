"""initial_schema

Revision ID: 1a2f9c3e5d7b
Revises:
Create Date: 2026-10-17 09:12:31.402117

"""

from typing import Sequence, Union

import sqlalchemy as sa
import sqlmodel
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "1a2f9c3e5d7b"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Per-stream order number counters, created lazily by the allocator
    op.create_table(
        "order_counters",
        sa.Column("stream", sa.String(length=32), nullable=False),
        sa.Column("last_number", sa.Integer(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("stream"),
    )

    # Orders (ULID as UUID); stream and status stored as VARCHAR
    op.create_table(
        "orders",
        sa.Column("id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("stream", sa.String(length=32), nullable=False),
        sa.Column("order_number", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("name", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("surname", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("email", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("cellphone", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("address", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("delivery_option", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("send_date", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("notes", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("paid", sa.Boolean(), nullable=False),
        sa.Column("tracking_link", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("delivery_cost", sa.Float(), nullable=False),
        sa.Column("line_items", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("dispatch_email_sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_orders_stream"), "orders", ["stream"], unique=False)
    op.create_index("ix_orders_stream_order_number", "orders", ["stream", "order_number"], unique=True)
    # Recovery scans for orders still waiting for a number
    op.create_index(
        "ix_orders_unnumbered_created_at",
        "orders",
        ["created_at"],
        unique=False,
        postgresql_where=sa.text("order_number IS NULL"),
    )

    op.create_table(
        "stock_items",
        sa.Column("id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("name", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("category", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("sub_category", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("quantity", sa.Float(), nullable=False),
        sa.Column("threshold", sa.Float(), nullable=False),
        sa.Column("notes", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_stock_items_name"), "stock_items", ["name"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_stock_items_name"), table_name="stock_items")
    op.drop_table("stock_items")
    op.drop_index("ix_orders_unnumbered_created_at", table_name="orders")
    op.drop_index("ix_orders_stream_order_number", table_name="orders")
    op.drop_index(op.f("ix_orders_stream"), table_name="orders")
    op.drop_table("orders")
    op.drop_table("order_counters")
