"""create clients and maintenance orders

Revision ID: 3b1e7c90a2d4
Revises:
Create Date: 2026-10-19 09:12:41.210334

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "3b1e7c90a2d4"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "clients",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("phone", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_clients_id", "clients", ["id"])

    # Same shape as the imported legacy table: costs may still be NULL here.
    op.create_table(
        "maintenance_orders",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("client_id", sa.String(), sa.ForeignKey("clients.id"), nullable=False),
        sa.Column("equipment", sa.String(), nullable=True),
        sa.Column("service_title", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("value", sa.Numeric(12, 2), nullable=False),
        sa.Column("internal_cost", sa.Numeric(12, 2), nullable=True),
        sa.Column("costs", sa.JSON(), nullable=True),
        sa.Column("status", sa.String(), nullable=False, server_default="OPEN"),
        sa.Column("opened_at", sa.DateTime(), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("delivery_date", sa.Date(), nullable=True),
        sa.Column("closed_at", sa.DateTime(), nullable=True),
        sa.Column("next_maintenance_date", sa.Date(), nullable=True),
        sa.Column("next_reminder_at", sa.DateTime(), nullable=True),
        sa.Column("next_reminder_step", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_maintenance_orders_id", "maintenance_orders", ["id"])
    op.create_index("ix_maintenance_orders_client_id", "maintenance_orders", ["client_id"])
    op.create_index("ix_maintenance_orders_status", "maintenance_orders", ["status"])

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("action", sa.String(), nullable=False),
        sa.Column("entity_type", sa.String(), nullable=False),
        sa.Column("entity_id", sa.String(), nullable=True),
        sa.Column("details", sa.Text(), nullable=True),
        sa.Column("timestamp", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_audit_logs_id", "audit_logs", ["id"])


def downgrade() -> None:
    op.drop_index("ix_audit_logs_id", table_name="audit_logs")
    op.drop_table("audit_logs")
    op.drop_index("ix_maintenance_orders_status", table_name="maintenance_orders")
    op.drop_index("ix_maintenance_orders_client_id", table_name="maintenance_orders")
    op.drop_index("ix_maintenance_orders_id", table_name="maintenance_orders")
    op.drop_table("maintenance_orders")
    op.drop_index("ix_clients_id", table_name="clients")
    op.drop_table("clients")
