"""fold legacy internal_cost into itemized costs

Revision ID: 8f4d2a61c5e9
Revises: 3b1e7c90a2d4
Create Date: 2026-10-19 10:03:17.884120

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "8f4d2a61c5e9"
down_revision: Union[str, Sequence[str], None] = "3b1e7c90a2d4"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

LEGACY_COST_LABEL = "Custo interno"

orders = sa.table(
    "maintenance_orders",
    sa.column("id", sa.String()),
    sa.column("internal_cost", sa.Numeric(12, 2)),
    sa.column("costs", sa.JSON()),
)


def upgrade() -> None:
    bind = op.get_bind()

    rows = bind.execute(
        sa.select(orders.c.id, orders.c.internal_cost, orders.c.costs)
    ).fetchall()

    for row in rows:
        if row.costs:
            continue

        costs = []
        if row.internal_cost is not None:
            costs = [{"name": LEGACY_COST_LABEL, "value": str(row.internal_cost)}]

        bind.execute(
            orders.update().where(orders.c.id == row.id).values(costs=costs)
        )

    with op.batch_alter_table("maintenance_orders") as batch:
        batch.alter_column("costs", existing_type=sa.JSON(), nullable=False)


def downgrade() -> None:
    with op.batch_alter_table("maintenance_orders") as batch:
        batch.alter_column("costs", existing_type=sa.JSON(), nullable=True)
