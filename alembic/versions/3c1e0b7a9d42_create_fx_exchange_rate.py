"""create fx exchange rate

Revision ID: 3c1e0b7a9d42
Revises:
Create Date: 2025-10-30

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision: str = "3c1e0b7a9d42"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "fx_exchange_rate",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("from_currency", sa.String(length=100), nullable=False),
        sa.Column("to_currency", sa.String(length=100), nullable=False),
        sa.Column("rate", sa.Float(), nullable=False),
        sa.Column("rate_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "source",
            sa.Enum(
                "api",
                "bank",
                "manual",
                "scraper",
                name="exchangeratesource",
                native_enum=False,
                length=20,
            ),
            nullable=False,
        ),
        sa.CheckConstraint("rate > 0", name="ck_fx_exchange_rate_positive"),
    )
    op.create_index("ix_fx_exchange_rate_from_currency", "fx_exchange_rate", ["from_currency"])
    op.create_index("ix_fx_exchange_rate_rate_date", "fx_exchange_rate", ["rate_date"])
    op.create_index("ix_fx_exchange_rate_source", "fx_exchange_rate", ["source"])
    op.create_index(
        "ix_fx_exchange_rate_pair_date",
        "fx_exchange_rate",
        ["from_currency", "to_currency", "rate_date"],
    )


def downgrade() -> None:
    op.drop_index("ix_fx_exchange_rate_pair_date", table_name="fx_exchange_rate")
    op.drop_index("ix_fx_exchange_rate_source", table_name="fx_exchange_rate")
    op.drop_index("ix_fx_exchange_rate_rate_date", table_name="fx_exchange_rate")
    op.drop_index("ix_fx_exchange_rate_from_currency", table_name="fx_exchange_rate")
    op.drop_table("fx_exchange_rate")
