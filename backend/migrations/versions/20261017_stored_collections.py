"""Create stored_collections table for ledger snapshots

Revision ID: 20261017_stored_collections
Revises:
Create Date: 2026-10-17 09:00:00.000000
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261017_stored_collections"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "stored_collections",
        sa.Column("key", sa.String(length=64), primary_key=True),
        sa.Column("payload", sa.Text(), nullable=False),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default="1"),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )


def downgrade():
    op.drop_table("stored_collections")
