"""Add profiles.gender

Revision ID: 8f2d4b6a1c47
Revises: 5c1e7a9d2b30
Create Date: 2026-10-18 15:30:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "8f2d4b6a1c47"
down_revision = "5c1e7a9d2b30"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.add_column("profiles", sa.Column("gender", sa.String(10), nullable=True))


def downgrade() -> None:
    op.drop_column("profiles", "gender")
