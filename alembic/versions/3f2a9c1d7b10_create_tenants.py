"""create tenants registry

Revision ID: 3f2a9c1d7b10
Revises:
Create Date: 2026-10-18 09:12:40.118204

"""

from alembic import op
import sqlalchemy as sa

revision = "3f2a9c1d7b10"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Shared registry; per-tenant tables live in each tenant's own schema.
    op.create_table(
        "tenants",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("code", sa.String(length=32), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("schema_name", sa.String(length=63), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("code"),
        sa.UniqueConstraint("schema_name"),
    )


def downgrade() -> None:
    op.drop_table("tenants")
