"""Add Telegram link codes and soft deletion to users

Revision ID: 0002_account_management
Revises: 0001_initial_schema
Create Date: 2026-10-17
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0002_account_management"
down_revision = "0001_initial_schema"
branch_labels = None
depends_on = None


def upgrade() -> None:
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    existing = [col["name"] for col in inspector.get_columns("users")]
    if "tg_link_code" not in existing:
        op.add_column("users", sa.Column("tg_link_code", sa.String(length=16), nullable=True))
        op.create_index("ix_users_tg_link_code", "users", ["tg_link_code"], unique=True)
    if "deleted_at" not in existing:
        op.add_column("users", sa.Column("deleted_at", sa.DateTime(), nullable=True))


def downgrade() -> None:
    op.drop_index("ix_users_tg_link_code", table_name="users")
    with op.batch_alter_table("users") as batch_op:
        batch_op.drop_column("deleted_at")
        batch_op.drop_column("tg_link_code")
