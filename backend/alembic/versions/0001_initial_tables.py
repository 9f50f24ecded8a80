"""Create secrets table

Revision ID: 0001
Revises:
Create Date: 2026-01-10

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "secrets",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("public_id", sa.String(36), nullable=False),
        sa.Column("encrypted_content", sa.LargeBinary, nullable=False),
        sa.Column("expires_at", sa.DateTime, nullable=True),
        sa.Column("created_at", sa.DateTime, nullable=False),
    )

    # Unique lookup by public id; expiry index keeps cleanup scans cheap
    op.create_index("ix_secrets_public_id", "secrets", ["public_id"], unique=True)
    op.create_index("ix_secrets_expires_at", "secrets", ["expires_at"])


def downgrade() -> None:
    op.drop_index("ix_secrets_expires_at", table_name="secrets")
    op.drop_index("ix_secrets_public_id", table_name="secrets")
    op.drop_table("secrets")
