from __future__ import annotations

from alembic import op

revision = "0001_envelopes"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.execute(
        """
        CREATE TABLE IF NOT EXISTS envelopes (
            id SERIAL PRIMARY KEY,
            title TEXT NOT NULL,
            budget INTEGER NOT NULL,
            CONSTRAINT ck_envelopes_budget_non_negative CHECK (budget >= 0)
        );
        """
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS envelopes;")
