"""001 – Licenses table.

Revision ID: 001
Revises:
Create Date: 2026-10-19

One row per issued license key. Keys are unique; the active flag and
deletion are the only mutations after creation.
"""

from alembic import op

# revision identifiers
revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.execute('''
        CREATE TABLE IF NOT EXISTS licenses (
            id SERIAL PRIMARY KEY,
            key TEXT NOT NULL UNIQUE,
            holder_name TEXT NOT NULL,
            email TEXT NOT NULL,
            is_active BOOLEAN NOT NULL DEFAULT TRUE,
            expires_at TIMESTAMPTZ,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    ''')

    # Admin listing is newest first
    op.execute('''
        CREATE INDEX IF NOT EXISTS idx_licenses_created_at
        ON licenses (created_at DESC)
    ''')


def downgrade() -> None:
    op.execute('DROP INDEX IF EXISTS idx_licenses_created_at')
    op.execute('DROP TABLE IF EXISTS licenses')
