"""Karma ledger tables.

Creates users, karma_events, suggestions, badges and user_badges.

Revision ID: 001_karma_tables
Revises:
Create Date: 2026-10-17
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_karma_tables"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Users ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS users (
            id BIGSERIAL PRIMARY KEY,
            username VARCHAR(64) UNIQUE NOT NULL,
            email VARCHAR(320) UNIQUE NOT NULL,
            password_hash VARCHAR(256) NOT NULL DEFAULT '',
            joined_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)

    # --- Karma Events ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS karma_events (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            action VARCHAR(500) NOT NULL,
            reflection TEXT,
            intensity INTEGER,
            feedback TEXT,
            feedback_generated BOOLEAN NOT NULL DEFAULT false,
            feedback_attempts INTEGER NOT NULL DEFAULT 0,
            feedback_failed BOOLEAN NOT NULL DEFAULT false,
            occurred_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT karma_events_intensity_range
                CHECK (intensity IS NULL OR (intensity >= -1 AND intensity <= 10))
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_karma_events_user_occurred
        ON karma_events(user_id, occurred_at)
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_karma_events_occurred
        ON karma_events(occurred_at)
    """)
    # Partial index for the stale-feedback sweep
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_karma_events_pending
        ON karma_events(created_at)
        WHERE feedback_generated = false AND feedback_failed = false
    """)

    # --- Suggestions ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS suggestions (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            suggestion_text TEXT NOT NULL,
            week INTEGER NOT NULL DEFAULT 1,
            used BOOLEAN NOT NULL DEFAULT false,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_suggestions_user
        ON suggestions(user_id)
    """)

    # --- Badges ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS badges (
            id SERIAL PRIMARY KEY,
            code VARCHAR(64) UNIQUE NOT NULL,
            name VARCHAR(128) NOT NULL,
            description TEXT NOT NULL,
            icon VARCHAR(256) NOT NULL DEFAULT '',
            sort_order INTEGER NOT NULL DEFAULT 0,
            is_active BOOLEAN NOT NULL DEFAULT true
        )
    """)

    # --- User Badges ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_badges (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            badge_id INTEGER NOT NULL REFERENCES badges(id),
            awarded_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT user_badges_user_id_badge_id_key UNIQUE (user_id, badge_id)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_user_badges_user
        ON user_badges(user_id)
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS user_badges CASCADE")
    op.execute("DROP TABLE IF EXISTS badges CASCADE")
    op.execute("DROP TABLE IF EXISTS suggestions CASCADE")
    op.execute("DROP TABLE IF EXISTS karma_events CASCADE")
    op.execute("DROP TABLE IF EXISTS users CASCADE")
