"""Initial schema: users, courses, lessons, progress, quizzes, attempts, achievements.

The achievements table carries UNIQUE(user_id, type) so a rule can only
ever be granted once per user, even under concurrent evaluation.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-17
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_initial_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Users ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS users (
            id SERIAL PRIMARY KEY,
            email VARCHAR(320) UNIQUE NOT NULL,
            name VARCHAR(128),
            created_at TIMESTAMPTZ DEFAULT NOW(),
            total_points INTEGER NOT NULL DEFAULT 0 CHECK (total_points >= 0),
            level INTEGER NOT NULL DEFAULT 1 CHECK (level >= 1),
            current_streak INTEGER NOT NULL DEFAULT 0 CHECK (current_streak >= 0),
            longest_streak INTEGER NOT NULL DEFAULT 0 CHECK (longest_streak >= 0),
            last_activity_date TIMESTAMPTZ
        )
    """)

    # --- Courses & lessons ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS courses (
            id SERIAL PRIMARY KEY,
            title VARCHAR(256) NOT NULL
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS lessons (
            id SERIAL PRIMARY KEY,
            course_id INTEGER NOT NULL REFERENCES courses(id) ON DELETE CASCADE,
            title VARCHAR(256) NOT NULL,
            "order" INTEGER NOT NULL DEFAULT 0
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_lessons_course
        ON lessons(course_id, "order")
    """)

    # --- Progress ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS progress (
            id SERIAL PRIMARY KEY,
            user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            lesson_id INTEGER NOT NULL REFERENCES lessons(id) ON DELETE CASCADE,
            percent INTEGER NOT NULL DEFAULT 0 CHECK (percent BETWEEN 0 AND 100),
            completed_at TIMESTAMPTZ,
            updated_at TIMESTAMPTZ DEFAULT NOW(),
            CONSTRAINT progress_user_id_lesson_id_key UNIQUE (user_id, lesson_id)
        )
    """)

    # --- Quizzes ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS quizzes (
            id SERIAL PRIMARY KEY,
            title VARCHAR(256) NOT NULL
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS quiz_attempts (
            id SERIAL PRIMARY KEY,
            user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            quiz_id INTEGER NOT NULL REFERENCES quizzes(id) ON DELETE CASCADE,
            score INTEGER NOT NULL,
            total_points INTEGER NOT NULL,
            answers JSONB NOT NULL DEFAULT '{}',
            time_spent INTEGER,
            completed BOOLEAN NOT NULL DEFAULT false,
            created_at TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_quiz_attempts_user
        ON quiz_attempts(user_id, quiz_id, created_at DESC)
    """)

    # --- Achievements ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS achievements (
            id SERIAL PRIMARY KEY,
            user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            type VARCHAR(64) NOT NULL,
            title VARCHAR(128) NOT NULL,
            description TEXT NOT NULL,
            points INTEGER NOT NULL,
            icon VARCHAR(16),
            created_at TIMESTAMPTZ DEFAULT NOW(),
            CONSTRAINT achievements_user_id_type_key UNIQUE (user_id, type)
        )
    """)


def downgrade() -> None:
    for table in ["achievements", "quiz_attempts", "quizzes", "progress", "lessons", "courses", "users"]:
        op.execute(f"DROP TABLE IF EXISTS {table} CASCADE")  # noqa: S608
