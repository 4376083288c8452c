"""initial news and quiz schema

Revision ID: 3f2c9d1e7a40
Revises:
Create Date: 2025-11-03
"""

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "3f2c9d1e7a40"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "ai_news",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("platform", sa.String(length=50), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("url", sa.String(length=1000), nullable=False),
        sa.Column("date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("category", sa.String(length=20), nullable=True),
        sa.Column("score", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_ai_news_url", "ai_news", ["url"], unique=True)
    op.create_index("ix_ai_news_date", "ai_news", ["date"])
    op.create_index("ix_ai_news_score", "ai_news", ["score"])
    op.create_index("ix_ai_news_platform", "ai_news", ["platform"])

    op.create_table(
        "scrape_logs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("source", sa.String(length=100), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_scrape_logs_source", "scrape_logs", ["source"])

    op.create_table(
        "weekly_scripts",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("llm", sa.String(length=50), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("script_text", sa.Text(), nullable=True),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("stories_used", sa.JSON(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_weekly_scripts_llm", "weekly_scripts", ["llm"])
    op.create_index("ix_weekly_scripts_created_at", "weekly_scripts", ["created_at"])

    op.create_table(
        "quizzes",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )

    op.create_table(
        "questions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "quiz_id", sa.Integer(), sa.ForeignKey("quizzes.id"), nullable=False
        ),
        sa.Column("question_text", sa.Text(), nullable=False),
        sa.Column("choices", sa.JSON(), nullable=False),
        sa.Column("correct_choice", sa.Integer(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_questions_quiz_id", "questions", ["quiz_id"])

    op.create_table(
        "quiz_progress",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "quiz_id", sa.Integer(), sa.ForeignKey("quizzes.id"), nullable=False
        ),
        sa.Column("admission_number", sa.String(length=100), nullable=False),
        sa.Column("student_name", sa.String(length=255), nullable=False),
        sa.Column("answers", sa.JSON(), nullable=False),
        sa.Column("current_question", sa.Integer(), nullable=False),
        sa.Column(
            "last_saved",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint(
            "quiz_id", "admission_number", name="uq_quiz_progress_quiz_admission"
        ),
    )

    op.create_table(
        "submissions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "quiz_id", sa.Integer(), sa.ForeignKey("quizzes.id"), nullable=False
        ),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("admission_number", sa.String(length=100), nullable=False),
        sa.Column("answers", sa.JSON(), nullable=False),
        sa.Column(
            "submitted_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        # One submission per student per quiz
        sa.UniqueConstraint(
            "quiz_id", "admission_number", name="uq_submissions_quiz_admission"
        ),
    )
    op.create_index("ix_submissions_submitted_at", "submissions", ["submitted_at"])

    op.create_table(
        "assignments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )

    op.create_table(
        "assignment_submissions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "assignment_id",
            sa.Integer(),
            sa.ForeignKey("assignments.id"),
            nullable=False,
        ),
        sa.Column("student_name", sa.String(length=255), nullable=False),
        sa.Column("admission_number", sa.String(length=100), nullable=False),
        sa.Column("document_url", sa.String(length=1000), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )
    op.create_index(
        "ix_assignment_submissions_assignment_id",
        "assignment_submissions",
        ["assignment_id"],
    )


def downgrade() -> None:
    op.drop_table("assignment_submissions")
    op.drop_table("assignments")
    op.drop_table("submissions")
    op.drop_table("quiz_progress")
    op.drop_table("questions")
    op.drop_table("quizzes")
    op.drop_table("weekly_scripts")
    op.drop_table("scrape_logs")
    op.drop_table("ai_news")
