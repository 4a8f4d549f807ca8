"""flag quiz schema

Revision ID: 3b1f9a7c2d10
Revises:
Create Date: 2026-10-17 12:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3b1f9a7c2d10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Каталог (наполняется админкой/скриптами импорта)
    op.create_table(
        "continents",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("code", sa.String(2), nullable=False, unique=True),
        sa.Column("name", sa.String(100), nullable=False),
    )

    op.create_table(
        "countries",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("code", sa.String(3), nullable=True),
        sa.Column("continent_id", sa.Integer(), sa.ForeignKey("continents.id"), nullable=False),
        sa.Column("flag_url", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
    )
    op.create_index("ix_countries_continent_id", "countries", ["continent_id"])

    op.create_table(
        "game_templates",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("number_of_flags", sa.Integer(), nullable=False),
        sa.Column("time_per_flag", sa.Integer(), nullable=False),
        sa.Column("difficulty", sa.String(10), nullable=False, server_default="medium"),
        sa.Column("continent_id", sa.Integer(), sa.ForeignKey("continents.id"), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
    )

    # Пользователи (учётки ведёт сервис авторизации, здесь только итоги)
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("username", sa.String(50), nullable=False, unique=True),
        sa.Column("email", sa.String(100), nullable=True),
        sa.Column("is_email_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("total_games_played", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_correct_answers", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_score", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
    )

    # Игры
    op.create_table(
        "games",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "template_id",
            sa.Integer(),
            sa.ForeignKey("game_templates.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("status", sa.String(20), nullable=False, server_default="in_progress"),
        sa.Column("total_questions", sa.Integer(), nullable=False),
        sa.Column("time_limit", sa.Integer(), nullable=False),
        sa.Column("difficulty", sa.String(10), nullable=False),
        sa.Column("continent_id", sa.Integer(), sa.ForeignKey("continents.id"), nullable=True),
        sa.Column("score", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("correct_answers", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("time_spent", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("total_questions >= 1", name="ck_games_total_questions"),
        sa.CheckConstraint("score >= 0", name="ck_games_score"),
    )
    op.create_index("ix_games_user_id", "games", ["user_id"])
    op.create_index("ix_games_user_started_at", "games", ["user_id", "started_at"])
    # не больше одной активной игры на пользователя
    op.create_index(
        "uq_games_user_in_progress",
        "games",
        ["user_id"],
        unique=True,
        postgresql_where=sa.text("status = 'in_progress'"),
    )

    # Вопросы
    op.create_table(
        "game_questions",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "game_id",
            sa.Uuid(),
            sa.ForeignKey("games.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("question_number", sa.Integer(), nullable=False),
        sa.Column("country_id", sa.Integer(), sa.ForeignKey("countries.id"), nullable=False),
        sa.Column(
            "options",
            sa.JSON(),
            nullable=False,
            comment="варианты ответа [{id, name}]",
        ),
        sa.Column("time_limit", sa.Integer(), nullable=False),
        sa.Column("user_answer_id", sa.Integer(), nullable=True),
        sa.Column("time_taken", sa.Integer(), nullable=True),
        sa.Column("points_earned", sa.Integer(), nullable=True),
        sa.Column("answered_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("game_id", "question_number", name="uq_game_question_number"),
    )
    op.create_index("ix_game_questions_game_id", "game_questions", ["game_id"])

    # Статистика по (континент, сложность); continent_scope = 0 -> глобально
    op.create_table(
        "user_statistics",
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("continent_scope", sa.Integer(), primary_key=True),
        sa.Column("difficulty", sa.String(10), primary_key=True),
        sa.Column("games_played", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("correct_answers", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_score", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=True,
        ),
    )

    # Лидерборды
    op.create_table(
        "leaderboard_daily",
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("date", sa.Date(), primary_key=True),
        sa.Column("continent_scope", sa.Integer(), primary_key=True),
        sa.Column("score", sa.Integer(), nullable=False, server_default="0"),
    )
    op.create_index(
        "ix_leaderboard_daily_bucket_score",
        "leaderboard_daily",
        ["date", "continent_scope", "score"],
    )

    op.create_table(
        "leaderboard_weekly",
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("week_start", sa.Date(), primary_key=True),
        sa.Column("continent_scope", sa.Integer(), primary_key=True),
        sa.Column("score", sa.Integer(), nullable=False, server_default="0"),
    )
    op.create_index(
        "ix_leaderboard_weekly_bucket_score",
        "leaderboard_weekly",
        ["week_start", "continent_scope", "score"],
    )

    op.create_table(
        "leaderboard_monthly",
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("year", sa.Integer(), primary_key=True),
        sa.Column("month", sa.Integer(), primary_key=True),
        sa.Column("continent_scope", sa.Integer(), primary_key=True),
        sa.Column("score", sa.Integer(), nullable=False, server_default="0"),
    )
    op.create_index(
        "ix_leaderboard_monthly_bucket_score",
        "leaderboard_monthly",
        ["year", "month", "continent_scope", "score"],
    )

    op.create_table(
        "leaderboard_alltime",
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("continent_scope", sa.Integer(), primary_key=True),
        sa.Column("score", sa.Integer(), nullable=False, server_default="0"),
    )
    op.create_index(
        "ix_leaderboard_alltime_bucket_score",
        "leaderboard_alltime",
        ["continent_scope", "score"],
    )


def downgrade() -> None:
    op.drop_table("leaderboard_alltime")
    op.drop_table("leaderboard_monthly")
    op.drop_table("leaderboard_weekly")
    op.drop_table("leaderboard_daily")
    op.drop_table("user_statistics")
    op.drop_index("ix_game_questions_game_id", table_name="game_questions")
    op.drop_table("game_questions")
    op.drop_index("uq_games_user_in_progress", table_name="games")
    op.drop_index("ix_games_user_started_at", table_name="games")
    op.drop_index("ix_games_user_id", table_name="games")
    op.drop_table("games")
    op.drop_table("users")
    op.drop_table("game_templates")
    op.drop_index("ix_countries_continent_id", table_name="countries")
    op.drop_table("countries")
    op.drop_table("continents")
