from __future__ import annotations

import enum
import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, UniqueConstraint, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.types import JSON

from flagquiz.models.base import Base


class GameStatus(str, enum.Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


class Difficulty(str, enum.Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class Game(Base):
    __tablename__ = "games"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    template_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("game_templates.id", ondelete="SET NULL"),
        nullable=True,
    )

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=GameStatus.IN_PROGRESS.value,
    )

    total_questions: Mapped[int] = mapped_column(Integer, nullable=False)
    # time_per_flag * total_questions, чисто информационно
    time_limit: Mapped[int] = mapped_column(Integer, nullable=False)
    difficulty: Mapped[str] = mapped_column(String(10), nullable=False)
    continent_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("continents.id"),
        nullable=True,
    )

    score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    correct_answers: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    time_spent: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # отношения
    questions: Mapped[List["GameQuestion"]] = relationship(
        back_populates="game",
        cascade="all, delete-orphan",
        order_by="GameQuestion.question_number",
        lazy="raise",
    )

    __table_args__ = (
        # не больше одной активной игры на пользователя
        Index(
            "uq_games_user_in_progress",
            "user_id",
            unique=True,
            postgresql_where=text("status = 'in_progress'"),
            sqlite_where=text("status = 'in_progress'"),
        ),
        Index("ix_games_user_started_at", "user_id", "started_at"),
    )


class GameQuestion(Base):
    __tablename__ = "game_questions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    game_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("games.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    question_number: Mapped[int] = mapped_column(Integer, nullable=False)

    # правильный ответ, наружу до ответа не отдаём
    country_id: Mapped[int] = mapped_column(ForeignKey("countries.id"), nullable=False)

    # варианты ответа: [{id, name}, ...]
    options: Mapped[list[dict]] = mapped_column(JSON, nullable=False)
    time_limit: Mapped[int] = mapped_column(Integer, nullable=False)

    user_answer_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    time_taken: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    points_earned: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    answered_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    game: Mapped["Game"] = relationship(back_populates="questions", lazy="raise")

    __table_args__ = (
        UniqueConstraint("game_id", "question_number", name="uq_game_question_number"),
    )
