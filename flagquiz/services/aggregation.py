from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Iterable, List

from sqlalchemy import func, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from flagquiz.models.game import Game
from flagquiz.models.stats import (
    LeaderboardAllTime,
    LeaderboardDaily,
    LeaderboardMonthly,
    LeaderboardWeekly,
    UserStatistic,
)
from flagquiz.models.user import User
from flagquiz.services.scopes import ContinentScope, week_start


logger = logging.getLogger(__name__)


def _insert_for(session: AsyncSession):
    # ON CONFLICT есть и в postgres, и в sqlite, но конструкторы разные
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        return pg_insert
    if dialect == "sqlite":
        return sqlite_insert
    raise RuntimeError(f"Upsert is not supported for dialect {dialect!r}")


def leaderboard_scopes(game: Game) -> List[ContinentScope]:
    """Глобальный зачёт всегда, плюс континентальный, если игра была по континенту."""
    scopes = [ContinentScope.global_()]
    if game.continent_id is not None:
        scopes.append(ContinentScope.for_continent(game.continent_id))
    return scopes


async def _update_user_totals(session: AsyncSession, game: Game) -> None:
    await session.execute(
        update(User)
        .where(User.id == game.user_id)
        .values(
            total_games_played=User.total_games_played + 1,
            total_correct_answers=User.total_correct_answers + game.correct_answers,
            total_score=User.total_score + game.score,
        )
    )


async def _upsert_user_statistics(session: AsyncSession, game: Game) -> None:
    insert = _insert_for(session)
    scope = ContinentScope.for_continent(game.continent_id)
    stmt = insert(UserStatistic).values(
        user_id=game.user_id,
        continent_scope=scope.to_storage(),
        difficulty=game.difficulty,
        games_played=1,
        correct_answers=game.correct_answers,
        total_score=game.score,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["user_id", "continent_scope", "difficulty"],
        set_={
            "games_played": UserStatistic.games_played + 1,
            "correct_answers": UserStatistic.correct_answers + stmt.excluded.correct_answers,
            "total_score": UserStatistic.total_score + stmt.excluded.total_score,
            # onupdate на upsert не срабатывает
            "updated_at": func.now(),
        },
    )
    await session.execute(stmt)


async def _add_score(session: AsyncSession, model, keys: dict, score: int) -> None:
    insert = _insert_for(session)
    stmt = insert(model).values(**keys, score=score)
    stmt = stmt.on_conflict_do_update(
        index_elements=list(keys),
        set_={"score": model.score + stmt.excluded.score},
    )
    await session.execute(stmt)


async def _upsert_leaderboards(
    session: AsyncSession,
    user_id: int,
    score: int,
    scopes: Iterable[ContinentScope],
    today: date,
) -> None:
    # очки суммируются за период, а не берётся максимум
    for scope in scopes:
        bucket = scope.to_storage()
        await _add_score(
            session,
            LeaderboardDaily,
            {"user_id": user_id, "date": today, "continent_scope": bucket},
            score,
        )
        await _add_score(
            session,
            LeaderboardWeekly,
            {"user_id": user_id, "week_start": week_start(today), "continent_scope": bucket},
            score,
        )
        await _add_score(
            session,
            LeaderboardMonthly,
            {"user_id": user_id, "year": today.year, "month": today.month, "continent_scope": bucket},
            score,
        )
        await _add_score(
            session,
            LeaderboardAllTime,
            {"user_id": user_id, "continent_scope": bucket},
            score,
        )


async def apply_completion(session: AsyncSession, game: Game, completed_at: datetime) -> None:
    """Раскатывает результат завершённой игры по всем агрегатам.

    Ничего не коммитит: вызывается внутри транзакции завершения игры, и при
    любой ошибке откатывается вместе со сменой статуса.
    """
    await _update_user_totals(session, game)
    await _upsert_user_statistics(session, game)
    await _upsert_leaderboards(
        session,
        game.user_id,
        game.score,
        leaderboard_scopes(game),
        completed_at.date(),
    )
    logger.debug(
        "Aggregates updated for game %s: user=%s score=%s correct=%s",
        game.id, game.user_id, game.score, game.correct_answers,
    )
