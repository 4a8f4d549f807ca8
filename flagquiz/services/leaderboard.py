from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from flagquiz.core.cache import LEADERBOARD_PREFIX, cache, user_ranks_key
from flagquiz.core.config import settings
from flagquiz.core.errors import NotFoundError
from flagquiz.models.stats import (
    LeaderboardAllTime,
    LeaderboardDaily,
    LeaderboardMonthly,
    LeaderboardWeekly,
)
from flagquiz.models.user import User
from flagquiz.services.scopes import ContinentScope, week_start


logger = logging.getLogger(__name__)


class PeriodKind(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    ALL_TIME = "all_time"


_MODELS = {
    PeriodKind.DAILY: LeaderboardDaily,
    PeriodKind.WEEKLY: LeaderboardWeekly,
    PeriodKind.MONTHLY: LeaderboardMonthly,
    PeriodKind.ALL_TIME: LeaderboardAllTime,
}


@dataclass(frozen=True)
class Period:
    """Конкретная корзина лидерборда: вид периода плюс его ключ."""

    kind: PeriodKind
    day: Optional[date] = None  # daily: дата, weekly: понедельник
    year: Optional[int] = None
    month: Optional[int] = None

    @classmethod
    def daily(cls, day: date) -> "Period":
        return cls(PeriodKind.DAILY, day=day)

    @classmethod
    def weekly(cls, day: date) -> "Period":
        # любую дату приводим к понедельнику её недели
        return cls(PeriodKind.WEEKLY, day=week_start(day))

    @classmethod
    def monthly(cls, year: int, month: int) -> "Period":
        return cls(PeriodKind.MONTHLY, year=year, month=month)

    @classmethod
    def all_time(cls) -> "Period":
        return cls(PeriodKind.ALL_TIME)

    @classmethod
    def current(cls, kind: PeriodKind, today: Optional[date] = None) -> "Period":
        today = today or datetime.now(timezone.utc).date()
        if kind is PeriodKind.DAILY:
            return cls.daily(today)
        if kind is PeriodKind.WEEKLY:
            return cls.weekly(today)
        if kind is PeriodKind.MONTHLY:
            return cls.monthly(today.year, today.month)
        return cls.all_time()

    @property
    def model(self):
        return _MODELS[self.kind]

    def conditions(self) -> list:
        model = self.model
        if self.kind is PeriodKind.DAILY:
            return [model.date == self.day]
        if self.kind is PeriodKind.WEEKLY:
            return [model.week_start == self.day]
        if self.kind is PeriodKind.MONTHLY:
            return [model.year == self.year, model.month == self.month]
        return []

    def cache_part(self) -> str:
        if self.kind in (PeriodKind.DAILY, PeriodKind.WEEKLY):
            return self.day.isoformat()
        if self.kind is PeriodKind.MONTHLY:
            return f"{self.year:04d}-{self.month:02d}"
        return "all"

    def describe(self) -> Dict[str, Any]:
        if self.kind is PeriodKind.DAILY:
            return {"date": self.day.isoformat()}
        if self.kind is PeriodKind.WEEKLY:
            return {"week_start": self.day.isoformat()}
        if self.kind is PeriodKind.MONTHLY:
            return {"year": self.year, "month": self.month}
        return {}


def leaderboard_cache_key(period: Period, scope: ContinentScope, page: int, limit: int) -> str:
    return f"{LEADERBOARD_PREFIX}{period.kind.value}:{period.cache_part()}:{scope.cache_part()}:{page}:{limit}"


def _bucket_filter(period: Period, scope: ContinentScope) -> list:
    return [*period.conditions(), period.model.continent_scope == scope.to_storage()]


async def get_leaderboard(
    session: AsyncSession,
    period: Period,
    scope: ContinentScope,
    *,
    page: int = 1,
    limit: int = 20,
) -> Dict[str, Any]:
    """
    Страница лидерборда: {"entries": [...], "total": N}.

    Порядок: score desc, при равенстве user_id asc. Ранг = позиция строки в этом
    порядке, т.е. одинаковые очки получают разные ранги.
    """
    cache_key = leaderboard_cache_key(period, scope, page, limit)
    cached = await cache.get(cache_key)
    if cached is not None:
        logger.debug("Leaderboard cache hit: %s", cache_key)
        return cached

    model = period.model
    where = _bucket_filter(period, scope)
    offset = (page - 1) * limit

    # count и выборка строятся независимо
    total = await session.scalar(
        select(func.count()).select_from(model).where(*where)
    )

    rows = (
        await session.execute(
            select(model.user_id, User.username, model.score)
            .join(User, User.id == model.user_id)
            .where(*where)
            .order_by(model.score.desc(), model.user_id.asc())
            .offset(offset)
            .limit(limit)
        )
    ).all()

    entries: List[Dict[str, Any]] = [
        {
            "rank": offset + idx + 1,
            "user_id": row.user_id,
            "username": row.username,
            "score": row.score,
        }
        for idx, row in enumerate(rows)
    ]

    result = {"entries": entries, "total": total or 0}
    await cache.set(cache_key, result, settings.CACHE_TTL_LEADERBOARD)
    return result


async def _rank_in_bucket(
    session: AsyncSession,
    period: Period,
    user_id: int,
) -> Optional[Dict[str, int]]:
    model = period.model
    ranked = (
        select(
            model.user_id,
            model.score,
            func.row_number()
            .over(order_by=(model.score.desc(), model.user_id.asc()))
            .label("rank"),
        )
        .where(*_bucket_filter(period, ContinentScope.global_()))
        .subquery()
    )

    row = (
        await session.execute(
            select(ranked.c.rank, ranked.c.score).where(ranked.c.user_id == user_id)
        )
    ).first()
    if row is None:
        return None
    return {"rank": row.rank, "score": row.score}


async def get_user_ranks(
    session: AsyncSession,
    user_id: int,
    *,
    today: Optional[date] = None,
) -> Dict[str, Optional[Dict[str, int]]]:
    """Место пользователя в глобальных зачётах текущих периодов (None, если он там не играл)."""
    cache_key = user_ranks_key(user_id)
    cached = await cache.get(cache_key)
    if cached is not None:
        return cached

    exists = await session.scalar(select(User.id).where(User.id == user_id))
    if exists is None:
        raise NotFoundError("User not found")

    ranks = {}
    for kind in PeriodKind:
        ranks[kind.value] = await _rank_in_bucket(
            session, Period.current(kind, today), user_id
        )

    await cache.set(cache_key, ranks, settings.CACHE_TTL_LEADERBOARD)
    return ranks
