from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from flagquiz.core.config import settings
from flagquiz.core.db import get_session
from flagquiz.schemas.common import PaginationMeta
from flagquiz.schemas.leaderboard import LeaderboardPage, UserRanksOut
from flagquiz.services.leaderboard import Period, get_leaderboard, get_user_ranks
from flagquiz.services.scopes import ContinentScope


router = APIRouter(prefix="/leaderboard", tags=["leaderboard"])


class PageParams:
    def __init__(
        self,
        page: int = Query(1, ge=1),
        limit: int = Query(settings.DEFAULT_PAGE_LIMIT, ge=1, le=settings.MAX_PAGE_LIMIT),
        continent_id: Optional[int] = Query(None, gt=0),
    ):
        self.page = page
        self.limit = limit
        self.scope = ContinentScope.for_continent(continent_id)


def _today() -> date:
    return datetime.now(timezone.utc).date()


async def _page(session: AsyncSession, period: Period, params: PageParams) -> LeaderboardPage:
    result = await get_leaderboard(
        session, period, params.scope, page=params.page, limit=params.limit
    )
    return LeaderboardPage(
        period=period.kind.value,
        continent_id=params.scope.continent_id,
        leaderboard=result["entries"],
        pagination=PaginationMeta.build(result["total"], params.page, params.limit),
        **period.describe(),
    )


@router.get("/daily", response_model=LeaderboardPage, response_model_exclude_none=True)
async def daily_leaderboard(
    day: Optional[date] = Query(None, alias="date"),
    params: PageParams = Depends(),
    session: AsyncSession = Depends(get_session),
):
    return await _page(session, Period.daily(day or _today()), params)


@router.get("/weekly", response_model=LeaderboardPage, response_model_exclude_none=True)
async def weekly_leaderboard(
    week_start: Optional[date] = Query(None),
    params: PageParams = Depends(),
    session: AsyncSession = Depends(get_session),
):
    return await _page(session, Period.weekly(week_start or _today()), params)


@router.get("/monthly", response_model=LeaderboardPage, response_model_exclude_none=True)
async def monthly_leaderboard(
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=2000, le=9999),
    params: PageParams = Depends(),
    session: AsyncSession = Depends(get_session),
):
    today = _today()
    return await _page(session, Period.monthly(year or today.year, month or today.month), params)


@router.get("/all-time", response_model=LeaderboardPage, response_model_exclude_none=True)
async def all_time_leaderboard(
    params: PageParams = Depends(),
    session: AsyncSession = Depends(get_session),
):
    return await _page(session, Period.all_time(), params)


@router.get("/user/{user_id}", response_model=UserRanksOut)
async def user_ranks(
    user_id: int,
    session: AsyncSession = Depends(get_session),
):
    ranks = await get_user_ranks(session, user_id)
    return UserRanksOut(user_id=user_id, ranks=ranks)
