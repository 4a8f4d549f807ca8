from __future__ import annotations

import datetime as dt
from typing import Optional

from pydantic import BaseModel

from flagquiz.schemas.common import PaginationMeta


class LeaderboardEntry(BaseModel):
    rank: int
    user_id: int
    username: str
    score: int


class LeaderboardPage(BaseModel):
    period: str
    continent_id: Optional[int] = None
    date: Optional[dt.date] = None
    week_start: Optional[dt.date] = None
    year: Optional[int] = None
    month: Optional[int] = None
    leaderboard: list[LeaderboardEntry]
    pagination: PaginationMeta


class RankOut(BaseModel):
    rank: int
    score: int


class UserRanks(BaseModel):
    daily: Optional[RankOut] = None
    weekly: Optional[RankOut] = None
    monthly: Optional[RankOut] = None
    all_time: Optional[RankOut] = None


class UserRanksOut(BaseModel):
    user_id: int
    ranks: UserRanks
