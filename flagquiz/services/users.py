from __future__ import annotations

from typing import Any, Dict

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from flagquiz.core.cache import cache, user_stats_key
from flagquiz.core.config import settings
from flagquiz.core.errors import NotFoundError
from flagquiz.models.catalog import Continent
from flagquiz.models.stats import UserStatistic
from flagquiz.models.user import User
from flagquiz.services.scopes import ContinentScope


async def get_user_statistics(session: AsyncSession, user_id: int) -> Dict[str, Any]:
    """Итоги пользователя плюс разбивка по (континент, сложность)."""
    cache_key = user_stats_key(user_id)
    cached = await cache.get(cache_key)
    if cached is not None:
        return cached

    user = await session.scalar(select(User).where(User.id == user_id))
    if not user:
        raise NotFoundError("User not found")

    rows = (
        await session.execute(
            select(UserStatistic, Continent.name)
            .outerjoin(Continent, Continent.id == UserStatistic.continent_scope)
            .where(UserStatistic.user_id == user_id)
            .order_by(UserStatistic.continent_scope, UserStatistic.difficulty)
        )
    ).all()

    categories = []
    for stat, continent_name in rows:
        scope = ContinentScope.from_storage(stat.continent_scope)
        categories.append(
            {
                "continent_id": scope.continent_id,
                "continent_name": continent_name,
                "difficulty": stat.difficulty,
                "games_played": stat.games_played,
                "correct_answers": stat.correct_answers,
                "total_score": stat.total_score,
            }
        )

    result = {
        "user_id": user.id,
        "username": user.username,
        "total_games_played": user.total_games_played,
        "total_correct_answers": user.total_correct_answers,
        "total_score": user.total_score,
        "categories": categories,
    }
    await cache.set(cache_key, result, settings.CACHE_TTL_USER_STATS)
    return result
