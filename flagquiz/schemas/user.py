from typing import Optional

from pydantic import BaseModel


class CategoryStatistic(BaseModel):
    continent_id: Optional[int]  # None = глобальные игры
    continent_name: Optional[str] = None
    difficulty: str
    games_played: int
    correct_answers: int
    total_score: int


class UserStatistics(BaseModel):
    user_id: int
    username: str
    total_games_played: int
    total_correct_answers: int
    total_score: int
    categories: list[CategoryStatistic]
