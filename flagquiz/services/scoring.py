from __future__ import annotations

import math

from flagquiz.models.game import Difficulty


# базовые очки за верный ответ и максимальный бонус за скорость
POINTS: dict[Difficulty, dict[str, int]] = {
    Difficulty.EASY: {"correct": 10, "time_bonus_max": 5},
    Difficulty.MEDIUM: {"correct": 20, "time_bonus_max": 10},
    Difficulty.HARD: {"correct": 30, "time_bonus_max": 15},
}


def calculate_points(
    difficulty: Difficulty | str,
    time_limit: int,
    time_taken: int,
    is_correct: bool,
) -> int:
    """Очки за один ответ.

    Неверный ответ -> 0. Верный: база по сложности плюс бонус за время:
    быстрее половины лимита -> полный бонус, быстрее 3/4 -> половина (вниз), иначе 0.
    """
    if not is_correct:
        return 0

    tier = POINTS[Difficulty(difficulty)]
    points = tier["correct"]

    if time_limit <= 0:
        return points

    ratio = time_taken / time_limit
    if ratio < 0.5:
        points += tier["time_bonus_max"]
    elif ratio < 0.75:
        points += math.floor(tier["time_bonus_max"] * 0.5)

    return points
