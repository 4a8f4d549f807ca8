from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence
import random

from flagquiz.core.errors import InsufficientPoolError


# на каждый вопрос нужно 3 неправильных варианта
DISTRACTORS_PER_QUESTION = 3


@dataclass(frozen=True)
class CountryRef:
    id: int
    name: str
    continent_id: int


@dataclass
class QuestionDraft:
    question_number: int
    country: CountryRef
    options: List[Dict[str, Any]] = field(default_factory=list)


def choose_distractors(
    correct: CountryRef,
    pool: Sequence[CountryRef],
    *,
    need: int,
    rng: random.Random,
) -> List[CountryRef]:
    """Отвлекающие варианты: страны того же континента, кроме правильной.

    Если на континенте меньше `need` стран, вернём сколько есть.
    """
    candidates = [
        c for c in pool
        if c.continent_id == correct.continent_id and c.id != correct.id
    ]
    rng.shuffle(candidates)
    return candidates[:need]


def build_options(
    correct: CountryRef,
    distractors: List[CountryRef],
    rng: random.Random,
) -> List[Dict[str, Any]]:
    """Собираем варианты ответа (только id и name, без флага и без признака правильности)."""
    options = [{"id": c.id, "name": c.name} for c in [correct, *distractors]]
    rng.shuffle(options)
    return options


def generate_questions(
    pool: Sequence[CountryRef],
    count: int,
    rng: Optional[random.Random] = None,
) -> List[QuestionDraft]:
    """Выбираем `count` стран без повторов и строим для каждой вопрос.

    Проверка пула плоская (count + 3), а не на каждый вопрос: для маленького
    континента вариантов может оказаться меньше четырёх, это допустимо.
    """
    required = count + DISTRACTORS_PER_QUESTION
    if len(pool) < required:
        raise InsufficientPoolError(available=len(pool), required=required)

    rng = rng or random.Random()

    shuffled = list(pool)
    rng.shuffle(shuffled)
    selected = shuffled[:count]

    drafts: List[QuestionDraft] = []
    for number, country in enumerate(selected, start=1):
        distractors = choose_distractors(
            country, pool, need=DISTRACTORS_PER_QUESTION, rng=rng
        )
        drafts.append(
            QuestionDraft(
                question_number=number,
                country=country,
                options=build_options(country, distractors, rng),
            )
        )
    return drafts
