from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from flagquiz.models.game import Difficulty
from flagquiz.schemas.common import PaginationMeta


# верхняя граница Integer-колонок в postgres
INT4_MAX = 2**31 - 1


class CustomOptions(BaseModel):
    # всё опционально: не заданное берётся из шаблона или дефолтов
    number_of_flags: Optional[int] = Field(None, ge=1, le=50)
    time_per_flag: Optional[int] = Field(None, ge=10, le=60)
    difficulty: Optional[Difficulty] = None
    continent_id: Optional[int] = Field(None, gt=0)


class GameCreate(BaseModel):
    template_id: Optional[int] = Field(None, gt=0)
    custom_options: Optional[CustomOptions] = None


class OptionOut(BaseModel):
    id: int
    name: str


class QuestionOut(BaseModel):
    id: uuid.UUID
    question_number: int
    flag_url: Optional[str] = None
    options: list[OptionOut]
    time_limit: int
    is_answered: bool = False


class QuestionRef(BaseModel):
    question_id: uuid.UUID
    question_number: int


class GameOut(BaseModel):
    id: uuid.UUID
    user_id: int
    template_id: Optional[int]
    status: str
    total_questions: int
    time_limit: int
    difficulty: str
    continent_id: Optional[int]
    score: int
    correct_answers: int
    time_spent: int
    started_at: datetime
    completed_at: Optional[datetime]

    class Config:
        from_attributes = True


class GameCreated(GameOut):
    current_question: Optional[QuestionOut]


class GameDetail(GameOut):
    next_unanswered_question: Optional[QuestionRef]


class GameListItem(GameOut):
    template_name: Optional[str] = None
    continent_name: Optional[str] = None


class GameList(BaseModel):
    games: list[GameListItem]
    pagination: PaginationMeta


class NextUnansweredOut(BaseModel):
    has_unanswered: bool
    question: Optional[QuestionOut] = None
    message: Optional[str] = None


class AnswerIn(BaseModel):
    answer_id: int = Field(..., gt=0, le=INT4_MAX)
    time_taken: int = Field(..., ge=0, le=INT4_MAX)


class AnswerOut(BaseModel):
    is_correct: bool
    correct_answer_id: int
    points_earned: int
    total_score: int

    class Config:
        from_attributes = True
