from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from flagquiz.core.config import settings
from flagquiz.core.db import get_session
from flagquiz.core.security import get_current_user, require_email_verified
from flagquiz.models.user import User
from flagquiz.schemas.common import PaginationMeta
from flagquiz.schemas.game import (
    AnswerIn,
    AnswerOut,
    GameCreate,
    GameCreated,
    GameDetail,
    GameList,
    GameListItem,
    GameOut,
    NextUnansweredOut,
    QuestionOut,
)
from flagquiz.services import games as game_service


router = APIRouter(prefix="/games", tags=["games"])


@router.post("", response_model=GameCreated, status_code=status.HTTP_201_CREATED)
async def create_game(
    body: GameCreate,
    user: User = Depends(require_email_verified),
    session: AsyncSession = Depends(get_session),
):
    custom = body.custom_options.model_dump(exclude_none=True) if body.custom_options else None

    game, first_question = await game_service.create_game(
        session,
        user_id=user.id,
        template_id=body.template_id,
        custom_options=custom,
    )

    return GameCreated(
        **GameOut.model_validate(game).model_dump(),
        current_question=first_question,
    )


@router.get("", response_model=GameList)
async def list_games(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_LIMIT, ge=1, le=settings.MAX_PAGE_LIMIT),
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    items, total = await game_service.list_user_games(
        session, user_id=user.id, offset=(page - 1) * limit, limit=limit
    )

    return GameList(
        games=[
            GameListItem(
                **GameOut.model_validate(item["game"]).model_dump(),
                template_name=item["template_name"],
                continent_name=item["continent_name"],
            )
            for item in items
        ],
        pagination=PaginationMeta.build(total, page, limit),
    )


@router.get("/{game_id}", response_model=GameDetail)
async def get_game(
    game_id: uuid.UUID,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    game, next_unanswered = await game_service.get_game(
        session, game_id=game_id, user_id=user.id
    )
    return GameDetail(
        **GameOut.model_validate(game).model_dump(),
        next_unanswered_question=next_unanswered,
    )


@router.get("/{game_id}/question/{number}", response_model=QuestionOut)
async def get_question(
    game_id: uuid.UUID,
    number: int = Path(..., ge=1),
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    return await game_service.get_question(
        session, game_id=game_id, number=number, user_id=user.id
    )


@router.get("/{game_id}/next-unanswered", response_model=NextUnansweredOut)
async def get_next_unanswered(
    game_id: uuid.UUID,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    return await game_service.get_next_unanswered_question(
        session, game_id=game_id, user_id=user.id
    )


@router.post("/{game_id}/questions/{question_id}/answer", response_model=AnswerOut)
async def submit_answer(
    game_id: uuid.UUID,
    question_id: uuid.UUID,
    body: AnswerIn,
    user: User = Depends(require_email_verified),
    session: AsyncSession = Depends(get_session),
):
    result = await game_service.submit_answer(
        session,
        game_id=game_id,
        question_id=question_id,
        answer_id=body.answer_id,
        time_taken=body.time_taken,
        user_id=user.id,
    )
    return AnswerOut.model_validate(result)


@router.post("/{game_id}/complete", response_model=GameOut)
async def complete_game(
    game_id: uuid.UUID,
    user: User = Depends(require_email_verified),
    session: AsyncSession = Depends(get_session),
):
    return await game_service.complete_game(session, game_id=game_id, user_id=user.id)


@router.put("/{game_id}/abandon", response_model=GameOut)
async def abandon_game(
    game_id: uuid.UUID,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    return await game_service.abandon_game(session, game_id=game_id, user_id=user.id)
