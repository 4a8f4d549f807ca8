from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple
import logging
import random
import uuid

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from flagquiz.core.cache import cache
from flagquiz.core.errors import AlreadyAnsweredError, GameInProgressError, NotFoundError
from flagquiz.models.catalog import Continent, Country, GameTemplate
from flagquiz.models.game import Game, GameQuestion, GameStatus
from flagquiz.services import aggregation
from flagquiz.services.countries import list_active_countries
from flagquiz.services.question_builder import generate_questions
from flagquiz.services.scoring import calculate_points
from flagquiz.services.templates import resolve_game_config


logger = logging.getLogger(__name__)


@dataclass
class AnswerResult:
    is_correct: bool
    correct_answer_id: int
    points_earned: int
    total_score: int


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def active_game_summary(game: Game) -> Dict[str, Any]:
    # то, что клиент показывает в диалоге "у вас уже есть игра"
    return {
        "id": str(game.id),
        "status": game.status,
        "score": game.score,
        "total_questions": game.total_questions,
        "started_at": game.started_at.isoformat() if game.started_at else None,
    }


def _question_view(question: GameQuestion, flag_url: Optional[str]) -> Dict[str, Any]:
    # country_id (правильный ответ) до ответа наружу не отдаём
    return {
        "id": question.id,
        "question_number": question.question_number,
        "flag_url": flag_url,
        "options": question.options,
        "time_limit": question.time_limit,
        "is_answered": question.user_answer_id is not None,
    }


def _active_game_stmt(user_id: int):
    return (
        select(Game)
        .where(Game.user_id == user_id, Game.status == GameStatus.IN_PROGRESS.value)
        .limit(1)
    )


async def _find_active_game(session: AsyncSession, user_id: int) -> Optional[Game]:
    return await session.scalar(_active_game_stmt(user_id))


async def _get_owned_game(
    session: AsyncSession,
    game_id: uuid.UUID,
    user_id: int,
    *,
    in_progress: bool = False,
) -> Game:
    """Чужая игра и несуществующая неотличимы: в обоих случаях 404."""
    stmt = select(Game).where(Game.id == game_id, Game.user_id == user_id)
    if in_progress:
        stmt = stmt.where(Game.status == GameStatus.IN_PROGRESS.value)

    game = await session.scalar(stmt)
    if not game:
        if in_progress:
            raise NotFoundError("Game not found or not in progress")
        raise NotFoundError("Game not found")
    return game


async def _load_question_view(
    session: AsyncSession,
    game_id: uuid.UUID,
    *,
    number: Optional[int] = None,
    unanswered_only: bool = False,
) -> Optional[Dict[str, Any]]:
    stmt = (
        select(GameQuestion, Country.flag_url)
        .join(Country, Country.id == GameQuestion.country_id)
        .where(GameQuestion.game_id == game_id)
    )
    if number is not None:
        stmt = stmt.where(GameQuestion.question_number == number)
    if unanswered_only:
        stmt = stmt.where(GameQuestion.user_answer_id.is_(None))

    row = (
        await session.execute(stmt.order_by(GameQuestion.question_number).limit(1))
    ).first()
    if row is None:
        return None
    question, flag_url = row
    return _question_view(question, flag_url)


async def create_game(
    session: AsyncSession,
    *,
    user_id: int,
    template_id: Optional[int] = None,
    custom_options: Optional[Dict[str, Any]] = None,
    rng: Optional[random.Random] = None,
) -> Tuple[Game, Dict[str, Any]]:
    """
    Создаёт игру со всеми вопросами одной транзакцией.
    Возвращает (game, первый вопрос).

    Вторая активная игра отсекается дважды: явной проверкой (для понятной ошибки)
    и частичным уникальным индексом (на случай гонки двух запросов).
    """
    try:
        active = await _find_active_game(session, user_id)
        if active:
            logger.warning("Game creation rejected: user %s already has game %s", user_id, active.id)
            raise GameInProgressError(active_game_summary(active))

        config = await resolve_game_config(
            session, template_id=template_id, custom_options=custom_options
        )
        pool = await list_active_countries(session, config.continent_id)
        drafts = generate_questions(pool, config.number_of_flags, rng=rng)

        game = Game(
            user_id=user_id,
            template_id=template_id,
            status=GameStatus.IN_PROGRESS.value,
            total_questions=config.number_of_flags,
            time_limit=config.time_limit,
            difficulty=config.difficulty.value,
            continent_id=config.continent_id,
            score=0,
            correct_answers=0,
            time_spent=0,
            started_at=_utcnow(),
        )
        session.add(game)
        await session.flush()  # здесь срабатывает уникальный индекс

        session.add_all(
            GameQuestion(
                game_id=game.id,
                question_number=draft.question_number,
                country_id=draft.country.id,
                options=draft.options,
                time_limit=config.time_per_flag,
            )
            for draft in drafts
        )
        await session.commit()
    except IntegrityError as e:
        await session.rollback()
        active = await session.scalar(_active_game_stmt(user_id))
        if active is None:
            raise
        logger.warning("Concurrent game creation for user %s lost the race to game %s", user_id, active.id)
        raise GameInProgressError(active_game_summary(active)) from e
    except Exception:
        await session.rollback()
        raise

    logger.info(
        "Game created: %s for user %s using %s",
        game.id, user_id, f"template {template_id}" if template_id else "custom options",
    )

    first_question = await _load_question_view(session, game.id, number=1)
    return game, first_question


async def get_game(
    session: AsyncSession,
    *,
    game_id: uuid.UUID,
    user_id: int,
) -> Tuple[Game, Optional[Dict[str, Any]]]:
    """Возвращает (game, ссылка на первый неотвеченный вопрос или None)."""
    game = await _get_owned_game(session, game_id, user_id)

    row = (
        await session.execute(
            select(GameQuestion.id, GameQuestion.question_number)
            .where(
                GameQuestion.game_id == game_id,
                GameQuestion.user_answer_id.is_(None),
            )
            .order_by(GameQuestion.question_number)
            .limit(1)
        )
    ).first()

    next_unanswered = None
    if row is not None:
        next_unanswered = {"question_id": row.id, "question_number": row.question_number}
    return game, next_unanswered


async def get_question(
    session: AsyncSession,
    *,
    game_id: uuid.UUID,
    number: int,
    user_id: int,
) -> Dict[str, Any]:
    await _get_owned_game(session, game_id, user_id, in_progress=True)

    question = await _load_question_view(session, game_id, number=number)
    if question is None:
        raise NotFoundError("Question not found")
    return question


async def get_next_unanswered_question(
    session: AsyncSession,
    *,
    game_id: uuid.UUID,
    user_id: int,
) -> Dict[str, Any]:
    await _get_owned_game(session, game_id, user_id, in_progress=True)

    question = await _load_question_view(session, game_id, unanswered_only=True)
    if question is None:
        return {"has_unanswered": False, "message": "All questions have been answered"}
    return {"has_unanswered": True, "question": question}


async def submit_answer(
    session: AsyncSession,
    *,
    game_id: uuid.UUID,
    question_id: uuid.UUID,
    answer_id: int,
    time_taken: int,
    user_id: int,
) -> AnswerResult:
    """
    Принимает ответ на вопрос. Ответ пишется один раз: повторная отправка
    (в том числе параллельная) получает AlreadyAnsweredError и ничего не меняет.
    """
    try:
        game = await _get_owned_game(session, game_id, user_id, in_progress=True)

        question = await session.scalar(
            select(GameQuestion).where(
                GameQuestion.id == question_id,
                GameQuestion.game_id == game_id,
            )
        )
        if not question:
            raise NotFoundError("Question not found")
        if question.user_answer_id is not None:
            raise AlreadyAnsweredError(question_id)

        is_correct = answer_id == question.country_id
        points = calculate_points(game.difficulty, question.time_limit, time_taken, is_correct)

        # условный UPDATE: из двух одновременных ответов пройдёт только один
        stamped = await session.execute(
            update(GameQuestion)
            .where(
                GameQuestion.id == question_id,
                GameQuestion.user_answer_id.is_(None),
            )
            .values(
                user_answer_id=answer_id,
                time_taken=time_taken,
                points_earned=points,
                answered_at=_utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        if stamped.rowcount == 0:
            raise AlreadyAnsweredError(question_id)

        bumped = await session.execute(
            update(Game)
            .where(Game.id == game_id, Game.status == GameStatus.IN_PROGRESS.value)
            .values(
                score=Game.score + points,
                correct_answers=Game.correct_answers + (1 if is_correct else 0),
                time_spent=Game.time_spent + time_taken,
            )
            .execution_options(synchronize_session=False)
        )
        if bumped.rowcount == 0:
            raise NotFoundError("Game not found or not in progress")

        await session.commit()
    except AlreadyAnsweredError:
        await session.rollback()
        logger.warning("Duplicate answer for game %s, question %s", game_id, question_id)
        raise
    except Exception:
        await session.rollback()
        raise

    await session.refresh(game)
    await session.refresh(question)
    logger.info(
        "Answer submitted for game %s, question %s: correct=%s points=%s",
        game_id, question_id, is_correct, points,
    )

    return AnswerResult(
        is_correct=is_correct,
        correct_answer_id=question.country_id,
        points_earned=points,
        total_score=game.score,
    )


async def complete_game(
    session: AsyncSession,
    *,
    game_id: uuid.UUID,
    user_id: int,
) -> Game:
    """
    Завершает игру и раскатывает результат по агрегатам в той же транзакции.
    Если агрегаты не записались, игра остаётся in_progress и завершение можно повторить.
    """
    now = _utcnow()
    try:
        result = await session.execute(
            update(Game)
            .where(
                Game.id == game_id,
                Game.user_id == user_id,
                Game.status == GameStatus.IN_PROGRESS.value,
            )
            .values(status=GameStatus.COMPLETED.value, completed_at=now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise NotFoundError("Game not found or already finished")

        game = await session.scalar(
            select(Game)
            .where(Game.id == game_id)
            .execution_options(populate_existing=True)
        )
        await aggregation.apply_completion(session, game, now)
        await session.commit()
    except Exception:
        await session.rollback()
        raise

    # чужие позиции в рейтингах тоже могли сдвинуться
    await cache.invalidate_leaderboards()
    await cache.invalidate_user_cache(user_id)

    logger.info("Game completed: %s (user %s, score %s)", game_id, user_id, game.score)
    return game


async def abandon_game(
    session: AsyncSession,
    *,
    game_id: uuid.UUID,
    user_id: int,
) -> Game:
    try:
        result = await session.execute(
            update(Game)
            .where(
                Game.id == game_id,
                Game.user_id == user_id,
                Game.status == GameStatus.IN_PROGRESS.value,
            )
            .values(status=GameStatus.ABANDONED.value, completed_at=_utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise NotFoundError("Game not found or already finished")
        await session.commit()
    except Exception:
        await session.rollback()
        raise

    game = await session.scalar(
        select(Game)
        .where(Game.id == game_id)
        .execution_options(populate_existing=True)
    )
    logger.info("Game abandoned: %s", game_id)
    return game


async def list_user_games(
    session: AsyncSession,
    *,
    user_id: int,
    offset: int,
    limit: int,
) -> Tuple[List[Dict[str, Any]], int]:
    """История игр пользователя, новые сверху. Возвращает (rows, total)."""
    total = await session.scalar(
        select(func.count()).select_from(Game).where(Game.user_id == user_id)
    )

    rows = (
        await session.execute(
            select(Game, GameTemplate.name, Continent.name)
            .outerjoin(GameTemplate, GameTemplate.id == Game.template_id)
            .outerjoin(Continent, Continent.id == Game.continent_id)
            .where(Game.user_id == user_id)
            .order_by(Game.started_at.desc())
            .offset(offset)
            .limit(limit)
        )
    ).all()

    items = [
        {"game": game, "template_name": template_name, "continent_name": continent_name}
        for game, template_name, continent_name in rows
    ]
    return items, total or 0
