"""
HTTP API tests: auth, status codes, error payloads and the full game flow.
"""
import uuid

import pytest
from sqlalchemy import select

from flagquiz.models.game import GameQuestion


async def create(client, headers, **body):
    body.setdefault(
        "custom_options",
        {"number_of_flags": 2, "time_per_flag": 30, "difficulty": "medium"},
    )
    return await client.post("/games", json=body, headers=headers)


async def target_of(session, question_id):
    return await session.scalar(
        select(GameQuestion.country_id).where(GameQuestion.id == uuid.UUID(question_id))
    )


# ============================================================================
# Health
# ============================================================================

async def test_root(client):
    response = await client.get("/")
    assert response.status_code == 200
    assert "Flag Quiz" in response.json()["message"]


async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["database"] == "ok"
    assert data["cache"] == "disabled"


# ============================================================================
# Auth
# ============================================================================

async def test_missing_token(client):
    response = await create(client, {})
    assert response.status_code == 401
    assert response.json()["error"] == "unauthorized"


async def test_garbage_token(client):
    response = await client.get("/games", headers={"Authorization": "Bearer nope"})
    assert response.status_code == 401


async def test_unverified_email_cannot_start(client, auth, seeded):
    response = await create(client, auth(seeded.carol))
    assert response.status_code == 403
    assert response.json()["error"] == "forbidden"


async def test_token_for_unknown_user(client, auth):
    response = await client.get("/games", headers=auth(999))
    assert response.status_code == 401


# ============================================================================
# End-to-end
# ============================================================================

async def test_full_medium_game(client, auth, seeded, session):
    """Two-flag medium game in Africa: 30 + 20 = 50 points."""
    headers = auth(seeded.alice)

    response = await create(
        client,
        headers,
        custom_options={
            "number_of_flags": 2,
            "time_per_flag": 30,
            "difficulty": "medium",
            "continent_id": seeded.africa,
        },
    )
    assert response.status_code == 201
    game = response.json()
    game_id = game["id"]
    assert game["status"] == "in_progress"
    assert game["time_limit"] == 60
    assert game["current_question"]["question_number"] == 1
    assert len(game["current_question"]["options"]) == 4

    response = await client.get(f"/games/{game_id}/question/1", headers=headers)
    assert response.status_code == 200
    q1 = response.json()
    assert "country_id" not in q1
    assert q1["is_answered"] is False

    target = await target_of(session, q1["id"])
    response = await client.post(
        f"/games/{game_id}/questions/{q1['id']}/answer",
        json={"answer_id": target, "time_taken": 5},
        headers=headers,
    )
    assert response.status_code == 200
    assert response.json() == {
        "is_correct": True,
        "correct_answer_id": target,
        "points_earned": 30,
        "total_score": 30,
    }

    response = await client.get(f"/games/{game_id}/next-unanswered", headers=headers)
    nxt = response.json()
    assert nxt["has_unanswered"] is True
    q2 = nxt["question"]
    assert q2["question_number"] == 2

    target = await target_of(session, q2["id"])
    response = await client.post(
        f"/games/{game_id}/questions/{q2['id']}/answer",
        json={"answer_id": target, "time_taken": 29},
        headers=headers,
    )
    assert response.json()["points_earned"] == 20
    assert response.json()["total_score"] == 50

    response = await client.get(f"/games/{game_id}", headers=headers)
    assert response.json()["next_unanswered_question"] is None

    response = await client.post(f"/games/{game_id}/complete", headers=headers)
    assert response.status_code == 200
    final = response.json()
    assert final["status"] == "completed"
    assert final["score"] == 50
    assert final["correct_answers"] == 2
    assert final["completed_at"] is not None

    response = await client.get("/leaderboard/all-time")
    board = response.json()
    assert board["leaderboard"] == [{"rank": 1, "user_id": seeded.alice, "username": "alice", "score": 50}]

    response = await client.get("/leaderboard/all-time", params={"continent_id": seeded.africa})
    assert response.json()["leaderboard"][0]["score"] == 50

    response = await client.get(f"/leaderboard/user/{seeded.alice}")
    ranks = response.json()["ranks"]
    assert ranks["all_time"] == {"rank": 1, "score": 50}
    assert ranks["daily"] == {"rank": 1, "score": 50}

    response = await client.get(f"/users/{seeded.alice}/statistics")
    stats = response.json()
    assert stats["total_score"] == 50
    assert stats["total_games_played"] == 1
    assert stats["categories"] == [
        {
            "continent_id": seeded.africa,
            "continent_name": "Africa",
            "difficulty": "medium",
            "games_played": 1,
            "correct_answers": 2,
            "total_score": 50,
        }
    ]


# ============================================================================
# Errors
# ============================================================================

async def test_game_in_progress_payload(client, auth, seeded):
    headers = auth(seeded.alice)
    first = (await create(client, headers)).json()

    response = await create(client, headers)

    assert response.status_code == 400
    data = response.json()
    assert data["error"] == "game_in_progress"
    assert data["active_game"]["id"] == first["id"]
    assert data["active_game"]["status"] == "in_progress"
    assert "message" in data


async def test_duplicate_answer_is_conflict(client, auth, seeded):
    headers = auth(seeded.alice)
    game = (await create(client, headers)).json()
    question = game["current_question"]
    body = {"answer_id": question["options"][0]["id"], "time_taken": 3}
    url = f"/games/{game['id']}/questions/{question['id']}/answer"

    assert (await client.post(url, json=body, headers=headers)).status_code == 200
    response = await client.post(url, json=body, headers=headers)

    assert response.status_code == 409
    assert response.json()["error"] == "already_answered"


async def test_unknown_template(client, auth, seeded):
    response = await client.post("/games", json={"template_id": 42}, headers=auth(seeded.alice))
    assert response.status_code == 404
    assert response.json()["error"] == "not_found"


async def test_pool_too_small(client, auth, seeded):
    response = await create(
        client,
        auth(seeded.alice),
        custom_options={"number_of_flags": 1, "continent_id": seeded.oceania},
    )
    assert response.status_code == 400
    data = response.json()
    assert data["error"] == "insufficient_pool"
    assert data["required"] == 4


async def test_custom_option_bounds(client, auth, seeded):
    response = await create(client, auth(seeded.alice), custom_options={"time_per_flag": 5})
    assert response.status_code == 400
    data = response.json()
    assert data["error"] == "validation_error"
    assert any("time_per_flag" in d["field"] for d in data["details"])


async def test_negative_time_taken_rejected(client, auth, seeded):
    headers = auth(seeded.alice)
    game = (await create(client, headers)).json()
    question = game["current_question"]

    response = await client.post(
        f"/games/{game['id']}/questions/{question['id']}/answer",
        json={"answer_id": question["options"][0]["id"], "time_taken": -1},
        headers=headers,
    )
    assert response.status_code == 400


@pytest.mark.parametrize(
    "answer",
    [
        {"answer_id": 2**31, "time_taken": 5},
        {"answer_id": 1, "time_taken": 2**31},
        {"answer_id": 0, "time_taken": 5},
    ],
)
async def test_out_of_range_answer_fields_rejected(client, auth, seeded, answer):
    headers = auth(seeded.alice)
    game = (await create(client, headers)).json()
    question = game["current_question"]

    response = await client.post(
        f"/games/{game['id']}/questions/{question['id']}/answer",
        json=answer,
        headers=headers,
    )
    assert response.status_code == 400
    assert response.json()["error"] == "validation_error"


async def test_someone_elses_game_is_404(client, auth, seeded):
    game = (await create(client, auth(seeded.alice))).json()

    response = await client.get(f"/games/{game['id']}", headers=auth(seeded.bob))
    assert response.status_code == 404

    response = await client.put(f"/games/{game['id']}/abandon", headers=auth(seeded.bob))
    assert response.status_code == 404


async def test_malformed_game_id(client, auth, seeded):
    response = await client.get("/games/not-a-uuid", headers=auth(seeded.alice))
    assert response.status_code == 400


async def test_abandon_then_complete_is_404(client, auth, seeded):
    headers = auth(seeded.alice)
    game = (await create(client, headers)).json()

    response = await client.put(f"/games/{game['id']}/abandon", headers=headers)
    assert response.status_code == 200
    assert response.json()["status"] == "abandoned"

    response = await client.post(f"/games/{game['id']}/complete", headers=headers)
    assert response.status_code == 404


# ============================================================================
# Listing & leaderboard params
# ============================================================================

async def test_game_history_pagination(client, auth, seeded):
    headers = auth(seeded.alice)
    for _ in range(3):
        game = (await create(client, headers)).json()
        await client.put(f"/games/{game['id']}/abandon", headers=headers)

    response = await client.get("/games", params={"page": 2, "limit": 2}, headers=headers)
    assert response.status_code == 200
    data = response.json()
    assert len(data["games"]) == 1
    assert data["pagination"] == {
        "total": 3,
        "page": 2,
        "limit": 2,
        "total_pages": 2,
        "has_next": False,
        "has_prev": True,
    }


async def test_leaderboard_limit_bounds(client):
    response = await client.get("/leaderboard/daily", params={"limit": 101})
    assert response.status_code == 400

    response = await client.get("/leaderboard/daily", params={"continent_id": 0})
    assert response.status_code == 400


async def test_weekly_leaderboard_reports_monday(client):
    response = await client.get("/leaderboard/weekly", params={"week_start": "2026-03-11"})
    assert response.status_code == 200
    data = response.json()
    assert data["week_start"] == "2026-03-09"
    assert data["leaderboard"] == []
    assert data["pagination"]["total"] == 0


async def test_monthly_leaderboard_echoes_period(client):
    response = await client.get("/leaderboard/monthly", params={"month": 2, "year": 2026})
    data = response.json()
    assert (data["month"], data["year"]) == (2, 2026)


async def test_unknown_user_ranks(client):
    response = await client.get("/leaderboard/user/999")
    assert response.status_code == 404
    assert response.json()["error"] == "not_found"


async def test_unknown_user_statistics(client):
    response = await client.get("/users/999/statistics")
    assert response.status_code == 404
