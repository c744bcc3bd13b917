"""Tests for the FastAPI tic-tac-toe interface."""

from __future__ import annotations

import time

from fastapi.testclient import TestClient

from tictactoe import ui
from tictactoe.ui import app


client = TestClient(app)
ui.AI_THINK_DELAY = (0.0, 0.0)


def _new_game(**payload):
    response = client.post("/api/game", json=payload)
    assert response.status_code == 200
    return response.json()


def test_create_game_and_first_move():
    payload = _new_game(human="X", difficulty="hard")
    assert payload["currentPlayer"] == "X"
    assert payload["phase"] == "in_progress"
    assert payload["board"] == [""] * 9
    assert payload["moveLog"] == []
    assert payload["aiPending"] is False

    game_id = payload["id"]
    move_response = client.post(f"/api/game/{game_id}/move", json={"cellIndex": 4})
    assert move_response.status_code == 200
    state = move_response.json()
    assert state["moveLog"][0] == {"player": "X", "cellIndex": 4}
    assert state["board"][4] == "X"
    assert state["currentPlayer"] == "O"
    assert state["aiPending"] is True

    follow_up = client.get(f"/api/game/{game_id}")
    assert follow_up.status_code == 200
    final_state = follow_up.json()
    assert final_state["currentPlayer"] == "X"
    assert final_state["aiPending"] is False
    assert final_state["lastMove"]["player"] == "O"
    assert final_state["board"].count("O") == 1


def test_engine_opens_when_human_plays_o():
    payload = _new_game(human="O", difficulty="easy")
    assert payload["engine"] == "X"
    assert payload["aiPending"] is True

    state = client.get(f"/api/game/{payload['id']}").json()
    assert state["board"].count("X") == 1
    assert state["currentPlayer"] == "O"


def test_invalid_move_rejected():
    game_id = _new_game(difficulty="medium")["id"]

    first_move = client.post(f"/api/game/{game_id}/move", json={"cellIndex": 0})
    assert first_move.status_code == 200

    duplicate_move = client.post(f"/api/game/{game_id}/move", json={"cellIndex": 0})
    assert duplicate_move.status_code == 400
    assert duplicate_move.json()["detail"]


def test_rejects_out_of_range_cell():
    game_id = _new_game()["id"]
    response = client.post(f"/api/game/{game_id}/move", json={"cellIndex": 9})
    assert response.status_code == 422


def test_rejects_unsupported_difficulty():
    response = client.post("/api/game", json={"difficulty": "expert"})
    assert response.status_code == 422


def test_restart_rejects_unsupported_difficulty():
    game_id = _new_game()["id"]
    response = client.post(f"/api/game/{game_id}/restart", json={"difficulty": "expert"})
    assert response.status_code == 422
    assert client.get(f"/api/game/{game_id}").json()["difficulty"] == "hard"


def test_missing_game_returns_404():
    assert client.get("/api/game/missing").status_code == 404


def test_human_cannot_beat_hard_engine_and_scores_persist_across_rounds():
    game_id = _new_game(human="X", difficulty="hard")["id"]

    for _ in range(2):
        state = client.get(f"/api/game/{game_id}").json()
        while state["phase"] == "in_progress":
            cell = state["availableMoves"][0]
            client.post(f"/api/game/{game_id}/move", json={"cellIndex": cell})
            state = client.get(f"/api/game/{game_id}").json()

        assert state["winner"] != "X"
        if state["winner"] == "O":
            assert len(state["winLine"]) == 3
        finished = client.post(f"/api/game/{game_id}/move", json={"cellIndex": 0})
        assert finished.status_code == 400

        client.post(f"/api/game/{game_id}/restart")

    scores = client.get(f"/api/game/{game_id}").json()["scores"]
    assert scores["human"] == 0
    assert scores["ai"] + scores["draw"] == 2

    reset = client.delete(f"/api/game/{game_id}/scores")
    assert reset.status_code == 200
    assert reset.json()["scores"] == {"human": 0, "ai": 0, "draw": 0}


def test_restart_can_switch_sides():
    game_id = _new_game(human="X", difficulty="easy")["id"]
    response = client.post(
        f"/api/game/{game_id}/restart", json={"human": "O", "difficulty": "hard"}
    )
    assert response.status_code == 200
    state = response.json()
    assert state["human"] == "O"
    assert state["engine"] == "X"
    assert state["difficulty"] == "hard"

    state = client.get(f"/api/game/{game_id}").json()
    assert state["board"].count("X") == 1
    assert state["lastMove"]["player"] == "X"


def test_index_page_served():
    response = client.get("/")
    assert response.status_code == 200
    assert "Tic-Tac-Toe" in response.text


def test_reloaded_game_reports_earlier_scores():
    game_id = _new_game(human="X", difficulty="hard")["id"]
    state = client.get(f"/api/game/{game_id}").json()
    while state["phase"] == "in_progress":
        cell = state["availableMoves"][-1]
        client.post(f"/api/game/{game_id}/move", json={"cellIndex": cell})
        state = client.get(f"/api/game/{game_id}").json()
    client.post(f"/api/game/{game_id}/restart")

    restored = client.get(f"/api/game/{game_id}").json()
    assert restored["id"] == game_id
    assert restored["phase"] == "in_progress"
    assert restored["board"] == [""] * 9
    assert restored["scores"]["ai"] + restored["scores"]["draw"] == 1


def test_idle_sessions_expire():
    stale_id = _new_game()["id"]
    fresh_id = _new_game()["id"]
    ui.SESSIONS[stale_id].touched_at = time.time() - ui.SESSION_TTL_SECONDS - 1

    assert client.get(f"/api/game/{stale_id}").status_code == 404
    assert stale_id not in ui.SESSIONS
    assert client.get(f"/api/game/{fresh_id}").status_code == 200
