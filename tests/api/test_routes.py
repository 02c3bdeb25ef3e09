"""HTTP level tests: src/api/app.py, src/api/routes.py and src/api/auth.py"""

from dataclasses import dataclass
from uuid import UUID, uuid4

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.api.app import create_app
from src.api.auth import issue_token, verify_token
from src.core.config import Settings
from src.db.schema import DBPlayer

SECRET = "test-secret"


@dataclass
class Member:
    id: UUID
    headers: dict[str, str]


@dataclass
class Club:
    alice: Member
    bob: Member
    carol: Member


@pytest.fixture
def app() -> FastAPI:
    return create_app(Settings(database_url="sqlite://", auth_secret=SECRET))


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


@pytest.fixture
def club(app: FastAPI) -> Club:
    members = {}
    with app.state.session_factory() as db:
        for name, rating in [("alice", 1500), ("bob", 1350), ("carol", 1200)]:
            player_id = uuid4()
            db.add(DBPlayer(id=player_id, username=name, rating=rating))
            members[name] = Member(
                id=player_id,
                headers={"Authorization": f"Bearer {issue_token(player_id, SECRET)}"},
            )
        db.commit()
    return Club(**members)


@pytest.fixture
def session_id(client: TestClient, club: Club) -> str:
    """Alice challenges bob, bob accepts. Alice plays white."""
    sent = client.post(
        "/challenges",
        json={"challenged_id": str(club.bob.id), "time_control": 600},
        headers=club.alice.headers,
    )
    assert sent.status_code == 200
    accepted = client.patch(
        "/challenges/respond",
        json={"challenge_id": sent.json()["challenge_id"], "decision": "accept"},
        headers=club.bob.headers,
    )
    assert accepted.status_code == 200
    return accepted.json()["session_id"]


# --- AUTH ---
def test_tokens() -> None:
    user_id = uuid4()
    token = issue_token(user_id, SECRET)
    assert verify_token(token, SECRET) == user_id
    assert verify_token(token, "another-secret") is None
    assert verify_token(f"{uuid4()}.{token.split('.')[1]}", SECRET) is None
    assert verify_token("not-a-token", SECRET) is None


@pytest.mark.parametrize(
    "headers",
    [
        {},
        {"Authorization": "Basic abc"},
        {"Authorization": f"Bearer {uuid4()}.deadbeef"},
    ],
)
def test_requires_valid_token(client: TestClient, headers: dict[str, str]) -> None:
    response = client.get("/challenges/received", headers=headers)
    assert response.status_code == 401


def test_health(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


# --- CHALLENGES ---
def test_challenge_flow(client: TestClient, club: Club) -> None:
    sent = client.post(
        "/challenges",
        json={"challenged_id": str(club.bob.id), "time_control": 300},
        headers=club.alice.headers,
    )
    assert sent.status_code == 200
    challenge_id = sent.json()["challenge_id"]

    received = client.get("/challenges/received", headers=club.bob.headers).json()
    assert [c["id"] for c in received] == [challenge_id]
    assert received[0]["opponent"]["username"] == "alice"
    assert received[0]["status"] == "pending"

    outgoing = client.get("/challenges/sent", headers=club.alice.headers).json()
    assert outgoing[0]["opponent"]["username"] == "bob"

    declined = client.patch(
        "/challenges/respond",
        json={"challenge_id": challenge_id, "decision": "decline"},
        headers=club.bob.headers,
    )
    assert declined.status_code == 200
    assert declined.json() == {
        "challenge_id": challenge_id,
        "status": "declined",
        "session_id": None,
    }
    assert client.get("/challenges/received", headers=club.bob.headers).json() == []


def test_duplicate_challenge(client: TestClient, club: Club) -> None:
    body = {"challenged_id": str(club.bob.id), "time_control": 300}
    assert client.post("/challenges", json=body, headers=club.alice.headers).status_code == 200
    assert client.post("/challenges", json=body, headers=club.alice.headers).status_code == 400


def test_invalid_challenges(client: TestClient, club: Club) -> None:
    to_self = client.post(
        "/challenges",
        json={"challenged_id": str(club.alice.id), "time_control": 300},
        headers=club.alice.headers,
    )
    assert to_self.status_code == 400

    no_time = client.post(
        "/challenges",
        json={"challenged_id": str(club.bob.id), "time_control": 0},
        headers=club.alice.headers,
    )
    assert no_time.status_code == 400

    unknown = client.post(
        "/challenges",
        json={"challenged_id": str(uuid4()), "time_control": 300},
        headers=club.alice.headers,
    )
    assert unknown.status_code == 404


def test_cancel_challenge(client: TestClient, club: Club) -> None:
    sent = client.post(
        "/challenges",
        json={"challenged_id": str(club.carol.id), "time_control": 300},
        headers=club.alice.headers,
    )
    challenge_id = sent.json()["challenge_id"]

    assert client.delete(f"/challenges/{challenge_id}", headers=club.carol.headers).status_code == 404
    cancelled = client.delete(f"/challenges/{challenge_id}", headers=club.alice.headers)
    assert cancelled.status_code == 200
    assert cancelled.json() == {"message": "Challenge cancelled"}

    too_late = client.patch(
        "/challenges/respond",
        json={"challenge_id": challenge_id, "decision": "accept"},
        headers=club.carol.headers,
    )
    assert too_late.status_code == 404


# --- SESSIONS ---
def test_get_session(client: TestClient, club: Club, session_id: str) -> None:
    response = client.get(f"/sessions/{session_id}", headers=club.bob.headers)
    assert response.status_code == 200

    body = response.json()
    assert body["session_id"] == session_id
    assert body["white"]["username"] == "alice"
    assert body["black"]["rating"] == 1350
    assert body["version"] == 0
    assert body["turn"] == "white"
    assert body["status"] == "active"
    assert body["moves"] == []
    assert 0 < body["white_time_left"] <= 600
    assert body["black_time_left"] == 600


def test_session_access(client: TestClient, club: Club, session_id: str) -> None:
    assert client.get(f"/sessions/{session_id}", headers=club.carol.headers).status_code == 403
    assert client.get(f"/sessions/{uuid4()}", headers=club.alice.headers).status_code == 404
    assert (
        client.get(f"/sessions/{session_id}/poll", headers=club.carol.headers).status_code
        == 403
    )


def test_moves_and_polling(client: TestClient, club: Club, session_id: str) -> None:
    moved = client.patch(
        f"/sessions/{session_id}/move", json={"move": "e4"}, headers=club.alice.headers
    )
    assert moved.status_code == 200
    assert moved.json() == {
        "version": 1,
        "turn": "black",
        "status": "active",
        "result": None,
        "reason": None,
    }

    # Bob has nothing yet
    polled = client.get(
        f"/sessions/{session_id}/poll",
        params={"last_version": 0},
        headers=club.bob.headers,
    ).json()
    assert polled["has_updates"] is True
    assert polled["session"]["moves"] == ["e4"]
    assert polled["session"]["version"] == 1

    # Alice already holds version 1
    polled = client.get(
        f"/sessions/{session_id}/poll",
        params={"last_version": 1},
        headers=club.alice.headers,
    ).json()
    assert polled == {
        "has_updates": False,
        "status": "active",
        "result": None,
        "session": None,
    }


def test_rejected_moves(client: TestClient, club: Club, session_id: str) -> None:
    url = f"/sessions/{session_id}/move"
    assert client.patch(url, json={"move": "e5"}, headers=club.bob.headers).status_code == 400
    assert client.patch(url, json={"move": "e5"}, headers=club.alice.headers).status_code == 400
    assert client.patch(url, json={"move": ""}, headers=club.alice.headers).status_code == 400
    assert client.patch(url, json={"move": "e4"}, headers=club.carol.headers).status_code == 403

    session = client.get(f"/sessions/{session_id}", headers=club.alice.headers).json()
    assert session["version"] == 0


def test_checkmate(client: TestClient, club: Club, session_id: str) -> None:
    url = f"/sessions/{session_id}/move"
    for member, move in [
        (club.alice, "f3"),
        (club.bob, "e5"),
        (club.alice, "g4"),
    ]:
        assert client.patch(url, json={"move": move}, headers=member.headers).status_code == 200

    mate = client.patch(url, json={"move": "Qh4#"}, headers=club.bob.headers)
    assert mate.json() == {
        "version": 4,
        "turn": "white",
        "status": "completed",
        "result": "0-1",
        "reason": "checkmate",
    }

    after = client.patch(url, json={"move": "a3"}, headers=club.alice.headers)
    assert after.status_code == 409


def test_resignation(client: TestClient, club: Club, session_id: str) -> None:
    ended = client.patch(
        f"/sessions/{session_id}/end",
        json={"reason": "resignation"},
        headers=club.alice.headers,
    )
    assert ended.status_code == 200
    assert ended.json() == {
        "session_id": session_id,
        "status": "completed",
        "result": "0-1",
        "reason": "resignation",
    }

    # A second request changes nothing
    again = client.patch(
        f"/sessions/{session_id}/end",
        json={"reason": "draw_agreement"},
        headers=club.bob.headers,
    )
    assert again.status_code == 200
    assert again.json()["result"] == "0-1"

    polled = client.get(
        f"/sessions/{session_id}/poll",
        params={"last_version": 0},
        headers=club.bob.headers,
    ).json()
    assert polled["has_updates"] is False
    assert polled["status"] == "completed"
    assert polled["result"] == "0-1"


def test_end_reasons_decided_by_server(client: TestClient, club: Club, session_id: str) -> None:
    response = client.patch(
        f"/sessions/{session_id}/end",
        json={"reason": "checkmate", "result": "1-0"},
        headers=club.alice.headers,
    )
    assert response.status_code == 400


def test_early_timeout_claim(client: TestClient, club: Club, session_id: str) -> None:
    response = client.patch(f"/sessions/{session_id}/flag", headers=club.bob.headers)
    assert response.status_code == 400
    assert "time left" in response.json()["detail"]


def test_resignation_cannot_claim_own_win(client: TestClient, club: Club, session_id: str) -> None:
    url = f"/sessions/{session_id}/end"
    own_win = client.patch(
        url, json={"reason": "resignation", "result": "1-0"}, headers=club.alice.headers
    )
    assert own_win.status_code == 400
    session = client.get(f"/sessions/{session_id}", headers=club.alice.headers).json()
    assert session["status"] == "active"

    matching = client.patch(
        url, json={"reason": "resignation", "result": "0-1"}, headers=club.alice.headers
    )
    assert matching.status_code == 200
    assert matching.json()["result"] == "0-1"
