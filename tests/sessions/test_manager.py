from __future__ import annotations

from datetime import timedelta

import pytest

from src.sessions.manager import (
    create_new_session,
    get_session_url,
    is_session_full,
    join_session,
    leave_session,
    spots_available,
    validate_session_payload,
)


def test_validate_session_payload_accepts_valid_payload(session_payload):
    assert validate_session_payload(session_payload(host_id=1)) is None


@pytest.mark.parametrize(
    ("overrides", "message"),
    [
        ({"title": "   "}, "Title is required."),
        ({"game_name": ""}, "Game name is required."),
        ({"location": None}, "Location is required."),
        ({"host_id": None}, "Host is required."),
        ({"game_type": "video"}, "Game type must be one of"),
        ({"start_time": "not a date"}, "valid timestamps"),
        ({"end_time": None}, "Start and end times are required."),
        ({"min_players": 0}, "at least 1"),
        ({"min_players": 5, "max_players": 4}, "cannot exceed"),
        ({"max_players": 21}, "at most 20"),
        ({"experience_level": "expert"}, "Experience level"),
        ({"recurring": "daily"}, "Recurrence"),
    ],
)
def test_validate_session_payload_rejects_bad_fields(session_payload, overrides, message):
    error = validate_session_payload({**session_payload(1), **overrides})
    assert error is not None
    assert message in error


def test_validate_session_payload_requires_end_after_start(session_payload):
    payload = session_payload(host_id=1)
    payload["end_time"] = payload["start_time"]
    assert validate_session_payload(payload) == "Session must end after it starts."


def test_create_new_session_adds_host_as_participant(store, session_payload, now):
    host = store.create_user("host")
    session = create_new_session(store, session_payload(host["id"]), now=now)

    assert session["current_players"] == 1
    participants = store.get_session_participants(session["id"])
    assert [(p["user_id"], p["is_host"]) for p in participants] == [(host["id"], True)]


def test_create_new_session_rejects_past_start(store, session_payload, now):
    host = store.create_user("host")
    start = now - timedelta(hours=1)
    payload = session_payload(host["id"], start_time=start, end_time=start + timedelta(hours=2))
    with pytest.raises(ValueError, match="start in the future"):
        create_new_session(store, payload, now=now)


def test_create_new_session_rejects_unknown_host(store, session_payload, now):
    with pytest.raises(ValueError, match="Host not found"):
        create_new_session(store, session_payload(404), now=now)


def test_join_session_increments_player_count_once(store, session_payload, now):
    host = store.create_user("host")
    player = store.create_user("player")
    session = create_new_session(store, session_payload(host["id"]), now=now)

    join_session(store, session["id"], player["id"], now=now)
    join_session(store, session["id"], player["id"], now=now)

    assert store.get_session(session["id"])["current_players"] == 2
    assert [s["id"] for s in store.get_sessions_by_participant(player["id"])] == [session["id"]]


def test_join_session_rejects_full_session(store, session_payload, now):
    host = store.create_user("host")
    session = create_new_session(store, session_payload(host["id"], max_players=2), now=now)
    join_session(store, session["id"], store.create_user("second")["id"], now=now)

    with pytest.raises(ValueError, match="Session is full"):
        join_session(store, session["id"], store.create_user("third")["id"], now=now)


def test_join_session_rejects_started_session(store, session_payload, now):
    host = store.create_user("host")
    player = store.create_user("player")
    session = create_new_session(store, session_payload(host["id"]), now=now)
    later = session["start_time"] + timedelta(minutes=5)

    with pytest.raises(ValueError, match="already started"):
        join_session(store, session["id"], player["id"], now=later)


def test_join_session_rejects_unknown_session(store, now):
    player = store.create_user("player")
    with pytest.raises(ValueError, match="Session not found"):
        join_session(store, 999, player["id"], now=now)


def test_leave_session_decrements_player_count(store, session_payload, now):
    host = store.create_user("host")
    player = store.create_user("player")
    session = create_new_session(store, session_payload(host["id"]), now=now)
    join_session(store, session["id"], player["id"], now=now)

    leave_session(store, session["id"], player["id"])

    assert store.get_session(session["id"])["current_players"] == 1
    assert store.get_sessions_by_participant(player["id"]) == []


def test_leave_session_rejects_host_and_strangers(store, session_payload, now):
    host = store.create_user("host")
    stranger = store.create_user("stranger")
    session = create_new_session(store, session_payload(host["id"]), now=now)

    with pytest.raises(ValueError, match="Cannot remove the host"):
        leave_session(store, session["id"], host["id"])
    with pytest.raises(ValueError, match="not a participant"):
        leave_session(store, session["id"], stranger["id"])


def test_spots_available_and_full():
    assert spots_available({"max_players": 4, "current_players": 1}) == 3
    assert spots_available({"max_players": 4, "current_players": 6}) == 0
    assert is_session_full({"max_players": 4, "current_players": 4}) is True


def test_get_session_url():
    assert get_session_url("http://localhost:8501", 12) == "http://localhost:8501?session=12"
