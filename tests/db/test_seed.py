from __future__ import annotations

from datetime import UTC, datetime, timedelta
from zoneinfo import ZoneInfo

from src.db.seed import load_sample_data, seed_sample_data_if_empty
from src.engine.matching import classify_start_time


def test_load_sample_data_reads_yaml(tmp_path):
    path = tmp_path / "sample.yaml"
    path.write_text(
        "users:\n  - username: ana\nsessions: []\navailability: not-a-list\n",
        encoding="utf-8",
    )
    data = load_sample_data(str(path))
    assert data.users == [{"username": "ana"}]
    assert data.sessions == []
    assert data.availability == []


def test_load_sample_data_falls_back_to_defaults(tmp_path):
    data = load_sample_data(str(tmp_path / "missing.yaml"))
    assert data.users
    assert data.sessions


def test_seed_sample_data_populates_empty_store(store, tmp_path, now):
    path = tmp_path / "sample.yaml"
    path.write_text(
        """
users:
  - username: host
    display_name: Hosting Hana
  - username: player
sessions:
  - title: Wingspan brunch
    game_name: Wingspan
    host: host
    location: Cafe
    days_from_now: 3
    hour: 10
    max_players: 5
  - title: Orphan
    game_name: Azul
    host: nobody
    location: Nowhere
availability:
  - username: player
    weekend_morning: true
""",
        encoding="utf-8",
    )

    assert seed_sample_data_if_empty(store, str(path), now=now) is True

    sessions = store.get_all_sessions()
    assert [s["title"] for s in sessions] == ["Wingspan brunch"]
    assert sessions[0]["start_time"] == (now + timedelta(days=3)).replace(hour=10)
    player = store.get_user_by_username("player")
    assert store.get_user_availability(player["id"])["weekend_morning"] is True


def test_seed_sample_data_skips_populated_store(store, tmp_path, now):
    store.create_user("existing")
    assert seed_sample_data_if_empty(store, str(tmp_path / "missing.yaml"), now=now) is False
    assert len(store.get_all_users()) == 1


def test_seed_sample_hours_are_local_to_display_timezone(store, tmp_path, now):
    path = tmp_path / "sample.yaml"
    path.write_text(
        """
users:
  - username: host
sessions:
  - title: Saturday campaign
    game_name: Gloomhaven
    host: host
    location: Basement
    days_from_now: 3
    hour: 19
""",
        encoding="utf-8",
    )
    new_york = ZoneInfo("America/New_York")

    assert seed_sample_data_if_empty(store, str(path), now=now, tz=new_york) is True

    (session,) = store.get_all_sessions()
    assert session["start_time"] == datetime(2026, 10, 24, 23, 0, tzinfo=UTC)
    assert classify_start_time(session["start_time"], new_york) == ("weekend", "evening")
