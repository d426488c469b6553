from __future__ import annotations

import pytest

from src.api.routes import match_sessions, update_availability
from src.db.seed import seed_sample_data_if_empty


@pytest.mark.smoke
def test_seeded_store_serves_matches(store, now):
    assert seed_sample_data_if_empty(store, "config/does-not-exist.yaml", now=now)
    rookie = store.get_user_by_username("rookie")

    status, body = match_sessions(store, rookie["id"], now=now)
    assert status == 200
    assert {s["title"] for s in body} == {"Catan Friday", "Saturday Morning One-Shot"}

    status, _ = update_availability(store, {"user_id": rookie["id"], "weekday_evening": True})
    assert status == 200
