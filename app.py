from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta
from typing import Any

import streamlit as st

from src.api.routes import match_sessions
from src.config.settings import (
    ensure_runtime_dirs,
    get_timezone,
    load_settings,
    validate_settings,
)
from src.db.seed import seed_sample_data_if_empty
from src.engine.availability import get_user_availability, set_user_availability
from src.engine.matching import score_breakdown
from src.sessions.manager import (
    EXPERIENCE_LEVELS,
    GAME_TYPES,
    RECURRENCE_OPTIONS,
    create_new_session,
    get_session_url,
    join_session,
    leave_session,
    spots_available,
)
from src.storage.factory import build_storage
from src.utils.health import readiness
from src.utils.logging_config import configure_logging
from src.utils.timestamps import parse_timestamp, utc_now

logger = logging.getLogger("tablematch")

SLOT_LABELS = {
    "weekday_morning": "Weekday mornings",
    "weekday_afternoon": "Weekday afternoons",
    "weekday_evening": "Weekday evenings",
    "weekend_morning": "Weekend mornings",
    "weekend_afternoon": "Weekend afternoons",
    "weekend_evening": "Weekend evenings",
}


def _format_datetime_for_ui(value: Any, tz: Any) -> str:
    """Format a start time for display: 'Sat, Oct 24 at 07:00 PM'."""
    parsed = parse_timestamp(value)
    if parsed is None:
        return ""
    return parsed.astimezone(tz).strftime("%a, %b %d at %I:%M %p")


@st.cache_resource
def get_runtime() -> dict[str, Any]:
    settings = load_settings()
    configure_logging(settings.log_level)
    errors = validate_settings(settings)
    store = None
    conn: Any | None = None
    if not errors:
        ensure_runtime_dirs(settings)
        try:
            store, conn = build_storage(settings)
        except Exception as exc:
            logger.exception("Storage initialization failed")
            errors.append(f"Storage initialization failed: {exc}")
    warnings: list[str] = []
    if store is not None and settings.seed_sample_data:
        try:
            seed_sample_data_if_empty(
                store, settings.sample_data_path, tz=get_timezone(settings)
            )
        except Exception as exc:
            # The app is usable without demo data.
            logger.exception("Sample data seeding failed")
            warnings.append(f"Sample data seeding failed: {exc}")
    return {
        "settings": settings,
        "store": store,
        "conn": conn,
        "tz": get_timezone(settings) if not errors else None,
        "errors": errors,
        "warnings": warnings,
    }


def init_state() -> None:
    defaults = {
        "current_view": "matches",
        "user_id": None,
    }
    for key, value in defaults.items():
        if key not in st.session_state:
            st.session_state[key] = value


def render_user_picker() -> None:
    store = get_runtime()["store"]
    users = store.get_all_users()
    with st.sidebar:
        st.header("Player")
        if users:
            labels = {int(u["id"]): f"{u['display_name']} (@{u['username']})" for u in users}
            ids = list(labels)
            current = st.session_state.user_id if st.session_state.user_id in ids else ids[0]
            st.session_state.user_id = st.selectbox(
                "Signed in as",
                options=ids,
                index=ids.index(current),
                format_func=lambda user_id: labels[user_id],
            )
        with st.expander("New player"):
            username = st.text_input("Username", key="new_username")
            display_name = st.text_input("Display name", key="new_display_name")
            if st.button("Create player"):
                if not username.strip():
                    st.error("Username is required.")
                else:
                    try:
                        user = store.create_user(username, display_name)
                        st.session_state.user_id = int(user["id"])
                        st.rerun()
                    except ValueError as exc:
                        st.error(str(exc))
        st.session_state.current_view = st.radio(
            "View",
            options=["matches", "availability", "host"],
            format_func={
                "matches": "Matched for you",
                "availability": "My availability",
                "host": "Host a session",
            }.get,
        )


def render_availability() -> None:
    store = get_runtime()["store"]
    user_id = st.session_state.user_id
    st.subheader("Weekly availability")
    st.caption("Tell us when you usually play. Matching favours sessions in these slots.")
    current = get_user_availability(store, user_id)
    with st.form("availability_form"):
        col_weekday, col_weekend = st.columns(2)
        values: dict[str, bool] = {}
        for flag, label in SLOT_LABELS.items():
            column = col_weekday if flag.startswith("weekday") else col_weekend
            with column:
                values[flag] = st.checkbox(
                    label, value=bool(current and getattr(current, flag)), key=f"avail_{flag}"
                )
        notes = st.text_area("Notes", value=(current.notes if current else "") or "")
        submitted = st.form_submit_button("Save availability")
    if submitted:
        try:
            set_user_availability(store, {"user_id": user_id, **values, "notes": notes})
            st.success("Availability saved.")
        except ValueError as exc:
            st.error(str(exc))


def render_host() -> None:
    runtime = get_runtime()
    store = runtime["store"]
    tz = runtime["tz"]
    st.subheader("Host a session")
    with st.form("host_form"):
        title = st.text_input("Title")
        game_name = st.text_input("Game")
        game_type = st.selectbox("Game type", GAME_TYPES)
        location = st.text_input("Location")
        description = st.text_area("Description")
        day = st.date_input("Date", value=date.today() + timedelta(days=1))
        start_at = st.time_input("Start time", value=time(19, 0))
        duration = st.number_input("Duration (hours)", min_value=1, max_value=12, value=3)
        min_players = st.number_input("Minimum players", min_value=1, max_value=20, value=2)
        max_players = st.number_input("Maximum players", min_value=1, max_value=20, value=4)
        experience = st.selectbox("Experience level", EXPERIENCE_LEVELS)
        recurring = st.selectbox("Repeats", RECURRENCE_OPTIONS)
        submitted = st.form_submit_button("Create session")
    if submitted:
        start = datetime.combine(day, start_at, tzinfo=tz)
        try:
            session = create_new_session(
                store,
                {
                    "title": title,
                    "game_name": game_name,
                    "game_type": game_type,
                    "location": location,
                    "description": description,
                    "host_id": st.session_state.user_id,
                    "start_time": start,
                    "end_time": start + timedelta(hours=int(duration)),
                    "min_players": int(min_players),
                    "max_players": int(max_players),
                    "experience_level": experience,
                    "recurring": recurring,
                },
            )
            st.success("Session created.")
            st.code(get_session_url(runtime["settings"].base_url, session["id"]))
        except ValueError as exc:
            st.error(str(exc))


def _render_session_card(session: dict[str, Any], breakdown: dict[str, Any] | None) -> None:
    runtime = get_runtime()
    store = runtime["store"]
    user_id = st.session_state.user_id
    session_id = int(session["id"])
    with st.container(border=True):
        st.markdown(f"**{session['title']}** · {session['game_name']}")
        meta = [
            f"**When:** {_format_datetime_for_ui(session['start_time'], runtime['tz'])}",
            f"**Where:** {session['location']}",
            f"**Players:** {session['current_players']}/{session['max_players']}",
            f"**Level:** {session['experience_level']}",
        ]
        st.write(" | ".join(meta))
        if breakdown is not None:
            st.caption(
                f"Match score {breakdown['total']} "
                f"(time fit {breakdown['time_fit']}, open seats {breakdown['capacity']}, "
                f"soon {breakdown['near_term']})"
            )
        participant_ids = {p["user_id"] for p in store.get_session_participants(session_id)}
        if user_id in participant_ids:
            if int(session["host_id"]) == user_id:
                st.caption("You are hosting this session.")
            elif st.button("Leave", key=f"leave_{session_id}"):
                try:
                    leave_session(store, session_id, user_id)
                    st.rerun()
                except ValueError as exc:
                    st.error(str(exc))
        elif spots_available(session) == 0:
            st.caption("Session is full.")
        elif st.button("Join", key=f"join_{session_id}"):
            try:
                join_session(store, session_id, user_id)
                st.rerun()
            except ValueError as exc:
                st.error(str(exc))


def render_matches() -> None:
    runtime = get_runtime()
    store = runtime["store"]
    user_id = st.session_state.user_id
    st.subheader("Matched for you")
    now = utc_now()
    status, body = match_sessions(store, user_id, now=now, tz=runtime["tz"])
    if status != 200:
        st.error(body["message"])
        return
    if not body:
        st.info("No upcoming sessions yet. Why not host one?")
        return
    availability = get_user_availability(store, user_id)
    if availability is None:
        st.info("Set your weekly availability to get personalised matches. Showing soonest first.")
    for session in body:
        breakdown = (
            score_breakdown(session, availability, now, runtime["tz"]) if availability else None
        )
        _render_session_card(session, breakdown)


def main() -> None:
    st.set_page_config(
        page_title="TableMatch",
        page_icon=":game_die:",
        layout="wide",
    )
    init_state()
    runtime = get_runtime()
    if runtime["errors"]:
        st.error("Startup validation failed.")
        for error in runtime["errors"]:
            st.write(f"- {error}")
        return
    for warning in runtime.get("warnings", []):
        st.warning(warning)
    status = readiness(runtime["conn"], runtime["store"])
    if not status["ok"]:
        st.error("Readiness check failed.")
        st.json(status)
        return
    st.title("TableMatch")
    render_user_picker()
    if st.session_state.user_id is None:
        st.info("Create a player in the sidebar to get started.")
        return
    if st.session_state.current_view == "availability":
        render_availability()
    elif st.session_state.current_view == "host":
        render_host()
    else:
        render_matches()


if __name__ == "__main__":
    main()
