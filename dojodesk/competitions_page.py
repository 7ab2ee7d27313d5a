"""Competitions page: upcoming/past lists and the competition forms.

Guidelines:
- every Supabase call goes through ``dojodesk.services.competitions``
- ServiceError and expired sessions are routed through ``show_error``
- the competitions list is cached in session state until a write invalidates it
"""

from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Optional

import streamlit as st

from dojodesk.errors import flash_success, render_flash
from dojodesk.services import competitions as svc
from dojodesk.services.clubs import load_clubs_state
from dojodesk.services.martial_arts import list_martial_arts
from dojodesk.ui.confirm import confirm_button
from dojodesk.ui.feedback import show_error
from dojodesk.ui.nav import go

_ROWS_KEY = "competitions__rows"
_FORM_KEY = "competitions__form"  # ("add", None) | ("edit", competition)
_PANEL_KEY = "competitions__panel"  # (panel, competitions_id)


def _invalidate() -> None:
    st.session_state.pop(_ROWS_KEY, None)


def _load_rows() -> Optional[List[Dict[str, Any]]]:
    if _ROWS_KEY not in st.session_state:
        try:
            st.session_state[_ROWS_KEY] = svc.list_competitions()
        except Exception as exc:
            show_error(exc, "Failed to load competitions.")
            return None
    return st.session_state[_ROWS_KEY]


@st.cache_data(ttl=300, show_spinner=False)
def _lookups() -> Dict[str, List[Dict[str, Any]]]:
    return {
        "clubs": load_clubs_state().clubs,
        "martial_arts": list_martial_arts(),
        "organisations": svc.list_organisations(),
    }


def _option_index(options: List[Any], value: Any) -> int:
    return options.index(value) if value in options else 0


def _lookup_select(label: str, rows: List[Dict[str, Any]], id_key: str, current: Any, key: str) -> Any:
    ids = [None] + [row.get(id_key) for row in rows]
    names = {row.get(id_key): row.get("name") or f"#{row.get(id_key)}" for row in rows}
    return st.selectbox(
        label,
        ids,
        index=_option_index(ids, current),
        format_func=lambda value: "(none)" if value is None else names.get(value, str(value)),
        key=key,
    )


# ------------------------------ Forms ------------------------------------- #

def _render_competition_form(mode: str, competition: Optional[Dict[str, Any]]) -> None:
    comp = competition or {}
    try:
        lookups = _lookups()
    except Exception as exc:
        show_error(exc, "Failed to load clubs, martial arts and organisations.")
        lookups = {"clubs": [], "martial_arts": [], "organisations": []}

    title = "Add competition" if mode == "add" else f"Edit {comp.get('Name') or 'competition'}"
    with st.form("competitions__edit_form", border=True):
        st.subheader(title)
        name = st.text_input("Name", value=comp.get("Name") or "")
        c1, c2, c3 = st.columns([2, 2, 1])
        start = c1.date_input(
            "Start date",
            value=date.fromisoformat(comp["date_start"][:10]) if comp.get("date_start") else date.today(),
        )
        end = c2.date_input(
            "End date",
            value=date.fromisoformat(comp["date_end"][:10]) if comp.get("date_end") else None,
        )
        single_day = c3.checkbox("Single day", value=bool(comp.get("singular_day_event", True)))
        location = st.text_input("Location", value=comp.get("location") or "")
        c4, c5, c6 = st.columns(3)
        with c4:
            clubs_id = _lookup_select("Club", lookups["clubs"], "clubs_id", comp.get("clubs_id"), "competitions__club")
        with c5:
            martial_art_id = _lookup_select(
                "Martial art", lookups["martial_arts"], "martial_art_id", comp.get("martial_art_id"), "competitions__art"
            )
        with c6:
            organisations_id = _lookup_select(
                "Organisation",
                lookups["organisations"],
                "organisations_id",
                comp.get("organisations_id"),
                "competitions__org",
            )
        downloads = st.text_input("Downloads link", value=comp.get("competition_downloads") or "")
        save_col, cancel_col = st.columns(2)
        submitted = save_col.form_submit_button("Save", type="primary", use_container_width=True)
        cancelled = cancel_col.form_submit_button("Cancel", use_container_width=True)

    if cancelled:
        st.session_state.pop(_FORM_KEY, None)
        st.rerun()
    if not submitted:
        return

    form = {
        "Name": name,
        "date_start": start,
        "date_end": end,
        "singular_day_event": single_day,
        "location": location,
        "clubs_id": clubs_id,
        "martial_art_id": martial_art_id,
        "organisations_id": organisations_id,
        "competition_downloads": downloads,
        "competition_profile_picture": comp.get("competition_profile_picture"),
    }
    try:
        if mode == "add":
            saved = svc.add_competition(form)
            # Keep the form open on the saved row so entries can be added.
            st.session_state[_FORM_KEY] = ("edit", saved)
        else:
            saved = svc.update_competition(comp["competitions_id"], form)
            st.session_state.pop(_FORM_KEY, None)
    except Exception as exc:
        show_error(exc, "Failed to save competition.")
        return
    _invalidate()
    flash_success(f"Saved {saved.get('Name') or name}.")
    st.rerun()


def _render_bulk_entries(competition: Dict[str, Any]) -> None:
    comp_id = competition.get("competitions_id")
    st.markdown("**Entries**")
    if not comp_id:
        st.info("Cannot add entries to a new competition. Please save the competition first.")
        return
    try:
        data = svc.load_registration_data(comp_id)
    except Exception as exc:
        show_error(exc, "Failed to load members and disciplines.")
        return

    members = {m["members_id"]: m for m in data["members"]}
    disciplines = {d["competition_disciplines_id"]: d for d in data["disciplines"]}

    entries = data["entries"]
    if entries:
        for entry in entries:
            member = members.get(entry.get("members_id"), {})
            discipline = disciplines.get(entry.get("competition_disciplines_id"), {})
            c1, c2 = st.columns([4, 1])
            c1.write(
                f"{member.get('first_name', '?')} {member.get('last_name', '')} · "
                f"{discipline.get('name', 'Unknown discipline')}"
            )
            if c2.button("Remove", key=f"competitions__rm_entry_{entry['competition_entries_id']}"):
                try:
                    svc.delete_entry(entry["competition_entries_id"])
                except Exception as exc:
                    show_error(exc, "Failed to remove entry.")
                else:
                    st.rerun()
    else:
        st.caption("No entries yet.")

    with st.form("competitions__bulk_form", border=True):
        discipline_ids = st.multiselect(
            "Disciplines",
            list(disciplines),
            format_func=lambda i: disciplines[i].get("name") or f"#{i}",
        )
        member_ids = st.multiselect(
            "Members",
            list(members),
            format_func=lambda i: f"{members[i].get('first_name') or ''} {members[i].get('last_name') or ''}".strip(),
        )
        fight_up_member = st.selectbox(
            "Fight up: member (optional)",
            [None] + list(members),
            format_func=lambda i: "(none)" if i is None else f"{members[i].get('first_name') or ''} {members[i].get('last_name') or ''}",
        )
        fight_up_discipline = st.selectbox(
            "Fight up: discipline",
            [None] + list(disciplines),
            format_func=lambda i: "(none)" if i is None else disciplines[i].get("name") or f"#{i}",
        )
        submitted = st.form_submit_button("Add entries", type="primary")

    if submitted:
        fight_ups = []
        if fight_up_member is not None and fight_up_discipline is not None:
            fight_ups.append((fight_up_member, fight_up_discipline))
        try:
            created = svc.add_bulk_entries(comp_id, discipline_ids, member_ids, fight_ups)
        except Exception as exc:
            show_error(exc, "Failed to save entries.")
            return
        flash_success(f"Added {len(created)} entries.")
        st.rerun()


def _render_log_results(competition: Dict[str, Any]) -> None:
    with st.form(f"competitions__log_results_{competition['competitions_id']}", border=True):
        st.markdown(f"**Log results for {competition.get('Name')}**")
        current_rank = competition.get("overall_rank")
        rank = st.number_input(
            "Overall rank",
            min_value=1,
            step=1,
            value=int(current_rank) if current_rank is not None else None,
            placeholder="Not ranked",
        )
        c1, c2, c3 = st.columns(3)
        gold = c1.number_input("Gold", min_value=0, step=1, value=int(competition.get("total_gold") or 0))
        silver = c2.number_input("Silver", min_value=0, step=1, value=int(competition.get("total_silver") or 0))
        bronze = c3.number_input("Bronze", min_value=0, step=1, value=int(competition.get("total_bronze") or 0))
        submitted = st.form_submit_button("Save results", type="primary")
    if submitted:
        try:
            svc.log_results(competition["competitions_id"], rank, gold, silver, bronze)
        except Exception as exc:
            show_error(exc, "Failed to save results.")
            return
        _invalidate()
        st.session_state.pop(_PANEL_KEY, None)
        flash_success("Results saved.")
        st.rerun()


def _render_register_members(competition: Dict[str, Any]) -> None:
    comp_id = competition["competitions_id"]
    try:
        data = svc.load_registration_data(comp_id)
    except Exception as exc:
        show_error(exc, "Failed to load registration data.")
        return

    query = st.text_input("Search members", key=f"competitions__reg_search_{comp_id}")
    members = svc.filter_members(data["members"], query)
    registered = {e.get("members_id") for e in data["entries"]}
    with st.form(f"competitions__register_{comp_id}", border=True):
        selected = [
            m["members_id"]
            for m in members
            if st.checkbox(
                f"{m.get('first_name') or ''} {m.get('last_name') or ''}"
                + (" (registered)" if m["members_id"] in registered else ""),
                key=f"competitions__reg_{comp_id}_{m['members_id']}",
                disabled=m["members_id"] in registered,
            )
        ]
        disciplines = {d["competition_disciplines_id"]: d for d in data["disciplines"]}
        discipline_id = st.selectbox(
            "Discipline",
            [None] + list(disciplines),
            format_func=lambda i: "(none)" if i is None else disciplines[i].get("name") or f"#{i}",
        )
        coaches = {c["competition_coaches_id"]: c for c in data["coaches"]}
        coach_id = st.selectbox(
            "Coach",
            [None] + list(coaches),
            format_func=lambda i: "(none)" if i is None else coaches[i].get("name") or f"#{i}",
        )
        submitted = st.form_submit_button("Register", type="primary")
    if submitted:
        if not selected:
            st.warning("Select at least one member.")
            return
        try:
            created = svc.register_members(comp_id, selected, discipline_id, coach_id, data["entries"])
        except Exception as exc:
            show_error(exc, "Failed to register members.")
            return
        st.session_state.pop(_PANEL_KEY, None)
        flash_success(f"Registered {len(created)} members.")
        st.rerun()


# ------------------------------ List -------------------------------------- #

def _render_card(comp: Dict[str, Any], *, past: bool) -> None:
    comp_id = comp["competitions_id"]
    with st.container(border=True):
        head, medals = st.columns([3, 2])
        head.markdown(f"**{comp.get('Name') or 'Untitled competition'}**")
        head.caption(
            f"{svc.format_date_range(comp.get('date_start'), comp.get('date_end'), comp.get('singular_day_event'))}"
            f" · {comp.get('location') or 'Location TBD'}"
        )
        if past:
            rank = comp.get("overall_rank")
            medals.markdown(
                f"🥇 {comp.get('total_gold') or 0}  🥈 {comp.get('total_silver') or 0}  "
                f"🥉 {comp.get('total_bronze') or 0}" + (f"  · Rank {rank}" if rank else "")
            )

        buttons = st.columns(6)
        if buttons[0].button("Results", key=f"competitions__results_{comp_id}"):
            go("Results", competition_id=comp_id)
        if buttons[1].button("Analytics", key=f"competitions__analytics_{comp_id}"):
            go("Competition Analytics", competition_id=comp_id)
        if buttons[2].button("Edit", key=f"competitions__edit_{comp_id}"):
            st.session_state[_FORM_KEY] = ("edit", comp)
            st.rerun()
        if buttons[3].button("Log results", key=f"competitions__log_{comp_id}"):
            st.session_state[_PANEL_KEY] = ("log", comp_id)
        if buttons[4].button("Register", key=f"competitions__reg_{comp_id}"):
            st.session_state[_PANEL_KEY] = ("register", comp_id)
        with buttons[5]:
            if confirm_button(
                "Delete",
                key=f"competitions__delete_{comp_id}",
                message=f"Delete {comp.get('Name')}? This cannot be undone.",
            ):
                try:
                    svc.delete_competition(comp_id)
                except Exception as exc:
                    show_error(exc, "Failed to delete competition.")
                else:
                    _invalidate()
                    flash_success("Competition deleted.")
                    st.rerun()

        panel, panel_id = st.session_state.get(_PANEL_KEY, (None, None))
        if panel_id == comp_id:
            if panel == "log":
                _render_log_results(comp)
            elif panel == "register":
                _render_register_members(comp)
            if st.button("Close", key=f"competitions__close_{comp_id}"):
                st.session_state.pop(_PANEL_KEY, None)
                st.rerun()


def show_competitions_page() -> None:
    st.title("🥋 Competitions")
    render_flash()

    pending = st.session_state.get(_FORM_KEY)
    if pending:
        mode, competition = pending
        _render_competition_form(mode, competition)
        if mode == "edit":
            _render_bulk_entries(competition)
        return

    top_left, top_right = st.columns([3, 1])
    query = top_left.text_input(
        "Search",
        key="competitions__search",
        placeholder="Search by name or location",
        label_visibility="collapsed",
    )
    if top_right.button("➕ Add competition", type="primary", use_container_width=True):
        st.session_state[_FORM_KEY] = ("add", None)
        st.rerun()

    rows = _load_rows()
    if rows is None:
        return
    upcoming, past = svc.split_upcoming_past(svc.search_competitions(rows, query))

    tab_upcoming, tab_past = st.tabs([f"Upcoming ({len(upcoming)})", f"Past ({len(past)})"])
    with tab_upcoming:
        if not upcoming:
            st.info("No upcoming competitions.")
        for comp in sorted(upcoming, key=lambda c: str(c.get("date_start") or "")):
            _render_card(comp, past=False)
    with tab_past:
        if not past:
            st.info("No past competitions.")
        for comp in past:
            _render_card(comp, past=True)


__all__ = ["show_competitions_page"]
