"""Competition results page: competitors, teams, bouts and the bout wizard."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import streamlit as st

from dojodesk.errors import flash_success, render_flash
from dojodesk.services import results as svc
from dojodesk.services.competitions import format_date_range, list_coaches
from dojodesk.ui.feedback import show_error
from dojodesk.ui.nav import go, nav_param
from dojodesk.wizard import STEP_TITLES, LogBoutWizard, Step, WizardError, submit_wizard

_ALL = "__all__"


def _state_key(competition_id: int) -> str:
    return f"results__state_{competition_id}"


def _wizard_key(competition_id: int) -> str:
    return f"wizard__{competition_id}"


def _edit_key(competition_id: int) -> str:
    return f"results__editing_{competition_id}"


def _load_state(competition_id: int, *, refresh: bool = False) -> svc.CompetitionResultsState:
    key = _state_key(competition_id)
    if refresh or key not in st.session_state:
        with st.spinner("Loading competition…"):
            st.session_state[key] = svc.load_competition_results(competition_id)
    return st.session_state[key]


def _coaches(competition_id: int) -> List[Dict[str, Any]]:
    key = f"results__coaches_{competition_id}"
    if key not in st.session_state:
        st.session_state[key] = list_coaches(competition_id)
    return st.session_state[key]


def _coach_select(label: str, coaches: List[Dict[str, Any]], current: Optional[int], key: str) -> Optional[int]:
    ids = [None] + [c["competition_coaches_id"] for c in coaches]
    names = {c["competition_coaches_id"]: c.get("name") or f"Coach #{c['competition_coaches_id']}" for c in coaches}
    return st.selectbox(
        label,
        ids,
        index=ids.index(current) if current in ids else 0,
        format_func=lambda i: "No coach" if i is None else names.get(i, str(i)),
        key=key,
    )


# ------------------------------ Header ------------------------------------ #

def _render_header(state: svc.CompetitionResultsState) -> None:
    comp = state.competition or {}
    st.title(comp.get("Name") or "Competition")
    st.caption(
        f"{format_date_range(comp.get('date_start'), comp.get('date_end'), comp.get('singular_day_event'))}"
        f" · {comp.get('location') or 'Location TBD'}"
    )
    c1, c2, c3, c4, c5 = st.columns(5)
    c1.metric("Competitors", len({e.get("members_id") for e in state.entries}))
    c2.metric("Gold", int(comp.get("total_gold") or 0))
    c3.metric("Silver", int(comp.get("total_silver") or 0))
    c4.metric("Bronze", int(comp.get("total_bronze") or 0))
    c5.metric("Total medals", svc.medal_total(comp))


def _render_discipline_filter(state: svc.CompetitionResultsState) -> None:
    options = [_ALL] + [d["competition_disciplines_id"] for d in state.disciplines]
    names = {d["competition_disciplines_id"]: d.get("name") or "Unnamed discipline" for d in state.disciplines}
    current = state.selected_discipline if state.selected_discipline in options else _ALL
    choice = st.selectbox(
        "Discipline",
        options,
        index=options.index(current),
        format_func=lambda i: "All disciplines" if i == _ALL else names.get(i, str(i)),
        key=f"results__discipline_{state.competition_id}",
    )
    state.selected_discipline = None if choice == _ALL else choice


# ------------------------------ Cards ------------------------------------- #

def _render_bout_line(state: svc.CompetitionResultsState, bout: Dict[str, Any], *, editable: bool) -> None:
    icon = "✅" if bout.get("result") == "Win" else "❌"
    club = f" ({bout['opponent_club']})" if bout.get("opponent_club") else ""
    line, action = st.columns([5, 1])
    line.write(
        f"{icon} {bout.get('round') or 'Round ?'} vs {bout.get('opponent_name') or 'Unknown'}{club}"
        f" · {bout.get('score_for', 0)}-{bout.get('score_against', 0)}"
    )
    if editable and action.button("Edit", key=f"results__edit_bout_{bout['competition_bouts_id']}"):
        st.session_state[_edit_key(state.competition_id)] = bout["competition_bouts_id"]
        st.rerun()


def _render_competitor(state: svc.CompetitionResultsState, entry: Dict[str, Any]) -> None:
    stats = svc.competitor_stats(state, entry["competition_entries_id"])
    discipline = state.discipline(entry.get("competition_disciplines_id")) or {}
    with st.container(border=True):
        head, badge = st.columns([3, 1])
        head.markdown(f"**{svc.member_name(entry)}**")
        head.caption(f"{discipline.get('name') or 'Unknown discipline'} · {stats['wins']}W / {stats['losses']}L")
        if stats["medal"]:
            badge.markdown(f"🏅 **{stats['medal']}**")
            if stats["round_reached"]:
                badge.caption(stats["round_reached"])
        bouts = [b for b in state.bouts if b.get("competition_entries_id") == entry["competition_entries_id"]]
        if bouts:
            with st.expander(f"Bouts ({len(bouts)})"):
                for bout in bouts:
                    _render_bout_line(state, bout, editable=True)
        else:
            st.caption("No bouts logged.")


def _render_team(state: svc.CompetitionResultsState, team: Dict[str, Any]) -> None:
    stats = svc.team_stats(state, team["competition_teams_id"])
    with st.container(border=True):
        head, badge = st.columns([3, 1])
        head.markdown(f"**{team.get('team_name') or 'Team'}**")
        members = ", ".join(svc.member_name(m) for m in stats["members"]) or "No members"
        head.caption(f"{members} · {stats['wins']}W / {stats['losses']}L")
        if stats["medal"]:
            badge.markdown(f"🏅 **{stats['medal']}**")
        bouts = [b for b in state.bouts if b.get("competition_teams_id") == team["competition_teams_id"]]
        for bout in bouts:
            _render_bout_line(state, bout, editable=False)


# ---------------------------- Edit bout ----------------------------------- #

def _render_edit_bout(state: svc.CompetitionResultsState, bout_id: int) -> None:
    bout = next((b for b in state.bouts if b.get("competition_bouts_id") == bout_id), None)
    entry = svc.entry_for_bout(state, bout) if bout else None
    if not bout or not entry:
        st.session_state.pop(_edit_key(state.competition_id), None)
        return
    try:
        existing = svc.fetch_existing_result(entry["competition_entries_id"])
        coaches = _coaches(state.competition_id)
    except Exception as exc:
        show_error(exc, "Failed to load bout details.")
        return

    medals = [None, *svc.MEDALS]
    with st.form(f"results__edit_form_{bout_id}", border=True):
        st.subheader(f"Edit bout · {svc.member_name(entry)}")
        c1, c2 = st.columns(2)
        round_name = c1.text_input("Round", value=bout.get("round") or "")
        result = c2.radio("Result", ["Win", "Loss"], index=0 if bout.get("result") == "Win" else 1, horizontal=True)
        opponent = c1.text_input("Opponent name", value=bout.get("opponent_name") or "")
        opponent_club = c2.text_input("Opponent club", value=bout.get("opponent_club") or "")
        score_for = c1.text_input("Score for", value=str(bout.get("score_for") if bout.get("score_for") is not None else ""))
        score_against = c2.text_input(
            "Score against", value=str(bout.get("score_against") if bout.get("score_against") is not None else "")
        )
        coach_id = _coach_select("Coach", coaches, entry.get("competition_coaches_id"), f"results__edit_coach_{bout_id}")
        current_medal = (existing or {}).get("medal")
        medal = st.selectbox(
            "Medal",
            medals,
            index=medals.index(current_medal) if current_medal in medals else 0,
            format_func=lambda m: m or "No medal",
        )
        save_col, cancel_col = st.columns(2)
        submitted = save_col.form_submit_button("Save", type="primary", use_container_width=True)
        cancelled = cancel_col.form_submit_button("Cancel", use_container_width=True)

    if cancelled:
        st.session_state.pop(_edit_key(state.competition_id), None)
        st.rerun()
    if not submitted:
        return

    form = {
        "round": round_name,
        "opponent_name": opponent,
        "opponent_club": opponent_club,
        "score_for": score_for,
        "score_against": score_against,
        "result": result,
        "coach_id": coach_id,
        "medal": medal,
    }
    try:
        updated_bout, updated_result = svc.save_bout_edit(bout, entry, form, existing)
    except Exception as exc:
        show_error(exc, "Failed to save bout.")
        return

    svc.replace_bout(state, updated_bout)
    entry["competition_coaches_id"] = coach_id
    if updated_result:
        svc.upsert_result(state, updated_result)
    else:
        svc.remove_result(state, entry["competition_entries_id"])
    st.session_state.pop(_edit_key(state.competition_id), None)
    flash_success("Bout updated.")
    st.rerun()


# ------------------------------ Wizard ------------------------------------ #

def _render_wizard(state: svc.CompetitionResultsState) -> None:
    key = _wizard_key(state.competition_id)
    wizard: LogBoutWizard = st.session_state.setdefault(key, LogBoutWizard(competition_id=state.competition_id))

    with st.container(border=True):
        st.subheader(f"Log bout · {STEP_TITLES[wizard.step]}")
        st.progress(wizard.progress)
        try:
            _render_wizard_step(state, wizard)
        except WizardError as exc:
            st.error(str(exc))
        except Exception as exc:
            show_error(exc, "Failed to save bout results.")

        nav_back, nav_close = st.columns(2)
        if wizard.history and nav_back.button("◀ Back", key=f"{key}__back"):
            wizard.back()
            st.rerun()
        if nav_close.button("Close wizard", key=f"{key}__close"):
            st.session_state.pop(key, None)
            st.rerun()


def _render_wizard_step(state: svc.CompetitionResultsState, wizard: LogBoutWizard) -> None:
    key = _wizard_key(state.competition_id)

    if wizard.step is Step.DISCIPLINE:
        if not state.disciplines:
            st.info("No disciplines have entries for this competition.")
            return
        for discipline in state.disciplines:
            label = discipline.get("name") or "Unnamed discipline"
            if discipline.get("team_event"):
                label += " (team)"
            if st.button(label, key=f"{key}__d_{discipline['competition_disciplines_id']}", use_container_width=True):
                wizard.choose_discipline(discipline)
                st.rerun()

    elif wizard.step is Step.COMPETITOR:
        if wizard.team_event:
            options = [t for t in state.teams if t.get("competition_disciplines_id") == wizard.discipline_id]
            def label_of(team: Dict[str, Any]) -> str:
                return team.get("team_name") or "Team"

            id_key = "competition_teams_id"
        else:
            options = [e for e in state.entries if e.get("competition_disciplines_id") == wizard.discipline_id]
            label_of = svc.member_name
            id_key = "competition_entries_id"
        if not options:
            st.info("Nobody is entered in this discipline.")
        for option in options:
            if st.button(label_of(option), key=f"{key}__c_{option[id_key]}", use_container_width=True):
                wizard.choose_competitor(option)
                st.rerun()

    elif wizard.step is Step.COACH:
        coach_id = _coach_select("Corner coach", _coaches(state.competition_id), wizard.coach_id, f"{key}__coach")
        if st.button("Next ▶", key=f"{key}__coach_next", type="primary"):
            wizard.choose_coach(coach_id)
            st.rerun()

    elif wizard.step is Step.WIN_LOSS:
        with st.form(f"{key}__outcome"):
            result = st.radio("Result", ["Win", "Loss"], horizontal=True)
            is_final = st.checkbox("This was the final")
            round_name = st.text_input("Round", value=wizard.round)
            opponent = st.text_input("Opponent name", value=wizard.opponent_name)
            club = st.text_input("Opponent club", value=wizard.opponent_club or "")
            submitted = st.form_submit_button("Next ▶", type="primary")
        if submitted:
            wizard.set_outcome(result, is_final=is_final, round=round_name, opponent_name=opponent, opponent_club=club)
            st.rerun()

    elif wizard.step is Step.SCORES:
        with st.form(f"{key}__scores"):
            c1, c2 = st.columns(2)
            score_for = c1.text_input("Score for")
            score_against = c2.text_input("Score against")
            submitted = st.form_submit_button("Next ▶", type="primary")
        if submitted:
            wizard.set_scores(score_for, score_against)
            st.rerun()

    elif wizard.step is Step.MEDAL:
        for medal in (*svc.MEDALS, None):
            if st.button(medal or "No medal", key=f"{key}__m_{medal}", use_container_width=True):
                wizard.choose_medal(medal)
                st.rerun()

    elif wizard.step is Step.CONFIRM:
        summary = wizard.summary()
        st.write(
            f"**{summary['result']}** in {summary['round']} vs {summary['opponent']} ({summary['score']})"
        )
        if summary["medal"]:
            st.write(f"Medal: **{summary['medal']}** · {summary['round_reached']}")
        if st.button("Save bout", key=f"{key}__save", type="primary"):
            submit_wizard(wizard)
            st.session_state.pop(key, None)
            _load_state(state.competition_id, refresh=True)
            flash_success("Bout logged.")
            st.rerun()


# ------------------------------- Page ------------------------------------- #

def show_results_page() -> None:
    competition_id = nav_param("competition_id")
    if competition_id is None:
        st.title("Competition results")
        st.info("Choose a competition on the Competitions page to see its results.")
        if st.button("Go to competitions"):
            go("Competitions")
        return

    try:
        state = _load_state(competition_id)
    except Exception as exc:
        show_error(exc, svc.LOAD_ERROR_MSG)
        return

    if state.error:
        st.error(state.error)
        if st.button("Retry"):
            _load_state(competition_id, refresh=True)
            st.rerun()
        return
    if state.competition is None:
        st.warning("Competition not found.")
        return

    _render_header(state)
    render_flash()

    back_col, refresh_col, wizard_col = st.columns(3)
    if back_col.button("◀ Competitions"):
        go("Competitions")
    if refresh_col.button("Refresh"):
        _load_state(competition_id, refresh=True)
        st.rerun()
    if wizard_col.button("➕ Log bout", type="primary"):
        st.session_state.setdefault(_wizard_key(competition_id), LogBoutWizard(competition_id=competition_id))

    if _wizard_key(competition_id) in st.session_state:
        _render_wizard(state)

    editing = st.session_state.get(_edit_key(competition_id))
    if editing is not None:
        _render_edit_bout(state, editing)

    if state.is_empty:
        st.info("No competitors registered for this competition yet.")
        return

    _render_discipline_filter(state)
    entries = svc.filtered_entries(state)
    teams = svc.filtered_teams(state)
    bouts = svc.filtered_bouts(state)
    st.caption(f"{len(entries)} competitors · {len(teams)} teams · {len(bouts)} bouts")

    if teams:
        st.subheader("Teams")
        for team in teams:
            _render_team(state, team)
    st.subheader("Competitors")
    if not entries:
        st.info("No competitors in this discipline.")
    for entry in entries:
        _render_competitor(state, entry)


__all__ = ["show_results_page"]
