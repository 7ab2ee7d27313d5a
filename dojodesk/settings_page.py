"""Settings: general info, martial arts, clubs and their locations."""

from __future__ import annotations

import streamlit as st

from dojodesk import __version__
from dojodesk.config import load_settings
from dojodesk.errors import flash_success, render_flash
from dojodesk.services import clubs as clubs_svc
from dojodesk.services import martial_arts as arts_svc
from dojodesk.supabase_client import get_current_user
from dojodesk.ui.confirm import confirm_button
from dojodesk.ui.feedback import show_error
from dojodesk.ui.nav import go

_CLUBS_KEY = "settings__clubs"


def _render_general() -> None:
    settings = load_settings()
    st.write(f"**Club:** {settings.club_name}")
    st.write(f"**Version:** {__version__}")
    st.write(f"**Supabase project:** {settings.supabase_url}")
    try:
        user = get_current_user()
    except Exception as exc:
        show_error(exc, "Failed to load the signed-in user.")
        return
    if user:
        st.write(f"**Signed in as:** {user.get('email') or user.get('id')}")


def _render_martial_arts() -> None:
    try:
        arts = arts_svc.list_martial_arts()
    except Exception as exc:
        show_error(exc, "Failed to load martial arts.")
        return

    with st.form("settings__add_art", clear_on_submit=True):
        name = st.text_input("New martial art")
        if st.form_submit_button("Add", type="primary"):
            try:
                arts_svc.add_martial_art(name)
            except Exception as exc:
                show_error(exc, "Failed to add martial art.")
            else:
                flash_success(f"Added {name.strip()}.")
                st.rerun()

    if not arts:
        st.info("No martial arts yet.")
    for art in arts:
        art_id = art["martial_art_id"]
        row = st.columns([3, 1, 1, 1])
        new_name = row[0].text_input(
            "Name", value=art.get("name") or "", key=f"settings__art_{art_id}", label_visibility="collapsed"
        )
        if row[1].button("Open", key=f"settings__open_art_{art_id}"):
            go("Martial Art", martial_art_id=art_id)
        if row[2].button("Rename", key=f"settings__rename_art_{art_id}"):
            try:
                arts_svc.rename_martial_art(art_id, new_name)
            except Exception as exc:
                show_error(exc, "Failed to rename martial art.")
            else:
                st.rerun()
        with row[3]:
            if confirm_button("Delete", key=f"settings__del_art_{art_id}", message=f"Delete {art.get('name')}?"):
                try:
                    arts_svc.delete_martial_art(art_id)
                except Exception as exc:
                    show_error(exc, "Failed to delete martial art.")
                else:
                    st.rerun()


def _render_clubs() -> None:
    if _CLUBS_KEY not in st.session_state:
        try:
            st.session_state[_CLUBS_KEY] = clubs_svc.load_clubs_state()
        except Exception as exc:
            show_error(exc, "Failed to load clubs.")
            return
    state: clubs_svc.ClubsState = st.session_state[_CLUBS_KEY]

    with st.form("settings__add_club", clear_on_submit=True):
        name = st.text_input("New club")
        if st.form_submit_button("Add club", type="primary"):
            try:
                clubs_svc.add_club(state, name)
            except Exception as exc:
                show_error(exc, "Failed to add club.")
            else:
                st.rerun()

    if not state.clubs:
        st.info("No clubs yet.")
    for club in state.clubs:
        club_id = club["clubs_id"]
        locations = clubs_svc.locations_for(state, club_id)
        with st.expander(f"{club.get('name')} ({len(locations)} locations)"):
            c1, c2 = st.columns([3, 1])
            new_name = c1.text_input("Club name", value=club.get("name") or "", key=f"settings__club_{club_id}")
            if c2.button("Rename", key=f"settings__rename_club_{club_id}"):
                try:
                    clubs_svc.rename_club(state, club_id, new_name)
                except Exception as exc:
                    show_error(exc, "Failed to rename club.")
                else:
                    st.rerun()

            for location in locations:
                loc_id = location["location_id"]
                l1, l2 = st.columns([4, 1])
                l1.write(f"📍 {location.get('name')}" + (f" · {location['address']}" if location.get("address") else ""))
                if l2.button("Remove", key=f"settings__del_loc_{loc_id}"):
                    try:
                        clubs_svc.delete_location(state, loc_id)
                    except Exception as exc:
                        show_error(exc, "Failed to delete location.")
                    else:
                        st.rerun()

            with st.form(f"settings__add_loc_{club_id}", clear_on_submit=True):
                loc_name = st.text_input("Location name")
                address = st.text_input("Address")
                if st.form_submit_button("Add location"):
                    try:
                        clubs_svc.add_location(state, club_id, loc_name, address)
                    except Exception as exc:
                        show_error(exc, "Failed to add location.")
                    else:
                        st.rerun()

            if confirm_button(
                "Delete club",
                key=f"settings__del_club_{club_id}",
                message=f"Delete {club.get('name')} and its {len(locations)} locations?",
            ):
                try:
                    clubs_svc.delete_club(state, club_id)
                except Exception as exc:
                    show_error(exc, "Failed to delete club.")
                else:
                    st.rerun()


def show_settings_page() -> None:
    st.title("⚙️ Settings")
    render_flash()
    general, arts, clubs = st.tabs(["General", "Martial arts", "Clubs & locations"])
    with general:
        _render_general()
    with arts:
        _render_martial_arts()
    with clubs:
        _render_clubs()


__all__ = ["show_settings_page"]
