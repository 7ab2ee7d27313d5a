"""Martial art detail: its classes, and a single class with its belt system."""

from __future__ import annotations

from typing import Any, Dict, List

import streamlit as st

from dojodesk.errors import flash_error, flash_success, render_flash
from dojodesk.services import martial_arts as svc
from dojodesk.ui.confirm import confirm_button
from dojodesk.ui.feedback import show_error
from dojodesk.ui.nav import go, nav_param


def _belt_swatch(colour: str) -> str:
    return (
        f"<span style='display:inline-block;width:14px;height:14px;border-radius:3px;"
        f"border:1px solid #888;background:{colour};vertical-align:middle'></span>"
    )


def _render_belts(martial_art_id: int, klass: Dict[str, Any]) -> None:
    class_id = klass["martial_art_classes_id"]
    key = f"martial__belts_{class_id}"
    if key not in st.session_state:
        try:
            st.session_state[key] = svc.list_belts(class_id)
        except Exception as exc:
            show_error(exc, "Failed to load belts.")
            return
    belts: List[Dict[str, Any]] = st.session_state[key]

    if not belts:
        st.caption("No belts yet.")
    for belt in belts:
        belt_id = belt["belt_system_id"]
        row = st.columns([4, 1, 1, 1])
        row[0].markdown(
            f"{_belt_swatch(belt.get('colour_hex') or svc.DEFAULT_BELT_COLOUR)} "
            f"**{belt.get('belt_order')}.** {belt.get('belt_name')}",
            unsafe_allow_html=True,
        )
        for col, label, direction in ((row[1], "▲", -1), (row[2], "▼", 1)):
            if col.button(label, key=f"martial__move_{belt_id}_{direction}"):
                try:
                    st.session_state[key] = svc.move_belt(belts, belt_id, direction)
                except Exception as exc:
                    show_error(exc, "Failed to reorder belts.")
                else:
                    st.rerun()
        with row[3]:
            if confirm_button("🗑", key=f"martial__del_belt_{belt_id}", message=f"Delete {belt.get('belt_name')}?"):
                try:
                    svc.delete_belt(belt_id)
                except Exception as exc:
                    show_error(exc, "Failed to delete belt.")
                else:
                    st.session_state.pop(key, None)
                    st.rerun()

    with st.form(f"martial__add_belt_{class_id}", clear_on_submit=True):
        c1, c2 = st.columns([3, 1])
        name = c1.text_input("Belt name")
        colour = c2.color_picker("Colour", value=svc.DEFAULT_BELT_COLOUR)
        submitted = st.form_submit_button("Add belt")
    if submitted:
        try:
            svc.add_belt(martial_art_id, class_id, name, colour, belts)
        except Exception as exc:
            show_error(exc, "Failed to add belt.")
            return
        st.session_state.pop(key, None)
        st.rerun()

    if belts:
        with st.form(f"martial__edit_belt_{class_id}"):
            ids = [b["belt_system_id"] for b in belts]
            names = {b["belt_system_id"]: b.get("belt_name") or "" for b in belts}
            belt_id = st.selectbox("Edit belt", ids, format_func=names.get)
            current = next(b for b in belts if b["belt_system_id"] == belt_id)
            c1, c2 = st.columns([3, 1])
            new_name = c1.text_input("New name", value=current.get("belt_name") or "")
            new_colour = c2.color_picker("New colour", value=current.get("colour_hex") or svc.DEFAULT_BELT_COLOUR)
            submitted = st.form_submit_button("Update belt")
        if submitted:
            try:
                svc.update_belt(belt_id, new_name, new_colour)
            except Exception as exc:
                show_error(exc, "Failed to update belt.")
                return
            st.session_state.pop(key, None)
            st.rerun()


def _render_class_page(art: Dict[str, Any], class_id: int) -> None:
    martial_art_id = art["martial_art_id"]
    try:
        klass = svc.get_class(class_id)
    except Exception as exc:
        show_error(exc, "Failed to load class.")
        return
    if klass is None or klass.get("martial_art_id") not in (None, martial_art_id):
        flash_error("Class not found.")
        go("Martial Art", martial_art_id=martial_art_id)

    st.title(f"🎽 {klass.get('name') or 'Class'}")
    st.caption(art.get("name") or "")
    render_flash()
    if st.button(f"◀ {art.get('name') or 'Martial art'}"):
        go("Martial Art", martial_art_id=martial_art_id)
    st.subheader("Belt system")
    _render_belts(martial_art_id, klass)


def show_martial_art_page() -> None:
    martial_art_id = nav_param("martial_art_id")
    if martial_art_id is None:
        st.title("Martial art")
        st.info("Choose a martial art under Settings → Martial arts.")
        if st.button("Go to settings"):
            go("Settings")
        return

    try:
        art = svc.get_martial_art(martial_art_id)
        classes = svc.list_classes(martial_art_id) if art else []
    except Exception as exc:
        show_error(exc, "Failed to load martial art.")
        return
    if art is None:
        flash_error("Martial art not found.")
        go("Settings")

    class_id = nav_param("class_id")
    if class_id is not None:
        _render_class_page(art, class_id)
        return

    st.title(f"🥋 {art.get('name')}")
    render_flash()
    if st.button("◀ Settings"):
        go("Settings")

    with st.form("martial__add_class", clear_on_submit=True):
        class_name = st.text_input("New class name")
        if st.form_submit_button("Add class", type="primary"):
            try:
                svc.add_class(martial_art_id, class_name)
            except Exception as exc:
                show_error(exc, "Failed to add class.")
            else:
                flash_success(f"Added {class_name.strip()}.")
                st.rerun()

    if not classes:
        st.info("No classes yet.")
    for klass in classes:
        class_id = klass["martial_art_classes_id"]
        with st.expander(klass.get("name") or "Unnamed class"):
            c1, c2, c3 = st.columns([3, 1, 1])
            new_name = c1.text_input("Class name", value=klass.get("name") or "", key=f"martial__class_name_{class_id}")
            if c2.button("Rename", key=f"martial__rename_{class_id}"):
                try:
                    svc.rename_class(class_id, new_name)
                except Exception as exc:
                    show_error(exc, "Failed to rename class.")
                else:
                    st.rerun()
            if c3.button("Open", key=f"martial__open_{class_id}"):
                go("Martial Art", martial_art_id=martial_art_id, class_id=class_id)
            _render_belts(martial_art_id, klass)
            if confirm_button(
                "Delete class",
                key=f"martial__del_class_{class_id}",
                message=f"Delete {klass.get('name')} and leave its belts orphaned?",
            ):
                try:
                    svc.delete_class(class_id)
                except Exception as exc:
                    show_error(exc, "Failed to delete class.")
                else:
                    st.rerun()


__all__ = ["show_martial_art_page"]
