"""Members page: searchable member list with add/edit/delete."""

from __future__ import annotations

from datetime import date
from typing import Any, Dict, Optional

import pandas as pd
import streamlit as st

from dojodesk.errors import flash_success, render_flash
from dojodesk.services import members as svc
from dojodesk.ui.confirm import confirm_button
from dojodesk.ui.feedback import show_error

_ROWS_KEY = "members__rows"
_EDIT_KEY = "members__editing"  # None | "new" | members_id

STATUSES = ["Active", "Inactive", "Suspended"]
MEMBERSHIP_TYPES = ["Adult", "Junior", "Family", "Student", "Concession"]
GENDERS = ["", "Female", "Male", "Other"]


def _date_or_none(value: Any) -> Optional[date]:
    if not value:
        return None
    return date.fromisoformat(str(value)[:10])


def _member_form(member: Optional[Dict[str, Any]]) -> None:
    m = member or {}
    new = member is None
    with st.form("members__form", border=True):
        st.subheader("Add member" if new else f"Edit {svc.full_name(m)}")
        c1, c2 = st.columns(2)
        form = {
            "first_name": c1.text_input("First name", value=m.get("first_name") or ""),
            "last_name": c2.text_input("Last name", value=m.get("last_name") or ""),
            "email_address": c1.text_input("Email", value=m.get("email_address") or ""),
            "phone": c2.text_input("Phone", value=m.get("phone") or ""),
            "date_of_birth": c1.date_input(
                "Date of birth", value=_date_or_none(m.get("date_of_birth")), min_value=date(1920, 1, 1)
            ),
            "gender": c2.selectbox(
                "Gender", GENDERS, index=GENDERS.index(m.get("gender")) if m.get("gender") in GENDERS else 0
            ),
            "address": st.text_input("Address", value=m.get("address") or ""),
            "city": c1.text_input("City", value=m.get("city") or ""),
            "postcode": c2.text_input("Postcode", value=m.get("postcode") or ""),
            "emergency_contact_name": c1.text_input(
                "Emergency contact", value=m.get("emergency_contact_name") or ""
            ),
            "emergency_contact_phone": c2.text_input(
                "Emergency phone", value=m.get("emergency_contact_phone") or ""
            ),
            "membership_type": c1.selectbox(
                "Membership type",
                MEMBERSHIP_TYPES,
                index=MEMBERSHIP_TYPES.index(m["membership_type"]) if m.get("membership_type") in MEMBERSHIP_TYPES else 0,
            ),
            "status": c2.selectbox(
                "Status", STATUSES, index=STATUSES.index(m["status"]) if m.get("status") in STATUSES else 0
            ),
            "join_date": c1.date_input("Join date", value=_date_or_none(m.get("join_date")) or date.today()),
            "medical_info": st.text_area("Medical info", value=m.get("medical_info") or ""),
            "notes": st.text_area("Notes", value=m.get("notes") or ""),
        }
        save_col, cancel_col = st.columns(2)
        submitted = save_col.form_submit_button("Save", type="primary", use_container_width=True)
        cancelled = cancel_col.form_submit_button("Cancel", use_container_width=True)

    if cancelled:
        st.session_state.pop(_EDIT_KEY, None)
        st.rerun()
    if not submitted:
        return
    try:
        if new:
            saved = svc.add_member(form)
        else:
            saved = svc.update_member(m["members_id"], form)
    except Exception as exc:
        show_error(exc, "Failed to save member.")
        return
    st.session_state.pop(_EDIT_KEY, None)
    st.session_state.pop(_ROWS_KEY, None)
    flash_success(f"Saved {svc.full_name(saved)}.")
    st.rerun()


def show_members_page() -> None:
    st.title("👥 Members")
    render_flash()

    editing = st.session_state.get(_EDIT_KEY)
    if _ROWS_KEY not in st.session_state:
        try:
            st.session_state[_ROWS_KEY] = svc.list_members()
        except Exception as exc:
            show_error(exc, "Failed to load members.")
            return
    rows = st.session_state[_ROWS_KEY]

    if editing is not None:
        member = None if editing == "new" else next((r for r in rows if r.get("members_id") == editing), None)
        _member_form(member)
        return

    search_col, add_col = st.columns([3, 1])
    query = search_col.text_input(
        "Search members", key="members__search", placeholder="Name, email, phone, city…", label_visibility="collapsed"
    )
    if add_col.button("➕ Add member", type="primary", use_container_width=True):
        st.session_state[_EDIT_KEY] = "new"
        st.rerun()

    matches = svc.search_members(rows, query)
    st.caption(f"{len(matches)} of {len(rows)} members")
    if not matches:
        st.info("No members match your search." if rows else "No members yet.")
        return

    df = pd.DataFrame(
        [
            {
                "Name": svc.full_name(m),
                "Email": m.get("email_address"),
                "Phone": m.get("phone"),
                "Membership": m.get("membership_type"),
                "Status": m.get("status"),
                "Joined": m.get("join_date"),
            }
            for m in matches
        ]
    )
    st.dataframe(df, hide_index=True, use_container_width=True)

    ids = [m["members_id"] for m in matches]
    names = {m["members_id"]: svc.full_name(m) for m in matches}
    selected = st.selectbox("Select member", ids, format_func=names.get, key="members__selected")
    edit_col, delete_col = st.columns(2)
    if edit_col.button("Edit", key="members__edit", use_container_width=True):
        st.session_state[_EDIT_KEY] = selected
        st.rerun()
    with delete_col:
        if confirm_button("Delete", key=f"members__delete_{selected}", message=f"Delete {names[selected]}?"):
            try:
                svc.delete_member(selected)
            except Exception as exc:
                show_error(exc, "Failed to delete member.")
            else:
                st.session_state.pop(_ROWS_KEY, None)
                flash_success(f"Deleted {names[selected]}.")
                st.rerun()


__all__ = ["show_members_page"]
