"""Club member records."""
from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, Iterable, List

from loguru import logger

from dojodesk import db_tables as T
from dojodesk.errors import service_call
from dojodesk.supabase_client import get_client

__all__ = [
    "MEMBER_FIELDS",
    "add_member",
    "build_member_payload",
    "delete_member",
    "full_name",
    "list_members",
    "search_members",
    "update_member",
]

MEMBER_FIELDS = (
    "first_name",
    "last_name",
    "date_of_birth",
    "email_address",
    "phone",
    "gender",
    "address",
    "city",
    "postcode",
    "emergency_contact_name",
    "emergency_contact_phone",
    "medical_info",
    "membership_type",
    "join_date",
    "status",
    "notes",
)

# Fields joined into the free-text search haystack.
_SEARCH_FIELDS = (
    "first_name",
    "last_name",
    "email_address",
    "phone",
    "address",
    "city",
    "postcode",
    "emergency_contact_name",
    "emergency_contact_phone",
    "medical_info",
    "membership_type",
    "notes",
    "status",
    "date_of_birth",
    "gender",
)


def _client():
    client = get_client()
    if client is None:  # pragma: no cover
        raise RuntimeError("Supabase client not configured")
    return client


def full_name(member: Dict[str, Any]) -> str:
    name = f"{member.get('first_name') or ''} {member.get('last_name') or ''}".strip()
    return name or "Unnamed Member"


def search_members(members: Iterable[Dict[str, Any]], query: str) -> List[Dict[str, Any]]:
    term = (query or "").strip().lower()
    if not term:
        return list(members)
    matches = []
    for member in members:
        haystack = " ".join(str(member[key]) for key in _SEARCH_FIELDS if member.get(key)).lower()
        if term in haystack:
            matches.append(member)
    return matches


def build_member_payload(form: Dict[str, Any], *, partial: bool = False) -> Dict[str, Any]:
    keys = [key for key in MEMBER_FIELDS if key in form] if partial else MEMBER_FIELDS
    payload: Dict[str, Any] = {}
    for key in keys:
        value = form.get(key)
        if isinstance(value, (date, datetime)):
            value = value.isoformat()[:10]
        elif isinstance(value, str):
            value = value.strip() or None
        payload[key] = value

    if not partial:
        if not payload.get("first_name") or not payload.get("last_name"):
            raise ValueError("First name and last name are required")
        if not payload.get("email_address"):
            raise ValueError("Email address is required")
        if not payload.get("join_date"):
            raise ValueError("Join date is required")
        payload["status"] = payload.get("status") or "Active"
    return payload


def list_members() -> List[Dict[str, Any]]:
    with service_call("Members:fetchMembers"):
        response = (
            _client()
            .table(T.MEMBERS)
            .select("*")
            .order("created_at", desc=True)
            .execute()
        )
    return response.data or []


def add_member(form: Dict[str, Any]) -> Dict[str, Any]:
    payload = build_member_payload(form)
    with service_call("Members:handleAddMember"):
        rows = _client().table(T.MEMBERS).insert([payload]).execute().data or []
    if not rows:
        raise RuntimeError("Supabase did not return the created member")
    logger.info("[Members:handleAddMember] added {}", full_name(rows[0]))
    return rows[0]


def update_member(member_id: int, form: Dict[str, Any]) -> Dict[str, Any]:
    if not member_id:
        raise ValueError("member_id is required")
    payload = build_member_payload(form, partial=True)
    payload["updated_at"] = datetime.now().astimezone().isoformat()
    with service_call("Members:handleUpdateMember"):
        rows = (
            _client()
            .table(T.MEMBERS)
            .update(payload)
            .eq("members_id", member_id)
            .execute()
        ).data or []
    return rows[0] if rows else {"members_id": member_id, **payload}


def delete_member(member_id: int) -> None:
    if not member_id:
        raise ValueError("member_id is required")
    with service_call("Members:handleDeleteMember"):
        _client().table(T.MEMBERS).delete().eq("members_id", member_id).execute()
