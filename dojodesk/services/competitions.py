"""Service layer for competitions, registrations and entries.

All Supabase calls the competitions list page and its forms make live here;
the date and search helpers are pure so they can be reused by analytics.
"""
from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from loguru import logger

from dojodesk import db_tables as T
from dojodesk.errors import service_call
from dojodesk.supabase_client import get_client

__all__ = [
    "add_bulk_entries",
    "add_competition",
    "build_bulk_entries",
    "build_competition_payload",
    "delete_competition",
    "delete_entry",
    "filter_members",
    "format_date",
    "format_date_range",
    "list_all_disciplines",
    "list_coaches",
    "list_competition_entries",
    "list_competitions",
    "list_organisations",
    "load_registration_data",
    "log_results",
    "register_members",
    "search_competitions",
    "split_upcoming_past",
    "update_competition",
]

_EDITABLE_FIELDS = (
    "Name",
    "date_start",
    "date_end",
    "singular_day_event",
    "location",
    "competition_profile_picture",
    "competition_downloads",
    "clubs_id",
    "martial_art_id",
    "organisations_id",
)
_RESULT_FIELDS = ("overall_rank", "total_gold", "total_silver", "total_bronze")


def _client():
    client = get_client()
    if client is None:  # pragma: no cover
        raise RuntimeError("Supabase client not configured")
    return client


def _iso(value: Any) -> Optional[str]:
    if value in (None, ""):
        return None
    if isinstance(value, (date, datetime)):
        return value.isoformat()[:10]
    return str(value).strip()[:10] or None


# ------------------------------ CRUD -------------------------------------- #

def list_competitions() -> List[Dict[str, Any]]:
    with service_call("Competitions:fetchCompetitions"):
        response = (
            _client()
            .table(T.COMPETITIONS)
            .select("*")
            .order("date_start", desc=True)
            .execute()
        )
    return response.data or []


def build_competition_payload(form: Dict[str, Any], *, new: bool = True) -> Dict[str, Any]:
    """Validate the add/edit form and return the row to write."""
    name = (form.get("Name") or "").strip()
    if not name:
        raise ValueError("Competition name is required")
    date_start = _iso(form.get("date_start"))
    if not date_start:
        raise ValueError("Competition start date is required")

    single_day = bool(form.get("singular_day_event"))
    date_end = None if single_day else _iso(form.get("date_end"))
    if date_end and date_end < date_start:
        raise ValueError("Competition end date cannot be before the start date")

    payload: Dict[str, Any] = {}
    for key in _EDITABLE_FIELDS:
        value = form.get(key)
        if isinstance(value, str):
            value = value.strip() or None
        payload[key] = value
    payload.update(
        Name=name,
        date_start=date_start,
        date_end=date_end,
        singular_day_event=single_day,
    )
    if new:
        payload.update({key: None for key in _RESULT_FIELDS})
    return payload


def add_competition(form: Dict[str, Any]) -> Dict[str, Any]:
    payload = build_competition_payload(form)
    with service_call("Competitions:handleAddCompetition"):
        rows = _client().table(T.COMPETITIONS).insert([payload]).execute().data or []
    if not rows:
        raise RuntimeError("Supabase did not return the created competition")
    logger.info("[Competitions:handleAddCompetition] created {}", rows[0].get("competitions_id"))
    return rows[0]


def update_competition(competition_id: int, form: Dict[str, Any]) -> Dict[str, Any]:
    if not competition_id:
        raise ValueError("competition_id is required")
    payload = build_competition_payload(form, new=False)
    with service_call("Competitions:handleUpdateCompetition"):
        rows = (
            _client()
            .table(T.COMPETITIONS)
            .update(payload)
            .eq("competitions_id", competition_id)
            .execute()
        ).data or []
    return rows[0] if rows else {"competitions_id": competition_id, **payload}


def delete_competition(competition_id: int) -> None:
    if not competition_id:
        raise ValueError("competition_id is required")
    with service_call("Competitions:handleDeleteCompetition"):
        _client().table(T.COMPETITIONS).delete().eq("competitions_id", competition_id).execute()
    logger.info("[Competitions:handleDeleteCompetition] deleted {}", competition_id)


def log_results(
    competition_id: int,
    overall_rank: Optional[int],
    total_gold: int,
    total_silver: int,
    total_bronze: int,
) -> Dict[str, Any]:
    """Store the club's overall placing and medal totals for a competition."""
    if overall_rank is not None and int(overall_rank) < 1:
        raise ValueError("Overall rank must be 1 or higher")
    totals = {"total_gold": total_gold, "total_silver": total_silver, "total_bronze": total_bronze}
    for key, value in totals.items():
        if int(value or 0) < 0:
            raise ValueError(f"{key.replace('_', ' ').capitalize()} cannot be negative")

    patch = {
        "overall_rank": int(overall_rank) if overall_rank is not None else None,
        **{key: int(value or 0) for key, value in totals.items()},
    }
    with service_call("LogResultsModal:handleSubmit"):
        rows = (
            _client()
            .table(T.COMPETITIONS)
            .update(patch)
            .eq("competitions_id", competition_id)
            .execute()
        ).data or []
    return rows[0] if rows else {"competitions_id": competition_id, **patch}


# ----------------------------- Pure helpers ------------------------------- #

def split_upcoming_past(
    competitions: Iterable[Dict[str, Any]],
    today: Optional[date] = None,
) -> Tuple[List[Dict[str, Any]], List[Dict[str, Any]]]:
    """Partition competitions into (upcoming, past) relative to ``today``.

    Competitions without a start date belong to neither list.
    """
    today_iso = (today or date.today()).isoformat()
    upcoming: List[Dict[str, Any]] = []
    past: List[Dict[str, Any]] = []
    for comp in competitions:
        start = _iso(comp.get("date_start"))
        if not start:
            continue
        if comp.get("singular_day_event"):
            last_day = start
        else:
            last_day = _iso(comp.get("date_end")) or start
        (upcoming if last_day >= today_iso else past).append(comp)
    return upcoming, past


def search_competitions(rows: Iterable[Dict[str, Any]], query: str) -> List[Dict[str, Any]]:
    term = (query or "").strip().lower()
    if not term:
        return list(rows)
    return [
        row
        for row in rows
        if term in (row.get("Name") or "").lower() or term in (row.get("location") or "").lower()
    ]


def format_date(value: Any) -> str:
    iso = _iso(value)
    if not iso:
        return "TBD"
    parsed = date.fromisoformat(iso)
    return f"{parsed:%B} {parsed.day}, {parsed.year}"


def format_date_range(start: Any, end: Any, single_day: Optional[bool]) -> str:
    start_iso = _iso(start)
    if not start_iso:
        return "TBD"
    end_iso = _iso(end)
    if single_day or not end_iso or end_iso == start_iso:
        return format_date(start_iso)
    first = date.fromisoformat(start_iso)
    last = date.fromisoformat(end_iso)
    if first.year != last.year:
        return f"{format_date(first)} - {format_date(last)}"
    return f"{first:%B} {first.day} - {last:%B} {last.day}, {last.year}"


def filter_members(members: Iterable[Dict[str, Any]], query: str) -> List[Dict[str, Any]]:
    term = (query or "").strip().lower()
    result = []
    for member in members:
        full_name = f"{member.get('first_name') or ''} {member.get('last_name') or ''}".lower()
        email = (member.get("email_address") or "").lower()
        if term in full_name or term in email:
            result.append(member)
    return result


# ---------------------------- Registration -------------------------------- #

def list_organisations() -> List[Dict[str, Any]]:
    with service_call("AddCompetitionModal:fetchOrganisations"):
        response = _client().table(T.ORGANISATIONS).select("*").order("name").execute()
    return response.data or []


def list_all_disciplines() -> List[Dict[str, Any]]:
    with service_call("Competitions:fetchDisciplines"):
        response = (
            _client()
            .table(T.COMPETITION_DISCIPLINES)
            .select("competition_disciplines_id, name, martial_art_id, team_event")
            .order("name")
            .execute()
        )
    return response.data or []


def list_competition_entries(competition_id: int) -> List[Dict[str, Any]]:
    with service_call("Competitions:fetchEntries"):
        response = (
            _client()
            .table(T.COMPETITION_ENTRIES)
            .select("*")
            .eq("competitions_id", competition_id)
            .execute()
        )
    return response.data or []


def list_coaches(competition_id: int) -> List[Dict[str, Any]]:
    with service_call("EditBoutModal:fetchCoaches"):
        response = (
            _client()
            .table(T.COMPETITION_COACHES)
            .select("*")
            .eq("competitions_id", competition_id)
            .execute()
        )
    return response.data or []


def load_registration_data(competition_id: int) -> Dict[str, List[Dict[str, Any]]]:
    """Members, disciplines and existing entries for the register form."""
    client = _client()
    with service_call("RegisterMembersModal:fetchData"):
        members = (
            client.table(T.MEMBERS)
            .select("members_id, first_name, last_name, email_address, profile_picture_url")
            .order("first_name")
            .execute()
        ).data or []
    return {
        "members": members,
        "disciplines": list_all_disciplines(),
        "entries": list_competition_entries(competition_id),
        "coaches": list_coaches(competition_id),
    }


def register_members(
    competition_id: int,
    member_ids: Iterable[int],
    discipline_id: Optional[int],
    coach_id: Optional[int] = None,
    existing_entries: Sequence[Dict[str, Any]] = (),
) -> List[Dict[str, Any]]:
    """Insert one entry per member, skipping members already registered."""
    registered = {entry.get("members_id") for entry in existing_entries}
    rows = [
        {
            "competitions_id": competition_id,
            "competition_disciplines_id": discipline_id,
            "members_id": member_id,
            "competition_coaches_id": coach_id,
        }
        for member_id in dict.fromkeys(member_ids)
        if member_id not in registered
    ]
    if not rows:
        return []
    with service_call("Competitions:handleRegisterMembers"):
        created = _client().table(T.COMPETITION_ENTRIES).insert(rows).execute().data or []
    logger.info(
        "[Competitions:handleRegisterMembers] {} members registered for competition {}",
        len(rows),
        competition_id,
    )
    return created


def build_bulk_entries(
    competition_id: Optional[int],
    discipline_ids: Iterable[int],
    member_ids: Iterable[int],
    fight_ups: Iterable[Tuple[int, int]] = (),
) -> List[Dict[str, Any]]:
    """Cross every member with every discipline and append fight-up pairs.

    ``fight_ups`` holds ``(member_id, discipline_id)`` pairs. The competition
    must already exist.
    """
    if not competition_id:
        raise ValueError("Cannot add entries to a new competition. Please save the competition first.")
    members = list(dict.fromkeys(member_ids))
    entries = [
        {
            "competitions_id": competition_id,
            "competition_disciplines_id": discipline_id,
            "members_id": member_id,
            "competition_coaches_id": None,
        }
        for discipline_id in dict.fromkeys(discipline_ids)
        for member_id in members
    ]
    for member_id, discipline_id in fight_ups:
        entries.append(
            {
                "competitions_id": competition_id,
                "competition_disciplines_id": discipline_id,
                "members_id": member_id,
                "competition_coaches_id": None,
            }
        )
    return entries


def add_bulk_entries(
    competition_id: Optional[int],
    discipline_ids: Iterable[int],
    member_ids: Iterable[int],
    fight_ups: Iterable[Tuple[int, int]] = (),
) -> List[Dict[str, Any]]:
    entries = build_bulk_entries(competition_id, discipline_ids, member_ids, fight_ups)
    if not entries:
        return []
    with service_call("AddCompetitionModal:saveEntries"):
        return _client().table(T.COMPETITION_ENTRIES).insert(entries).execute().data or []


def delete_entry(entry_id: int) -> None:
    with service_call("AddCompetitionModal:removeEntry"):
        _client().table(T.COMPETITION_ENTRIES).delete().eq("competition_entries_id", entry_id).execute()
