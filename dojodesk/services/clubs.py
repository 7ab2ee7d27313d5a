"""Clubs and their training locations (settings page)."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from loguru import logger

from dojodesk import db_tables as T
from dojodesk.errors import service_call
from dojodesk.supabase_client import get_client

__all__ = [
    "ClubsState",
    "add_club",
    "add_location",
    "delete_club",
    "delete_location",
    "load_clubs_state",
    "locations_for",
    "rename_club",
]


@dataclass
class ClubsState:
    clubs: List[Dict[str, Any]] = field(default_factory=list)
    locations: List[Dict[str, Any]] = field(default_factory=list)


def _client():
    client = get_client()
    if client is None:  # pragma: no cover
        raise RuntimeError("Supabase client not configured")
    return client


def _required(value: Optional[str], message: str) -> str:
    clean = (value or "").strip()
    if not clean:
        raise ValueError(message)
    return clean


def load_clubs_state() -> ClubsState:
    client = _client()
    with service_call("Settings:fetchClubs"):
        clubs = client.table(T.CLUBS).select("*").order("name").execute().data or []
        locations = client.table(T.LOCATIONS).select("*").order("name").execute().data or []
    return ClubsState(clubs=clubs, locations=locations)


def locations_for(state: ClubsState, club_id: int) -> List[Dict[str, Any]]:
    return [loc for loc in state.locations if loc.get("clubs_id") == club_id]


def add_club(state: ClubsState, name: str) -> Dict[str, Any]:
    payload = {"name": _required(name, "Club name is required")}
    with service_call("Settings:handleAddClub"):
        rows = _client().table(T.CLUBS).insert([payload]).execute().data or []
    club = rows[0] if rows else payload
    state.clubs.append(club)
    return club


def rename_club(state: ClubsState, club_id: int, name: str) -> Dict[str, Any]:
    payload = {"name": _required(name, "Club name is required")}
    with service_call("Settings:handleUpdateClub"):
        _client().table(T.CLUBS).update(payload).eq("clubs_id", club_id).execute()
    for club in state.clubs:
        if club.get("clubs_id") == club_id:
            club.update(payload)
            return club
    return {"clubs_id": club_id, **payload}


def add_location(
    state: ClubsState,
    club_id: int,
    name: str,
    address: Optional[str] = None,
) -> Dict[str, Any]:
    payload = {
        "clubs_id": club_id,
        "name": _required(name, "Location name is required"),
        "address": (address or "").strip() or None,
    }
    with service_call("Settings:handleAddLocation"):
        rows = _client().table(T.LOCATIONS).insert([payload]).execute().data or []
    location = rows[0] if rows else payload
    state.locations.append(location)
    return location


def delete_location(state: ClubsState, location_id: int) -> None:
    with service_call("Settings:handleDeleteLocation"):
        _client().table(T.LOCATIONS).delete().eq("location_id", location_id).execute()
    state.locations = [loc for loc in state.locations if loc.get("location_id") != location_id]


def delete_club(state: ClubsState, club_id: int) -> None:
    """Delete a club and its locations, remotely and in ``state``."""
    client = _client()
    with service_call("Settings:handleDeleteClub"):
        client.table(T.LOCATIONS).delete().eq("clubs_id", club_id).execute()
        client.table(T.CLUBS).delete().eq("clubs_id", club_id).execute()
    removed = len(locations_for(state, club_id))
    state.locations = [loc for loc in state.locations if loc.get("clubs_id") != club_id]
    state.clubs = [club for club in state.clubs if club.get("clubs_id") != club_id]
    logger.info("[Settings:handleDeleteClub] club {} deleted with {} locations", club_id, removed)
