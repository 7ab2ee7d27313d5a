"""Martial arts, their classes and each class's belt system."""
from __future__ import annotations

import re
from datetime import datetime
from typing import Any, Dict, List, Optional

from loguru import logger

from dojodesk import db_tables as T
from dojodesk.errors import service_call
from dojodesk.supabase_client import get_client
from dojodesk.utils.supa import first_row

__all__ = [
    "DEFAULT_BELT_COLOUR",
    "add_belt",
    "add_class",
    "add_martial_art",
    "delete_belt",
    "delete_class",
    "delete_martial_art",
    "get_class",
    "get_martial_art",
    "list_belts",
    "list_classes",
    "list_martial_arts",
    "move_belt",
    "next_belt_order",
    "rename_class",
    "rename_martial_art",
    "update_belt",
]

DEFAULT_BELT_COLOUR = "#000000"
_HEX_RE = re.compile(r"^#[0-9a-fA-F]{6}$")


def _client():
    client = get_client()
    if client is None:  # pragma: no cover
        raise RuntimeError("Supabase client not configured")
    return client


def _now() -> str:
    return datetime.now().astimezone().isoformat()


def _required_name(name: Optional[str], label: str) -> str:
    clean = (name or "").strip()
    if not clean:
        raise ValueError(f"{label} name is required")
    return clean


def _one(table: str, column: str, value: Any, context: str) -> Optional[Dict[str, Any]]:
    with service_call(context):
        response = _client().table(table).select("*").eq(column, value).limit(1).execute()
    return first_row(response)


# ----------------------------- Martial arts ------------------------------- #

def list_martial_arts() -> List[Dict[str, Any]]:
    with service_call("Settings:fetchMartialArts"):
        response = _client().table(T.MARTIAL_ART).select("*").order("name").execute()
    return response.data or []


def get_martial_art(martial_art_id: int) -> Optional[Dict[str, Any]]:
    return _one(T.MARTIAL_ART, "martial_art_id", martial_art_id, "MartialArt:fetchMartialArt")


def add_martial_art(name: str) -> Dict[str, Any]:
    payload = {"name": _required_name(name, "Martial art")}
    with service_call("Settings:handleAddMartialArt"):
        rows = _client().table(T.MARTIAL_ART).insert([payload]).execute().data or []
    logger.info("[Settings:handleAddMartialArt] added {}", payload["name"])
    return rows[0] if rows else payload


def rename_martial_art(martial_art_id: int, name: str) -> Dict[str, Any]:
    payload = {"name": _required_name(name, "Martial art")}
    with service_call("Settings:handleUpdateMartialArt"):
        rows = (
            _client()
            .table(T.MARTIAL_ART)
            .update(payload)
            .eq("martial_art_id", martial_art_id)
            .execute()
        ).data or []
    return rows[0] if rows else {"martial_art_id": martial_art_id, **payload}


def delete_martial_art(martial_art_id: int) -> None:
    with service_call("Settings:handleDeleteMartialArt"):
        _client().table(T.MARTIAL_ART).delete().eq("martial_art_id", martial_art_id).execute()


# -------------------------------- Classes --------------------------------- #

def list_classes(martial_art_id: int) -> List[Dict[str, Any]]:
    with service_call("MartialArt:fetchClasses"):
        response = (
            _client()
            .table(T.MARTIAL_ART_CLASSES)
            .select("*")
            .eq("martial_art_id", martial_art_id)
            .order("name")
            .execute()
        )
    return response.data or []


def get_class(class_id: int) -> Optional[Dict[str, Any]]:
    return _one(T.MARTIAL_ART_CLASSES, "martial_art_classes_id", class_id, "Class:fetchClass")


def add_class(martial_art_id: int, name: str) -> Dict[str, Any]:
    payload = {"martial_art_id": martial_art_id, "name": _required_name(name, "Class")}
    with service_call("MartialArt:handleAddClass"):
        rows = _client().table(T.MARTIAL_ART_CLASSES).insert([payload]).execute().data or []
    return rows[0] if rows else payload


def rename_class(class_id: int, name: str) -> Dict[str, Any]:
    payload = {"name": _required_name(name, "Class")}
    with service_call("MartialArt:handleUpdateClass"):
        rows = (
            _client()
            .table(T.MARTIAL_ART_CLASSES)
            .update(payload)
            .eq("martial_art_classes_id", class_id)
            .execute()
        ).data or []
    return rows[0] if rows else {"martial_art_classes_id": class_id, **payload}


def delete_class(class_id: int) -> None:
    with service_call("MartialArt:handleDeleteClass"):
        _client().table(T.MARTIAL_ART_CLASSES).delete().eq("martial_art_classes_id", class_id).execute()


# ------------------------------ Belt system ------------------------------- #

def list_belts(class_id: int) -> List[Dict[str, Any]]:
    with service_call("Class:fetchBelts"):
        response = (
            _client()
            .table(T.BELT_SYSTEM)
            .select("*")
            .eq("martial_art_classes_id", class_id)
            .order("belt_order")
            .execute()
        )
    return response.data or []


def next_belt_order(belts: List[Dict[str, Any]]) -> int:
    if not belts:
        return 1
    return max(int(belt.get("belt_order") or 0) for belt in belts) + 1


def _colour(value: Optional[str]) -> str:
    colour = (value or "").strip() or DEFAULT_BELT_COLOUR
    if not _HEX_RE.match(colour):
        raise ValueError("Belt colour must be a hex value like #1a2b3c")
    return colour


def add_belt(
    martial_art_id: int,
    class_id: int,
    name: str,
    colour_hex: Optional[str],
    existing: List[Dict[str, Any]],
) -> Dict[str, Any]:
    payload = {
        "martial_art_id": martial_art_id,
        "martial_art_classes_id": class_id,
        "belt_name": _required_name(name, "Belt"),
        "belt_order": next_belt_order(existing),
        "colour_hex": _colour(colour_hex),
    }
    with service_call("Class:handleAddBelt"):
        rows = _client().table(T.BELT_SYSTEM).insert([payload]).execute().data or []
    return rows[0] if rows else payload


def update_belt(belt_id: int, name: str, colour_hex: Optional[str]) -> Dict[str, Any]:
    payload = {
        "belt_name": _required_name(name, "Belt"),
        "colour_hex": _colour(colour_hex),
        "updated_at": _now(),
    }
    with service_call("Class:handleUpdateBelt"):
        rows = (
            _client()
            .table(T.BELT_SYSTEM)
            .update(payload)
            .eq("belt_system_id", belt_id)
            .execute()
        ).data or []
    return rows[0] if rows else {"belt_system_id": belt_id, **payload}


def delete_belt(belt_id: int) -> None:
    with service_call("Class:handleDeleteBelt"):
        _client().table(T.BELT_SYSTEM).delete().eq("belt_system_id", belt_id).execute()


def move_belt(belts: List[Dict[str, Any]], belt_id: int, direction: int) -> List[Dict[str, Any]]:
    """Swap a belt with its neighbour (``direction`` -1 up, +1 down).

    The class is renumbered ``1..len(belts)`` in the new order, so gaps left
    by deleted belts close and no two belts share an order. Only rows whose
    order changes are written. A move past either end is a no-op. Returns
    the belts sorted by their new ``belt_order``.
    """
    ordered = sorted(belts, key=lambda b: int(b.get("belt_order") or 0))
    index = next((i for i, b in enumerate(ordered) if b.get("belt_system_id") == belt_id), None)
    if index is None:
        raise ValueError(f"Belt {belt_id} not found")
    target = index + (1 if direction > 0 else -1)
    if target < 0 or target >= len(ordered):
        return ordered

    ordered[index], ordered[target] = ordered[target], ordered[index]
    renumbered = [{**belt, "belt_order": position} for position, belt in enumerate(ordered, start=1)]
    stamp = _now()
    client = _client()
    with service_call("Class:handleReorderBelts"):
        for before, after in zip(ordered, renumbered):
            if before.get("belt_order") == after["belt_order"]:
                continue
            client.table(T.BELT_SYSTEM).update({"belt_order": after["belt_order"], "updated_at": stamp}).eq(
                "belt_system_id", after["belt_system_id"]
            ).execute()
    return renumbered
