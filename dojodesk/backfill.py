"""Admin backfill: assign a club and location to rows that have none.

Runs outside Streamlit with the service role key::

    SUPABASE_URL=... SUPABASE_SERVICE_ROLE_KEY=... python -m dojodesk.backfill --club 1 --location 1
"""

from __future__ import annotations

import argparse
import os
import sys
from typing import Dict, Iterable, Optional

from loguru import logger
from postgrest.exceptions import APIError
from supabase import create_client

from dojodesk import db_tables as T
from dojodesk.errors import NOT_FOUND_CODE, ServiceError, service_call

# Tables carrying both clubs_id and location_id.
BACKFILL_TABLES = (
    T.MEMBERS,
    T.COMPETITION_COACHES,
    T.COMPETITION_BOUTS,
    T.COMPETITIONS,
    T.COMPETITION_ENTRIES,
)


def _service_client():
    url = os.getenv("SUPABASE_URL")
    key = os.getenv("SUPABASE_SERVICE_ROLE_KEY")
    if not url or not key:
        raise RuntimeError(
            "Set SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY before running the backfill."
        )
    return create_client(url, key)


def _require_row(client, table: str, column: str, row_id: int) -> Dict:
    try:
        with service_call(f"Backfill:check_{table}"):
            response = client.table(table).select("*").eq(column, row_id).single().execute()
    except ServiceError as exc:
        if exc.code == NOT_FOUND_CODE:
            raise LookupError(f"{table} row {row_id} not found. Create it first.") from exc
        raise
    return response.data


def backfill(
    client,
    club_id: int,
    location_id: int,
    tables: Iterable[str] = BACKFILL_TABLES,
) -> Dict[str, Optional[str]]:
    """Set ``clubs_id``/``location_id`` where either is null.

    Returns ``{table: None}`` for updated tables and ``{table: message}`` for
    tables that were skipped because the update failed.
    """
    club = _require_row(client, T.CLUBS, "clubs_id", club_id)
    location = _require_row(client, T.LOCATIONS, "location_id", location_id)
    logger.info("[Backfill] club {} ({}), location {} ({})", club_id, club.get("name"), location_id, location.get("name"))

    outcome: Dict[str, Optional[str]] = {}
    for table in tables:
        try:
            (
                client.table(table)
                .update({"clubs_id": club_id, "location_id": location_id})
                .or_("clubs_id.is.null,location_id.is.null")
                .execute()
            )
        except APIError as exc:
            message = getattr(exc, "message", None) or str(exc)
            logger.warning("[Backfill:{}] skipped: {}", table, message)
            outcome[table] = message
            continue
        logger.info("[Backfill:{}] updated", table)
        outcome[table] = None
    return outcome


def _parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Assign a club and location to rows missing them")
    parser.add_argument("--club", type=int, default=1, help="clubs_id to assign")
    parser.add_argument("--location", type=int, default=1, help="location_id to assign")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = _parse_args(argv)
    try:
        outcome = backfill(_service_client(), args.club, args.location)
    except (RuntimeError, LookupError) as exc:
        logger.error("[Backfill] {}", exc)
        return 1
    return 0 if all(message is None for message in outcome.values()) else 1


if __name__ == "__main__":  # pragma: no cover - CLI entry
    sys.exit(main())
