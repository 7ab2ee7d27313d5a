"""Competition results: the aggregated detail-page state and bout edits.

``load_competition_results`` performs every read the results page needs and
returns a :class:`CompetitionResultsState`. The filter and stats helpers are
pure functions over that state so the page can re-render without refetching.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from loguru import logger
from postgrest.exceptions import APIError

from dojodesk import db_tables as T
from dojodesk.errors import ServiceError, is_not_found, service_call
from dojodesk.supabase_client import get_client

__all__ = [
    "CompetitionResultsState",
    "MEDALS",
    "competitor_stats",
    "entry_for_bout",
    "fetch_existing_result",
    "filtered_bouts",
    "filtered_entries",
    "filtered_teams",
    "load_competition_results",
    "medal_total",
    "member_name",
    "remove_result",
    "replace_bout",
    "round_reached_for_medal",
    "save_bout_edit",
    "team_stats",
    "upsert_result",
]

MEDALS = ("Gold", "Silver", "Bronze")
LOAD_ERROR_MSG = "Failed to load competition data. Please try again."

_MEMBER_EMBED = "member:members!inner(members_id, first_name, last_name, profile_picture_url)"


@dataclass
class CompetitionResultsState:
    competition_id: int
    competition: Optional[Dict[str, Any]] = None
    entries: List[Dict[str, Any]] = field(default_factory=list)
    disciplines: List[Dict[str, Any]] = field(default_factory=list)
    bouts: List[Dict[str, Any]] = field(default_factory=list)
    results: List[Dict[str, Any]] = field(default_factory=list)
    teams: List[Dict[str, Any]] = field(default_factory=list)
    team_members: List[Dict[str, Any]] = field(default_factory=list)
    selected_discipline: Optional[int] = None
    error: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.entries and not self.teams

    def discipline(self, discipline_id: Optional[int]) -> Optional[Dict[str, Any]]:
        for row in self.disciplines:
            if row.get("competition_disciplines_id") == discipline_id:
                return row
        return None


def _client():
    client = get_client()
    if client is None:  # pragma: no cover
        raise RuntimeError("Supabase client not configured")
    return client


def _ids(rows: List[Dict[str, Any]], key: str) -> List[Any]:
    return [row[key] for row in rows if row.get(key) is not None]


def load_competition_results(competition_id: int) -> CompetitionResultsState:
    """Fetch competition, entries, disciplines, bouts, results and teams.

    A missing competition yields ``competition=None``; a competition with no
    entries yields empty lists. Read failures are logged and reported through
    ``state.error`` rather than raised.
    """
    state = CompetitionResultsState(competition_id=competition_id)
    client = _client()
    try:
        with service_call("CompetitionResults:fetchCompetitionData"):
            rows = (
                client.table(T.COMPETITIONS)
                .select("*")
                .eq("competitions_id", competition_id)
                .limit(1)
                .execute()
            ).data or []
            if not rows:
                logger.warning("[CompetitionResults] competition {} not found", competition_id)
                return state
            state.competition = rows[0]

            state.entries = (
                client.table(T.COMPETITION_ENTRIES)
                .select(f"*, {_MEMBER_EMBED}")
                .eq("competitions_id", competition_id)
                .execute()
            ).data or []

            state.disciplines = (
                client.table(T.COMPETITION_DISCIPLINES)
                .select(
                    "competition_disciplines_id, name, martial_art_id, team_event, "
                    "competition_entries!inner(competitions_id)"
                )
                .eq("competition_entries.competitions_id", competition_id)
                .execute()
            ).data or []

            state.teams = (
                client.table(T.COMPETITION_TEAMS)
                .select("*")
                .eq("competitions_id", competition_id)
                .execute()
            ).data or []

            entry_ids = _ids(state.entries, "competition_entries_id")
            team_ids = _ids(state.teams, "competition_teams_id")

            if entry_ids:
                state.bouts = (
                    client.table(T.COMPETITION_BOUTS)
                    .select("*")
                    .in_("competition_entries_id", entry_ids)
                    .execute()
                ).data or []
                state.results = (
                    client.table(T.COMPETITION_RESULTS)
                    .select("*")
                    .in_("competition_entries_id", entry_ids)
                    .execute()
                ).data or []

            if team_ids:
                seen = {bout.get("competition_bouts_id") for bout in state.bouts}
                team_bouts = (
                    client.table(T.COMPETITION_BOUTS)
                    .select("*")
                    .in_("competition_teams_id", team_ids)
                    .execute()
                ).data or []
                state.bouts.extend(
                    bout for bout in team_bouts if bout.get("competition_bouts_id") not in seen
                )
                state.team_members = (
                    client.table(T.COMPETITION_TEAM_MEMBERS)
                    .select(f"*, {_MEMBER_EMBED}")
                    .in_("competition_teams_id", team_ids)
                    .execute()
                ).data or []
    except ServiceError:
        state.error = LOAD_ERROR_MSG
        return state

    if state.disciplines:
        state.selected_discipline = state.disciplines[0].get("competition_disciplines_id")

    logger.info(
        "[CompetitionResults:fetchCompetitionData] competition={} entries={} disciplines={} bouts={} results={}",
        competition_id,
        len(state.entries),
        len(state.disciplines),
        len(state.bouts),
        len(state.results),
    )
    return state


# ----------------------------- Filtering ---------------------------------- #

def filtered_entries(state: CompetitionResultsState) -> List[Dict[str, Any]]:
    """Entries for the selected discipline, or one entry per member for all."""
    if not state.selected_discipline:
        seen: set = set()
        unique: List[Dict[str, Any]] = []
        for entry in state.entries:
            member_id = entry.get("members_id")
            if not member_id or member_id in seen:
                continue
            seen.add(member_id)
            unique.append(entry)
        return unique
    return [
        entry
        for entry in state.entries
        if entry.get("competition_disciplines_id") == state.selected_discipline
    ]


def filtered_teams(state: CompetitionResultsState) -> List[Dict[str, Any]]:
    if not state.selected_discipline:
        return list(state.teams)
    return [
        team
        for team in state.teams
        if team.get("competition_disciplines_id") == state.selected_discipline
    ]


def filtered_bouts(state: CompetitionResultsState) -> List[Dict[str, Any]]:
    if not state.selected_discipline:
        return list(state.bouts)
    entry_ids = set(_ids(filtered_entries(state), "competition_entries_id"))
    team_ids = set(_ids(filtered_teams(state), "competition_teams_id"))
    return [
        bout
        for bout in state.bouts
        if (bout.get("competition_entries_id") is not None and bout["competition_entries_id"] in entry_ids)
        or (bout.get("competition_teams_id") is not None and bout["competition_teams_id"] in team_ids)
    ]


# ------------------------------- Stats ------------------------------------ #

def competitor_stats(state: CompetitionResultsState, entry_id: int) -> Dict[str, Any]:
    bouts = [b for b in state.bouts if b.get("competition_entries_id") == entry_id]
    result = next(
        (r for r in state.results if r.get("competition_entries_id") == entry_id),
        None,
    )
    return {
        "wins": sum(1 for b in bouts if b.get("result") == "Win"),
        "losses": sum(1 for b in bouts if b.get("result") == "Loss"),
        "total_bouts": len(bouts),
        "medal": (result or {}).get("medal"),
        "round_reached": (result or {}).get("round_reached"),
    }


def team_stats(state: CompetitionResultsState, team_id: int) -> Dict[str, Any]:
    team = next((t for t in state.teams if t.get("competition_teams_id") == team_id), None)
    members = [m for m in state.team_members if m.get("competition_teams_id") == team_id]
    bouts = [b for b in state.bouts if b.get("competition_teams_id") == team_id]
    return {
        "team": team,
        "members": members,
        "wins": sum(1 for b in bouts if b.get("result") == "Win"),
        "losses": sum(1 for b in bouts if b.get("result") == "Loss"),
        "total_bouts": len(bouts),
        "medal": (team or {}).get("medal"),
        "result": (team or {}).get("result"),
    }


def medal_total(competition: Optional[Dict[str, Any]]) -> int:
    if not competition:
        return 0
    return sum(int(competition.get(key) or 0) for key in ("total_gold", "total_silver", "total_bronze"))


def member_name(entry: Optional[Dict[str, Any]]) -> str:
    member = (entry or {}).get("member") or {}
    name = " ".join(part for part in (member.get("first_name"), member.get("last_name")) if part)
    return name or "Unknown member"


def entry_for_bout(state: CompetitionResultsState, bout: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    entry_id = bout.get("competition_entries_id")
    return next(
        (e for e in state.entries if e.get("competition_entries_id") == entry_id),
        None,
    )


def round_reached_for_medal(medal: Optional[str]) -> str:
    if medal in ("Gold", "Silver"):
        return "Final"
    if medal == "Bronze":
        return "Semi Final"
    return ""


# ---------------------------- Local updates ------------------------------- #

def replace_bout(state: CompetitionResultsState, bout: Dict[str, Any]) -> None:
    bout_id = bout.get("competition_bouts_id")
    state.bouts = [bout if b.get("competition_bouts_id") == bout_id else b for b in state.bouts]


def upsert_result(state: CompetitionResultsState, result: Dict[str, Any]) -> None:
    result_id = result.get("competition_results_id")
    for index, existing in enumerate(state.results):
        if existing.get("competition_results_id") == result_id:
            state.results[index] = result
            return
    state.results.append(result)


# ------------------------------ Bout edits -------------------------------- #

def fetch_existing_result(entry_id: Optional[int]) -> Optional[Dict[str, Any]]:
    """Return the medal row for an entry; a missing row is not an error."""
    if not entry_id:
        return None
    try:
        response = (
            _client()
            .table(T.COMPETITION_RESULTS)
            .select("*")
            .eq("competition_entries_id", entry_id)
            .single()
            .execute()
        )
    except APIError as exc:
        if is_not_found(exc):
            return None
        raise ServiceError.from_api_error("EditBoutModal:fetchExistingResult", exc) from exc
    return response.data or None


def _parse_score(value: Any) -> int:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return 0


def save_bout_edit(
    bout: Dict[str, Any],
    entry: Dict[str, Any],
    form: Dict[str, Any],
    existing_result: Optional[Dict[str, Any]] = None,
) -> Tuple[Dict[str, Any], Optional[Dict[str, Any]]]:
    """Persist an edited bout plus coach and medal changes.

    Returns ``(updated_bout, updated_result)``; the result is ``None`` when the
    entry has no medal after the edit.
    """
    round_name = (form.get("round") or "").strip()
    opponent = (form.get("opponent_name") or "").strip()
    if not round_name:
        raise ValueError("Round is required")
    if not opponent:
        raise ValueError("Opponent name is required")
    if form.get("score_for") in (None, "") or form.get("score_against") in (None, ""):
        raise ValueError("Both scores are required")

    patch = {
        "round": round_name,
        "opponent_name": opponent,
        "opponent_club": (form.get("opponent_club") or "").strip() or None,
        "score_for": _parse_score(form.get("score_for")),
        "score_against": _parse_score(form.get("score_against")),
        "result": form.get("result") or "Win",
    }
    updated_bout = {**bout, **patch}
    client = _client()

    with service_call("EditBoutModal:handleSave"):
        client.table(T.COMPETITION_BOUTS).update(patch).eq(
            "competition_bouts_id", bout["competition_bouts_id"]
        ).execute()

        coach_id = form.get("coach_id")
        if coach_id != entry.get("competition_coaches_id"):
            client.table(T.COMPETITION_ENTRIES).update(
                {"competition_coaches_id": coach_id}
            ).eq("competition_entries_id", entry["competition_entries_id"]).execute()

        medal = form.get("medal")
        updated_result: Optional[Dict[str, Any]] = None
        if medal:
            result_data = {
                "competition_entries_id": entry["competition_entries_id"],
                "medal": medal,
                "round_reached": form.get("round_reached") or round_reached_for_medal(medal),
            }
            if existing_result:
                client.table(T.COMPETITION_RESULTS).update(result_data).eq(
                    "competition_results_id", existing_result["competition_results_id"]
                ).execute()
                updated_result = {**existing_result, **result_data}
            else:
                rows = client.table(T.COMPETITION_RESULTS).insert([result_data]).execute().data or []
                updated_result = rows[0] if rows else result_data
        elif existing_result:
            client.table(T.COMPETITION_RESULTS).delete().eq(
                "competition_results_id", existing_result["competition_results_id"]
            ).execute()

    logger.info("[EditBoutModal:handleSave] bout {} updated", bout["competition_bouts_id"])
    return updated_bout, updated_result


def remove_result(state: CompetitionResultsState, entry_id: int) -> None:
    state.results = [r for r in state.results if r.get("competition_entries_id") != entry_id]
