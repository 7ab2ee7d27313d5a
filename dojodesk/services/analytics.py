"""Club, competitor and competition analytics.

``load_analytics_data`` pulls every table the calculations need in one pass;
everything else is a pure function over the resulting :class:`AnalyticsData`
so the analytics page can recompute without refetching.
"""
from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional

from dojodesk import db_tables as T
from dojodesk.errors import service_call
from dojodesk.supabase_client import get_client

__all__ = [
    "AnalyticsData",
    "MEDAL_POINTS",
    "club_analytics",
    "competition_analytics",
    "competition_levels",
    "competitor_analytics",
    "is_loss",
    "is_win",
    "load_analytics_data",
    "load_competition_analytics",
    "medals_breakdown",
    "win_rate_by_coach",
    "win_rate_by_member",
    "year_on_year_trends",
]

MEDAL_POINTS = {"gold": 3, "silver": 2, "bronze": 1}

_WIN_WORDS = {
    "win", "w", "victory", "victorious", "won", "1", "true", "yes",
    "success", "successful", "pass", "passed",
}
_LOSS_WORDS = {
    "loss", "l", "defeat", "defeated", "lost", "0", "false", "no",
    "fail", "failed", "unsuccessful",
}


def is_win(result: Any) -> bool:
    return str(result).strip().lower() in _WIN_WORDS if result is not None else False


def is_loss(result: Any) -> bool:
    return str(result).strip().lower() in _LOSS_WORDS if result is not None else False


def _pct(part: float, whole: float) -> float:
    return round(part / whole * 100, 1) if whole else 0.0


def _medal(value: Any) -> Optional[str]:
    text = str(value or "").strip().lower()
    return text if text in MEDAL_POINTS else None


def _year(value: Any) -> Optional[int]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00")).year
    except ValueError:
        return None


@dataclass
class AnalyticsData:
    competitions: List[Dict[str, Any]] = field(default_factory=list)
    entries: List[Dict[str, Any]] = field(default_factory=list)
    bouts: List[Dict[str, Any]] = field(default_factory=list)
    results: List[Dict[str, Any]] = field(default_factory=list)
    teams: List[Dict[str, Any]] = field(default_factory=list)
    team_members: List[Dict[str, Any]] = field(default_factory=list)
    members: List[Dict[str, Any]] = field(default_factory=list)
    coaches: List[Dict[str, Any]] = field(default_factory=list)
    disciplines: List[Dict[str, Any]] = field(default_factory=list)
    organisations: List[Dict[str, Any]] = field(default_factory=list)

    # -- lookups ------------------------------------------------------------

    def entry(self, entry_id: Any) -> Optional[Dict[str, Any]]:
        return self._index("entries", "competition_entries_id").get(entry_id)

    def competition(self, competition_id: Any) -> Optional[Dict[str, Any]]:
        return self._index("competitions", "competitions_id").get(competition_id)

    def member_name(self, member_id: Any) -> str:
        member = self._index("members", "members_id").get(member_id)
        if not member:
            return "Unknown Member"
        return f"{member.get('first_name') or ''} {member.get('last_name') or ''}".strip() or "Unknown Member"

    def coach_name(self, coach_id: Any) -> str:
        coach = self._index("coaches", "competition_coaches_id").get(coach_id)
        return (coach or {}).get("name") or "Unknown Coach"

    def discipline_name(self, discipline_id: Any) -> str:
        row = self._index("disciplines", "competition_disciplines_id").get(discipline_id)
        return (row or {}).get("name") or "Unknown Discipline"

    def bout_competition_id(self, bout: Dict[str, Any]) -> Any:
        if bout.get("competitions_id") is not None:
            return bout["competitions_id"]
        entry = self.entry(bout.get("competition_entries_id"))
        if entry:
            return entry.get("competitions_id")
        team = self._index("teams", "competition_teams_id").get(bout.get("competition_teams_id"))
        return (team or {}).get("competitions_id")

    def _index(self, attr: str, key: str) -> Dict[Any, Dict[str, Any]]:
        cache = self.__dict__.setdefault("_indexes", {})
        if attr not in cache:
            cache[attr] = {row.get(key): row for row in getattr(self, attr)}
        return cache[attr]


def load_analytics_data() -> AnalyticsData:
    client = get_client()
    tables = {
        "competitions": T.COMPETITIONS,
        "entries": T.COMPETITION_ENTRIES,
        "bouts": T.COMPETITION_BOUTS,
        "results": T.COMPETITION_RESULTS,
        "teams": T.COMPETITION_TEAMS,
        "team_members": T.COMPETITION_TEAM_MEMBERS,
        "members": T.MEMBERS,
        "coaches": T.COMPETITION_COACHES,
        "disciplines": T.COMPETITION_DISCIPLINES,
        "organisations": T.ORGANISATIONS,
    }
    data = AnalyticsData()
    with service_call("Analytics:fetchData"):
        for attr, table in tables.items():
            setattr(data, attr, client.table(table).select("*").execute().data or [])
    return data


# ------------------------------ Club level -------------------------------- #

def _win_rate_rows(groups: Dict[Any, List[Dict[str, Any]]], label) -> List[Dict[str, Any]]:
    rows = []
    for key, bouts in groups.items():
        wins = sum(1 for b in bouts if is_win(b.get("result")))
        rows.append(
            {"id": key, "name": label(key), "bouts": len(bouts), "wins": wins, "win_rate": _pct(wins, len(bouts))}
        )
    rows.sort(key=lambda r: r["win_rate"], reverse=True)
    return rows


def competition_levels(
    competitions: Iterable[Dict[str, Any]],
    organisations: Iterable[Dict[str, Any]],
) -> Dict[str, int]:
    """Bucket competitions into club / national / international.

    An organisation's explicit ``level`` wins; otherwise keywords in its name
    decide; anything else counts as club level.
    """
    orgs = {org.get("organisations_id"): org for org in organisations}
    levels = {"club": 0, "national": 0, "international": 0}
    for comp in competitions:
        org = orgs.get(comp.get("organisations_id")) or {}
        level = str(org.get("level") or "").lower()
        name = str(org.get("name") or "").lower()
        if level:
            if level in ("national", "country"):
                levels["national"] += 1
            elif level in ("international", "world", "global"):
                levels["international"] += 1
            else:
                levels["club"] += 1
        elif any(word in name for word in ("international", "world", "global")):
            levels["international"] += 1
        elif any(word in name for word in ("national", "championship", "federation")):
            levels["national"] += 1
        else:
            levels["club"] += 1
    return levels


def _most_improved(data: AnalyticsData) -> Dict[str, Any]:
    empty = {"name": "N/A", "member_id": None, "improvement": 0.0}
    dated = sorted((c for c in data.competitions if c.get("date_start")), key=lambda c: str(c["date_start"]))
    if len(dated) < 6:
        return empty
    recent = {c["competitions_id"] for c in dated[-3:]}
    earlier = {c["competitions_id"] for c in dated[-6:-3]}

    periods: Dict[str, Dict[Any, List[int]]] = {"recent": defaultdict(lambda: [0, 0]), "earlier": defaultdict(lambda: [0, 0])}
    for bout in data.bouts:
        entry = data.entry(bout.get("competition_entries_id"))
        if not entry or not entry.get("members_id"):
            continue
        comp_id = entry.get("competitions_id")
        bucket = "recent" if comp_id in recent else "earlier" if comp_id in earlier else None
        if bucket is None:
            continue
        stats = periods[bucket][entry["members_id"]]
        stats[0] += 1
        stats[1] += 1 if is_win(bout.get("result")) else 0

    best = None
    for member_id, (bouts, wins) in periods["recent"].items():
        before = periods["earlier"].get(member_id)
        if not before or not bouts or not before[0]:
            continue
        improvement = wins / bouts * 100 - before[1] / before[0] * 100
        if best is None or improvement > best[1]:
            best = (member_id, improvement)
    if best is None:
        return empty
    return {"name": data.member_name(best[0]), "member_id": best[0], "improvement": round(best[1], 1)}


def _best_team(data: AnalyticsData) -> Dict[str, Any]:
    teams = {t.get("competition_teams_id"): t for t in data.teams}
    groups: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
    team_ids: Dict[str, set] = defaultdict(set)
    for bout in data.bouts:
        team = teams.get(bout.get("competition_teams_id"))
        if not team or not team.get("team_name"):
            continue
        groups[team["team_name"]].append(bout)
        team_ids[team["team_name"]].add(team["competition_teams_id"])
    if not groups:
        return {"team": "N/A", "members": [], "win_rate": 0.0, "bouts": 0}
    best = _win_rate_rows(groups, lambda name: name)[0]
    members = sorted(
        {
            data.member_name(m.get("member_id"))
            for m in data.team_members
            if m.get("competition_teams_id") in team_ids[best["name"]]
        }
    )
    return {"team": best["name"], "members": members, "win_rate": best["win_rate"], "bouts": best["bouts"]}


def club_analytics(data: AnalyticsData, today: Optional[date] = None) -> Dict[str, Any]:
    today = today or date.today()
    medals = defaultdict(int)
    for result in data.results:
        medal = _medal(result.get("medal"))
        if medal:
            medals[medal] += 1
    total_medals = sum(medals.values())

    total_bouts = len(data.bouts)
    total_wins = sum(1 for b in data.bouts if is_win(b.get("result")))

    this_year = [b for b in data.bouts if _year(b.get("created_at")) == today.year]
    last_year = [b for b in data.bouts if _year(b.get("created_at")) == today.year - 1]
    current_rate = _pct(sum(1 for b in this_year if is_win(b.get("result"))), len(this_year))
    previous_rate = _pct(sum(1 for b in last_year if is_win(b.get("result"))), len(last_year))
    trend = round((current_rate - previous_rate) / previous_rate * 100, 1) if previous_rate else 0.0

    points: Dict[Any, Dict[str, int]] = defaultdict(lambda: {"points": 0, "medals": 0, "bouts": 0, "wins": 0})
    for result in data.results:
        entry = data.entry(result.get("competition_entries_id"))
        medal = _medal(result.get("medal"))
        if entry and entry.get("members_id") and medal:
            stats = points[entry["members_id"]]
            stats["points"] += MEDAL_POINTS[medal]
            stats["medals"] += 1
    for bout in data.bouts:
        entry = data.entry(bout.get("competition_entries_id"))
        if entry and entry.get("members_id"):
            stats = points[entry["members_id"]]
            stats["bouts"] += 1
            stats["wins"] += 1 if is_win(bout.get("result")) else 0

    top = {"name": "N/A", "member_id": None, "medal_points": 0, "win_rate": 0.0}
    if points:
        member_id, stats = max(
            points.items(),
            key=lambda item: (item[1]["points"], _pct(item[1]["wins"], item[1]["bouts"])),
        )
        top = {
            "name": data.member_name(member_id),
            "member_id": member_id,
            "medal_points": stats["points"],
            "win_rate": _pct(stats["wins"], stats["bouts"]),
        }

    return {
        "total_medals": total_medals,
        "gold": medals["gold"],
        "silver": medals["silver"],
        "bronze": medals["bronze"],
        "total_bouts": total_bouts,
        "total_wins": total_wins,
        "total_losses": sum(1 for b in data.bouts if is_loss(b.get("result"))),
        "win_rate": _pct(total_wins, total_bouts),
        "medal_efficiency": _pct(total_medals, len(data.entries)),
        "year_on_year_trend": trend,
        "competitions_attended": len({e.get("competitions_id") for e in data.entries if e.get("competitions_id")}),
        "unique_locations": sorted({c["location"] for c in data.competitions if c.get("location")}),
        "total_competitors": len({e.get("members_id") for e in data.entries if e.get("members_id")}),
        "top_performer": top,
        "most_improved": _most_improved(data),
        "best_team": _best_team(data),
        "competition_levels": competition_levels(data.competitions, data.organisations),
    }


def win_rate_by_member(data: AnalyticsData) -> List[Dict[str, Any]]:
    groups: Dict[Any, List[Dict[str, Any]]] = defaultdict(list)
    for bout in data.bouts:
        entry = data.entry(bout.get("competition_entries_id"))
        if entry and entry.get("members_id"):
            groups[entry["members_id"]].append(bout)
    return _win_rate_rows(groups, data.member_name)


def win_rate_by_coach(data: AnalyticsData) -> List[Dict[str, Any]]:
    groups: Dict[Any, List[Dict[str, Any]]] = defaultdict(list)
    for bout in data.bouts:
        entry = data.entry(bout.get("competition_entries_id"))
        if entry and entry.get("competition_coaches_id"):
            groups[entry["competition_coaches_id"]].append(bout)
    return _win_rate_rows(groups, data.coach_name)


def year_on_year_trends(data: AnalyticsData) -> List[Dict[str, Any]]:
    years: Dict[int, Dict[str, int]] = {}
    comp_year = {}
    for comp in data.competitions:
        year = _year(comp.get("date_start"))
        if year is None:
            continue
        comp_year[comp["competitions_id"]] = year
        years.setdefault(year, {"gold": 0, "silver": 0, "bronze": 0, "entries": 0, "bouts": 0, "wins": 0})

    for entry in data.entries:
        year = comp_year.get(entry.get("competitions_id"))
        if year is not None:
            years[year]["entries"] += 1
    for bout in data.bouts:
        year = comp_year.get(data.bout_competition_id(bout))
        if year is not None:
            years[year]["bouts"] += 1
            years[year]["wins"] += 1 if is_win(bout.get("result")) else 0
    for result in data.results:
        entry = data.entry(result.get("competition_entries_id"))
        year = comp_year.get((entry or {}).get("competitions_id"))
        medal = _medal(result.get("medal"))
        if year is not None and medal:
            years[year][medal] += 1

    return [
        {
            "year": year,
            "total_medals": stats["gold"] + stats["silver"] + stats["bronze"],
            "gold": stats["gold"],
            "silver": stats["silver"],
            "bronze": stats["bronze"],
            "total_entries": stats["entries"],
            "total_bouts": stats["bouts"],
            "win_rate": _pct(stats["wins"], stats["bouts"]),
        }
        for year, stats in sorted(years.items())
    ]


def medals_breakdown(data: AnalyticsData) -> Dict[str, Any]:
    """Medals per member and per team, plus club totals."""
    individuals: Dict[Any, Dict[str, Any]] = {}
    for result in data.results:
        medal = _medal(result.get("medal"))
        entry = data.entry(result.get("competition_entries_id"))
        if not medal or not entry or not entry.get("members_id"):
            continue
        member_id = entry["members_id"]
        row = individuals.setdefault(
            member_id,
            {"member_id": member_id, "name": data.member_name(member_id), "gold": 0, "silver": 0, "bronze": 0, "competitions": []},
        )
        row[medal] += 1
        comp = data.competition(entry.get("competitions_id")) or {}
        row["competitions"].append(
            {
                "competition": comp.get("Name") or "Unknown Competition",
                "date": comp.get("date_start"),
                "medal": medal.capitalize(),
                "discipline": data.discipline_name(entry.get("competition_disciplines_id")),
            }
        )

    teams: Dict[str, Dict[str, Any]] = {}
    for team in data.teams:
        medal = _medal(team.get("medal"))
        if not medal:
            continue
        name = team.get("team_name") or "Unknown Team"
        row = teams.setdefault(name, {"team": name, "gold": 0, "silver": 0, "bronze": 0})
        row[medal] += 1

    for row in list(individuals.values()) + list(teams.values()):
        row["total"] = row["gold"] + row["silver"] + row["bronze"]
    individual_rows = sorted(individuals.values(), key=lambda r: (r["gold"], r["silver"], r["bronze"]), reverse=True)
    team_rows = sorted(teams.values(), key=lambda r: (r["gold"], r["silver"], r["bronze"]), reverse=True)
    totals = {
        medal: sum(r[medal] for r in individual_rows) + sum(r[medal] for r in team_rows)
        for medal in MEDAL_POINTS
    }
    totals["total"] = sum(totals.values())
    totals["unique_competitors"] = len(individual_rows)
    totals["unique_teams"] = len(team_rows)
    return {"individual": individual_rows, "teams": team_rows, "totals": totals}


# ---------------------------- Competitor level ---------------------------- #

def competitor_analytics(data: AnalyticsData, member_id: Any) -> Dict[str, Any]:
    entries = [e for e in data.entries if e.get("members_id") == member_id]
    entry_ids = {e.get("competition_entries_id") for e in entries}
    bouts = [b for b in data.bouts if b.get("competition_entries_id") in entry_ids]
    results = [r for r in data.results if r.get("competition_entries_id") in entry_ids]

    medals = defaultdict(int)
    for result in results:
        medal = _medal(result.get("medal"))
        if medal:
            medals[medal] += 1
    wins = sum(1 for b in bouts if is_win(b.get("result")))

    newest_first = sorted(bouts, key=lambda b: str(b.get("created_at") or ""), reverse=True)
    streak = {"type": "win", "count": 0}
    if newest_first:
        winning = is_win(newest_first[0].get("result"))
        streak["type"] = "win" if winning else "loss"
        for bout in newest_first:
            if is_win(bout.get("result")) != winning:
                break
            streak["count"] += 1

    history = []
    for bout in bouts:
        entry = data.entry(bout.get("competition_entries_id")) or {}
        comp = data.competition(entry.get("competitions_id")) or {}
        history.append(
            {
                "date": comp.get("date_start") or bout.get("created_at"),
                "competition": comp.get("Name") or "Unknown Competition",
                "opponent": bout.get("opponent_name") or "Unknown",
                "opponent_club": bout.get("opponent_club") or "Unknown",
                "result": "win" if is_win(bout.get("result")) else "loss",
                "score": f"{bout.get('score_for') or 0}-{bout.get('score_against') or 0}",
                "round": bout.get("round") or "Unknown",
                "coach": data.coach_name(entry["competition_coaches_id"]) if entry.get("competition_coaches_id") else None,
            }
        )
    history.sort(key=lambda row: str(row["date"] or ""), reverse=True)
    over_time = sorted(
        ({k: row[k] for k in ("date", "competition", "result", "round")} for row in history),
        key=lambda row: str(row["date"] or ""),
    )

    coach_groups: Dict[Any, List[Dict[str, Any]]] = defaultdict(list)
    for bout in bouts:
        entry = data.entry(bout.get("competition_entries_id")) or {}
        if entry.get("competition_coaches_id"):
            coach_groups[entry["competition_coaches_id"]].append(bout)

    discipline_groups: Dict[Any, List[Dict[str, Any]]] = defaultdict(list)
    for bout in bouts:
        entry = data.entry(bout.get("competition_entries_id")) or {}
        discipline_groups[entry.get("competition_disciplines_id")].append(bout)

    return {
        "member_id": member_id,
        "name": data.member_name(member_id),
        "total_medals": sum(medals.values()),
        "gold": medals["gold"],
        "silver": medals["silver"],
        "bronze": medals["bronze"],
        "total_bouts": len(bouts),
        "total_wins": wins,
        "total_losses": sum(1 for b in bouts if is_loss(b.get("result"))),
        "win_rate": _pct(wins, len(bouts)),
        "current_streak": streak,
        "performance_over_time": over_time,
        "bout_history": history,
        "coach_performance": _win_rate_rows(coach_groups, data.coach_name),
        "discipline_breakdown": _win_rate_rows(discipline_groups, data.discipline_name),
    }


# --------------------------- Competition level ---------------------------- #

def load_competition_analytics(competition_id: int) -> Dict[str, Any]:
    client = get_client()
    with service_call("CompetitionAnalytics:fetchCompetitionData"):
        rows = (
            client.table(T.COMPETITIONS)
            .select("*")
            .eq("competitions_id", competition_id)
            .limit(1)
            .execute()
        ).data or []
        entries = (
            client.table(T.COMPETITION_ENTRIES)
            .select(
                "*, members:members_id(first_name, last_name), "
                "competition_disciplines:competition_disciplines_id(name)"
            )
            .eq("competitions_id", competition_id)
            .execute()
        ).data or []
        entry_ids = [e["competition_entries_id"] for e in entries if e.get("competition_entries_id") is not None]
        results = []
        if entry_ids:
            results = (
                client.table(T.COMPETITION_RESULTS)
                .select("*")
                .in_("competition_entries_id", entry_ids)
                .execute()
            ).data or []
    return {"competition": rows[0] if rows else None, "entries": entries, "results": results}


def competition_analytics(
    competition: Dict[str, Any],
    entries: List[Dict[str, Any]],
    results: Iterable[Dict[str, Any]] = (),
) -> Dict[str, Any]:
    medal_by_entry = {
        r.get("competition_entries_id"): _medal(r.get("medal")) for r in results if _medal(r.get("medal"))
    }

    per_member: Dict[str, int] = defaultdict(int)
    per_discipline: Dict[str, Dict[str, int]] = defaultdict(lambda: {"participants": 0, "medals": 0})
    for entry in entries:
        member = entry.get("members") or entry.get("member") or {}
        if member:
            name = f"{member.get('first_name') or ''} {member.get('last_name') or ''}".strip()
            per_member[name or "Unknown Member"] += 1
        discipline = (entry.get("competition_disciplines") or {}).get("name")
        if discipline:
            per_discipline[discipline]["participants"] += 1
            if medal_by_entry.get(entry.get("competition_entries_id")):
                per_discipline[discipline]["medals"] += 1

    top = sorted(per_member.items(), key=lambda item: item[1], reverse=True)[:5]
    return {
        "total_participants": len(entries),
        "unique_disciplines": len({e.get("competition_disciplines_id") for e in entries}),
        "medal_distribution": {
            "gold": int(competition.get("total_gold") or 0),
            "silver": int(competition.get("total_silver") or 0),
            "bronze": int(competition.get("total_bronze") or 0),
        },
        "top_performers": [{"member": name, "entries": count} for name, count in top],
        "discipline_breakdown": [
            {"discipline": name, **stats} for name, stats in sorted(per_discipline.items())
        ],
    }
