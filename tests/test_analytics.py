from datetime import date

import pytest

from dojodesk.services import analytics as svc
from dojodesk.services.analytics import AnalyticsData


@pytest.fixture
def data():
    return AnalyticsData(
        competitions=[
            {"competitions_id": 1, "Name": "Yorkshire Open", "date_start": "2024-03-01", "location": "Leeds",
             "organisations_id": 1},
            {"competitions_id": 2, "Name": "National Cup", "date_start": "2025-04-01", "location": "Sheffield",
             "organisations_id": 2},
        ],
        organisations=[
            {"organisations_id": 1, "name": "Yorkshire Karate"},
            {"organisations_id": 2, "name": "Home Federation", "level": "national"},
        ],
        entries=[
            {"competition_entries_id": 11, "competitions_id": 1, "members_id": 5, "competition_disciplines_id": 1,
             "competition_coaches_id": 7},
            {"competition_entries_id": 12, "competitions_id": 2, "members_id": 5, "competition_disciplines_id": 1,
             "competition_coaches_id": 7},
            {"competition_entries_id": 13, "competitions_id": 2, "members_id": 6, "competition_disciplines_id": 1},
        ],
        bouts=[
            {"competition_bouts_id": 31, "competition_entries_id": 11, "result": "Win", "score_for": 3,
             "score_against": 1, "created_at": "2024-03-01T10:00:00"},
            {"competition_bouts_id": 32, "competition_entries_id": 12, "result": "W",
             "created_at": "2025-04-01T10:00:00"},
            {"competition_bouts_id": 33, "competition_entries_id": 12, "result": "Loss",
             "created_at": "2025-04-01T11:00:00"},
            {"competition_bouts_id": 34, "competition_entries_id": 13, "result": " victory ",
             "created_at": "2025-04-01T09:00:00"},
            {"competition_bouts_id": 35, "competition_teams_id": 21, "result": "Win",
             "created_at": "2025-04-01T12:00:00"},
        ],
        results=[
            {"competition_entries_id": 11, "medal": "Gold"},
            {"competition_entries_id": 12, "medal": "Bronze"},
            {"competition_entries_id": 13, "medal": "silver"},
        ],
        teams=[{"competition_teams_id": 21, "competitions_id": 2, "team_name": "Blue", "medal": "Gold"}],
        team_members=[{"competition_teams_id": 21, "member_id": 6}],
        members=[
            {"members_id": 5, "first_name": "Aiko", "last_name": "Tanaka"},
            {"members_id": 6, "first_name": "Ben", "last_name": "Okafor"},
        ],
        coaches=[{"competition_coaches_id": 7, "name": "Sensei Mori"}],
        disciplines=[{"competition_disciplines_id": 1, "name": "Kumite"}],
    )


def test_win_and_loss_synonyms():
    assert all(svc.is_win(value) for value in ("Win", "W", " victory ", "won", 1, True))
    assert all(svc.is_loss(value) for value in ("Loss", "defeated", "L", 0, False))
    assert not svc.is_win(None) and not svc.is_loss(None)
    assert not svc.is_win("draw") and not svc.is_loss("draw")


def test_club_analytics_totals(data):
    stats = svc.club_analytics(data, today=date(2025, 6, 1))

    assert (stats["gold"], stats["silver"], stats["bronze"], stats["total_medals"]) == (1, 1, 1, 3)
    assert (stats["total_bouts"], stats["total_wins"], stats["total_losses"]) == (5, 4, 1)
    assert stats["win_rate"] == 80.0
    assert stats["medal_efficiency"] == 100.0
    assert stats["year_on_year_trend"] == -25.0
    assert stats["competitions_attended"] == 2
    assert stats["unique_locations"] == ["Leeds", "Sheffield"]
    assert stats["total_competitors"] == 2
    assert stats["competition_levels"] == {"club": 1, "national": 1, "international": 0}


def test_draws_count_as_neither_win_nor_loss(data):
    data.bouts.append(
        {"competition_bouts_id": 36, "competition_entries_id": 11, "result": "Draw",
         "created_at": "2024-03-01T09:00:00"}
    )

    club = svc.club_analytics(data, today=date(2025, 6, 1))
    competitor = svc.competitor_analytics(data, 5)

    assert (club["total_bouts"], club["total_wins"], club["total_losses"]) == (6, 4, 1)
    assert (competitor["total_bouts"], competitor["total_wins"], competitor["total_losses"]) == (4, 2, 1)


def test_club_analytics_highlights(data):
    stats = svc.club_analytics(data, today=date(2025, 6, 1))

    assert stats["top_performer"] == {"name": "Aiko Tanaka", "member_id": 5, "medal_points": 4, "win_rate": 66.7}
    assert stats["most_improved"]["name"] == "N/A"
    assert stats["best_team"] == {"team": "Blue", "members": ["Ben Okafor"], "win_rate": 100.0, "bouts": 1}


def test_club_analytics_with_no_data():
    stats = svc.club_analytics(AnalyticsData(), today=date(2025, 1, 1))
    assert stats["win_rate"] == 0.0
    assert stats["medal_efficiency"] == 0.0
    assert stats["top_performer"]["name"] == "N/A"
    assert stats["best_team"]["team"] == "N/A"


def test_most_improved_compares_last_two_blocks_of_three():
    competitions = [
        {"competitions_id": i, "date_start": f"2024-0{i}-01"} for i in range(1, 7)
    ]
    entries = [{"competition_entries_id": 100 + i, "competitions_id": i, "members_id": 5} for i in range(1, 7)]
    entries += [
        {"competition_entries_id": 201, "competitions_id": 1, "members_id": 6},
        {"competition_entries_id": 206, "competitions_id": 6, "members_id": 6},
    ]
    bouts = [
        {"competition_entries_id": 100 + i, "result": "Loss" if i <= 3 else "Win"} for i in range(1, 7)
    ]
    bouts += [{"competition_entries_id": 201, "result": "Win"}, {"competition_entries_id": 206, "result": "Win"}]
    data = AnalyticsData(
        competitions=competitions,
        entries=entries,
        bouts=bouts,
        members=[{"members_id": 5, "first_name": "Aiko", "last_name": "Tanaka"}],
    )

    improved = svc.club_analytics(data, today=date(2025, 1, 1))["most_improved"]
    assert improved == {"name": "Aiko Tanaka", "member_id": 5, "improvement": 100.0}


def test_competition_levels_keywords_and_explicit_level():
    organisations = [
        {"organisations_id": 1, "name": "World Karate Federation"},
        {"organisations_id": 2, "name": "British Judo Championship"},
        {"organisations_id": 3, "name": "Anything", "level": "global"},
        {"organisations_id": 4, "name": "National league", "level": "regional"},
    ]
    competitions = [{"organisations_id": i} for i in (1, 2, 3, 4, None)]
    assert svc.competition_levels(competitions, organisations) == {"club": 2, "national": 1, "international": 2}


def test_win_rate_rankings(data):
    by_member = svc.win_rate_by_member(data)
    assert [(row["id"], row["win_rate"]) for row in by_member] == [(6, 100.0), (5, 66.7)]

    by_coach = svc.win_rate_by_coach(data)
    assert by_coach == [{"id": 7, "name": "Sensei Mori", "bouts": 3, "wins": 2, "win_rate": 66.7}]


def test_year_on_year_trends(data):
    rows = {row["year"]: row for row in svc.year_on_year_trends(data)}
    assert rows[2024]["gold"] == 1 and rows[2024]["total_entries"] == 1
    assert rows[2025]["total_medals"] == 2
    assert rows[2025]["total_bouts"] == 4
    assert rows[2025]["win_rate"] == 75.0


def test_medals_breakdown(data):
    breakdown = svc.medals_breakdown(data)
    assert [row["name"] for row in breakdown["individual"]] == ["Aiko Tanaka", "Ben Okafor"]
    assert breakdown["individual"][0]["total"] == 2
    assert breakdown["individual"][0]["competitions"][0]["medal"] == "Gold"
    assert breakdown["teams"] == [{"team": "Blue", "gold": 1, "silver": 0, "bronze": 0, "total": 1}]
    assert breakdown["totals"]["total"] == 4
    assert breakdown["totals"]["unique_teams"] == 1


def test_competitor_analytics(data):
    stats = svc.competitor_analytics(data, 5)

    assert stats["name"] == "Aiko Tanaka"
    assert (stats["total_bouts"], stats["total_wins"], stats["total_losses"]) == (3, 2, 1)
    assert stats["win_rate"] == 66.7
    assert (stats["gold"], stats["bronze"], stats["total_medals"]) == (1, 1, 2)
    assert stats["current_streak"] == {"type": "loss", "count": 1}
    assert stats["bout_history"][-1]["competition"] == "Yorkshire Open"
    assert stats["bout_history"][-1]["score"] == "3-1"
    assert stats["bout_history"][-1]["coach"] == "Sensei Mori"
    assert stats["performance_over_time"][0]["date"] == "2024-03-01"
    assert stats["coach_performance"][0]["bouts"] == 3
    assert stats["discipline_breakdown"][0]["name"] == "Kumite"


def test_competitor_with_winning_streak(data):
    stats = svc.competitor_analytics(data, 6)
    assert stats["current_streak"] == {"type": "win", "count": 1}
    assert stats["coach_performance"] == []


def test_competition_analytics():
    competition = {"competitions_id": 2, "total_gold": 2, "total_silver": None, "total_bronze": "1"}
    entries = [
        {"competition_entries_id": 1, "competition_disciplines_id": 1,
         "members": {"first_name": "Aiko", "last_name": "Tanaka"}, "competition_disciplines": {"name": "Kumite"}},
        {"competition_entries_id": 2, "competition_disciplines_id": 2,
         "members": {"first_name": "Aiko", "last_name": "Tanaka"}, "competition_disciplines": {"name": "Kata"}},
        {"competition_entries_id": 3, "competition_disciplines_id": 1,
         "members": {"first_name": "Ben", "last_name": "Okafor"}, "competition_disciplines": {"name": "Kumite"}},
    ]
    results = [{"competition_entries_id": 3, "medal": "Gold"}, {"competition_entries_id": 2, "medal": None}]

    stats = svc.competition_analytics(competition, entries, results)

    assert stats["total_participants"] == 3
    assert stats["unique_disciplines"] == 2
    assert stats["medal_distribution"] == {"gold": 2, "silver": 0, "bronze": 1}
    assert stats["top_performers"][0] == {"member": "Aiko Tanaka", "entries": 2}
    assert stats["discipline_breakdown"] == [
        {"discipline": "Kata", "participants": 1, "medals": 0},
        {"discipline": "Kumite", "participants": 2, "medals": 1},
    ]


def test_load_competition_analytics_scopes_to_one_competition(make_client, use_client):
    use_client(
        make_client(
            {
                "competitions": [{"competitions_id": 2, "Name": "National Cup"}],
                "competition_entries": [
                    {"competition_entries_id": 1, "competitions_id": 2},
                    {"competition_entries_id": 9, "competitions_id": 3},
                ],
                "competition_results": [
                    {"competition_entries_id": 1, "medal": "Gold"},
                    {"competition_entries_id": 9, "medal": "Gold"},
                ],
            }
        ),
        svc,
    )
    loaded = svc.load_competition_analytics(2)
    assert loaded["competition"]["Name"] == "National Cup"
    assert [e["competition_entries_id"] for e in loaded["entries"]] == [1]
    assert loaded["results"] == [{"competition_entries_id": 1, "medal": "Gold"}]


def test_load_analytics_data_reads_every_table(make_client, use_client):
    client = use_client(make_client({"members": [{"members_id": 5}]}), svc)
    data = svc.load_analytics_data()
    assert data.members == [{"members_id": 5}]
    assert data.bouts == []
    assert len([c for c in client.calls if c.op == "select"]) == 10
