from datetime import date

import pytest

from dojodesk.errors import ServiceError
from dojodesk.services import competitions as svc


def test_split_upcoming_past_uses_end_date_and_skips_undated():
    rows = [
        {"competitions_id": 1, "date_start": "2025-06-01", "date_end": "2025-06-03"},
        {"competitions_id": 2, "date_start": "2025-05-01", "singular_day_event": True},
        {"competitions_id": 3, "date_start": None},
        {"competitions_id": 4, "date_start": "2025-06-02", "date_end": "2025-06-09", "singular_day_event": True},
    ]
    upcoming, past = svc.split_upcoming_past(rows, today=date(2025, 6, 2))
    assert [r["competitions_id"] for r in upcoming] == [1, 4]
    assert [r["competitions_id"] for r in past] == [2]


def test_format_date_range():
    assert svc.format_date_range("2025-06-01", "2025-06-03", False) == "June 1 - June 3, 2025"
    assert svc.format_date_range("2025-06-01", "2025-06-03", True) == "June 1, 2025"
    assert svc.format_date_range("2024-12-30", "2025-01-02", False) == "December 30, 2024 - January 2, 2025"
    assert svc.format_date_range(None, None, None) == "TBD"


def test_search_competitions_matches_name_or_location():
    rows = [{"Name": "Spring Open", "location": "Leeds"}, {"Name": "Nationals", "location": "Sheffield"}]
    assert svc.search_competitions(rows, "leeds") == [rows[0]]
    assert svc.search_competitions(rows, "  ") == rows


def test_build_competition_payload_validation():
    with pytest.raises(ValueError, match="Competition name is required"):
        svc.build_competition_payload({"Name": "  ", "date_start": "2025-01-01"})
    with pytest.raises(ValueError, match="start date is required"):
        svc.build_competition_payload({"Name": "Cup"})
    with pytest.raises(ValueError, match="end date"):
        svc.build_competition_payload({"Name": "Cup", "date_start": "2025-02-02", "date_end": "2025-02-01"})


def test_new_single_day_competition_drops_end_date_and_blanks_results():
    payload = svc.build_competition_payload(
        {"Name": " Winter Cup ", "date_start": date(2025, 1, 5), "date_end": date(2025, 1, 6),
         "singular_day_event": True, "location": ""}
    )
    assert payload["Name"] == "Winter Cup"
    assert payload["date_start"] == "2025-01-05"
    assert payload["date_end"] is None
    assert payload["location"] is None
    assert payload["overall_rank"] is None and payload["total_gold"] is None


def test_add_and_delete_competition(make_client, use_client):
    client = use_client(make_client(), svc)
    created = svc.add_competition({"Name": "Cup", "date_start": "2025-03-01"})
    assert created["competitions_id"] == client.tables["competitions"][0]["competitions_id"]
    svc.delete_competition(created["competitions_id"])
    assert client.tables["competitions"] == []


def test_log_results_validates_and_updates(make_client, use_client):
    client = use_client(make_client({"competitions": [{"competitions_id": 1, "Name": "Cup"}]}), svc)
    with pytest.raises(ValueError, match="Overall rank"):
        svc.log_results(1, 0, 1, 1, 1)
    with pytest.raises(ValueError, match="cannot be negative"):
        svc.log_results(1, 1, -1, 0, 0)

    svc.log_results(1, 2, 3, 1, 0)
    row = client.tables["competitions"][0]
    assert (row["overall_rank"], row["total_gold"], row["total_silver"], row["total_bronze"]) == (2, 3, 1, 0)


def test_log_results_without_rank_clears_it(make_client, use_client):
    client = use_client(
        make_client({"competitions": [{"competitions_id": 1, "Name": "Cup", "overall_rank": 4}]}), svc
    )

    svc.log_results(1, None, 2, 0, 1)

    row = client.tables["competitions"][0]
    assert row["overall_rank"] is None
    assert (row["total_gold"], row["total_silver"], row["total_bronze"]) == (2, 0, 1)


def test_api_failure_becomes_service_error(make_client, use_client):
    client = use_client(make_client(), svc)
    client.fail("competitions", "select", message="permission denied", code="42501")
    with pytest.raises(ServiceError) as excinfo:
        svc.list_competitions()
    assert excinfo.value.code == "42501"
    assert "Competitions:fetchCompetitions" in str(excinfo.value)


def test_register_members_skips_existing(make_client, use_client):
    client = use_client(make_client(), svc)
    created = svc.register_members(1, [5, 6, 6], 2, coach_id=7, existing_entries=[{"members_id": 5}])
    assert [row["members_id"] for row in created] == [6]
    assert svc.register_members(1, [5], 2, existing_entries=[{"members_id": 5}]) == []
    assert len(client.ops("competition_entries", "insert")) == 1


def test_build_bulk_entries_crosses_members_and_disciplines():
    entries = svc.build_bulk_entries(1, [10, 11], [5, 6], fight_ups=[(5, 12)])
    pairs = [(e["members_id"], e["competition_disciplines_id"]) for e in entries]
    assert pairs == [(5, 10), (6, 10), (5, 11), (6, 11), (5, 12)]


def test_build_bulk_entries_requires_saved_competition():
    with pytest.raises(ValueError, match="save the competition first"):
        svc.build_bulk_entries(None, [10], [5])


def test_filter_members_by_name_or_email():
    members = [
        {"first_name": "Aiko", "last_name": "Tanaka", "email_address": "aiko@example.com"},
        {"first_name": "Ben", "last_name": "Okafor", "email_address": "ben@dojo.org"},
    ]
    assert svc.filter_members(members, "dojo.org") == [members[1]]
    assert svc.filter_members(members, "aiko tan") == [members[0]]
