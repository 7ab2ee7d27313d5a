from datetime import date

import pytest

from dojodesk.services import members as svc

MEMBERS = [
    {"members_id": 1, "first_name": "Aiko", "last_name": "Tanaka", "email_address": "aiko@example.com",
     "city": "Leeds", "status": "Active", "created_at": "2024-01-01"},
    {"members_id": 2, "first_name": "Ben", "last_name": "Okafor", "email_address": "ben@example.com",
     "medical_info": "Asthma", "status": "Inactive", "created_at": "2024-05-01"},
]


def test_search_members_covers_all_text_fields():
    assert svc.search_members(MEMBERS, "asthma") == [MEMBERS[1]]
    assert svc.search_members(MEMBERS, "LEEDS") == [MEMBERS[0]]
    assert svc.search_members(MEMBERS, "") == MEMBERS


def test_full_name_falls_back():
    assert svc.full_name(MEMBERS[0]) == "Aiko Tanaka"
    assert svc.full_name({}) == "Unnamed Member"


def test_build_member_payload_requires_core_fields():
    with pytest.raises(ValueError, match="First name and last name"):
        svc.build_member_payload({"first_name": "Aiko"})
    with pytest.raises(ValueError, match="Email"):
        svc.build_member_payload({"first_name": "Aiko", "last_name": "Tanaka", "join_date": date(2024, 1, 1)})
    with pytest.raises(ValueError, match="Join date"):
        svc.build_member_payload({"first_name": "Aiko", "last_name": "Tanaka", "email_address": "a@b.c"})


def test_build_member_payload_defaults_status_and_formats_dates():
    payload = svc.build_member_payload(
        {"first_name": " Aiko ", "last_name": "Tanaka", "email_address": "a@b.c", "join_date": date(2024, 1, 2),
         "phone": "  "}
    )
    assert payload["first_name"] == "Aiko"
    assert payload["join_date"] == "2024-01-02"
    assert payload["phone"] is None
    assert payload["status"] == "Active"


def test_list_members_newest_first(make_client, use_client):
    use_client(make_client({"members": MEMBERS}), svc)
    assert [m["members_id"] for m in svc.list_members()] == [2, 1]


def test_update_member_sends_only_given_fields(make_client, use_client):
    client = use_client(make_client({"members": MEMBERS}), svc)
    updated = svc.update_member(2, {"status": "Active"})
    patch = client.ops("members", "update")[0].payload
    assert set(patch) == {"status", "updated_at"}
    assert updated["status"] == "Active"


def test_delete_member(make_client, use_client):
    client = use_client(make_client({"members": MEMBERS}), svc)
    svc.delete_member(1)
    assert [m["members_id"] for m in client.tables["members"]] == [2]
