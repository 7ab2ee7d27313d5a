from dojodesk.services import clubs as svc

TABLES = {
    "clubs": [{"clubs_id": 1, "name": "North"}, {"clubs_id": 2, "name": "South"}],
    "location": [
        {"location_id": 10, "clubs_id": 1, "name": "Main hall"},
        {"location_id": 11, "clubs_id": 1, "name": "School gym"},
        {"location_id": 12, "clubs_id": 2, "name": "Leisure centre"},
    ],
}


def test_delete_club_removes_its_locations(make_client, use_client):
    client = use_client(make_client(TABLES), svc)
    state = svc.load_clubs_state()

    svc.delete_club(state, 1)

    assert [c["clubs_id"] for c in state.clubs] == [2]
    assert [loc["location_id"] for loc in state.locations] == [12]
    assert [loc["location_id"] for loc in client.tables["location"]] == [12]
    deletes = [call.table for call in client.calls if call.op == "delete"]
    assert deletes == ["location", "clubs"]


def test_add_location_updates_state(make_client, use_client):
    use_client(make_client(TABLES), svc)
    state = svc.load_clubs_state()
    svc.add_location(state, 2, "Annex", "  ")
    names = [loc["name"] for loc in svc.locations_for(state, 2)]
    assert names == ["Leisure centre", "Annex"]
    assert svc.locations_for(state, 2)[-1]["address"] is None


def test_rename_club_updates_state(make_client, use_client):
    use_client(make_client(TABLES), svc)
    state = svc.load_clubs_state()
    svc.rename_club(state, 2, " Southside ")
    assert state.clubs[1]["name"] == "Southside"
