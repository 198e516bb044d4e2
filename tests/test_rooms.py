from unittest.mock import patch

from sqlalchemy.exc import OperationalError

ROOM_PAYLOAD = {
    "name": "CL5",
    "capacity": 40,
    "room_type": "Computer Lab",
    "equipment": ["PCs", "Projector"],
}


def test_room_crud(rooms_client, admin_headers):
    create_resp = rooms_client.post("/rooms", json=ROOM_PAYLOAD, headers=admin_headers)
    assert create_resp.status_code == 201
    room = create_resp.json()
    assert room["status"] == "Available"
    assert room["equipment"] == ["PCs", "Projector"]

    list_resp = rooms_client.get("/rooms")
    assert list_resp.status_code == 200
    assert len(list_resp.json()) == 1

    update_resp = rooms_client.put(f"/rooms/{room['id']}", json={"capacity": 45}, headers=admin_headers)
    assert update_resp.status_code == 200
    assert update_resp.json()["capacity"] == 45

    delete_resp = rooms_client.delete(f"/rooms/{room['id']}", headers=admin_headers)
    assert delete_resp.status_code == 204
    assert rooms_client.get(f"/rooms/{room['id']}").status_code == 404


def test_duplicate_room_name_conflicts(rooms_client, admin_headers):
    rooms_client.post("/rooms", json=ROOM_PAYLOAD, headers=admin_headers)

    resp = rooms_client.post("/rooms", json=ROOM_PAYLOAD, headers=admin_headers)
    assert resp.status_code == 409
    assert resp.json()["detail"] == "Name exists"


def test_room_writes_require_admin(rooms_client, user_headers):
    resp = rooms_client.post("/rooms", json=ROOM_PAYLOAD, headers=user_headers)
    assert resp.status_code == 403


def test_occupied_status_cannot_be_set(rooms_client, admin_headers):
    room_id = rooms_client.post("/rooms", json=ROOM_PAYLOAD, headers=admin_headers).json()["id"]

    resp = rooms_client.put(f"/rooms/{room_id}", json={"status": "Occupied"}, headers=admin_headers)
    assert resp.status_code == 422


def test_room_update_with_null_or_blank_name(rooms_client, admin_headers):
    room_id = rooms_client.post("/rooms", json=ROOM_PAYLOAD, headers=admin_headers).json()["id"]

    null_resp = rooms_client.put(f"/rooms/{room_id}", json={"name": None, "capacity": 50}, headers=admin_headers)
    assert null_resp.status_code == 200
    assert null_resp.json()["name"] == "CL5"
    assert null_resp.json()["capacity"] == 50

    blank_resp = rooms_client.put(f"/rooms/{room_id}", json={"name": "   "}, headers=admin_headers)
    assert blank_resp.status_code == 400
    assert rooms_client.get(f"/rooms/{room_id}").json()["name"] == "CL5"


def test_room_status_storage_failure(rooms_client, admin_headers):
    room_id = rooms_client.post("/rooms", json=ROOM_PAYLOAD, headers=admin_headers).json()["id"]
    failure = OperationalError("SELECT", {}, Exception("database is locked"))

    with patch("classroom.room_status.entries_for_day", side_effect=failure):
        resp = rooms_client.get(f"/rooms/{room_id}/status")

    assert resp.status_code == 503


def test_room_status_endpoint(rooms_client, admin_headers):
    room_id = rooms_client.post("/rooms", json=ROOM_PAYLOAD, headers=admin_headers).json()["id"]

    free_resp = rooms_client.get(f"/rooms/{room_id}/status", params={"day": "Tuesday"})
    assert free_resp.status_code == 200
    assert free_resp.json() == {
        "room_id": room_id,
        "status": "Available",
        "color": "#10b981",
        "message": "Free on Tuesday",
        "day": "Tuesday",
    }

    rooms_client.put(f"/rooms/{room_id}", json={"status": "Maintenance"}, headers=admin_headers)
    repair_resp = rooms_client.get(f"/rooms/{room_id}/status")
    assert repair_resp.json()["status"] == "Maintenance"
    assert repair_resp.json()["message"] == "Under Repair"

    assert rooms_client.get("/rooms/999/status").status_code == 404


def test_room_search(rooms_client, admin_headers):
    rooms_client.post("/rooms", json=ROOM_PAYLOAD, headers=admin_headers)
    rooms_client.post(
        "/rooms",
        json={"name": "Hall A", "capacity": 200, "room_type": "Lecture Hall", "equipment": ["Projector"]},
        headers=admin_headers,
    )

    resp = rooms_client.get("/rooms/search", params={"min_capacity": 100, "equipment": ["Projector"]})
    assert resp.status_code == 200
    assert [room["name"] for room in resp.json()] == ["Hall A"]

    typed = rooms_client.get("/rooms/search", params={"room_type": "All"})
    assert len(typed.json()) == 2
