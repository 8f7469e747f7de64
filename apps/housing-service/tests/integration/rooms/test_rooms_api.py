from fastapi.testclient import TestClient

from housing.api.main import app
from housing.db import models

client = TestClient(app)


def _h(user):
    return {"x-auth-request-email": user.email, "x-auth-request-user": user.display_name}


def test_room_crud(db_session, farm_factory, user_factory):
    farm = farm_factory()
    admin = user_factory(role="admin", farm=farm)

    r = client.post("/rooms/", json={"number": "12", "gender": "hommes", "capacity": 4, "sector": "A"},
                    headers=_h(admin))
    assert r.status_code == 201, r.text
    room = r.json()
    assert room["farm_id"] == str(farm.id)
    assert room["occupant_count"] == 0

    dup = client.post("/rooms/", json={"number": "12", "gender": "femmes", "capacity": 2}, headers=_h(admin))
    assert dup.status_code == 409

    r = client.put(f"/rooms/{room['id']}", json={"capacity": 6}, headers=_h(admin))
    assert r.json()["capacity"] == 6

    assert client.delete(f"/rooms/{room['id']}", headers=_h(admin)).status_code == 204
    assert db_session.query(models.Room).count() == 0
    actions = {a.action_type for a in db_session.query(models.AuditLog).all()}
    assert {"room_create", "room_update", "room_delete"} <= actions


def test_capacity_and_delete_guard_occupants(farm_factory, room_factory, worker_factory, user_factory):
    farm = farm_factory()
    room = room_factory(farm, number="3", capacity=2)
    worker_factory(farm, name="A", room=room)
    worker_factory(farm, name="B", room=room)
    admin = user_factory(role="admin", farm=farm)

    assert client.put(f"/rooms/{room.id}", json={"capacity": 1}, headers=_h(admin)).status_code == 409
    r = client.delete(f"/rooms/{room.id}", headers=_h(admin))
    assert r.status_code == 409
    assert r.json()["detail"] == "Room still has occupants"


def test_available_rooms_match_gender_and_space(farm_factory, room_factory, worker_factory, user_factory):
    farm = farm_factory()
    full = room_factory(farm, number="1", capacity=1)
    room_factory(farm, number="2", capacity=2)
    room_factory(farm, number="3", gender="femmes", capacity=2)
    worker_factory(farm, room=full)
    admin = user_factory(role="admin", farm=farm)

    r = client.get("/rooms/available?gender=homme", headers=_h(admin))
    assert [room["number"] for room in r.json()] == ["2"]


def test_rooms_of_other_farms_are_hidden(farm_factory, room_factory, user_factory):
    farm = farm_factory()
    other = farm_factory()
    room_factory(farm, number="1")
    foreign = room_factory(other, number="9")
    user = user_factory(role="user", farm=farm)

    assert [r["number"] for r in client.get("/rooms/", headers=_h(user)).json()] == ["1"]
    assert client.get(f"/rooms/{foreign.id}", headers=_h(user)).status_code == 403
    assert client.get(f"/rooms/?farm_id={other.id}", headers=_h(user)).status_code == 403


def test_superadmin_creates_room_in_named_farm(farm_factory, user_factory):
    farm = farm_factory()
    superadmin = user_factory(role="superadmin")
    payload = {"number": "7", "gender": "femmes", "capacity": 3}

    assert client.post("/rooms/", json=payload, headers=_h(superadmin)).status_code == 422
    r = client.post("/rooms/", json={**payload, "farm_id": str(farm.id)}, headers=_h(superadmin))
    assert r.status_code == 201
    assert r.json()["farm_id"] == str(farm.id)
