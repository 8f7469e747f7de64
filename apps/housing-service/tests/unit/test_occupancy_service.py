from datetime import date, timedelta
from types import SimpleNamespace
import uuid

import pytest

from housing.services import occupancy_service
from housing.services.occupancy_service import RoomNotFound, genre_for, is_delete_all_workers


def test_genre_for():
    assert genre_for("homme") == "hommes"
    assert genre_for("Femme") == "femmes"
    assert genre_for(None) is None


class TestAddRemove:
    def test_add_is_idempotent(self, db_session, farm_factory, room_factory, worker_factory):
        farm = farm_factory()
        room = room_factory(farm, number="1")
        worker = worker_factory(farm)
        occupancy_service.add_worker_to_room(room, worker)
        occupancy_service.add_worker_to_room(room, worker)
        assert room.occupants == [str(worker.id)]
        assert room.occupant_count == 1

    def test_remove_matches_id_or_cin_and_never_goes_negative(self, db_session, farm_factory, room_factory, worker_factory):
        farm = farm_factory()
        room = room_factory(farm, number="2")
        worker = worker_factory(farm, room=room)
        db_session.refresh(room)
        room.occupants = [worker.cin]
        db_session.commit()

        removed = occupancy_service.remove_worker_from_room(db_session, worker)
        assert removed.id == room.id
        assert room.occupants == []
        assert room.occupant_count == 0
        occupancy_service.remove_worker_from_room(db_session, worker)
        assert room.occupant_count == 0


class TestSync:
    def test_sync_rebuilds_from_housed_workers(self, db_session, farm_factory, room_factory, worker_factory):
        farm = farm_factory()
        room = room_factory(farm, number="10", gender="hommes")
        today = date(2024, 6, 1)
        housed = worker_factory(farm, room=room)
        leaving_later = worker_factory(farm, room=room, exit_date=today + timedelta(days=5))
        worker_factory(farm, room=room, status="inactif", exit_date=today - timedelta(days=1))
        woman = worker_factory(farm, room=room, gender="femme")
        room.occupants = ["stale-id"]
        room.occupant_count = 7
        db_session.commit()

        assert occupancy_service.sync_room_occupancy(db_session, today=today) == 1
        db_session.refresh(room)
        assert sorted(room.occupants) == sorted([str(housed.id), str(leaving_later.id)])
        assert str(woman.id) not in room.occupants
        assert room.occupant_count == 2
        # A second pass finds nothing to change
        assert occupancy_service.sync_room_occupancy(db_session, today=today) == 0

    def test_single_room_sync_unknown_room(self, db_session):
        with pytest.raises(RoomNotFound):
            occupancy_service.sync_single_room_occupancy(db_session, uuid.uuid4())

    def test_clear_all_rooms_of_a_farm(self, db_session, farm_factory, room_factory):
        farm = farm_factory()
        other = farm_factory()
        room_factory(farm, number="1", occupants=["a", "b"])
        room_factory(farm, number="2")
        untouched = room_factory(other, number="1", occupants=["c"])

        assert occupancy_service.clear_all_room_occupants(db_session, farm_id=farm.id) == 1
        db_session.refresh(untouched)
        assert untouched.occupant_count == 1


def test_is_delete_all_workers():
    a = SimpleNamespace(id=uuid.uuid4(), status="actif")
    b = SimpleNamespace(id=uuid.uuid4(), status="actif")
    gone = SimpleNamespace(id=uuid.uuid4(), status="inactif")
    assert is_delete_all_workers([a.id, b.id], [a, b, gone]) is True
    assert is_delete_all_workers([a.id], [a, b, gone]) is False
    assert is_delete_all_workers([gone.id], [gone]) is False
