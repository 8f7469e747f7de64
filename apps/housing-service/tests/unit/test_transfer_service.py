import uuid
from datetime import date

import pytest

from housing.db import models, schemas
from housing.services.notification_service import (
    EVENT_INCOMING_WORKER_TRANSFER,
    EVENT_WORKER_TRANSFER_CONFIRMED,
    EVENT_WORKER_TRANSFER_REJECTED,
)
from housing.services.transfer_service import TransferError, TransferService


@pytest.fixture
def setup(db_session, farm_factory, room_factory, worker_factory, user_factory):
    origin = farm_factory(name="Ferme Nord")
    destination = farm_factory(name="Ferme Sud")
    old_room = room_factory(origin, number="10")
    new_room = room_factory(destination, number="20", sector="Bloc B")
    sender = user_factory(role="admin", farm=origin)
    receiver = user_factory(role="admin", farm=destination)
    worker = worker_factory(origin, name="Karim", room=old_room, entry_date=date(2024, 1, 1))
    return {
        "origin": origin,
        "destination": destination,
        "old_room": old_room,
        "new_room": new_room,
        "sender": sender,
        "receiver": receiver,
        "worker": worker,
    }


def _create(db_session, setup, **overrides):
    data = schemas.WorkerTransferCreate(
        to_farm_id=setup["destination"].id,
        worker_ids=[setup["worker"].id],
        **overrides,
    )
    return TransferService(db_session).create_transfer(data, setup["origin"].id, setup["sender"])


def _events(db_session, user, event_type):
    return db_session.query(models.Notification).filter_by(recipient_id=user.id, event_type=event_type).all()


class TestCreate:
    def test_snapshot_tracking_number_and_notice(self, db_session, setup):
        transfer = _create(db_session, setup, priority="high")

        assert transfer.status == "pending"
        assert transfer.tracking_number.startswith("WT-")
        assert transfer.from_farm_name == "Ferme Nord"
        assert transfer.workers[0]["worker_id"] == str(setup["worker"].id)
        assert transfer.workers[0]["current_room"] == "10"

        notices = _events(db_session, setup["receiver"], EVENT_INCOMING_WORKER_TRANSFER)
        assert len(notices) == 1
        assert notices[0].action_data["transfer_id"] == str(transfer.id)
        assert notices[0].priority == "high"

    def test_tracking_numbers_are_unique(self, db_session, setup, monkeypatch):
        monkeypatch.setattr("housing.services.transfer_service.time.time", lambda: 1700000000.0)
        first = _create(db_session, setup)
        second = _create(db_session, setup)
        assert first.tracking_number == "WT-1700000000000"
        assert second.tracking_number == "WT-1700000000001"

    def test_same_farm_is_refused(self, db_session, setup):
        data = schemas.WorkerTransferCreate(to_farm_id=setup["origin"].id, worker_ids=[setup["worker"].id])
        with pytest.raises(TransferError):
            TransferService(db_session).create_transfer(data, setup["origin"].id, setup["sender"])

    def test_worker_from_another_farm_is_refused(self, db_session, setup, worker_factory):
        stranger = worker_factory(setup["destination"], name="Autre")
        data = schemas.WorkerTransferCreate(to_farm_id=setup["destination"].id, worker_ids=[stranger.id])
        with pytest.raises(TransferError, match="does not belong"):
            TransferService(db_session).create_transfer(data, setup["origin"].id, setup["sender"])

    def test_unknown_worker(self, db_session, setup):
        data = schemas.WorkerTransferCreate(to_farm_id=setup["destination"].id, worker_ids=[uuid.uuid4()])
        with pytest.raises(LookupError):
            TransferService(db_session).create_transfer(data, setup["origin"].id, setup["sender"])


class TestConfirm:
    def test_moves_worker_rooms_and_history(self, db_session, setup):
        transfer = _create(db_session, setup)
        assignments = {str(setup["worker"].id): schemas.RoomAssignment(room_number="20")}

        confirmed = TransferService(db_session).confirm_transfer(
            transfer.id, assignments, setup["receiver"], transfer_date=date(2024, 6, 1),
        )

        worker = db_session.get(models.Worker, setup["worker"].id)
        db_session.refresh(setup["old_room"])
        db_session.refresh(setup["new_room"])

        assert confirmed.status == "confirmed"
        assert confirmed.room_assignments == {str(worker.id): {"room_number": "20", "sector": "Bloc B"}}
        assert worker.farm_id == setup["destination"].id
        assert worker.room_number == "20"
        assert worker.sector == "Bloc B"
        assert worker.entry_date == date(2024, 6, 1)
        assert worker.return_count == 1
        assert worker.last_transfer_from == setup["origin"].id
        assert setup["old_room"].occupants == []
        assert setup["new_room"].occupants == [str(worker.id)]

        first, second = worker.work_history
        assert first["exit_date"] == "2024-06-01"
        assert second["entry_date"] == "2024-06-01"
        assert second["farm_id"] == str(setup["destination"].id)
        assert second["transfer_id"] == str(transfer.id)

        incoming = _events(db_session, setup["receiver"], EVENT_INCOMING_WORKER_TRANSFER)[0]
        assert incoming.status == "acknowledged"
        assert len(_events(db_session, setup["sender"], EVENT_WORKER_TRANSFER_CONFIRMED)) == 1

    def test_missing_assignment(self, db_session, setup):
        transfer = _create(db_session, setup)
        with pytest.raises(TransferError, match="Missing room assignment"):
            TransferService(db_session).confirm_transfer(transfer.id, {}, setup["receiver"])

    def test_gender_mismatch_room(self, db_session, setup, room_factory):
        room_factory(setup["destination"], number="F2", gender="femmes")
        transfer = _create(db_session, setup)
        assignments = {str(setup["worker"].id): schemas.RoomAssignment(room_number="F2")}
        with pytest.raises(TransferError, match="reserved for femmes"):
            TransferService(db_session).confirm_transfer(transfer.id, assignments, setup["receiver"])

    def test_worker_who_exited_meanwhile_is_not_moved(self, db_session, setup):
        transfer = _create(db_session, setup)
        worker = setup["worker"]
        worker.status = "inactif"
        worker.exit_date = date(2024, 5, 1)
        db_session.commit()
        assignments = {str(worker.id): schemas.RoomAssignment(room_number="20")}

        with pytest.raises(TransferError, match="no longer active on Ferme Nord"):
            TransferService(db_session).confirm_transfer(transfer.id, assignments, setup["receiver"])

        db_session.refresh(worker)
        db_session.refresh(transfer)
        assert worker.farm_id == setup["origin"].id
        assert worker.status == "inactif"
        assert transfer.status == "pending"

    def test_deleted_worker_blocks_confirmation(self, db_session, setup):
        transfer = _create(db_session, setup)
        worker_id = setup["worker"].id
        db_session.delete(setup["worker"])
        db_session.commit()
        assignments = {str(worker_id): schemas.RoomAssignment(room_number="20")}

        with pytest.raises(TransferError, match="no longer exists"):
            TransferService(db_session).confirm_transfer(transfer.id, assignments, setup["receiver"])

        db_session.refresh(transfer)
        assert transfer.status == "pending"
        assert transfer.room_assignments in (None, {})

    def test_only_pending_transfers_change(self, db_session, setup):
        transfer = _create(db_session, setup)
        service = TransferService(db_session)
        service.cancel_transfer(transfer.id, setup["sender"])
        with pytest.raises(TransferError, match="cancelled"):
            service.reject_transfer(transfer.id, setup["receiver"])


def test_reject_notifies_origin(db_session, setup):
    transfer = _create(db_session, setup)
    rejected = TransferService(db_session).reject_transfer(transfer.id, setup["receiver"], reason="Pas de place")

    assert rejected.status == "rejected"
    assert rejected.rejection_reason == "Pas de place"
    assert rejected.rejected_by == setup["receiver"].id
    notice = _events(db_session, setup["sender"], EVENT_WORKER_TRANSFER_REJECTED)[0]
    assert "Pas de place" in notice.message
    worker = db_session.get(models.Worker, setup["worker"].id)
    assert worker.farm_id == setup["origin"].id


def test_list_by_direction(db_session, setup):
    transfer = _create(db_session, setup)
    service = TransferService(db_session)
    assert [t.id for t in service.list_transfers(farm_id=setup["destination"].id, direction="incoming")] == [transfer.id]
    assert service.list_transfers(farm_id=setup["destination"].id, direction="outgoing") == []
    assert service.list_transfers(status="confirmed") == []
