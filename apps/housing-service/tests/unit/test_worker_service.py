import uuid
from datetime import date, timedelta

import pytest

from housing.db import models, schemas
from housing.services.worker_registration_service import (
    DUPLICATE_CROSS_FARM_ACTIVE,
    DUPLICATE_CROSS_FARM_INACTIVE,
    DUPLICATE_NAME_SIMILARITY,
    DUPLICATE_NONE,
    DUPLICATE_SAME_FARM_ACTIVE,
    DUPLICATE_SAME_FARM_INACTIVE,
    WorkerConflict,
    WorkerService,
    WorkerValidationError,
    compute_age,
    history_with_main_period,
)
from housing.services.security_code_service import SecurityCodeError, SecurityCodeService


def _payload(**overrides):
    data = {"name": "Youssef Amrani", "cin": "JK123456", "gender": "homme", "age": 28}
    data.update(overrides)
    return schemas.WorkerCreate(**data)


def test_compute_age_before_and_after_birthday():
    assert compute_age(date(2000, 6, 15), date(2024, 6, 14)) == 23
    assert compute_age(date(2000, 6, 15), date(2024, 6, 15)) == 24


def test_history_with_main_period_adds_missing_current_period(db_session, farm_factory, worker_factory):
    farm = farm_factory()
    worker = worker_factory(farm, entry_date=date(2024, 3, 1), work_history=[])
    history = history_with_main_period(worker, exit_date=date(2024, 5, 1), reason="demission")
    assert len(history) == 1
    assert history[0]["entry_date"] == "2024-03-01"
    assert history[0]["exit_date"] == "2024-05-01"
    assert history[0]["reason"] == "demission"


class TestDuplicateCheck:
    def test_no_duplicate(self, db_session, farm_factory):
        farm = farm_factory()
        result = WorkerService(db_session).check_cross_farm_duplicates("Nouveau", "ZZ000001", farm.id)
        assert result.type == DUPLICATE_NONE
        assert result.blocked is False

    def test_same_farm_active_blocks(self, db_session, farm_factory, worker_factory):
        farm = farm_factory()
        worker_factory(farm, cin="AA1")
        result = WorkerService(db_session).check_cross_farm_duplicates("X", "AA1", farm.id)
        assert result.type == DUPLICATE_SAME_FARM_ACTIVE
        assert result.blocked is True

    def test_cross_farm_active_blocks(self, db_session, farm_factory, worker_factory):
        origin = farm_factory(name="Ferme Origine")
        target = farm_factory()
        worker_factory(origin, cin="AA2")
        result = WorkerService(db_session).check_cross_farm_duplicates("X", "AA2", target.id)
        assert result.type == DUPLICATE_CROSS_FARM_ACTIVE
        assert result.existing_farm_name == "Ferme Origine"

    def test_inactive_records(self, db_session, farm_factory, worker_factory):
        farm = farm_factory()
        other = farm_factory()
        worker_factory(farm, cin="AA3", status="inactif", exit_date=date(2024, 2, 1))
        service = WorkerService(db_session)
        assert service.check_cross_farm_duplicates("X", "AA3", farm.id).type == DUPLICATE_SAME_FARM_INACTIVE
        assert service.check_cross_farm_duplicates("X", "AA3", other.id).type == DUPLICATE_CROSS_FARM_INACTIVE

    def test_active_record_wins_over_inactive(self, db_session, farm_factory, worker_factory):
        farm = farm_factory()
        other = farm_factory()
        worker_factory(farm, cin="AA4", status="inactif", exit_date=date(2024, 2, 1))
        worker_factory(other, cin="AA4")
        result = WorkerService(db_session).check_cross_farm_duplicates("X", "AA4", farm.id)
        assert result.type == DUPLICATE_CROSS_FARM_ACTIVE

    def test_name_similarity(self, db_session, farm_factory, worker_factory):
        farm = farm_factory()
        worker_factory(farm, name="Fatima Zahra", cin="BB1")
        result = WorkerService(db_session).check_cross_farm_duplicates("  fatima zahra ", "BB2", farm.id)
        assert result.type == DUPLICATE_NAME_SIMILARITY
        assert result.blocked is False


class TestRegistration:
    def test_create_assigns_room_and_history(self, db_session, farm_factory, room_factory, user_factory):
        farm = farm_factory()
        room = room_factory(farm, number="12", sector="Secteur A")
        actor = user_factory(role="admin", farm=farm)

        worker = WorkerService(db_session).register_worker(
            _payload(room_number="12", entry_date=date(2024, 4, 1)), farm.id, actor,
        )

        db_session.refresh(room)
        assert room.occupants == [str(worker.id)]
        assert worker.sector == "Secteur A"
        assert worker.status == "actif"
        assert worker.birth_year == date.today().year - 28
        assert len(worker.work_history) == 1
        assert worker.work_history[0]["room_number"] == "12"

    def test_room_gender_mismatch(self, db_session, farm_factory, room_factory, user_factory):
        farm = farm_factory()
        room_factory(farm, number="F1", gender="femmes")
        actor = user_factory(farm=farm)
        with pytest.raises(WorkerValidationError, match="pour femmes"):
            WorkerService(db_session).register_worker(_payload(room_number="F1"), farm.id, actor)

    def test_unknown_room(self, db_session, farm_factory, user_factory):
        farm = farm_factory()
        actor = user_factory(farm=farm)
        with pytest.raises(WorkerValidationError, match="non trouvée"):
            WorkerService(db_session).register_worker(_payload(room_number="999"), farm.id, actor)

    def test_blocked_and_undecided_conflicts(self, db_session, farm_factory, worker_factory, user_factory):
        farm = farm_factory()
        actor = user_factory(farm=farm)
        worker_factory(farm, cin="CC1")
        worker_factory(farm, cin="CC2", status="inactif", exit_date=date(2024, 1, 1))
        service = WorkerService(db_session)

        with pytest.raises(WorkerConflict) as blocked:
            service.register_worker(_payload(cin="CC1"), farm.id, actor)
        assert blocked.value.check.blocked is True

        with pytest.raises(WorkerConflict) as undecided:
            service.register_worker(_payload(cin="CC2"), farm.id, actor)
        assert undecided.value.check.type == DUPLICATE_SAME_FARM_INACTIVE

    def test_name_similarity_requires_acknowledgement(self, db_session, farm_factory, worker_factory, user_factory):
        farm = farm_factory()
        actor = user_factory(farm=farm)
        worker_factory(farm, name="Youssef Amrani", cin="DD1")
        service = WorkerService(db_session)
        with pytest.raises(WorkerConflict):
            service.register_worker(_payload(cin="DD2"), farm.id, actor)
        worker = service.register_worker(_payload(cin="DD2", acknowledge_name_similarity=True), farm.id, actor)
        assert worker.cin == "DD2"

    def test_reactivate_closes_previous_period(self, db_session, farm_factory, worker_factory, user_factory):
        farm = farm_factory()
        actor = user_factory(farm=farm)
        old = worker_factory(farm, cin="EE1", status="inactif", entry_date=date(2023, 1, 1),
                             exit_date=date(2023, 6, 1), exit_reason="fin_contrat")

        worker = WorkerService(db_session).register_worker(
            _payload(cin="EE1", resolution="reactivate", entry_date=date(2024, 1, 15)), farm.id, actor,
        )

        assert worker.id == old.id
        assert worker.status == "actif"
        assert worker.exit_date is None
        assert worker.return_count == 1
        assert [p["entry_date"] for p in worker.work_history] == ["2023-01-01", "2024-01-15"]
        assert worker.work_history[0]["exit_date"] == "2023-06-01"
        assert worker.work_history[1]["exit_date"] is None

    def test_transfer_from_other_farm_notifies_previous_farm(
        self, db_session, farm_factory, worker_factory, user_factory,
    ):
        origin = farm_factory(name="Ferme A")
        target = farm_factory(name="Ferme B")
        origin_admin = user_factory(role="admin", farm=origin)
        actor = user_factory(role="admin", farm=target)
        worker_factory(origin, cin="FF1", status="inactif", entry_date=date(2023, 1, 1), exit_date=date(2023, 9, 1))

        worker = WorkerService(db_session).register_worker(
            _payload(cin="FF1", resolution="transfer", entry_date=date(2024, 2, 1)), target.id, actor,
        )

        assert worker.farm_id == target.id
        assert worker.transferred_from == origin.id
        assert {p["farm_id"] for p in worker.work_history} == {str(origin.id), str(target.id)}
        notification = db_session.query(models.Notification).filter_by(recipient_id=origin_admin.id).one()
        assert notification.event_type == "worker_moved_from_farm"


class TestUpdateAndDelete:
    def test_exit_date_deactivates_and_frees_room(self, db_session, farm_factory, room_factory, worker_factory, user_factory):
        farm = farm_factory()
        room = room_factory(farm, number="5")
        actor = user_factory(role="admin", farm=farm)
        superadmin = user_factory(role="superadmin")
        worker = worker_factory(farm, room=room)

        exit_day = date.today() - timedelta(days=1)
        updated = WorkerService(db_session).update_worker(
            worker, schemas.WorkerUpdate(exit_date=exit_day, exit_reason="demission"), actor,
        )

        db_session.refresh(room)
        assert updated.status == "inactif"
        assert room.occupants == []
        assert updated.work_history[-1]["exit_date"] == exit_day.isoformat()
        assert updated.work_history[-1]["reason"] == "demission"
        notice = db_session.query(models.Notification).filter_by(recipient_id=superadmin.id).one()
        assert notice.event_type == "worker_exit_confirmed"

    def test_room_change_moves_occupancy(self, db_session, farm_factory, room_factory, worker_factory, user_factory):
        farm = farm_factory()
        first = room_factory(farm, number="1")
        second = room_factory(farm, number="2", sector="Nord")
        actor = user_factory(farm=farm)
        worker = worker_factory(farm, room=first)

        WorkerService(db_session).update_worker(worker, schemas.WorkerUpdate(room_number="2"), actor)

        db_session.refresh(first)
        db_session.refresh(second)
        assert first.occupants == []
        assert second.occupants == [str(worker.id)]
        assert worker.sector == "Nord"

    def test_exit_with_cleared_room_frees_the_old_room(
        self, db_session, farm_factory, room_factory, worker_factory, user_factory,
    ):
        farm = farm_factory()
        room = room_factory(farm, number="10")
        actor = user_factory(role="admin", farm=farm)
        worker = worker_factory(farm, room=room)

        updated = WorkerService(db_session).update_worker(
            worker, schemas.WorkerUpdate(exit_date=date(2024, 5, 1), room_number=None), actor,
        )

        db_session.refresh(room)
        assert updated.status == "inactif"
        assert updated.room_number is None
        assert (room.occupants, room.occupant_count) == ([], 0)

    def test_deactivation_with_room_change_leaves_new_room_untouched(
        self, db_session, farm_factory, room_factory, worker_factory, user_factory,
    ):
        farm = farm_factory()
        old_room = room_factory(farm, number="10")
        new_room = room_factory(farm, number="20")
        actor = user_factory(role="admin", farm=farm)
        worker = worker_factory(farm, room=old_room)
        neighbour = worker_factory(farm, name="Voisin", room=new_room)

        WorkerService(db_session).update_worker(
            worker, schemas.WorkerUpdate(status="inactif", room_number="20"), actor,
        )

        db_session.refresh(old_room)
        db_session.refresh(new_room)
        assert (old_room.occupants, old_room.occupant_count) == ([], 0)
        assert (new_room.occupants, new_room.occupant_count) == ([str(neighbour.id)], 1)

    def test_delete_frees_room(self, db_session, farm_factory, room_factory, worker_factory, user_factory):
        farm = farm_factory()
        room = room_factory(farm, number="3")
        actor = user_factory(farm=farm)
        worker = worker_factory(farm, room=room)
        WorkerService(db_session).delete_worker(worker, actor)
        db_session.refresh(room)
        assert room.occupant_count == 0
        assert db_session.query(models.Worker).count() == 0


class TestBulkDelete:
    def test_superadmin_needs_no_code(self, db_session, farm_factory, worker_factory, user_factory):
        farm = farm_factory()
        actor = user_factory(role="superadmin")
        workers = [worker_factory(farm, name=f"W{i}") for i in range(2)]
        result = WorkerService(db_session).bulk_delete([w.id for w in workers], actor, scope_farm_id=farm.id)
        assert result.deleted == 2
        assert result.cleared_all_rooms is True

    def test_admin_spends_security_code(self, db_session, farm_factory, room_factory, worker_factory, user_factory):
        farm = farm_factory()
        room = room_factory(farm, number="7")
        superadmin = user_factory(role="superadmin")
        actor = user_factory(role="admin", farm=farm)
        kept = worker_factory(farm, name="Reste", room=room)
        doomed = worker_factory(farm, name="Part", room=room)
        code = SecurityCodeService(db_session).generate(superadmin, 1, "hours", max_deletions=5)

        result = WorkerService(db_session).bulk_delete([doomed.id], actor, security_code=code.code, scope_farm_id=farm.id)

        assert result.deleted == 1
        assert result.cleared_all_rooms is False
        db_session.refresh(room)
        assert room.occupants == [str(kept.id)]
        db_session.refresh(code)
        assert code.deletions_used == 1

    def test_admin_without_code_is_refused(self, db_session, farm_factory, worker_factory, user_factory):
        farm = farm_factory()
        actor = user_factory(role="admin", farm=farm)
        worker = worker_factory(farm)
        with pytest.raises(SecurityCodeError):
            WorkerService(db_session).bulk_delete([worker.id], actor, scope_farm_id=farm.id)

    def test_unknown_worker(self, db_session, farm_factory, user_factory):
        actor = user_factory(role="superadmin")
        with pytest.raises(LookupError):
            WorkerService(db_session).bulk_delete([uuid.uuid4()], actor)
