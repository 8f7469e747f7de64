import uuid
from datetime import date

from fastapi.testclient import TestClient

from housing.api.main import app
from housing.db import models
from housing.services.security_code_service import SecurityCodeService

client = TestClient(app)


def _h(user):
    return {"x-auth-request-email": user.email, "x-auth-request-user": user.display_name}


class TestSecurityCodes:
    def test_generate_share_list_and_deactivate(self, db_session, farm_factory, user_factory):
        farm = farm_factory(name="Ferme Code")
        admin = user_factory(role="admin", farm=farm)
        superadmin = user_factory(role="superadmin")

        r = client.post("/admin/security-codes/", json={"expiration_value": 2, "expiration_unit": "days",
                                                         "max_deletions": 3}, headers=_h(superadmin))
        assert r.status_code == 201
        code = r.json()
        assert len(code["code"]) == 6
        assert code["max_deletions"] == 3

        r = client.post(f"/admin/security-codes/{code['id']}/share", json={"farm_id": str(farm.id)},
                        headers=_h(superadmin))
        assert r.json()["shared_with"] == [str(farm.id)]
        notice = db_session.query(models.Notification).filter_by(recipient_id=admin.id).one()
        assert code["code"] in notice.message

        listed = client.get("/admin/security-codes/", headers=_h(superadmin)).json()
        assert [c["id"] for c in listed] == [code["id"]]

        r = client.post(f"/admin/security-codes/{code['id']}/deactivate", headers=_h(superadmin))
        assert r.json()["is_active"] is False
        assert client.get("/admin/security-codes/", headers=_h(superadmin)).json() == []

    def test_share_errors(self, db_session, farm_factory, user_factory):
        superadmin = user_factory(role="superadmin")
        no_admin_farm = farm_factory()
        code = SecurityCodeService(db_session).generate(superadmin, 1, "hours")

        assert client.post(f"/admin/security-codes/{code.id}/share", json={"farm_id": str(uuid.uuid4())},
                           headers=_h(superadmin)).status_code == 404
        assert client.post(f"/admin/security-codes/{uuid.uuid4()}/share", json={"farm_id": str(no_admin_farm.id)},
                           headers=_h(superadmin)).status_code == 404
        assert client.post(f"/admin/security-codes/{code.id}/share", json={"farm_id": str(no_admin_farm.id)},
                           headers=_h(superadmin)).status_code == 409

    def test_usages_after_bulk_delete(self, db_session, farm_factory, worker_factory, user_factory):
        farm = farm_factory()
        superadmin = user_factory(role="superadmin")
        admin = user_factory(role="admin", farm=farm)
        worker = worker_factory(farm, name="Supprimé", matricule="M-9")
        code = SecurityCodeService(db_session).generate(superadmin, 1, "days", max_deletions=5)

        r = client.post("/workers/bulk-delete", json={"worker_ids": [str(worker.id)], "security_code": code.code},
                        headers=_h(admin))
        assert r.status_code == 200

        usages = client.get(f"/admin/security-codes/usages?code_id={code.id}", headers=_h(superadmin)).json()
        assert len(usages) == 1
        assert usages[0]["used_by_email"] == admin.email
        assert usages[0]["deletions_count"] == 1
        assert usages[0]["deleted_workers"][0]["name"] == "Supprimé"

    def test_regular_users_are_forbidden(self, user_factory):
        user = user_factory()
        assert client.get("/admin/security-codes/", headers=_h(user)).status_code == 403


class TestMaintenance:
    def test_sync_and_clear(self, db_session, farm_factory, room_factory, worker_factory, user_factory):
        farm = farm_factory()
        superadmin = user_factory(role="superadmin")
        room = room_factory(farm, number="5", occupants=[uuid.uuid4()])
        worker = worker_factory(farm)
        worker.room_number = "5"
        db_session.commit()

        r = client.post(f"/admin/rooms/{room.id}/sync", headers=_h(superadmin))
        assert r.json() == {"updated_rooms": 1}
        db_session.refresh(room)
        assert room.occupants == [str(worker.id)]

        assert client.post("/admin/rooms/sync", headers=_h(superadmin)).json() == {"updated_rooms": 0}
        assert client.post(f"/admin/rooms/clear?farm_id={farm.id}", headers=_h(superadmin)).json() == {"updated_rooms": 1}
        db_session.refresh(room)
        assert room.occupant_count == 0

    def test_unknown_room(self, user_factory):
        superadmin = user_factory(role="superadmin")
        assert client.post(f"/admin/rooms/{uuid.uuid4()}/sync", headers=_h(superadmin)).status_code == 404


class TestDashboard:
    def test_stats_are_scoped_to_the_callers_farm(self, farm_factory, room_factory, worker_factory, user_factory):
        farm = farm_factory()
        room = room_factory(farm, capacity=4)
        worker_factory(farm, room=room)
        worker_factory(farm_factory())
        admin = user_factory(role="admin", farm=farm)

        stats = client.get("/dashboard/stats", headers=_h(admin)).json()
        assert stats["total_workers"] == 1
        assert stats["remaining_places"] == 3

    def test_invalid_month(self, user_factory):
        superadmin = user_factory(role="superadmin")
        r = client.get("/dashboard/stats?date_filter=specific_month&month=13&year=2024", headers=_h(superadmin))
        assert r.status_code == 422

    def test_companies_and_admin_stats(self, farm_factory, worker_factory, supervisor_factory, user_factory):
        farm = farm_factory()
        sup = supervisor_factory(company="AgriPlus")
        worker_factory(farm, supervisor=sup)
        worker_factory(farm, status="inactif", exit_date=date(2024, 2, 1))
        superadmin = user_factory(role="superadmin")

        assert client.get("/dashboard/companies", headers=_h(superadmin)).json() == ["AgriPlus"]
        company_stats = client.get("/dashboard/company-stats", headers=_h(superadmin)).json()
        assert company_stats[0]["name"] == "AgriPlus"
        admin_stats = client.get("/dashboard/admin-stats", headers=_h(superadmin)).json()
        assert (admin_stats["active_workers"], admin_stats["inactive_workers"]) == (1, 1)
        assert client.get("/dashboard/admin-stats", headers=_h(user_factory())).status_code == 403


class TestFarmsAndUsers:
    def test_farm_crud_is_superadmin_only(self, db_session, user_factory):
        superadmin = user_factory(role="superadmin")
        user = user_factory()

        assert client.post("/farms/", json={"name": "Nouvelle"}, headers=_h(user)).status_code == 403
        r = client.post("/farms/", json={"name": "Nouvelle"}, headers=_h(superadmin))
        assert r.status_code == 201
        farm_id = r.json()["id"]
        assert client.post("/farms/", json={"name": "Nouvelle"}, headers=_h(superadmin)).status_code == 409
        assert client.put(f"/farms/{farm_id}", json={"name": "Renommée"}, headers=_h(superadmin)).json()["name"] == "Renommée"
        assert [f["name"] for f in client.get("/farms/", headers=_h(user)).json()] == ["Renommée"]
        assert client.delete(f"/farms/{farm_id}", headers=_h(superadmin)).status_code == 204
        assert client.get(f"/farms/{farm_id}", headers=_h(user)).status_code == 404

    def test_farm_delete_removes_its_notifications(self, db_session, farm_factory, user_factory):
        from housing.services.notification_service import NotificationService

        farm = farm_factory()
        superadmin = user_factory(role="superadmin")
        recipient = user_factory()
        NotificationService(db_session).send_notification(recipient.id, "general", "T", "M",
                                                          recipient_farm_id=str(farm.id))
        assert client.delete(f"/farms/{farm.id}", headers=_h(superadmin)).status_code == 204
        assert db_session.query(models.Notification).count() == 0

    def test_role_and_farm_assignment(self, db_session, farm_factory, user_factory):
        farm = farm_factory()
        superadmin = user_factory(role="superadmin")
        target = user_factory()

        r = client.put(f"/users/{target.id}/role", json={"role": "admin"}, headers=_h(superadmin))
        assert r.json()["role"] == "admin"
        assert client.put(f"/users/{target.id}/role", json={"role": "owner"}, headers=_h(superadmin)).status_code == 422
        r = client.put(f"/users/{target.id}/farm", json={"farm_id": str(farm.id)}, headers=_h(superadmin))
        assert r.json()["farm_id"] == str(farm.id)
        db_session.refresh(farm)
        assert farm.admins == [str(target.id)]
        assert client.get(f"/users/{target.id}/farm-check", headers=_h(superadmin)).json()["has_issues"] is False

    def test_me_and_profile(self, user_factory):
        user = user_factory(display_name="Avant")
        assert client.get("/users/me", headers=_h(user)).json()["email"] == user.email
        r = client.patch("/users/me", json={"display_name": "  Après  "}, headers=_h(user))
        assert r.json()["display_name"] == "Après"

    def test_cannot_delete_self(self, user_factory):
        superadmin = user_factory(role="superadmin")
        assert client.delete(f"/users/{superadmin.id}", headers=_h(superadmin)).status_code == 409

    def test_auto_assign(self, farm_factory, user_factory):
        farm_factory(name="Ferme Unique")
        superadmin = user_factory(role="superadmin")
        user_factory(email="floating@example.com")
        without = client.get("/users/without-farm", headers=_h(superadmin)).json()
        assert "floating@example.com" in [u["email"] for u in without]

        result = client.post("/users/auto-assign-farms", headers=_h(superadmin)).json()
        assert result["assigned"] == 2
        assert client.get("/users/without-farm", headers=_h(superadmin)).json() == []


def test_audit_log_listing(db_session, farm_factory, room_factory, user_factory):
    farm = farm_factory()
    admin = user_factory(role="admin", farm=farm)
    superadmin = user_factory(role="superadmin")
    client.post("/rooms/", json={"number": "1", "gender": "hommes", "capacity": 2}, headers=_h(admin))

    logs = client.get(f"/audits/?farm_id={farm.id}&action_type=room_create", headers=_h(superadmin)).json()
    assert len(logs) == 1
    assert logs[0]["actor_user_id"] == str(admin.id)
    assert logs[0]["metadata"] == {"number": "1", "gender": "hommes"}
    assert client.get("/audits/", headers=_h(admin)).status_code == 403


def test_audit_trail_of_one_worker(farm_factory, user_factory):
    farm = farm_factory()
    admin = user_factory(role="admin", farm=farm)
    superadmin = user_factory(role="superadmin")
    payload = {"name": "Said", "cin": "TR1", "gender": "homme", "age": 30, "entry_date": "2024-01-10"}
    worker_id = client.post("/workers/", json=payload, headers=_h(admin)).json()["id"]
    client.post("/workers/", json={**payload, "name": "Autre", "cin": "TR2"}, headers=_h(admin))

    trail = client.get(f"/audits/?target_type=worker&target_id={worker_id}", headers=_h(superadmin)).json()
    assert [entry["action_type"] for entry in trail] == ["worker_create"]
    assert trail[0]["metadata"]["cin"] == "TR1"
    assert client.get("/audits/?limit=0", headers=_h(superadmin)).status_code == 422
