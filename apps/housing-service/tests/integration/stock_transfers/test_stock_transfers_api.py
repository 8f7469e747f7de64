import io

import pytest
from fastapi.testclient import TestClient
from openpyxl import load_workbook

from housing.api.main import app
from housing.db import models

client = TestClient(app)


def _h(user):
    return {"x-auth-request-email": user.email, "x-auth-request-user": user.display_name}


@pytest.fixture
def farms(farm_factory, stock_factory, user_factory):
    origin = farm_factory(name="Ferme Haut")
    destination = farm_factory(name="Ferme Bas")
    return {
        "origin": origin,
        "destination": destination,
        "stock": stock_factory(origin, item="Savon", quantity=20),
        "sender": user_factory(role="admin", farm=origin),
        "receiver": user_factory(role="admin", farm=destination),
    }


def _send(farms, quantity=5):
    return client.post(
        "/stock-transfers/",
        json={"stock_item_id": str(farms["stock"].id), "to_farm_id": str(farms["destination"].id),
              "quantity": quantity, "priority": "high"},
        headers=_h(farms["sender"]),
    )


def test_full_stock_transfer_flow(db_session, farms):
    r = _send(farms)
    assert r.status_code == 201, r.text
    transfer = r.json()
    assert transfer["tracking_number"].startswith("TRF-")

    incoming = client.get("/stock-transfers/?direction=incoming", headers=_h(farms["receiver"])).json()
    assert [t["id"] for t in incoming] == [transfer["id"]]
    inbox = client.get("/notifications/", headers=_h(farms["receiver"])).json()
    assert inbox["notifications"][0]["event_type"] == "incoming_stock_transfer"

    # Only the receiving farm confirms delivery
    assert client.post(f"/stock-transfers/{transfer['id']}/confirm", headers=_h(farms["sender"])).status_code == 403

    r = client.post(f"/stock-transfers/{transfer['id']}/confirm", headers=_h(farms["receiver"]))
    assert r.status_code == 200, r.text
    assert r.json()["status"] == "delivered"

    received = client.get("/stock/", headers=_h(farms["receiver"])).json()
    assert [(s["item"], s["quantity"]) for s in received] == [("Savon", 5)]
    remaining = client.get("/stock/", headers=_h(farms["sender"])).json()
    assert remaining[0]["quantity"] == 15
    assert db_session.query(models.AuditLog).filter_by(action_type="stock_transfer_confirm").count() == 1

    again = client.post(f"/stock-transfers/{transfer['id']}/reject", json={"reason": "doublon"},
                        headers=_h(farms["receiver"]))
    assert again.status_code == 409


def test_cannot_send_from_another_farm(farms, user_factory, farm_factory):
    outsider = user_factory(role="admin", farm=farm_factory())
    r = client.post(
        "/stock-transfers/",
        json={"stock_item_id": str(farms["stock"].id), "to_farm_id": str(farms["destination"].id), "quantity": 1},
        headers=_h(outsider),
    )
    assert r.status_code == 403


def test_quantity_checks(farms):
    assert _send(farms, quantity=0).status_code == 422
    too_many = _send(farms, quantity=21)
    assert too_many.status_code == 409
    assert "Insufficient stock" in too_many.json()["detail"]


def test_reject_and_cancel(farms):
    first = _send(farms).json()
    r = client.post(f"/stock-transfers/{first['id']}/reject", json={"reason": "Complet"}, headers=_h(farms["receiver"]))
    assert r.json()["status"] == "rejected"
    assert r.json()["rejection_reason"] == "Complet"

    second = _send(farms).json()
    assert client.post(f"/stock-transfers/{second['id']}/cancel", headers=_h(farms["receiver"])).status_code == 403
    r = client.post(f"/stock-transfers/{second['id']}/cancel", headers=_h(farms["sender"]))
    assert r.json()["status"] == "cancelled"


def test_inventory_export(farms):
    _send(farms)

    r = client.get("/stock/export", headers=_h(farms["sender"]))

    assert r.status_code == 200
    assert r.headers["content-type"].startswith("application/vnd.openxmlformats")
    assert "inventaire_" in r.headers["content-disposition"]
    workbook = load_workbook(io.BytesIO(r.content))
    assert workbook.sheetnames == ["Ferme Haut", "Transferts"]
    assert list(workbook["Ferme Haut"].iter_rows(values_only=True))[1][:2] == ("Savon", 20)


def test_superadmin_inventory_export_covers_every_farm(farms, stock_factory, user_factory):
    stock_factory(farms["destination"], item="Drap", quantity=3)
    superadmin = user_factory(role="superadmin")

    r = client.get("/stock/export", headers=_h(superadmin))

    workbook = load_workbook(io.BytesIO(r.content))
    assert workbook.sheetnames == ["Résumé Global", "Ferme Bas", "Ferme Haut"]
