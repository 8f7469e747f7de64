import io

from fastapi.testclient import TestClient
from openpyxl import Workbook, load_workbook

from housing.api.main import app
from housing.db import models
from housing.services.import_service import XLSX_MEDIA_TYPE

client = TestClient(app)


def _h(user):
    return {"x-auth-request-email": user.email, "x-auth-request-user": user.display_name}


def _xlsx(rows):
    workbook = Workbook()
    for row in rows:
        workbook.active.append(row)
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def test_template_download(user_factory):
    user = user_factory()
    r = client.get("/imports/template", headers=_h(user))
    assert r.status_code == 200
    assert r.headers["content-type"] == XLSX_MEDIA_TYPE
    assert "modele_import_ouvriers.xlsx" in r.headers["content-disposition"]
    sheet = load_workbook(io.BytesIO(r.content)).active
    assert sheet.title == "Modèle Ouvriers"
    assert sheet.max_row == 4


def test_preview_then_commit(db_session, farm_factory, room_factory, user_factory):
    farm = farm_factory(name="FINCA 3")
    room_factory(farm, number="2")
    admin = user_factory(role="admin", farm=farm)
    content = _xlsx([
        ["Nom", "CIN", "Sexe", "Date de naissance", "Chambre", "Date accès"],
        ["Ahmed Fatmi", "IMP001", "homme", "1995-04-02", "2", "01/02/2024"],
        ["Sans Sexe", "IMP002", "?", "1995-04-02", None, None],
    ])

    r = client.post(
        "/imports/preview",
        files={"file": ("ouvriers.xlsx", content, XLSX_MEDIA_TYPE)},
        headers=_h(admin),
    )
    assert r.status_code == 200, r.text
    preview = r.json()
    assert preview["summary"] == {"total": 2, "valid": 1, "invalid": 1}
    assert preview["rows"][0]["data"]["room_number"] == "2"
    assert preview["rows"][1]["errors"] == ["Sexe invalide (homme/femme)"]

    rows = [
        {"Nom": "Ahmed Fatmi", "CIN": "IMP001", "Sexe": "homme", "Date de naissance": "1995-04-02",
         "Chambre": "2", "Date accès": "01/02/2024"},
    ]
    r = client.post("/imports/commit", json={"rows": rows}, headers=_h(admin))
    assert r.status_code == 200
    assert r.json()["created"] == 1

    worker = db_session.query(models.Worker).filter_by(cin="IMP001").one()
    assert worker.farm_id == farm.id
    assert worker.entry_date.isoformat() == "2024-02-01"

    again = client.post("/imports/commit", json={"rows": rows}, headers=_h(admin)).json()
    assert (again["created"], again["skipped"]) == (0, 1)


def test_preview_rejects_other_formats(user_factory, farm_factory):
    user = user_factory(farm=farm_factory())
    r = client.post("/imports/preview", files={"file": ("ouvriers.csv", b"Nom,CIN\n", "text/csv")}, headers=_h(user))
    assert r.status_code == 422
    assert r.json()["detail"] == "Veuillez sélectionner un fichier Excel (.xlsx)"


def test_preview_rejects_empty_workbook(user_factory, farm_factory):
    user = user_factory(farm=farm_factory())
    content = _xlsx([["Nom", "CIN"]])
    r = client.post("/imports/preview", files={"file": ("vide.xlsx", content, XLSX_MEDIA_TYPE)}, headers=_h(user))
    assert r.status_code == 422
    assert "vide" in r.json()["detail"]
