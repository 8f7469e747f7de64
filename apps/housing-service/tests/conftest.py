import os
import uuid
from datetime import date

import pytest

# Engine selection in housing.db.database checks this before pytest has a test running
os.environ.setdefault("PYTEST_RUNNING", "1")

from housing.db import models  # noqa: E402
from housing.db.database import engine, SessionLocal  # noqa: E402


@pytest.fixture(scope="session", autouse=True)
def _create_schema():
    """Create every table once on the in-memory SQLite engine."""
    models.Base.metadata.create_all(bind=engine)
    yield
    models.Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def clean_data():
    """Empty all tables after each test so tests stay independent."""
    yield
    session = SessionLocal()
    try:
        for table in reversed(models.Base.metadata.sorted_tables):
            session.execute(table.delete())
        session.commit()
    finally:
        session.close()


@pytest.fixture(autouse=True)
def _auth_env(monkeypatch):
    monkeypatch.setenv("DEV_MODE", "false")
    monkeypatch.delenv("ADMIN_EMAILS", raising=False)
    yield


@pytest.fixture
def db_session():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def user_factory(db_session):
    def _create(email=None, role="user", farm=None, display_name=None):
        user = models.User(
            id=uuid.uuid4(),
            email=email or f"user-{uuid.uuid4().hex[:8]}@example.com",
            display_name=display_name or "Test User",
            role=role,
            farm_id=farm.id if farm is not None else None,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user
    return _create


@pytest.fixture
def farm_factory(db_session):
    def _create(name=None, admins=None):
        farm = models.Farm(
            id=uuid.uuid4(),
            name=name or f"Ferme {uuid.uuid4().hex[:6]}",
            admins=[str(a) for a in (admins or [])],
        )
        db_session.add(farm)
        db_session.commit()
        db_session.refresh(farm)
        return farm
    return _create


@pytest.fixture
def room_factory(db_session):
    def _create(farm, number="101", gender="hommes", capacity=4, sector=None, occupants=None):
        occupants = [str(o) for o in (occupants or [])]
        room = models.Room(
            id=uuid.uuid4(),
            farm_id=farm.id,
            number=number,
            gender=gender,
            capacity=capacity,
            sector=sector,
            occupants=occupants,
            occupant_count=len(occupants),
        )
        db_session.add(room)
        db_session.commit()
        db_session.refresh(room)
        return room
    return _create


@pytest.fixture
def worker_factory(db_session):
    def _create(farm, name="Ahmed Benali", cin=None, gender="homme", status="actif", room=None,
                entry_date=date(2024, 1, 10), exit_date=None, exit_reason=None, age=30,
                supervisor=None, return_count=0, work_history=None, matricule=None):
        worker = models.Worker(
            id=uuid.uuid4(),
            name=name,
            cin=cin or f"AB{uuid.uuid4().int % 1000000:06d}",
            matricule=matricule,
            farm_id=farm.id,
            gender=gender,
            age=age,
            birth_year=date.today().year - age if age else None,
            room_number=room.number if room is not None else None,
            sector=room.sector if room is not None else None,
            entry_date=entry_date,
            exit_date=exit_date,
            exit_reason=exit_reason,
            status=status,
            supervisor_id=supervisor.id if supervisor is not None else None,
            return_count=return_count,
            work_history=work_history if work_history is not None else [{
                "id": f"period_{uuid.uuid4().hex[:8]}",
                "entry_date": entry_date.isoformat(),
                "exit_date": exit_date.isoformat() if exit_date else None,
                "reason": exit_reason,
                "room_number": room.number if room is not None else None,
                "sector": room.sector if room is not None else None,
                "farm_id": str(farm.id),
            }],
            allocated_items=[],
        )
        db_session.add(worker)
        if room is not None and status == "actif":
            room.occupants = list(room.occupants or []) + [str(worker.id)]
            room.occupant_count = len(room.occupants)
        db_session.commit()
        db_session.refresh(worker)
        return worker
    return _create


@pytest.fixture
def supervisor_factory(db_session):
    def _create(name="Hassan", company="AgriServices", status="actif"):
        supervisor = models.Supervisor(id=uuid.uuid4(), name=name, company=company, status=status)
        db_session.add(supervisor)
        db_session.commit()
        db_session.refresh(supervisor)
        return supervisor
    return _create


@pytest.fixture
def stock_factory(db_session):
    def _create(farm, item="Eponge", quantity=10):
        stock = models.StockItem(id=uuid.uuid4(), farm_id=farm.id, item=item, quantity=quantity)
        db_session.add(stock)
        db_session.commit()
        db_session.refresh(stock)
        return stock
    return _create
