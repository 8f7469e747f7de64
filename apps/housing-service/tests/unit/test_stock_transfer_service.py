import io

import pytest
from openpyxl import load_workbook

from housing.db import models, schemas
from housing.services.notification_service import (
    EVENT_INCOMING_STOCK_TRANSFER,
    EVENT_STOCK_TRANSFER_DELIVERED,
    EVENT_STOCK_TRANSFER_REJECTED,
)
from housing.services.stock_transfer_service import StockTransferError, StockTransferService, sheet_title


@pytest.fixture
def setup(farm_factory, stock_factory, user_factory):
    origin = farm_factory(name="Ferme Nord")
    destination = farm_factory(name="Ferme Sud")
    return {
        "origin": origin,
        "destination": destination,
        "stock": stock_factory(origin, item="Couverture", quantity=10),
        "sender": user_factory(role="admin", farm=origin),
        "receiver": user_factory(role="admin", farm=destination),
    }


def _create(db_session, setup, quantity=4, **overrides):
    data = schemas.StockTransferCreate(
        stock_item_id=setup["stock"].id,
        to_farm_id=setup["destination"].id,
        quantity=quantity,
        **overrides,
    )
    return StockTransferService(db_session).create_transfer(data, setup["sender"])


def _events(db_session, user, event_type):
    return db_session.query(models.Notification).filter_by(recipient_id=user.id, event_type=event_type).all()


class TestCreate:
    def test_snapshot_tracking_number_and_notice(self, db_session, setup):
        transfer = _create(db_session, setup, priority="urgent")

        assert transfer.status == "pending"
        assert transfer.tracking_number.startswith("TRF-")
        assert transfer.item == "Couverture"
        assert transfer.from_farm_name == "Ferme Nord"
        assert transfer.to_farm_name == "Ferme Sud"

        notices = _events(db_session, setup["receiver"], EVENT_INCOMING_STOCK_TRANSFER)
        assert len(notices) == 1
        assert notices[0].priority == "urgent"
        assert notices[0].message == "Nouveau transfert entrant: Couverture (4) de Ferme Nord"
        # Quantity leaves the origin only on delivery
        db_session.refresh(setup["stock"])
        assert setup["stock"].quantity == 10

    def test_tracking_numbers_are_unique(self, db_session, setup):
        first = _create(db_session, setup, quantity=1)
        second = _create(db_session, setup, quantity=1)
        assert first.tracking_number != second.tracking_number

    def test_insufficient_quantity(self, db_session, setup):
        with pytest.raises(StockTransferError, match="Insufficient stock"):
            _create(db_session, setup, quantity=11)

    def test_same_farm_is_refused(self, db_session, setup):
        data = schemas.StockTransferCreate(stock_item_id=setup["stock"].id, to_farm_id=setup["origin"].id, quantity=1)
        with pytest.raises(StockTransferError, match="must differ"):
            StockTransferService(db_session).create_transfer(data, setup["sender"])


class TestConfirm:
    def test_delivery_creates_destination_line(self, db_session, setup):
        transfer = _create(db_session, setup)

        delivered = StockTransferService(db_session).confirm_transfer(transfer.id, setup["receiver"])

        assert delivered.status == "delivered"
        assert delivered.delivered_at is not None
        assert delivered.received_by == setup["receiver"].id
        db_session.refresh(setup["stock"])
        assert setup["stock"].quantity == 6
        landed = db_session.query(models.StockItem).filter_by(farm_id=setup["destination"].id).one()
        assert (landed.item, landed.quantity) == ("Couverture", 4)

        incoming = _events(db_session, setup["receiver"], EVENT_INCOMING_STOCK_TRANSFER)
        assert incoming[0].status == "acknowledged"
        assert len(_events(db_session, setup["sender"], EVENT_STOCK_TRANSFER_DELIVERED)) == 1

    def test_delivery_adds_to_existing_line_case_insensitively(self, db_session, setup, stock_factory):
        existing = stock_factory(setup["destination"], item="couverture", quantity=3)
        transfer = _create(db_session, setup)

        StockTransferService(db_session).confirm_transfer(transfer.id, setup["receiver"])

        db_session.refresh(existing)
        assert existing.quantity == 7
        assert db_session.query(models.StockItem).filter_by(farm_id=setup["destination"].id).count() == 1

    def test_emptied_source_line_is_removed(self, db_session, setup):
        stock_id = setup["stock"].id
        transfer = _create(db_session, setup, quantity=10)

        delivered = StockTransferService(db_session).confirm_transfer(transfer.id, setup["receiver"])

        assert db_session.get(models.StockItem, stock_id) is None
        assert delivered.stock_item_id is None

    def test_source_consumed_meanwhile_blocks_delivery(self, db_session, setup):
        transfer = _create(db_session, setup, quantity=8)
        setup["stock"].quantity = 2
        db_session.commit()

        with pytest.raises(StockTransferError, match="Insufficient stock"):
            StockTransferService(db_session).confirm_transfer(transfer.id, setup["receiver"])
        db_session.refresh(transfer)
        assert transfer.status == "pending"

    def test_only_pending_transfers_change(self, db_session, setup):
        transfer = _create(db_session, setup)
        service = StockTransferService(db_session)
        service.cancel_transfer(transfer.id, setup["sender"])

        with pytest.raises(StockTransferError, match="cancelled"):
            service.confirm_transfer(transfer.id, setup["receiver"])


class TestRejectAndCancel:
    def test_reject_keeps_stock_and_tells_origin(self, db_session, setup):
        transfer = _create(db_session, setup)

        rejected = StockTransferService(db_session).reject_transfer(transfer.id, setup["receiver"], "Pas de place")

        assert rejected.status == "rejected"
        assert rejected.rejection_reason == "Pas de place"
        db_session.refresh(setup["stock"])
        assert setup["stock"].quantity == 10
        notices = _events(db_session, setup["sender"], EVENT_STOCK_TRANSFER_REJECTED)
        assert "Pas de place" in notices[0].message

    def test_cancel_records_who(self, db_session, setup):
        transfer = _create(db_session, setup)

        cancelled = StockTransferService(db_session).cancel_transfer(transfer.id, setup["sender"])

        assert cancelled.status == "cancelled"
        assert cancelled.cancelled_by == setup["sender"].id
        assert _events(db_session, setup["receiver"], EVENT_INCOMING_STOCK_TRANSFER)[0].status == "acknowledged"


class TestInventoryWorkbook:
    def test_sheet_title(self):
        assert sheet_title("Ferme: Nord/Est") == "Ferme NordEst"
        assert len(sheet_title("F" * 40)) == 31
        assert sheet_title("") == "Inventaire"

    def test_single_farm_workbook(self, db_session, setup):
        _create(db_session, setup)

        content, count = StockTransferService(db_session).export_inventory(farm_id=setup["origin"].id)

        workbook = load_workbook(io.BytesIO(content))
        assert count == 1
        assert workbook.sheetnames == ["Ferme Nord", "Transferts"]
        rows = list(workbook["Ferme Nord"].iter_rows(values_only=True))
        assert rows[0][0] == "Article"
        assert rows[1][:2] == ("Couverture", 10)
        transfers = list(workbook["Transferts"].iter_rows(values_only=True))
        assert transfers[1][5] == "En attente"
        assert transfers[1][6] == "Moyen"

    def test_all_farms_workbook_has_summary(self, db_session, setup, stock_factory, farm_factory):
        stock_factory(setup["destination"], item="Matelas", quantity=2)
        farm_factory(name="Ferme Vide")

        content, count = StockTransferService(db_session).export_inventory()

        workbook = load_workbook(io.BytesIO(content))
        assert count == 2
        assert workbook.sheetnames == ["Résumé Global", "Ferme Nord", "Ferme Sud"]
        summary = list(workbook["Résumé Global"].iter_rows(values_only=True))
        assert summary[0][0] == "Ferme"
        assert {row[0] for row in summary[1:]} == {"Ferme Nord", "Ferme Sud"}
