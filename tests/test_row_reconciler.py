import pytest
from decimal import Decimal
from sqlalchemy import select

from app.models.inventory import InventoryItem
from app.models.audit_history import AuditHistory
from app.services.record_store import RecordStoreError, SQLAlchemyRecordStore
from app.services.row_reconciler import RowReconciler, RowStatus, resolve_columns


def make_row(**overrides):
    row = {
        "ItemNumber": "HW-100",
        "AssetType": "Hardware",
        "Description": "Test Laptop",
        "Category": "Laptop",
        "Cost": "999.99",
        "MinimumThreshold": "5",
        "ReorderAmount": "10",
        "CurrentQuantity": "3",
    }
    row.update(overrides)
    return row


async def audit_entries(db_session):
    result = await db_session.execute(select(AuditHistory).order_by(AuditHistory.change_date))
    return result.scalars().all()


async def seed_item(db_session, **overrides):
    fields = dict(
        item_number="EX-1",
        asset_type="Hardware",
        description="Existing Monitor",
        category="Monitor",
        cost=Decimal("250.00"),
        minimum_threshold=10,
        reorder_amount=5,
        current_quantity=20,
        last_modified_by="seed",
    )
    fields.update(overrides)
    item = InventoryItem(**fields)
    db_session.add(item)
    await db_session.commit()
    return item


class BrokenCreateStore(SQLAlchemyRecordStore):
    def __init__(self, db):
        super().__init__(db)
        self.store_touched = False
        self.rolled_back = False

    async def find_by_item_number(self, item_number):
        self.store_touched = True
        return await super().find_by_item_number(item_number)

    async def create(self, fields):
        raise RecordStoreError("UNIQUE constraint failed: inventory.item_number")

    async def rollback(self):
        self.rolled_back = True
        await super().rollback()


def test_resolve_columns_matches_headers_case_insensitively():
    columns = resolve_columns({"itemnumber": "A-1", "DESCRIPTION": "Dock", "Current Quantity": " 4 "})
    assert columns["ItemNumber"] == "A-1"
    assert columns["Description"] == "Dock"
    assert columns["CurrentQuantity"] == "4"
    assert columns["Category"] == ""


def test_resolve_columns_legacy_aliases():
    columns = resolve_columns({"ItemNumber": "A-1", "HardwareDescription": "Old Dock", "HardwareType": "Dock"})
    assert columns["Description"] == "Old Dock"
    assert columns["Category"] == "Dock"


def test_resolve_columns_canonical_wins_over_alias():
    columns = resolve_columns({"Description": "New", "HardwareDescription": "Old"})
    assert columns["Description"] == "New"
    assert columns["HardwareDescription"] == "Old"


@pytest.mark.asyncio
async def test_creates_new_item_with_audit(db_session):
    reconciler = RowReconciler(SQLAlchemyRecordStore(db_session))

    outcome = await reconciler.reconcile(make_row(), 2, "jdoe")

    assert outcome.status == RowStatus.CREATED
    assert outcome.succeeded
    assert outcome.low_stock is True
    assert outcome.record.current_quantity == 3
    assert outcome.record.cost == Decimal("999.99")
    assert outcome.record.last_modified_by == "jdoe"
    assert outcome.record.hardware_description == "Test Laptop"

    entries = await audit_entries(db_session)
    assert len(entries) == 1
    assert (entries[0].previous_quantity, entries[0].new_quantity) == (0, 3)
    assert entries[0].changed_by == "jdoe"
    assert entries[0].item_id == outcome.record.id


@pytest.mark.asyncio
async def test_new_item_without_quantity_has_no_audit(db_session):
    reconciler = RowReconciler(SQLAlchemyRecordStore(db_session))

    outcome = await reconciler.reconcile(make_row(CurrentQuantity=""), 2, "jdoe")

    assert outcome.status == RowStatus.CREATED
    assert outcome.record.current_quantity == 0
    assert await audit_entries(db_session) == []


@pytest.mark.asyncio
async def test_update_overwrites_fields_and_audits_delta(db_session):
    await seed_item(db_session)
    reconciler = RowReconciler(SQLAlchemyRecordStore(db_session))

    outcome = await reconciler.reconcile(
        make_row(ItemNumber="EX-1", Description="Relabelled", Category="", Cost="300", MinimumThreshold="10", CurrentQuantity="15"),
        2,
        "jdoe"
    )

    assert outcome.status == RowStatus.UPDATED
    assert outcome.low_stock is False
    record = outcome.record
    assert record.description == "Relabelled"
    assert record.category is None
    assert record.cost == Decimal("300")
    assert record.current_quantity == 15

    entries = await audit_entries(db_session)
    assert [(e.previous_quantity, e.new_quantity) for e in entries] == [(20, 15)]


@pytest.mark.asyncio
async def test_update_with_zero_quantity_keeps_stock(db_session):
    await seed_item(db_session)
    reconciler = RowReconciler(SQLAlchemyRecordStore(db_session))

    outcome = await reconciler.reconcile(make_row(ItemNumber="EX-1", MinimumThreshold="10", CurrentQuantity="0"), 2, "jdoe")

    assert outcome.status == RowStatus.UPDATED
    assert outcome.record.current_quantity == 20
    assert await audit_entries(db_session) == []


@pytest.mark.asyncio
async def test_row_supplied_actor_and_ticket_are_audited(db_session):
    await seed_item(db_session)
    reconciler = RowReconciler(SQLAlchemyRecordStore(db_session))

    row = make_row(ItemNumber="EX-1", MinimumThreshold="10", CurrentQuantity="5")
    row["AuditUser"] = "asmith"
    row["ServiceNowTicketUrl"] = "https://servicenow.example.com/ticket/123"
    outcome = await reconciler.reconcile(row, 2, "jdoe")

    assert outcome.low_stock is True
    assert outcome.record.last_modified_by == "asmith"
    entries = await audit_entries(db_session)
    assert entries[0].changed_by == "asmith"
    assert entries[0].service_now_ticket_url == "https://servicenow.example.com/ticket/123"


@pytest.mark.asyncio
async def test_item_number_match_is_case_sensitive(db_session):
    await seed_item(db_session)
    reconciler = RowReconciler(SQLAlchemyRecordStore(db_session))

    outcome = await reconciler.reconcile(make_row(ItemNumber="ex-1"), 2, "jdoe")

    assert outcome.status == RowStatus.CREATED
    result = await db_session.execute(select(InventoryItem))
    assert len(result.scalars().all()) == 2


@pytest.mark.asyncio
@pytest.mark.parametrize("missing,message", [
    ({"ItemNumber": ""}, "ItemNumber is required"),
    ({"Description": ""}, "Description is required"),
    ({"ItemNumber": "", "Description": ""}, "ItemNumber and Description are required"),
])
async def test_missing_required_fields_never_touch_store(db_session, missing, message):
    store = BrokenCreateStore(db_session)
    reconciler = RowReconciler(store)

    outcome = await reconciler.reconcile(make_row(**missing), 4, "jdoe")

    assert outcome.status == RowStatus.VALIDATION_FAILED
    assert outcome.error == message
    assert outcome.row_number == 4
    assert store.store_touched is False


@pytest.mark.asyncio
async def test_invalid_numeric_field_aborts_row(db_session):
    store = BrokenCreateStore(db_session)
    reconciler = RowReconciler(store)

    outcome = await reconciler.reconcile(make_row(ReorderAmount="lots"), 2, "jdoe")

    assert outcome.status == RowStatus.VALIDATION_FAILED
    assert outcome.error == "ReorderAmount must be a valid integer"
    assert store.store_touched is False


@pytest.mark.asyncio
@pytest.mark.parametrize("overrides,message", [
    ({"ItemNumber": "X" * 101}, "ItemNumber must be at most 100 characters"),
    ({"Description": "d" * 501}, "Description must be at most 500 characters"),
    ({"Description": "=" + "d" * 499}, "Description must be at most 500 characters"),
    ({"Category": "c" * 101}, "Category must be at most 100 characters"),
    ({"AuditUser": "u" * 256}, "AuditUser must be at most 255 characters"),
    ({"ServiceNowTicketUrl": "https://t.example.com/" + "t" * 500}, "ServiceNowTicketUrl must be at most 500 characters"),
])
async def test_overlong_text_fails_validation(db_session, overrides, message):
    store = BrokenCreateStore(db_session)
    reconciler = RowReconciler(store)

    outcome = await reconciler.reconcile(make_row(**overrides), 2, "jdoe")

    assert outcome.status == RowStatus.VALIDATION_FAILED
    assert outcome.error == message
    assert store.store_touched is False


@pytest.mark.asyncio
async def test_text_at_column_length_is_accepted(db_session):
    reconciler = RowReconciler(SQLAlchemyRecordStore(db_session))

    outcome = await reconciler.reconcile(make_row(ItemNumber="X" * 100, Description="d" * 500), 2, "jdoe")

    assert outcome.status == RowStatus.CREATED
    assert len(outcome.record.description) == 500


@pytest.mark.asyncio
async def test_text_fields_are_sanitized(db_session):
    reconciler = RowReconciler(SQLAlchemyRecordStore(db_session))

    outcome = await reconciler.reconcile(make_row(Description="=HYPERLINK(\"http://evil\")", Category="@risk"), 2, "jdoe")

    assert outcome.record.description == "'=HYPERLINK(\"http://evil\")"
    assert outcome.record.category == "'@risk"


@pytest.mark.asyncio
async def test_store_error_is_reported_and_rolled_back(db_session):
    store = BrokenCreateStore(db_session)
    reconciler = RowReconciler(store)

    outcome = await reconciler.reconcile(make_row(), 7, "jdoe")

    assert outcome.status == RowStatus.STORE_ERROR
    assert "UNIQUE constraint failed" in outcome.error
    assert store.rolled_back is True
    assert await audit_entries(db_session) == []
