from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple
import logging

from app.models.audit_history import AuditHistory
from app.models.inventory import InventoryItem, QUANTITY_MAX, COST_MAX
from app.services.csv_sanitizer import (
    FieldValidationError,
    parse_integer_field,
    parse_numeric_field,
    sanitize_csv_field,
)
from app.services.record_store import RecordStore, RecordStoreError

logger = logging.getLogger(__name__)

QUANTITY_MIN = 0
COST_MIN = 0
DEFAULT_ASSET_TYPE = "Hardware"

# Canonical column -> accepted aliases, in priority order. The canonical
# column wins whenever it holds a value.
COLUMN_ALIASES: List[Tuple[str, List[str]]] = [
    ("ItemNumber", []),
    ("AssetType", []),
    ("Description", ["HardwareDescription"]),
    ("Category", ["HardwareType"]),
    ("Cost", []),
    ("MinimumThreshold", []),
    ("ReorderAmount", []),
    ("CurrentQuantity", []),
    ("AuditUser", []),
    ("ServiceNowTicketUrl", []),
]

REQUIRED_COLUMNS = ("ItemNumber", "Description")

# Text columns and the database column each is stored in
TEXT_COLUMN_TARGETS = {
    "ItemNumber": InventoryItem.__table__.c.item_number,
    "AssetType": InventoryItem.__table__.c.asset_type,
    "Description": InventoryItem.__table__.c.description,
    "Category": InventoryItem.__table__.c.category,
    "AuditUser": InventoryItem.__table__.c.last_modified_by,
    "ServiceNowTicketUrl": AuditHistory.__table__.c.service_now_ticket_url,
    "HardwareDescription": InventoryItem.__table__.c.hardware_description,
    "HardwareType": InventoryItem.__table__.c.hardware_type,
}


def normalize_header(name: str) -> str:
    """'Item Number', 'item_number' and 'ITEMNUMBER' all match ItemNumber"""
    return "".join(ch for ch in (name or "") if ch not in " _-").lower()


def resolve_columns(raw_row: Mapping[str, Optional[str]]) -> Dict[str, str]:
    """Map a raw row onto canonical column names, applying legacy aliases"""
    by_header = {}
    for header, value in raw_row.items():
        key = normalize_header(header)
        if key and key not in by_header:
            by_header[key] = (value or "").strip()

    resolved = {}
    for canonical, aliases in COLUMN_ALIASES:
        value = ""
        for name in [canonical, *aliases]:
            value = by_header.get(normalize_header(name), "")
            if value:
                break
        resolved[canonical] = value

    # Legacy columns are written back verbatim when the sheet carries them
    resolved["HardwareDescription"] = by_header.get("hardwaredescription", "")
    resolved["HardwareType"] = by_header.get("hardwaretype", "")
    return resolved


class RowStatus(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    VALIDATION_FAILED = "validation_failed"
    STORE_ERROR = "store_error"


@dataclass
class RowOutcome:
    row_number: int
    status: RowStatus
    error: Optional[str] = None
    record: Optional[InventoryItem] = None
    low_stock: bool = False

    @property
    def succeeded(self) -> bool:
        return self.status in (RowStatus.CREATED, RowStatus.UPDATED)

    @classmethod
    def failed(cls, row_number: int, status: RowStatus, error: str) -> "RowOutcome":
        return cls(row_number=row_number, status=status, error=error)


@dataclass
class ValidatedRow:
    item_number: str
    asset_type: str
    description: str
    category: Optional[str]
    cost: Any
    minimum_threshold: int
    reorder_amount: int
    current_quantity: int
    changed_by: str
    ticket_url: Optional[str]
    hardware_description: str
    hardware_type: Optional[str]

    def item_fields(self) -> Dict[str, Any]:
        return {
            "asset_type": self.asset_type,
            "description": self.description,
            "category": self.category,
            "cost": self.cost,
            "minimum_threshold": self.minimum_threshold,
            "reorder_amount": self.reorder_amount,
            "hardware_description": self.hardware_description,
            "hardware_type": self.hardware_type,
            "last_modified_by": self.changed_by,
            "last_modified_date": datetime.now(timezone.utc),
        }


def _text_field(columns: Dict[str, str], field_name: str, default: Optional[str] = None) -> Optional[str]:
    """Sanitized cell text, checked against its column's length"""
    raw = columns[field_name]
    if not raw:
        return default

    value = sanitize_csv_field(raw)
    max_length = TEXT_COLUMN_TARGETS[field_name].type.length
    if len(value) > max_length:
        raise FieldValidationError(field_name, f"{field_name} must be at most {max_length} characters")
    return value


def validate_row(columns: Dict[str, str], uploaded_by: str) -> ValidatedRow:
    """Sanitize and bound every field of a resolved row.

    Raises FieldValidationError on the first bad field.
    """
    missing = [name for name in REQUIRED_COLUMNS if not columns.get(name)]
    if missing:
        verb = "is" if len(missing) == 1 else "are"
        raise FieldValidationError(missing[0], f"{' and '.join(missing)} {verb} required")

    item_number = _text_field(columns, "ItemNumber")
    description = _text_field(columns, "Description")
    category = _text_field(columns, "Category")

    cost = parse_numeric_field(columns["Cost"], "Cost", COST_MIN, COST_MAX)
    minimum_threshold = parse_integer_field(columns["MinimumThreshold"], "MinimumThreshold", QUANTITY_MIN, QUANTITY_MAX)
    reorder_amount = parse_integer_field(columns["ReorderAmount"], "ReorderAmount", QUANTITY_MIN, QUANTITY_MAX)
    current_quantity = 0
    if columns["CurrentQuantity"]:
        current_quantity = parse_integer_field(columns["CurrentQuantity"], "CurrentQuantity", QUANTITY_MIN, QUANTITY_MAX)

    return ValidatedRow(
        item_number=item_number,
        asset_type=_text_field(columns, "AssetType", DEFAULT_ASSET_TYPE),
        description=description,
        category=category,
        cost=cost,
        minimum_threshold=minimum_threshold,
        reorder_amount=reorder_amount,
        current_quantity=current_quantity,
        changed_by=_text_field(columns, "AuditUser", uploaded_by),
        ticket_url=_text_field(columns, "ServiceNowTicketUrl"),
        hardware_description=_text_field(columns, "HardwareDescription", description),
        hardware_type=_text_field(columns, "HardwareType", category),
    )


class RowReconciler:
    """Applies one spreadsheet row to the record store.

    Returns a RowOutcome for every row; validation and store failures are
    reported in the outcome rather than raised.
    """

    def __init__(self, store: RecordStore):
        self.store = store

    async def reconcile(
        self,
        raw_row: Mapping[str, Optional[str]],
        row_number: int,
        uploaded_by: str
    ) -> RowOutcome:
        try:
            row = validate_row(resolve_columns(raw_row), uploaded_by)
        except FieldValidationError as e:
            return RowOutcome.failed(row_number, RowStatus.VALIDATION_FAILED, str(e))

        try:
            existing = await self.store.find_by_item_number(row.item_number)
            if existing is not None:
                record = await self._update_existing(existing, row)
                status = RowStatus.UPDATED
            else:
                record = await self._create_new(row)
                status = RowStatus.CREATED
            await self.store.commit()
        except RecordStoreError as e:
            await self.store.rollback()
            logger.warning("Row %s (%s) rolled back: %s", row_number, row.item_number, e)
            return RowOutcome.failed(row_number, RowStatus.STORE_ERROR, str(e))

        return RowOutcome(
            row_number=row_number,
            status=status,
            record=record,
            low_stock=record.needs_reorder,
        )

    async def _update_existing(self, existing: InventoryItem, row: ValidatedRow) -> InventoryItem:
        previous_quantity = existing.current_quantity
        # A blank or zero quantity leaves the stock level untouched
        new_quantity = row.current_quantity if row.current_quantity > 0 else previous_quantity

        fields = row.item_fields()
        fields["current_quantity"] = new_quantity
        record = await self.store.update(existing, fields)

        if new_quantity != previous_quantity:
            await self._audit(record, previous_quantity, new_quantity, row)
        return record

    async def _create_new(self, row: ValidatedRow) -> InventoryItem:
        fields = row.item_fields()
        fields["item_number"] = row.item_number
        fields["current_quantity"] = row.current_quantity
        record = await self.store.create(fields)

        if row.current_quantity > 0:
            await self._audit(record, 0, row.current_quantity, row)
        return record

    async def _audit(self, record: InventoryItem, previous_quantity: int, new_quantity: int, row: ValidatedRow) -> None:
        await self.store.append_audit_entry({
            "item_id": record.id,
            "item_number": record.item_number,
            "item_description": record.description,
            "previous_quantity": previous_quantity,
            "new_quantity": new_quantity,
            "changed_by": row.changed_by,
            "service_now_ticket_url": row.ticket_url,
        })
