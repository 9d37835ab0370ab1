import csv
import io
import logging
from typing import Dict, List, Optional, Protocol, Sequence

from app.models.inventory import InventoryItem
from app.schemas.csv_upload import CsvUploadResult, LowStockAlert
from app.services.record_store import RecordStore
from app.services.row_reconciler import RowOutcome, RowReconciler, RowStatus

logger = logging.getLogger(__name__)

# The first data row is line 2 of the file
FIRST_DATA_ROW = 2

CSV_TEMPLATE_FILENAME = "inventory-template.csv"
CSV_TEMPLATE_HEADERS = [
    "ItemNumber",
    "AssetType",
    "Description",
    "Category",
    "Cost",
    "MinimumThreshold",
    "ReorderAmount",
    "CurrentQuantity",
]
CSV_TEMPLATE_EXAMPLE_ROW = [
    "HW-001",
    "Hardware",
    "Dell Latitude 7420 Laptop",
    "Laptop",
    "1200.00",
    "10",
    "20",
    "15",
]


class CsvBatchError(ValueError):
    """The upload as a whole cannot be processed; no row was touched"""


class LowStockNotifier(Protocol):
    async def send_low_stock_alerts(self, items: Sequence[InventoryItem], app_base_url: str) -> None:
        ...


def generate_csv_template() -> str:
    """Header line plus one example row"""
    return f"{','.join(CSV_TEMPLATE_HEADERS)}\n{','.join(CSV_TEMPLATE_EXAMPLE_ROW)}\n"


def parse_csv(content: bytes) -> List[Dict[str, str]]:
    """Decode and parse an upload into header-keyed rows.

    Blank lines are skipped and values trimmed. Raises CsvBatchError for
    undecodable or malformed input; nothing is returned partially.
    """
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise CsvBatchError(f"CSV parsing error: file is not valid UTF-8 ({e.reason} at byte {e.start})") from e

    reader = csv.reader(io.StringIO(text, newline=""), strict=True)
    try:
        header = None
        rows = []
        for record in reader:
            if not any(cell.strip() for cell in record):
                continue
            if header is None:
                header = [cell.strip() for cell in record]
                continue
            if len(record) != len(header):
                raise CsvBatchError(
                    f"CSV parsing error: line {reader.line_num} has {len(record)} fields, expected {len(header)}"
                )
            rows.append({name: cell.strip() for name, cell in zip(header, record)})
    except csv.Error as e:
        raise CsvBatchError(f"CSV parsing error: line {reader.line_num}: {e}") from e

    if not rows:
        raise CsvBatchError("CSV file is empty")
    return rows


class CsvProcessingService:
    def __init__(
        self,
        store: RecordStore,
        notifier: Optional[LowStockNotifier],
        base_url: str,
        max_upload_bytes: Optional[int] = None
    ):
        self.store = store
        self.notifier = notifier
        self.base_url = base_url
        self.max_upload_bytes = max_upload_bytes
        self.reconciler = RowReconciler(store)

    async def process_csv_upload(self, content: bytes, uploaded_by: str) -> CsvUploadResult:
        """Apply every row of an uploaded CSV and report per-row results.

        Only batch-level problems (empty or malformed file) raise; row
        failures are collected in the result.
        """
        if self.max_upload_bytes is not None and len(content) > self.max_upload_bytes:
            raise CsvBatchError(f"CSV file exceeds the {self.max_upload_bytes} byte upload limit")

        rows = parse_csv(content)
        logger.info("Processing %d CSV records uploaded by %s", len(rows), uploaded_by)

        result = CsvUploadResult()
        for offset, raw_row in enumerate(rows):
            row_number = FIRST_DATA_ROW + offset
            outcome = await self._reconcile_row(raw_row, row_number, uploaded_by)
            self._accumulate(result, outcome)

        if result.low_stock_alerts:
            await self._notify_low_stock(result.low_stock_alerts)

        logger.info(
            "CSV upload completed. Success: %d, Failures: %d, Low Stock Alerts: %d",
            result.success_count, result.failure_count, len(result.low_stock_alerts)
        )
        return result

    async def _reconcile_row(self, raw_row: Dict[str, str], row_number: int, uploaded_by: str) -> RowOutcome:
        try:
            return await self.reconciler.reconcile(raw_row, row_number, uploaded_by)
        except Exception as e:
            logger.exception("Unexpected error processing CSV row %d", row_number)
            await self.store.rollback()
            return RowOutcome.failed(row_number, RowStatus.STORE_ERROR, str(e) or e.__class__.__name__)

    @staticmethod
    def _accumulate(result: CsvUploadResult, outcome: RowOutcome) -> None:
        if not outcome.succeeded:
            result.failure_count += 1
            result.errors.append(f"Row {outcome.row_number}: {outcome.error}")
            logger.warning("Row %d failed: %s", outcome.row_number, outcome.error)
            return

        result.success_count += 1
        if outcome.low_stock:
            record = outcome.record
            result.low_stock_alerts.append(LowStockAlert(
                item_number=record.item_number,
                description=record.description,
                current_quantity=record.current_quantity,
                minimum_threshold=record.minimum_threshold,
            ))

    async def _notify_low_stock(self, alerts: List[LowStockAlert]) -> None:
        if self.notifier is None:
            logger.info("No notifier configured; skipping %d low stock alerts", len(alerts))
            return

        try:
            # Re-read so each item is reported once, in its final state
            items = []
            seen = set()
            for alert in alerts:
                if alert.item_number in seen:
                    continue
                seen.add(alert.item_number)
                item = await self.store.find_by_item_number(alert.item_number)
                if item is not None:
                    items.append(item)

            await self.notifier.send_low_stock_alerts(items, self.base_url)
        except Exception:
            # Ingestion results stand regardless of e-mail delivery
            logger.exception("Error sending low stock alerts")
