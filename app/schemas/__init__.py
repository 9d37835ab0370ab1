from .inventory import InventoryItem, InventoryItemCreate, InventoryItemUpdate, QuantityAdjustment
from .audit_history import AuditHistory
from .csv_upload import CsvUploadResult, LowStockAlert
from .notification_config import NotificationConfig, NotificationConfigUpdate

__all__ = [
    "InventoryItem", "InventoryItemCreate", "InventoryItemUpdate", "QuantityAdjustment",
    "AuditHistory",
    "CsvUploadResult", "LowStockAlert",
    "NotificationConfig", "NotificationConfigUpdate"
]
