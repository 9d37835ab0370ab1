from .inventory import InventoryItem
from .audit_history import AuditHistory
from .notification_config import NotificationConfig

__all__ = [
    "InventoryItem",
    "AuditHistory",
    "NotificationConfig"
]
