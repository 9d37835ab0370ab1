from .inventory import InventoryCRUD
from .audit_history import AuditHistoryCRUD
from .notification_config import NotificationConfigCRUD

__all__ = ["InventoryCRUD", "AuditHistoryCRUD", "NotificationConfigCRUD"]
