from datetime import datetime
from email.message import EmailMessage
from email.utils import formataddr
from typing import List, Optional, Sequence
import asyncio
import logging
import smtplib

from jinja2 import Environment, select_autoescape
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings, settings as default_settings
from app.crud.notification_config import notification_config as notification_config_crud
from app.models.inventory import InventoryItem
from app.services.directory_service import DirectoryService, StaticDirectoryService

logger = logging.getLogger(__name__)

_jinja = Environment(autoescape=select_autoescape(default_for_string=True))

LOW_STOCK_TEMPLATE = _jinja.from_string("""\
<!DOCTYPE html>
<html>
<body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
  <h2 style="color: #dc2626;">Inventory Low Stock Alert</h2>
  <p>The following {{ "item has" if items|length == 1 else "items have" }} fallen below the minimum threshold:</p>
  {% for item in items %}
  <div style="border: 1px solid #ddd; padding: 15px; margin: 10px 0; background-color: #fff5f5;">
    <h3 style="color: #d32f2f; margin-top: 0;">Item Number: {{ item.item_number }}</h3>
    <p><strong>Description:</strong> {{ item.description }}</p>
    <p><strong>Type:</strong> {{ item.asset_type }}{% if item.category %} / {{ item.category }}{% endif %}</p>
    <p><strong>Current Quantity:</strong> <span style="color: #d32f2f; font-weight: bold;">{{ item.current_quantity }}</span></p>
    <p><strong>Minimum Threshold:</strong> {{ item.minimum_threshold }}</p>
    <p><strong>Recommended Reorder Amount:</strong> {{ item.reorder_amount }}</p>
    <p><a href="{{ base_url }}/inventory/{{ item.id }}" style="color: #1976d2;">View Item Details</a></p>
  </div>
  {% endfor %}
  <hr/>
  <p><small>This is an automated notification from the ITS Asset Tracker system. Generated at {{ generated_at }}</small></p>
</body>
</html>
""")


def build_subject(items: Sequence[InventoryItem]) -> str:
    if len(items) == 1:
        return f"Low Stock Alert: {items[0].item_number} - {items[0].description}"
    return f"Low Stock Alert: {len(items)} Item(s) Below Threshold"


def render_low_stock_email(items: Sequence[InventoryItem], app_base_url: str) -> str:
    return LOW_STOCK_TEMPLATE.render(
        items=items,
        base_url=app_base_url.rstrip("/"),
        generated_at=datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
    )


class EmailService:
    def __init__(
        self,
        db: AsyncSession,
        directory: Optional[DirectoryService] = None,
        config: Optional[Settings] = None
    ):
        self.db = db
        self.directory = directory or StaticDirectoryService()
        self.config = config or default_settings

    async def send_low_stock_alert(self, item: InventoryItem, app_base_url: str) -> None:
        await self.send_low_stock_alerts([item], app_base_url)

    async def send_low_stock_alerts(self, items: Sequence[InventoryItem], app_base_url: str) -> None:
        """Send one e-mail listing every item below threshold"""
        if not items:
            return

        recipients = await self.get_recipients()
        if not recipients:
            logger.warning("No recipients configured for low stock alerts")
            return

        if not self.config.EMAIL_ENABLED:
            logger.info(
                "E-mail disabled; low stock alert for %d item(s) not sent to %s",
                len(items), ", ".join(recipients)
            )
            return

        message = EmailMessage()
        message["From"] = formataddr((self.config.SMTP_FROM_NAME, self.config.SMTP_FROM_ADDRESS))
        message["To"] = ", ".join(recipients)
        message["Subject"] = build_subject(items)
        message.set_content("This alert requires an HTML-capable mail client.")
        message.add_alternative(render_low_stock_email(items, app_base_url), subtype="html")

        await asyncio.to_thread(self._deliver, message)
        logger.info("Low stock alert sent for %d items to %d recipients", len(items), len(recipients))

    async def get_recipients(self) -> List[str]:
        """Directory group members plus additional recipients, de-duplicated in order"""
        config = await notification_config_crud.get_current(self.db)
        if config is None:
            return []

        recipients = []
        if config.ad_group_name:
            try:
                recipients.extend(await self.directory.get_email_addresses_for_group(config.ad_group_name))
            except Exception:
                logger.exception("Error fetching directory group %s", config.ad_group_name)

        if config.additional_email_recipients:
            recipients.extend(
                e.strip() for e in config.additional_email_recipients.split(",") if e.strip()
            )

        return list(dict.fromkeys(recipients))

    def _deliver(self, message: EmailMessage) -> None:
        with smtplib.SMTP(self.config.SMTP_HOST, self.config.SMTP_PORT, timeout=self.config.SMTP_TIMEOUT) as client:
            if self.config.SMTP_USE_TLS:
                client.starttls()
            if self.config.SMTP_USERNAME and self.config.SMTP_PASSWORD:
                client.login(self.config.SMTP_USERNAME, self.config.SMTP_PASSWORD)
            client.send_message(message)
