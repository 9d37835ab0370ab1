from sqlalchemy import Column, Integer, String

from app.db.database import Base


class NotificationConfig(Base):
    __tablename__ = "notification_config"

    id = Column(Integer, primary_key=True, autoincrement=True)
    ad_group_name = Column(String(255), nullable=False)
    additional_email_recipients = Column(String(1000))  # Comma-separated
