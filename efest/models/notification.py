# models/notification.py
from sqlalchemy import Index

from efest.extensions import db
from .base import BaseModel


class NotificationStatus:
    SENT = 'sent'
    FAILED = 'failed'


class NotificationCategory:
    APPLICATION_REJECTED = 'application_rejected'


class Notification(BaseModel):
    """Delivery record for one outgoing message."""

    __tablename__ = 'notification'

    recipient = db.Column(db.String(120), nullable=False)
    subject = db.Column(db.String(255), nullable=True)
    category = db.Column(db.String(50), nullable=False)
    status = db.Column(db.String(10), nullable=False)
    error = db.Column(db.Text, nullable=True)
    application_id = db.Column(db.String(36), db.ForeignKey('application.id', ondelete='SET NULL'), nullable=True)

    __table_args__ = (
        Index('idx_notification_category_status', 'category', 'status'),
        Index('idx_notification_application', 'application_id'),
    )

    @classmethod
    def from_result(cls, result, category, subject=None, application_id=None):
        return cls(
            recipient=result.recipient,
            subject=subject,
            category=category,
            status=NotificationStatus.SENT if result.success else NotificationStatus.FAILED,
            error=result.error,
            application_id=application_id
        )

    def __repr__(self):
        return f'<Notification {self.category} -> {self.recipient} ({self.status})>'
