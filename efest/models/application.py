# models/application.py
import secrets
from datetime import datetime

from sqlalchemy import Index

from efest.extensions import db
from efest.exceptions import InvalidStatusTransition
from .base import BaseModel


class ApplicationStatus:
    """Application status constants."""
    PENDING = 'Pending'
    ACCEPTED = 'Accepted'
    REJECTED = 'Rejected'

    ALL = (PENDING, ACCEPTED, REJECTED)

    # Transitions the accept/reject workflows may perform
    TRANSITIONS = {
        PENDING: {ACCEPTED, REJECTED},
        ACCEPTED: set(),
        REJECTED: set(),
    }

    # Reverse transitions used only to undo an earlier acceptance
    COMPENSATIONS = {
        ACCEPTED: {REJECTED},
    }


class Application(BaseModel):
    """A pending batch registration for one module."""

    __tablename__ = 'application'

    module_id = db.Column(db.String(36), db.ForeignKey('module.id', ondelete='SET NULL'), nullable=True)
    module_title = db.Column(db.String(150), nullable=False)
    total_fee = db.Column(db.Float, nullable=False, default=0)
    participation_type = db.Column(db.String(50), nullable=False)
    payment_screenshot = db.Column(db.String(255), nullable=True)
    registration_token = db.Column(db.String(40), unique=True, nullable=False)
    status = db.Column(db.String(20), default=ApplicationStatus.PENDING, nullable=False)
    user_id = db.Column(db.String(36), db.ForeignKey('users.id', ondelete='SET NULL'), nullable=True)

    processed_at = db.Column(db.DateTime, nullable=True)
    processed_by = db.Column(db.String(36), nullable=True)  # User ID who processed

    # Optimistic concurrency counter
    version = db.Column(db.Integer, nullable=False)

    participants = db.relationship(
        'ApplicationParticipant',
        back_populates='application',
        order_by='ApplicationParticipant.position',
        cascade='all, delete-orphan'
    )
    module = db.relationship('Module')

    __mapper_args__ = {'version_id_col': version}

    __table_args__ = (
        Index('idx_application_status', 'status'),
        Index('idx_application_user', 'user_id'),
        Index('idx_application_module_title', 'module_title'),
    )

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        if not self.registration_token:
            self.registration_token = self.generate_registration_token()

    @staticmethod
    def generate_registration_token(prefix='ZAB'):
        """Human-shareable token such as ZAB-2025-1A2B3C4D."""
        year = datetime.now().year
        return f"{prefix}-{year}-{secrets.token_hex(4).upper()}"

    def can_transition(self, new_status, compensating=False):
        allowed = ApplicationStatus.TRANSITIONS.get(self.status, set())
        if compensating:
            allowed = allowed | ApplicationStatus.COMPENSATIONS.get(self.status, set())
        return new_status in allowed

    def ensure_transition(self, new_status, compensating=False):
        if not self.can_transition(new_status, compensating=compensating):
            raise InvalidStatusTransition(self.status, new_status)

    def transition_to(self, new_status, processed_by_user_id=None, compensating=False):
        """Move to a new status through the guarded state machine."""
        self.ensure_transition(new_status, compensating=compensating)
        self.status = new_status
        self.processed_at = datetime.now()
        if processed_by_user_id:
            self.processed_by = processed_by_user_id
        return self

    def unique_emails(self):
        """Participant emails, normalized, without repeats, first-seen order."""
        seen = []
        for participant in self.participants:
            email = (participant.email or '').strip().lower()
            if email and email not in seen:
                seen.append(email)
        return seen

    def to_dict(self):
        result = super().to_dict()
        result['participants'] = [p.to_dict() for p in self.participants]
        return result

    def __repr__(self):
        return f'<Application {self.registration_token} - {self.status}>'


class ApplicationParticipant(BaseModel):
    """One participant payload as submitted on an application."""

    __tablename__ = 'application_participant'
    __hidden_fields__ = ('application_id', 'created_at', 'updated_at')

    application_id = db.Column(
        db.String(36), db.ForeignKey('application.id', ondelete='CASCADE'), nullable=False, index=True
    )
    position = db.Column(db.Integer, nullable=False, default=0)

    # name and roll number are checked at submission, the rest only at acceptance
    name = db.Column(db.String(120), nullable=False)
    roll_number = db.Column(db.String(50), nullable=False)
    email = db.Column(db.String(120), nullable=True)
    contact_number = db.Column(db.String(30), nullable=True)
    department = db.Column(db.String(120), nullable=True)
    university = db.Column(db.String(150), nullable=True)

    application = db.relationship('Application', back_populates='participants')

    def __repr__(self):
        return f'<ApplicationParticipant {self.name} ({self.roll_number})>'
