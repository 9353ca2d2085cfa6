# models/module.py
from sqlalchemy import Index

from efest.extensions import db
from .base import BaseModel


class Module(BaseModel):
    """A bookable event slot with a capacity ceiling."""

    __tablename__ = 'module'

    title = db.Column(db.String(150), nullable=False)
    date = db.Column(db.DateTime, nullable=True)
    location = db.Column(db.String(150), nullable=True)
    description = db.Column(db.Text, nullable=True)
    image = db.Column(db.String(255), nullable=True)
    capacity = db.Column(db.Integer, nullable=False, default=0)

    # Free-text identifiers of the responsible staff
    module_head = db.Column(db.String(120), nullable=True)
    module_leader = db.Column(db.String(120), nullable=True)

    # Pricing
    fee = db.Column(db.Float, nullable=False, default=0)
    discount = db.Column(db.Float, nullable=False, default=0)  # percentage
    partner_group = db.Column(db.String(50), nullable=False, default='Solo')
    final_fee = db.Column(db.Float, nullable=False, default=0)

    participants = db.relationship('Participant', back_populates='module_ref', lazy='dynamic')

    __table_args__ = (
        Index('idx_module_title', 'title'),
        Index('idx_module_date', 'date'),
    )

    def apply_pricing(self):
        """Recompute the discounted fee."""
        fee = self.fee or 0
        discount = self.discount or 0
        self.final_fee = fee - (fee * discount / 100)
        return self.final_fee

    def to_dict(self):
        result = super().to_dict()
        result['cap'] = self.capacity
        return result

    def __repr__(self):
        return f'<Module {self.title} cap={self.capacity}>'
