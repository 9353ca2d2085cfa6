# models/participant.py
from sqlalchemy import Index

from efest.extensions import db
from .base import BaseModel


class ParticipantStage:
    """Competition stage constants."""
    PRE_QUALIFIER = 'Pre-Qualifier'
    FINAL_ROUND = 'Final Round'
    WINNER = 'Winner'

    ALL = (PRE_QUALIFIER, FINAL_ROUND, WINNER)


# Fields every enrolled participant must carry, with their wire names
REQUIRED_PARTICIPANT_FIELDS = (
    ('name', 'name'),
    ('roll_number', 'rollNumber'),
    ('email', 'email'),
    ('contact_number', 'contactNumber'),
    ('department', 'department'),
    ('university', 'university'),
)


class Participant(BaseModel):
    """An authoritative enrolled student or competitor."""

    __tablename__ = 'participant'

    name = db.Column(db.String(120), nullable=False)
    roll_number = db.Column(db.String(50), nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False)
    contact_number = db.Column(db.String(30), nullable=False)
    department = db.Column(db.String(120), nullable=False)
    university = db.Column(db.String(150), nullable=False)

    # Title as written at enrollment plus the stable module key
    module = db.Column(db.String(150), nullable=False)
    module_id = db.Column(db.String(36), db.ForeignKey('module.id', ondelete='SET NULL'), nullable=True)

    fee = db.Column(db.Float, nullable=False, default=0)
    registration_token = db.Column(db.String(40), nullable=True)
    application_id = db.Column(db.String(36), db.ForeignKey('application.id', ondelete='SET NULL'), nullable=True)

    # Grading and attendance
    stage = db.Column(db.String(20), nullable=False, default=ParticipantStage.PRE_QUALIFIER)
    grade = db.Column(db.String(20), nullable=True)
    comments = db.Column(db.Text, nullable=True)
    attendance = db.Column(db.String(20), nullable=True)
    notes = db.Column(db.Text, nullable=True)
    result_visible = db.Column(db.Boolean, nullable=False, default=False)

    # Optimistic concurrency counter
    version = db.Column(db.Integer, nullable=False)

    module_ref = db.relationship('Module', back_populates='participants')
    application = db.relationship('Application')

    __mapper_args__ = {'version_id_col': version}

    __table_args__ = (
        Index('idx_participant_module_id', 'module_id'),
        Index('idx_participant_module', 'module'),
        Index('idx_participant_application', 'application_id'),
    )

    def result_view(self):
        """What a participant sees once results are published."""
        return {
            'name': self.name,
            'email': self.email,
            'module': self.module,
            'registrationToken': self.registration_token,
            'stage': self.stage,
            'grade': self.grade,
            'comments': self.comments,
            'remark': self.comments or '',
            'updatedAt': self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f'<Participant {self.name} <{self.email}> in {self.module}>'
