# models/user.py
import secrets

from flask_login import UserMixin
from sqlalchemy import Index

from efest.extensions import db, hash_api_key
from .base import BaseModel


class RoleType:
    """Define role types as constants."""
    ADMIN = 'admin'
    REGISTRATION_TEAM = 'registration_team'
    MODULE_HEAD = 'module_head'
    MODULE_LEADER = 'module_leader'
    PARTICIPANT = 'participant'

    ALL = (ADMIN, REGISTRATION_TEAM, MODULE_HEAD, MODULE_LEADER, PARTICIPANT)
    STAFF = (ADMIN, REGISTRATION_TEAM, MODULE_HEAD, MODULE_LEADER)


class User(UserMixin, BaseModel):
    """An identity that can call the API."""

    __tablename__ = 'users'
    __hidden_fields__ = ('api_key_hash',)

    name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False)
    role = db.Column(db.String(30), nullable=False, default=RoleType.PARTICIPANT)
    api_key_hash = db.Column(db.String(64), unique=True, nullable=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    __table_args__ = (
        Index('idx_users_role', 'role'),
    )

    def issue_api_key(self):
        """Generate a new API key; only its hash is stored."""
        raw_key = secrets.token_urlsafe(32)
        self.api_key_hash = hash_api_key(raw_key)
        return raw_key

    def has_any_role(self, roles):
        return self.role in roles

    def __repr__(self):
        return f'<User {self.email} ({self.role})>'
