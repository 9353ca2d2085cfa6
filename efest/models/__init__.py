# models/__init__.py
from .base import BaseModel
from .user import User, RoleType
from .module import Module
from .application import Application, ApplicationParticipant, ApplicationStatus
from .participant import Participant, ParticipantStage, REQUIRED_PARTICIPANT_FIELDS
from .notification import Notification, NotificationStatus, NotificationCategory

__all__ = [
    'BaseModel',
    'User',
    'RoleType',
    'Module',
    'Application',
    'ApplicationParticipant',
    'ApplicationStatus',
    'Participant',
    'ParticipantStage',
    'REQUIRED_PARTICIPANT_FIELDS',
    'Notification',
    'NotificationStatus',
    'NotificationCategory'
]
