# controllers/__init__.py
from .events import events_bp
from .applications import applications_bp
from .participants import participants_bp

__all__ = ['events_bp', 'applications_bp', 'participants_bp']
