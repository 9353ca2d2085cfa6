# services/capacity_service.py
"""
Capacity lookups for modules.

Enrollment is always derived from the participant table at call time;
nothing here is cached because both capacity and enrollment change
independently.
"""

import logging

from sqlalchemy import func

from efest.exceptions import ModuleNotFound
from efest.extensions import db
from efest.models import Module, Participant


class ModuleCapacity:
    """Snapshot of a module's ceiling and current enrollment."""

    def __init__(self, module, current_enrolled):
        self.module = module
        self.current_enrolled = current_enrolled

    @property
    def cap(self):
        return self.module.capacity

    @property
    def available(self):
        return max(self.cap - self.current_enrolled, 0)

    def would_exceed(self, incoming):
        return self.current_enrolled + incoming > self.cap

    def to_dict(self):
        return {
            'moduleId': self.module.id,
            'title': self.module.title,
            'cap': self.cap,
            'currentEnrolled': self.current_enrolled,
            'available': self.available,
            'percentageFilled': round((self.current_enrolled / self.cap) * 100, 1) if self.cap > 0 else 0
        }


class CapacityService:

    @staticmethod
    def find_module_by_title(module_title, lock=False):
        """
        Resolve a module by case-insensitive exact title.

        Args:
            module_title: Title as given by the caller; surrounding whitespace is ignored
            lock: Read the row FOR UPDATE so concurrent writers on this module serialize

        Raises:
            ModuleNotFound: when nothing or more than one module matches
        """
        title = (module_title or '').strip()
        if not title:
            raise ModuleNotFound()

        query = db.session.query(Module).filter(func.lower(Module.title) == title.lower())
        if lock:
            query = query.with_for_update()

        matches = query.limit(2).all()
        if len(matches) != 1:
            if matches:
                logging.getLogger('capacity_service').warning(
                    f"Module title '{title}' is ambiguous; refusing to pick one")
            raise ModuleNotFound()

        return matches[0]

    @staticmethod
    def get_module(module_id, lock=False):
        query = db.session.query(Module).filter(Module.id == module_id)
        if lock:
            query = query.with_for_update()

        module = query.first()
        if not module:
            raise ModuleNotFound()
        return module

    @staticmethod
    def count_enrolled(module):
        return (
            db.session.query(func.count(Participant.id))
            .filter(Participant.module_id == module.id)
            .scalar()
        )

    @staticmethod
    def resolve_capacity(module_title, lock=False):
        """Resolve a module by title and report its current enrollment."""
        module = CapacityService.find_module_by_title(module_title, lock=lock)
        return ModuleCapacity(module, CapacityService.count_enrolled(module))

    @staticmethod
    def capacity_for_module(module_id, lock=False):
        module = CapacityService.get_module(module_id, lock=lock)
        return ModuleCapacity(module, CapacityService.count_enrolled(module))
