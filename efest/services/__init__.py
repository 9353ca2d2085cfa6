# services/__init__.py
from .capacity_service import CapacityService, ModuleCapacity
from .participant_service import ParticipantService
from .application_service import ApplicationService
from .module_service import ModuleService

__all__ = [
    'CapacityService',
    'ModuleCapacity',
    'ParticipantService',
    'ApplicationService',
    'ModuleService'
]
