# controllers/events.py
from flask import Blueprint, request, jsonify, current_app

from efest.exceptions import EfestError, ValidationError
from efest.models import RoleType
from efest.services.capacity_service import CapacityService
from efest.services.module_service import ModuleService
from efest.utils.auth import role_required

events_bp = Blueprint('events', __name__, url_prefix='/api/events')


@events_bp.route('', methods=['GET'])
def list_events():
    try:
        return jsonify([m.to_dict() for m in ModuleService.list_modules()])

    except Exception as e:
        current_app.logger.error(f"Error fetching events: {str(e)}")
        return jsonify({'message': 'Failed to fetch events'}), 500


@events_bp.route('', methods=['POST'])
@role_required(RoleType.ADMIN)
def create_event():
    data = request.get_json(silent=True) or {}

    try:
        module = ModuleService.create_module(data)
        return jsonify(module.to_dict()), 201

    except EfestError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        current_app.logger.error(f"Error creating event: {str(e)}")
        return jsonify({'message': 'Failed to create event'}), 500


@events_bp.route('/participants', methods=['GET'])
@role_required(*RoleType.STAFF)
def event_participants():
    """Participants of the module named by the ``eventId`` query parameter."""
    event_id = request.args.get('eventId')

    try:
        if not event_id:
            raise ValidationError("eventId is required")

        participants = ModuleService.get_module_participants(event_id)
        return jsonify([p.to_dict() for p in participants])

    except EfestError as e:
        return jsonify(e.to_dict()), e.status_code


@events_bp.route('/<event_id>', methods=['GET'])
def get_event(event_id):
    try:
        return jsonify(ModuleService.get_module(event_id).to_dict())

    except EfestError as e:
        return jsonify(e.to_dict()), e.status_code


@events_bp.route('/<event_id>', methods=['PUT'])
@role_required(RoleType.ADMIN)
def update_event(event_id):
    data = request.get_json(silent=True) or {}

    try:
        module = ModuleService.update_module(event_id, data)
        return jsonify(module.to_dict())

    except EfestError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        current_app.logger.error(f"Error updating event {event_id}: {str(e)}")
        return jsonify({'message': 'Failed to update event'}), 500


@events_bp.route('/<event_id>', methods=['DELETE'])
@role_required(RoleType.ADMIN)
def delete_event(event_id):
    try:
        ModuleService.delete_module(event_id)
        return jsonify({'message': 'Event deleted successfully'})

    except EfestError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        current_app.logger.error(f"Error deleting event {event_id}: {str(e)}")
        return jsonify({'message': 'Failed to delete event'}), 500


@events_bp.route('/<event_id>/capacity', methods=['GET'])
def event_capacity(event_id):
    """Cap, current enrollment and free seats for one module."""
    try:
        return jsonify(CapacityService.capacity_for_module(event_id).to_dict())

    except EfestError as e:
        return jsonify(e.to_dict()), e.status_code
