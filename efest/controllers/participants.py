# controllers/participants.py
"""
Participant routes: acceptance of applications, direct enrollment,
grading updates, compensating deletion and result publication.
"""

from flask import Blueprint, request, jsonify, current_app
from flask_login import current_user

from efest.exceptions import EfestError
from efest.models import RoleType
from efest.services.application_service import ApplicationService
from efest.services.participant_service import ParticipantService
from efest.utils.auth import role_required, authenticated_required, current_user_id

participants_bp = Blueprint('participants', __name__, url_prefix='/api/participants')

REGISTRATION_ROLES = (RoleType.ADMIN, RoleType.REGISTRATION_TEAM)
GRADING_ROLES = (RoleType.ADMIN, RoleType.REGISTRATION_TEAM, RoleType.MODULE_HEAD, RoleType.MODULE_LEADER)
PUBLISHING_ROLES = (RoleType.ADMIN, RoleType.MODULE_HEAD, RoleType.MODULE_LEADER)


@participants_bp.route('', methods=['GET'])
@role_required(*RoleType.STAFF)
def list_participants():
    """List participants, optionally for one module title."""
    try:
        participants = ParticipantService.list_participants(module=request.args.get('module'))
        return jsonify([p.to_dict() for p in participants])

    except Exception as e:
        current_app.logger.error(f"Error fetching participants: {str(e)}")
        return jsonify({'message': 'Failed to fetch participants'}), 500


@participants_bp.route('', methods=['POST'])
@role_required(*REGISTRATION_ROLES)
def add_participant():
    data = request.get_json(silent=True) or {}

    try:
        participant = ParticipantService.add_participant(data)
        return jsonify(participant.to_dict()), 201

    except EfestError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        current_app.logger.error(f"Error adding participant: {str(e)}")
        return jsonify({'message': 'Failed to add participant'}), 500


@participants_bp.route('/accept/<application_id>', methods=['PUT'])
@role_required(*REGISTRATION_ROLES)
def accept_application(application_id):
    """Enroll all participants of an application, honoring the module cap."""
    try:
        ApplicationService.accept_application(application_id, processed_by_user_id=current_user_id())
        return jsonify({'message': 'Application accepted.'})

    except EfestError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        current_app.logger.error(f"Error accepting application {application_id}: {str(e)}")
        return jsonify({'message': 'Internal Server Error'}), 500


@participants_bp.route('/my/result', methods=['GET'])
@authenticated_required
def my_result():
    try:
        participant = ParticipantService.get_result_for_user(current_user)
        return jsonify(participant.result_view())

    except EfestError as e:
        return jsonify(e.to_dict()), e.status_code


@participants_bp.route('/<participant_id>', methods=['PUT'])
@role_required(*GRADING_ROLES)
def update_participant(participant_id):
    data = request.get_json(silent=True) or {}

    try:
        participant = ParticipantService.update_participant(participant_id, data)
        return jsonify(participant.to_dict())

    except EfestError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        current_app.logger.error(f"Error updating participant {participant_id}: {str(e)}")
        return jsonify({'message': 'Failed to update participant'}), 500


@participants_bp.route('/<participant_id>', methods=['DELETE'])
@role_required(*REGISTRATION_ROLES)
def delete_participant(participant_id):
    """Remove a participant and roll back the application that enrolled them."""
    try:
        return jsonify(ParticipantService.delete_participant(participant_id))

    except EfestError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        current_app.logger.error(f"Error deleting participant {participant_id}: {str(e)}")
        return jsonify({'message': 'Internal Server Error'}), 500


@participants_bp.route('/<participant_id>/result-visibility', methods=['PUT'])
@role_required(*PUBLISHING_ROLES)
def set_result_visibility(participant_id):
    data = request.get_json(silent=True) or {}
    visible = data.get('resultVisible', data.get('result_visible', True))

    try:
        participant = ParticipantService.set_result_visibility(participant_id, visible)
        state = 'published' if participant.result_visible else 'hidden'
        return jsonify({
            'message': f'Result {state}',
            'resultVisible': participant.result_visible
        })

    except EfestError as e:
        return jsonify(e.to_dict()), e.status_code
