# controllers/applications.py
from flask import Blueprint, request, jsonify, current_app
from flask_login import current_user

from efest.exceptions import EfestError, ValidationError
from efest.models import RoleType, ApplicationStatus
from efest.services.application_service import ApplicationService
from efest.utils.auth import role_required, authenticated_required, current_user_id

applications_bp = Blueprint('applications', __name__, url_prefix='/api/apply-module')

REVIEW_ROLES = (RoleType.ADMIN, RoleType.REGISTRATION_TEAM)


@applications_bp.route('', methods=['POST'])
def submit_application():
    """
    Submit an application for a module.

    Accepts JSON or multipart form data; the payment screenshot, when
    present, arrives as the ``paymentScreenshot`` file field.
    """
    if request.is_json:
        data = request.get_json(silent=True) or {}
    else:
        data = request.form.to_dict()

    try:
        participants = ApplicationService.extract_participants(data)
        application = ApplicationService.create_application(
            data,
            participants,
            payment_file=request.files.get('paymentScreenshot'),
            user_id=current_user_id()
        )

        return jsonify({
            'message': 'Application submitted successfully',
            'application': application.to_dict(),
            'registrationToken': application.registration_token
        })

    except EfestError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        current_app.logger.error(f"Error submitting application: {str(e)}")
        return jsonify({'message': 'Failed to submit application'}), 500


@applications_bp.route('', methods=['GET'])
@role_required(*REVIEW_ROLES)
def list_applications():
    status = request.args.get('status')

    try:
        if status and status not in ApplicationStatus.ALL:
            raise ValidationError(f"Invalid status. Must be one of: {', '.join(ApplicationStatus.ALL)}")

        applications = ApplicationService.list_applications(status=status)
        return jsonify([a.to_dict() for a in applications])

    except EfestError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        current_app.logger.error(f"Error fetching applications: {str(e)}")
        return jsonify({'message': 'Failed to fetch applications'}), 500


@applications_bp.route('/user-applications', methods=['GET'])
@authenticated_required
def user_applications():
    try:
        applications = ApplicationService.list_user_applications(current_user)
        return jsonify([a.to_dict() for a in applications])

    except Exception as e:
        current_app.logger.error(f"Error fetching applications for {current_user.email}: {str(e)}")
        return jsonify({'message': 'Failed to fetch applications'}), 500


@applications_bp.route('/reject/<application_id>', methods=['PUT'])
@role_required(*REVIEW_ROLES)
def reject_application(application_id):
    """Reject an application; email outcomes are reported, not enforced."""
    try:
        application, email_status = ApplicationService.reject_application(
            application_id,
            rejected_by_user_id=current_user_id()
        )

        return jsonify({
            'message': 'Application rejected successfully',
            'app': application.to_dict(),
            'emailStatus': email_status
        })

    except EfestError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception as e:
        current_app.logger.error(f"Error rejecting application {application_id}: {str(e)}")
        return jsonify({'message': 'Internal Server Error'}), 500
