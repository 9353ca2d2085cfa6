# services/application_service.py
"""
Application lifecycle: submission, acceptance into participants, rejection.

Acceptance and rejection are the only places that change an application's
status outside the compensating rollback in ParticipantService.
"""

import json
import logging
import os
import re

from flask import current_app
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError
from werkzeug.utils import secure_filename

from efest.config import Config
from efest.exceptions import (
    EfestError, ApplicationNotFound, ModuleNotFound, CapacityExceeded,
    IncompleteParticipantData, DuplicateKeyConflict, ConcurrentModification, ValidationError
)
from efest.extensions import db, email_service
from efest.models import (
    Application, ApplicationParticipant, ApplicationStatus, Module, Notification,
    NotificationCategory, REQUIRED_PARTICIPANT_FIELDS
)
from efest.services.capacity_service import CapacityService
from efest.services.participant_service import ParticipantService
from efest.utils.data_processing import clean_email, clean_text_field, parse_number
from efest.utils.email_service import SendResult

# participants[0][name] style multipart keys
PARTICIPANT_FORM_KEY = re.compile(r'^participants\[(\d+)\]\[(\w+)\]$')


class ApplicationService:
    """Service class for application submission and review."""

    @staticmethod
    def extract_participants(data):
        """
        Pull the participant list out of a JSON body or multipart form.

        Accepts a real list, a JSON-encoded string, or bracketed form keys
        such as ``participants[0][name]``.
        """
        raw = data.get('participants')

        if isinstance(raw, list):
            return [p if isinstance(p, dict) else {} for p in raw]

        if isinstance(raw, str):
            try:
                parsed = json.loads(raw)
                if isinstance(parsed, list):
                    return [p if isinstance(p, dict) else {} for p in parsed]
            except ValueError:
                pass

        collected = {}
        for key, value in data.items():
            match = PARTICIPANT_FORM_KEY.match(key)
            if match:
                collected.setdefault(int(match.group(1)), {})[match.group(2)] = value

        return [collected[index] for index in sorted(collected)]

    @staticmethod
    def _generate_unique_token(attempts=5):
        prefix = current_app.config.get('REGISTRATION_TOKEN_PREFIX', 'ZAB')
        for _ in range(attempts):
            token = Application.generate_registration_token(prefix)
            if not db.session.query(Application.query.filter_by(registration_token=token).exists()).scalar():
                return token
        raise RuntimeError("Could not generate a unique registration token")

    @staticmethod
    def create_application(data, participants, payment_file=None, user_id=None):
        """
        Store a new pending application.

        Args:
            data: Submission fields (moduleId, moduleTitle, totalFee, participationType)
            participants: List of participant payload dicts
            payment_file: Optional uploaded payment screenshot (werkzeug FileStorage)
            user_id: Owner of the application, if the submitter is identified

        Returns:
            Application: the committed application
        """
        logger = logging.getLogger('application_service')
        upload_path = None

        try:
            if not participants:
                raise ValidationError("Participants data is missing.")

            for payload in participants:
                if not clean_text_field(payload.get('name')) or not clean_text_field(payload.get('rollNumber')):
                    raise ValidationError("Name and Roll Number are required for all participants.")

            try:
                total_fee = parse_number(data.get('totalFee'), 'totalFee', minimum=0)
            except ValueError as e:
                raise ValidationError(str(e))

            participation_type = clean_text_field(data.get('participationType'))
            if not participation_type:
                raise ValidationError("participationType is required")

            module = None
            if data.get('moduleId'):
                module = db.session.get(Module, data['moduleId'])
                if not module:
                    raise ModuleNotFound()

            module_title = clean_text_field(data.get('moduleTitle')) or (module.title if module else '')
            if not module_title:
                raise ValidationError("moduleTitle is required")

            has_file = payment_file is not None and payment_file.filename
            if has_file and not Config.allowed_file(payment_file.filename,
                                                     current_app.config['PAYMENT_EXTENSIONS']):
                raise ValidationError("Payment screenshot must be an image or PDF")

            application = Application(
                module_id=module.id if module else None,
                module_title=module_title,
                total_fee=total_fee,
                participation_type=participation_type,
                registration_token=ApplicationService._generate_unique_token(),
                user_id=user_id
            )

            for index, payload in enumerate(participants):
                application.participants.append(ApplicationParticipant(
                    position=index,
                    name=clean_text_field(payload.get('name')),
                    roll_number=clean_text_field(payload.get('rollNumber')),
                    email=clean_email(payload.get('email')) or None,
                    contact_number=clean_text_field(payload.get('contactNumber')) or None,
                    department=clean_text_field(payload.get('department')) or None,
                    university=clean_text_field(payload.get('university')) or None
                ))

            if has_file:
                filename = Config.generate_upload_filename('payment', secure_filename(payment_file.filename))
                upload_dir = os.path.join(current_app.config['UPLOAD_FOLDER'], 'payments')
                os.makedirs(upload_dir, exist_ok=True)
                upload_path = os.path.join(upload_dir, filename)
                payment_file.save(upload_path)
                application.payment_screenshot = f"uploads/payments/{filename}"

            db.session.add(application)
            db.session.commit()

            logger.info(
                f"Application {application.registration_token} submitted for '{module_title}' "
                f"with {len(participants)} participant(s)")
            return application

        except Exception as e:
            db.session.rollback()
            if upload_path and os.path.exists(upload_path):
                os.remove(upload_path)
            if not isinstance(e, EfestError):
                logger.error(f"Failed to submit application: {str(e)}", exc_info=True)
            raise

    @staticmethod
    def list_applications(status=None):
        query = Application.query
        if status:
            query = query.filter(Application.status == status)
        return query.order_by(Application.created_at.desc()).all()

    @staticmethod
    def list_user_applications(user):
        """Applications owned by the user or naming the user's email."""
        conditions = [Application.user_id == user.id]
        if user.email:
            conditions.append(Application.participants.any(
                func.lower(ApplicationParticipant.email) == user.email.strip().lower()
            ))

        return (
            Application.query
            .filter(or_(*conditions))
            .order_by(Application.created_at.desc())
            .all()
        )

    @staticmethod
    def _participant_records(application, module, module_title):
        """Map application payloads onto participant column values."""
        records = []
        for payload in application.participants:
            record = {
                attr: (clean_email(getattr(payload, attr)) if attr == 'email'
                       else clean_text_field(getattr(payload, attr)))
                for attr, _ in REQUIRED_PARTICIPANT_FIELDS
            }
            record.update({
                'module': module_title,
                'module_id': module.id,
                'fee': application.total_fee,
                'registration_token': application.registration_token,
                'application_id': application.id,
            })
            records.append(record)
        return records

    @staticmethod
    def _find_missing_fields(records):
        missing = []
        for index, record in enumerate(records):
            missing_fields = [wire for attr, wire in REQUIRED_PARTICIPANT_FIELDS if not record.get(attr)]
            if missing_fields:
                missing.append({'index': index, 'missingFields': missing_fields})
        return missing

    @staticmethod
    def accept_application(application_id, processed_by_user_id=None):
        """
        Enroll every participant of an application into its module.

        The capacity check, the participant upserts and the status flip
        happen in one transaction with the module row locked, so either
        everything is committed or nothing is.

        Returns:
            tuple: (application, participants)

        Raises:
            ApplicationNotFound, InvalidStatusTransition, ModuleNotFound,
            CapacityExceeded, IncompleteParticipantData, DuplicateKeyConflict,
            ConcurrentModification
        """
        logger = logging.getLogger('application_service')

        try:
            application = db.session.get(Application, application_id)
            if not application:
                raise ApplicationNotFound()

            application.ensure_transition(ApplicationStatus.ACCEPTED)

            module_title = (application.module_title or '').strip()
            capacity = CapacityService.resolve_capacity(module_title, lock=True)

            incoming_count = len(application.participants)
            attempted = capacity.current_enrolled + incoming_count
            if capacity.would_exceed(incoming_count):
                raise CapacityExceeded(capacity.cap, attempted)

            records = ApplicationService._participant_records(application, capacity.module, module_title)

            missing = ApplicationService._find_missing_fields(records)
            if missing:
                raise IncompleteParticipantData(missing)

            participants = ParticipantService.upsert_by_email(records)

            application.transition_to(ApplicationStatus.ACCEPTED, processed_by_user_id=processed_by_user_id)
            db.session.commit()

            logger.info(
                f"Application {application.registration_token} accepted: "
                f"{len(participants)} participant(s) enrolled in '{capacity.module.title}' "
                f"({attempted}/{capacity.cap})")
            return application, participants

        except EfestError as e:
            db.session.rollback()
            logger.warning(f"Application {application_id} not accepted: {e.message}")
            raise
        except IntegrityError as e:
            db.session.rollback()
            logger.error(
                f"Uniqueness violation while accepting application {application_id}; "
                f"batch rolled back, reconcile manually: {str(e.orig)}")
            raise DuplicateKeyConflict() from e
        except StaleDataError as e:
            db.session.rollback()
            logger.warning(f"Concurrent update while accepting application {application_id}: {str(e)}")
            raise ConcurrentModification() from e
        except Exception as e:
            db.session.rollback()
            logger.error(f"Failed to accept application {application_id}: {str(e)}", exc_info=True)
            raise

    @staticmethod
    def reject_application(application_id, sender=None, rejected_by_user_id=None):
        """
        Reject an application and notify every unique participant email.

        The status change is committed before any email goes out; delivery
        failures are counted, never raised.

        Returns:
            tuple: (application, email_status)
        """
        logger = logging.getLogger('application_service')
        sender = sender or email_service

        try:
            application = db.session.get(Application, application_id)
            if not application:
                raise ApplicationNotFound()

            application.transition_to(ApplicationStatus.REJECTED, processed_by_user_id=rejected_by_user_id)
            db.session.commit()

        except EfestError:
            db.session.rollback()
            raise
        except StaleDataError as e:
            db.session.rollback()
            raise ConcurrentModification() from e
        except Exception as e:
            db.session.rollback()
            logger.error(f"Failed to reject application {application_id}: {str(e)}", exc_info=True)
            raise

        logger.info(f"Application {application.registration_token} rejected")

        participants_data = [p.to_dict() for p in application.participants]
        emails = application.unique_emails()
        results = []

        for email in emails:
            try:
                result = sender.send_rejection_notice(
                    email,
                    application.module_title,
                    participants_data,
                    application.registration_token
                )
            except Exception as e:
                logger.error(f"Rejection email to {email} raised: {str(e)}", exc_info=True)
                result = SendResult(email, False, str(e))

            if result.success:
                logger.info(f"Rejection email sent successfully to: {email}")
            else:
                logger.error(f"Failed to send rejection email to: {email} ({result.error})")
            results.append(result)

        ApplicationService._record_notifications(application, results)

        successful = sum(1 for result in results if result.success)
        email_status = {
            'totalEmails': len(emails),
            'successfulEmails': successful,
            'failedEmails': len(emails) - successful
        }

        return application, email_status

    @staticmethod
    def _record_notifications(application, results):
        """Persist delivery outcomes; a failure here only gets logged."""
        if not results:
            return

        subject = f"Application Rejected - {application.module_title}"
        try:
            for result in results:
                db.session.add(Notification.from_result(
                    result,
                    NotificationCategory.APPLICATION_REJECTED,
                    subject=subject,
                    application_id=application.id
                ))
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            logging.getLogger('application_service').error(
                f"Could not record notifications for application {application.id}: {str(e)}")
