# services/participant_service.py
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from efest.exceptions import (
    EfestError, ParticipantNotFound, CapacityExceeded, IncompleteParticipantData,
    DuplicateKeyConflict, ConcurrentModification, PermissionDenied, ValidationError
)
from efest.extensions import db
from efest.models import Participant, ParticipantStage, Application, ApplicationStatus
from efest.services.capacity_service import CapacityService
from efest.utils.data_processing import clean_email, clean_text_field, parse_bool, parse_number, to_camel_case

# Wire name -> column for fields staff may edit directly
EDITABLE_FIELDS = {
    'name': 'name',
    'rollNumber': 'roll_number',
    'email': 'email',
    'contactNumber': 'contact_number',
    'department': 'department',
    'university': 'university',
    'stage': 'stage',
    'grade': 'grade',
    'comments': 'comments',
    'attendance': 'attendance',
    'notes': 'notes',
}


def _wire_value(data, wire_name, snake_name):
    """Read a field sent either in camelCase or snake_case."""
    if wire_name in data:
        return data[wire_name]
    return data.get(snake_name)


class ParticipantService:
    """Service class for enrolled participant operations."""

    @staticmethod
    def get_participant(participant_id):
        participant = db.session.get(Participant, participant_id)
        if not participant:
            raise ParticipantNotFound()
        return participant

    @staticmethod
    def list_participants(module=None):
        """All participants, optionally only those of one module title."""
        query = Participant.query
        if module:
            query = query.filter(Participant.module == module.strip())
        return query.order_by(Participant.created_at.desc()).all()

    @staticmethod
    def upsert_by_email(records):
        """
        Insert or overwrite participants keyed by normalized email.

        Records sharing an email within one batch collapse into a single row,
        the later record winning. The caller owns the transaction.

        Args:
            records: List of dicts of participant column values

        Returns:
            list: Participants written, one per distinct email
        """
        written = {}

        for record in records:
            email = clean_email(record.get('email'))
            record = dict(record, email=email)

            participant = written.get(email) or Participant.query.filter_by(email=email).first()
            if participant is None:
                participant = Participant(**record)
                db.session.add(participant)
            else:
                for field, value in record.items():
                    setattr(participant, field, value)

            written[email] = participant

        db.session.flush()
        return list(written.values())

    @staticmethod
    def add_participant(data):
        """
        Enroll a single participant directly into a module.

        The module is resolved by title and must have a free seat.
        """
        logger = logging.getLogger('participant_service')

        try:
            record = {
                'name': clean_text_field(data.get('name')),
                'roll_number': clean_text_field(_wire_value(data, 'rollNumber', 'roll_number')),
                'email': clean_email(data.get('email')),
                'contact_number': clean_text_field(_wire_value(data, 'contactNumber', 'contact_number')),
                'department': clean_text_field(data.get('department')),
                'university': clean_text_field(data.get('university')),
                'module': clean_text_field(data.get('module')),
            }

            missing = [to_camel_case(key) for key, value in record.items() if not value]
            if missing:
                raise IncompleteParticipantData(missing)

            capacity = CapacityService.resolve_capacity(record['module'], lock=True)
            if capacity.current_enrolled >= capacity.cap:
                raise CapacityExceeded(
                    capacity.cap,
                    capacity.current_enrolled + 1,
                    message=f"Registration failed: Module capacity ({capacity.cap}) is full."
                )

            if Participant.query.filter_by(email=record['email']).first():
                raise DuplicateKeyConflict(f"A participant with email {record['email']} already exists")

            fee = data.get('fee')
            try:
                fee = capacity.module.final_fee if fee in (None, '') else parse_number(fee, 'fee', minimum=0)
            except ValueError as e:
                raise ValidationError(str(e))

            participant = Participant(
                module_id=capacity.module.id,
                fee=fee or 0,
                registration_token=clean_text_field(_wire_value(data, 'registrationToken', 'registration_token')) or None,
                **record
            )
            db.session.add(participant)
            db.session.commit()

            logger.info(f"Participant {participant.email} added to '{capacity.module.title}'")
            return participant

        except EfestError:
            db.session.rollback()
            raise
        except IntegrityError as e:
            db.session.rollback()
            raise DuplicateKeyConflict(f"A participant with email {data.get('email')} already exists") from e
        except Exception as e:
            db.session.rollback()
            logger.error(f"Failed to add participant: {str(e)}", exc_info=True)
            raise

    @staticmethod
    def update_participant(participant_id, data):
        """
        Edit contact, grading or attendance fields.

        When the payload carries ``version`` it must match the stored one.
        Module membership is not editable here; use add/delete instead.
        """
        logger = logging.getLogger('participant_service')

        try:
            participant = ParticipantService.get_participant(participant_id)

            expected_version = data.get('version')
            if expected_version is not None and str(expected_version) != str(participant.version):
                raise ConcurrentModification()

            for wire_name, column in EDITABLE_FIELDS.items():
                if wire_name not in data and column not in data:
                    continue

                value = _wire_value(data, wire_name, column)
                if column == 'email':
                    value = clean_email(value)
                    if not value:
                        raise ValidationError("email cannot be empty")
                elif isinstance(value, str):
                    value = value.strip()

                if column == 'stage' and value not in ParticipantStage.ALL:
                    raise ValidationError(
                        f"Invalid stage. Must be one of: {', '.join(ParticipantStage.ALL)}")

                setattr(participant, column, value)

            if 'fee' in data:
                try:
                    participant.fee = parse_number(data['fee'], 'fee', minimum=0)
                except ValueError as e:
                    raise ValidationError(str(e))

            db.session.commit()
            logger.info(f"Participant {participant.id} updated")
            return participant

        except EfestError:
            db.session.rollback()
            raise
        except IntegrityError as e:
            db.session.rollback()
            raise DuplicateKeyConflict("Another participant already uses this email") from e
        except StaleDataError as e:
            db.session.rollback()
            raise ConcurrentModification() from e
        except Exception as e:
            db.session.rollback()
            logger.error(f"Failed to update participant {participant_id}: {str(e)}", exc_info=True)
            raise

    @staticmethod
    def delete_participant(participant_id):
        """
        Remove a participant and reject the application that enrolled them.

        Both changes commit together. A missing or non-accepted source
        application only skips the rollback half.
        """
        logger = logging.getLogger('participant_service')

        try:
            participant = ParticipantService.get_participant(participant_id)
            token = participant.registration_token

            application = None
            if participant.application_id:
                application = db.session.get(Application, participant.application_id)
            if application is None and token:
                application = Application.query.filter_by(registration_token=token).first()

            if application is None:
                message = 'Participant deleted; no source application found'
                logger.info(f"No source application for participant {participant.email}; nothing to roll back")
            elif application.status == ApplicationStatus.ACCEPTED:
                application.transition_to(ApplicationStatus.REJECTED, compensating=True)
                message = 'Participant deleted and application rejected'
                logger.info(f"Application {application.registration_token} moved back to Rejected")
            else:
                message = f'Participant deleted; application left {application.status}'
                logger.info(
                    f"Application {application.registration_token} is {application.status}; "
                    f"leaving status unchanged")

            db.session.delete(participant)
            db.session.commit()

            logger.info(f"Participant {participant.email} deleted")
            return {'message': message}

        except EfestError:
            db.session.rollback()
            raise
        except StaleDataError as e:
            db.session.rollback()
            raise ConcurrentModification() from e
        except Exception as e:
            db.session.rollback()
            logger.error(f"Failed to delete participant {participant_id}: {str(e)}", exc_info=True)
            raise

    @staticmethod
    def set_result_visibility(participant_id, visible):
        try:
            visible = parse_bool(visible, 'resultVisible')
        except ValueError as e:
            raise ValidationError(str(e))

        participant = ParticipantService.get_participant(participant_id)
        try:
            participant.result_visible = visible
            db.session.commit()
            return participant
        except StaleDataError as e:
            db.session.rollback()
            raise ConcurrentModification() from e

    @staticmethod
    def get_result_for_user(user):
        """The published result of the participant sharing the user's email."""
        email = clean_email(user.email)
        participant = Participant.query.filter_by(email=email).first() if email else None
        if not participant:
            raise ParticipantNotFound("No participant record found for your account")

        if not participant.result_visible:
            raise PermissionDenied("Results have not been published yet")

        return participant
