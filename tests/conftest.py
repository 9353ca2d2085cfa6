"""
Zab E-Fest - Test Configuration and Fixtures
"""
import pytest
from faker import Faker
from flask import g

from efest import create_app
from efest.extensions import db as _db
from efest.models import (
    User, RoleType, Module, Application, ApplicationParticipant, ApplicationStatus, Participant
)
from efest.utils.email_service import SendResult

fake = Faker()


@pytest.fixture
def app(tmp_path):
    """Create a fresh application and schema for each test"""
    app = create_app('testing', overrides={'UPLOAD_FOLDER': str(tmp_path / 'uploads')})

    # Requests share the fixture's app context, so the identity cached on g must be reset per request
    @app.before_request
    def reset_login_cache():
        g.pop('_login_user', None)

    with app.app_context():
        _db.create_all()
        yield app
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def db(app):
    return _db


@pytest.fixture
def make_user(db):
    """Create a user with the given role; returns (user, auth headers)"""
    def _make_user(role=RoleType.ADMIN, email=None):
        user = User(name=fake.name(), email=email or fake.unique.email(), role=role)
        api_key = user.issue_api_key()
        db.session.add(user)
        db.session.commit()
        return user, {'Authorization': f'Bearer {api_key}'}

    return _make_user


@pytest.fixture
def admin_headers(make_user):
    return make_user(RoleType.ADMIN)[1]


@pytest.fixture
def registration_headers(make_user):
    return make_user(RoleType.REGISTRATION_TEAM)[1]


@pytest.fixture
def participant_headers(make_user):
    return make_user(RoleType.PARTICIPANT)[1]


@pytest.fixture
def make_module(db):
    def _make_module(title=None, cap=10, fee=0):
        module = Module(title=title or fake.unique.catch_phrase(), capacity=cap, fee=fee, discount=0)
        module.apply_pricing()
        db.session.add(module)
        db.session.commit()
        return module

    return _make_module


@pytest.fixture
def participant_payload():
    """Complete participant data as submitted on an application"""
    def _payload(**overrides):
        data = {
            'name': fake.name(),
            'rollNumber': fake.bothify(text='??-####').upper(),
            'email': fake.unique.email(),
            'contactNumber': fake.numerify(text='03#########'),
            'department': fake.random_element(['Computer Science', 'Electrical', 'Business']),
            'university': fake.company(),
        }
        data.update(overrides)
        return data

    return _payload


@pytest.fixture
def make_application(db, participant_payload):
    """Store an application directly, bypassing the submission endpoint"""
    def _make_application(module_title, participants=None, count=1, status=ApplicationStatus.PENDING, total_fee=500):
        payloads = participants if participants is not None else [participant_payload() for _ in range(count)]
        application = Application(
            module_title=module_title,
            total_fee=total_fee,
            participation_type='Team' if len(payloads) > 1 else 'Solo',
            status=status
        )
        for index, payload in enumerate(payloads):
            application.participants.append(ApplicationParticipant(
                position=index,
                name=payload.get('name'),
                roll_number=payload.get('rollNumber'),
                email=payload.get('email'),
                contact_number=payload.get('contactNumber'),
                department=payload.get('department'),
                university=payload.get('university'),
            ))
        db.session.add(application)
        db.session.commit()
        return application

    return _make_application


@pytest.fixture
def make_participant(db, participant_payload):
    """Enroll a participant directly into a module"""
    def _make_participant(module, application=None, **overrides):
        payload = participant_payload()
        fields = {
            'name': payload['name'],
            'roll_number': payload['rollNumber'],
            'email': payload['email'],
            'contact_number': payload['contactNumber'],
            'department': payload['department'],
            'university': payload['university'],
            'module': module.title,
            'module_id': module.id,
            'fee': module.final_fee,
            'application_id': application.id if application else None,
            'registration_token': application.registration_token if application else None,
        }
        fields.update(overrides)
        participant = Participant(**fields)
        db.session.add(participant)
        db.session.commit()
        return participant

    return _make_participant


class RecordingSender:
    """Notification sender double; fails for addresses listed in ``failing``"""

    def __init__(self, failing=(), raising=()):
        self.failing = set(failing)
        self.raising = set(raising)
        self.calls = []

    def send_rejection_notice(self, recipient, module_title, participants, registration_token):
        self.calls.append({
            'recipient': recipient,
            'module_title': module_title,
            'participants': participants,
            'registration_token': registration_token,
        })
        if recipient in self.raising:
            raise ConnectionError('SMTP connection refused')
        if recipient in self.failing:
            return SendResult(recipient, False, 'Mailbox unavailable')
        return SendResult(recipient, True)


@pytest.fixture
def recording_sender():
    return RecordingSender
