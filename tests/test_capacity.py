import random
import threading

import pytest

from efest import create_app
from efest.exceptions import EfestError, ModuleNotFound, CapacityExceeded
from efest.extensions import db as _db
from efest.models import Application, ApplicationParticipant, ApplicationStatus, Module, Participant
from efest.services.application_service import ApplicationService
from efest.services.capacity_service import CapacityService


@pytest.fixture
def file_app(tmp_path):
    """Application on a database file so every thread gets its own connection"""
    app = create_app('testing', overrides={
        'UPLOAD_FOLDER': str(tmp_path / 'uploads'),
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'race.db'}",
        'SQLALCHEMY_ENGINE_OPTIONS': {'connect_args': {'timeout': 30, 'check_same_thread': False}},
    })
    with app.app_context():
        _db.create_all()

    yield app

    with app.app_context():
        _db.drop_all()
        _db.engine.dispose()


def test_resolve_capacity_matches_title_case_insensitively(make_module, make_participant):
    module = make_module(title='Hackathon', cap=3)
    make_participant(module)

    capacity = CapacityService.resolve_capacity('  hACKathon ')

    assert capacity.module.id == module.id
    assert capacity.cap == 3
    assert capacity.current_enrolled == 1
    assert capacity.available == 2


def test_resolve_capacity_unknown_title(make_module):
    make_module(title='Robotics')

    with pytest.raises(ModuleNotFound):
        CapacityService.resolve_capacity('Robotic')

    with pytest.raises(ModuleNotFound):
        CapacityService.resolve_capacity('   ')


def test_resolve_capacity_refuses_ambiguous_titles(make_module):
    make_module(title='Quiz')
    make_module(title='QUIZ')

    with pytest.raises(ModuleNotFound):
        CapacityService.resolve_capacity('quiz')


def test_enrollment_is_counted_by_module_key(db, make_module, make_participant):
    module = make_module(title='Debate', cap=5)
    other = make_module(title='Speed Coding', cap=5)
    make_participant(module)
    make_participant(other)

    # A stale title string does not move a participant between modules
    stray = make_participant(other)
    stray.module = 'Debate'
    db.session.commit()

    assert CapacityService.resolve_capacity('Debate').current_enrolled == 1
    assert CapacityService.count_enrolled(other) == 2


def test_capacity_snapshot_to_dict(make_module, make_participant):
    module = make_module(title='Photography', cap=4)
    make_participant(module)

    snapshot = CapacityService.capacity_for_module(module.id).to_dict()

    assert snapshot == {
        'moduleId': module.id,
        'title': 'Photography',
        'cap': 4,
        'currentEnrolled': 1,
        'available': 3,
        'percentageFilled': 25.0
    }


def test_zero_cap_module_admits_nobody(make_module, make_application):
    make_module(title='Closed Workshop', cap=0)
    application = make_application('Closed Workshop', count=1)

    with pytest.raises(CapacityExceeded) as exc_info:
        ApplicationService.accept_application(application.id)

    assert exc_info.value.cap == 0
    assert exc_info.value.attempted == 1


@pytest.mark.parametrize('seed', [7, 42, 2024])
def test_random_accept_sequences_never_exceed_cap(db, make_module, make_application, seed):
    rng = random.Random(seed)
    cap = rng.randint(3, 12)
    module = make_module(title='Gaming Arena', cap=cap)

    enrolled = 0
    for _ in range(15):
        size = rng.randint(1, 4)
        application = make_application('Gaming Arena', count=size)

        if enrolled + size <= cap:
            ApplicationService.accept_application(application.id)
            enrolled += size
            assert db.session.get(type(application), application.id).status == ApplicationStatus.ACCEPTED
        else:
            with pytest.raises(CapacityExceeded) as exc_info:
                ApplicationService.accept_application(application.id)
            assert exc_info.value.attempted == enrolled + size
            assert db.session.get(type(application), application.id).status == ApplicationStatus.PENDING

        count = Participant.query.filter_by(module_id=module.id).count()
        assert count == enrolled
        assert count <= cap


def test_concurrent_accepts_cannot_overfill_module(file_app, participant_payload, monkeypatch):
    with file_app.app_context():
        module = Module(title='Hackathon', capacity=2, fee=500, discount=0)
        module.apply_pricing()
        applications = []
        for _ in range(2):
            application = Application(module_title='Hackathon', total_fee=1000, participation_type='Team')
            for index in range(2):
                payload = participant_payload()
                application.participants.append(ApplicationParticipant(
                    position=index,
                    name=payload['name'],
                    roll_number=payload['rollNumber'],
                    email=payload['email'],
                    contact_number=payload['contactNumber'],
                    department=payload['department'],
                    university=payload['university'],
                ))
            applications.append(application)
        _db.session.add_all([module, *applications])
        _db.session.commit()
        application_ids = [application.id for application in applications]
        module_id = module.id

    # Hold each accept between counting seats and writing participants
    barrier = threading.Barrier(2)
    count_enrolled = CapacityService.count_enrolled

    def count_then_wait(module):
        enrolled = count_enrolled(module)
        try:
            barrier.wait(timeout=2)
        except threading.BrokenBarrierError:
            pass
        return enrolled

    monkeypatch.setattr(CapacityService, 'count_enrolled', staticmethod(count_then_wait))

    outcomes = []

    def accept(application_id):
        with file_app.app_context():
            try:
                ApplicationService.accept_application(application_id)
                outcomes.append('accepted')
            except EfestError as e:
                outcomes.append(type(e).__name__)

    threads = [threading.Thread(target=accept, args=(application_id,)) for application_id in application_ids]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)

    assert sorted(outcomes) == ['CapacityExceeded', 'accepted']

    with file_app.app_context():
        assert Participant.query.filter_by(module_id=module_id).count() == 2
        statuses = sorted(_db.session.get(Application, application_id).status for application_id in application_ids)
        assert statuses == [ApplicationStatus.ACCEPTED, ApplicationStatus.PENDING]
