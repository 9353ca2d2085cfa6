import pytest

from efest.exceptions import ApplicationNotFound, InvalidStatusTransition
from efest.extensions import email_service
from efest.models import Application, ApplicationStatus, Notification, NotificationStatus
from efest.services.application_service import ApplicationService


def test_reject_notifies_each_unique_email_once(db, make_application, participant_payload, recording_sender):
    application = make_application('Hackathon', participants=[
        participant_payload(email='sara@example.com'),
        participant_payload(email=' SARA@example.com '),
        participant_payload(email='bilal@example.com'),
        participant_payload(email=''),
    ])
    sender = recording_sender()

    rejected, email_status = ApplicationService.reject_application(application.id, sender=sender)

    assert rejected.status == ApplicationStatus.REJECTED
    assert [call['recipient'] for call in sender.calls] == ['sara@example.com', 'bilal@example.com']
    assert email_status == {'totalEmails': 2, 'successfulEmails': 2, 'failedEmails': 0}

    call = sender.calls[0]
    assert call['module_title'] == 'Hackathon'
    assert call['registration_token'] == application.registration_token
    assert len(call['participants']) == 4


def test_reject_counts_failed_and_raising_sends(db, make_application, participant_payload, recording_sender):
    application = make_application('Hackathon', participants=[
        participant_payload(email='ok@example.com'),
        participant_payload(email='bounce@example.com'),
        participant_payload(email='down@example.com'),
    ])
    sender = recording_sender(failing={'bounce@example.com'}, raising={'down@example.com'})

    _, email_status = ApplicationService.reject_application(application.id, sender=sender)

    assert email_status == {'totalEmails': 3, 'successfulEmails': 1, 'failedEmails': 2}
    assert db.session.get(Application, application.id).status == ApplicationStatus.REJECTED

    notifications = Notification.query.filter_by(application_id=application.id).all()
    statuses = {n.recipient: n.status for n in notifications}
    assert statuses == {
        'ok@example.com': NotificationStatus.SENT,
        'bounce@example.com': NotificationStatus.FAILED,
        'down@example.com': NotificationStatus.FAILED,
    }


def test_status_is_committed_even_when_every_send_fails(db, make_application, participant_payload, recording_sender):
    application = make_application('Hackathon', participants=[participant_payload(email='x@example.com')])
    sender = recording_sender(raising={'x@example.com'})

    _, email_status = ApplicationService.reject_application(application.id, sender=sender)

    db.session.expire_all()
    assert db.session.get(Application, application.id).status == ApplicationStatus.REJECTED
    assert email_status['failedEmails'] == 1


def test_reject_without_emails(make_application, participant_payload, recording_sender):
    application = make_application('Hackathon', participants=[participant_payload(email=None)])
    sender = recording_sender()

    _, email_status = ApplicationService.reject_application(application.id, sender=sender)

    assert sender.calls == []
    assert email_status == {'totalEmails': 0, 'successfulEmails': 0, 'failedEmails': 0}


def test_reject_unknown_application(app, recording_sender):
    with pytest.raises(ApplicationNotFound):
        ApplicationService.reject_application('missing', sender=recording_sender())


@pytest.mark.parametrize('status', [ApplicationStatus.ACCEPTED, ApplicationStatus.REJECTED])
def test_reject_only_from_pending(make_application, recording_sender, status):
    application = make_application('Hackathon', count=1, status=status)
    sender = recording_sender()

    with pytest.raises(InvalidStatusTransition):
        ApplicationService.reject_application(application.id, sender=sender)

    assert sender.calls == []


def test_reject_endpoint_uses_email_service(client, registration_headers, make_application, participant_payload):
    application = make_application('Hackathon', participants=[
        participant_payload(email='noor@example.com'),
        participant_payload(email='not-an-address'),
    ])

    response = client.put(f'/api/apply-module/reject/{application.id}', headers=registration_headers)

    assert response.status_code == 200
    data = response.get_json()
    assert data['message'] == 'Application rejected successfully'
    assert data['app']['status'] == ApplicationStatus.REJECTED
    assert data['emailStatus'] == {'totalEmails': 2, 'successfulEmails': 1, 'failedEmails': 1}

    sent = email_service.outbox[-1]
    assert sent['To'] == 'noor@example.com'
    assert sent['Subject'].startswith('Application Rejected - Hackathon')


def test_reject_endpoint_conflict(client, admin_headers, make_application):
    application = make_application('Hackathon', count=1, status=ApplicationStatus.ACCEPTED)

    response = client.put(f'/api/apply-module/reject/{application.id}', headers=admin_headers)

    assert response.status_code == 409
    assert response.get_json()['error'] == 'invalid_status_transition'


def test_reject_endpoint_requires_review_role(client, participant_headers, make_application):
    application = make_application('Hackathon', count=1)

    response = client.put(f'/api/apply-module/reject/{application.id}', headers=participant_headers)

    assert response.status_code == 403
