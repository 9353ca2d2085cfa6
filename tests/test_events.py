from efest.models import Module, Participant, RoleType


def test_create_event_computes_final_fee(client, admin_headers):
    response = client.post('/api/events', headers=admin_headers, json={
        'title': ' Hackathon ',
        'cap': 3,
        'fee': 1000,
        'discount': 20,
        'date': '2025-03-01T09:00:00',
        'location': 'Main Hall',
        'moduleHead': 'Dr. Imran',
    })

    assert response.status_code == 201
    data = response.get_json()
    assert data['title'] == 'Hackathon'
    assert data['cap'] == 3
    assert data['capacity'] == 3
    assert data['finalFee'] == 800
    assert data['partnerGroup'] == 'Solo'
    assert data['moduleHead'] == 'Dr. Imran'
    assert data['date'].startswith('2025-03-01')


def test_create_event_validation(client, admin_headers, make_module):
    make_module(title='Chess')

    assert client.post('/api/events', headers=admin_headers, json={'cap': 3}).status_code == 400
    assert client.post('/api/events', headers=admin_headers, json={'title': 'Quiz'}).status_code == 400
    assert client.post('/api/events', headers=admin_headers, json={'title': 'Quiz', 'cap': -1}).status_code == 400
    assert client.post('/api/events', headers=admin_headers,
                       json={'title': 'Quiz', 'cap': 2, 'discount': 150}).status_code == 400
    assert client.post('/api/events', headers=admin_headers,
                       json={'title': 'Quiz', 'cap': 2, 'date': 'next friday'}).status_code == 400

    response = client.post('/api/events', headers=admin_headers, json={'title': 'CHESS', 'cap': 2})
    assert response.status_code == 400
    assert 'already exists' in response.get_json()['message']


def test_only_admins_manage_events(client, registration_headers, make_module):
    module = make_module(title='Chess')

    assert client.post('/api/events', json={'title': 'Quiz', 'cap': 1}).status_code == 401
    assert client.post('/api/events', headers=registration_headers, json={'title': 'Quiz', 'cap': 1}).status_code == 403
    assert client.delete(f'/api/events/{module.id}', headers=registration_headers).status_code == 403


def test_list_and_get_events(client, make_module):
    module = make_module(title='Chess', cap=4)
    make_module(title='Quiz', cap=2)

    listing = client.get('/api/events')
    assert listing.status_code == 200
    assert {m['title'] for m in listing.get_json()} == {'Chess', 'Quiz'}

    response = client.get(f'/api/events/{module.id}')
    assert response.status_code == 200
    assert response.get_json()['cap'] == 4

    assert client.get('/api/events/missing').status_code == 404


def test_update_event_renames_enrolled_participants(client, db, admin_headers, make_module, make_participant):
    module = make_module(title='Chess', cap=4, fee=100)
    participant = make_participant(module)

    response = client.put(f'/api/events/{module.id}', headers=admin_headers,
                          json={'title': 'Blitz Chess', 'discount': 50})

    assert response.status_code == 200
    data = response.get_json()
    assert data['title'] == 'Blitz Chess'
    assert data['finalFee'] == 50
    assert data['cap'] == 4
    assert db.session.get(Participant, participant.id).module == 'Blitz Chess'


def test_lowering_cap_blocks_new_enrollments(client, admin_headers, make_module, make_participant, participant_payload):
    module = make_module(title='Chess', cap=4)
    make_participant(module)
    make_participant(module)

    response = client.put(f'/api/events/{module.id}', headers=admin_headers, json={'cap': 1})
    assert response.status_code == 200

    capacity = client.get(f'/api/events/{module.id}/capacity').get_json()
    assert capacity['currentEnrolled'] == 2
    assert capacity['available'] == 0

    response = client.post('/api/participants', headers=admin_headers, json=dict(participant_payload(), module='Chess'))
    assert response.status_code == 400


def test_delete_event(client, admin_headers, make_module):
    module = make_module(title='Chess')

    response = client.delete(f'/api/events/{module.id}', headers=admin_headers)

    assert response.status_code == 200
    assert Module.query.count() == 0
    assert client.delete(f'/api/events/{module.id}', headers=admin_headers).status_code == 404


def test_event_capacity_endpoint(client, make_module, make_participant):
    module = make_module(title='Hackathon', cap=3)
    make_participant(module)

    response = client.get(f'/api/events/{module.id}/capacity')

    assert response.status_code == 200
    data = response.get_json()
    assert data['cap'] == 3
    assert data['currentEnrolled'] == 1
    assert data['available'] == 2
    assert client.get('/api/events/missing/capacity').status_code == 404


def test_event_participants(client, make_user, make_module, make_participant):
    _, headers = make_user(RoleType.MODULE_HEAD)
    chess = make_module(title='Chess', cap=5)
    make_participant(chess)
    make_participant(make_module(title='Quiz', cap=5))

    response = client.get(f'/api/events/participants?eventId={chess.id}', headers=headers)

    assert response.status_code == 200
    assert len(response.get_json()) == 1
    assert client.get('/api/events/participants', headers=headers).status_code == 400
    assert client.get('/api/events/participants?eventId=missing', headers=headers).status_code == 404


def test_health_endpoints(client):
    assert client.get('/health').get_json()['status'] == 'ok'

    response = client.get('/health/database')
    assert response.status_code == 200
    assert response.get_json()['status'] == 'healthy'
