"""
Admin JSON API for campaigns and templates.
"""

import pytest

from conftest import FUTURE, PAST


@pytest.fixture
def created(client, employees):
    response = client.post('/api/campaigns', json={
        'name': 'API campaign',
        'template_key': 'urgent-policy',
        'recipients': ['alice@co.com', 'bob@co.com'],
        'smtp_host': 'smtp.co.com',
        'smtp_port': 587,
        'smtp_user': 'mailer',
        'smtp_pass': 's3cret',
    })
    assert response.status_code == 201
    return response.get_json()


def test_list_templates(client):
    response = client.get('/api/templates')
    keys = [t['key'] for t in response.get_json()]

    assert response.status_code == 200
    assert keys == ['login-mimic', 'urgent-policy', 'package-delivery']


def test_cors_on_api(client):
    response = client.get('/api/templates', headers={'Origin': 'http://admin.test'})

    assert 'Access-Control-Allow-Origin' in response.headers


def test_create_returns_campaign_without_password(created):
    assert created['status'] == 'draft'
    assert created['subject'] == 'Immediate Acknowledgement Required: Updated Security Policy'
    assert created['smtp_pass'] == '********'
    assert 's3cret' not in str(created)


def test_create_with_forbidden_recipient(client, employees):
    response = client.post('/api/campaigns', json={
        'name': 'Bad', 'template_key': 'login-mimic', 'recipients': ['x@gmail.com'],
    })
    data = response.get_json()

    assert response.status_code == 400
    assert 'gmail.com' in data['error']
    assert data['offenders'] == ['x@gmail.com']


@pytest.mark.parametrize('field, value', [
    ('template_key', ['login-mimic']),
    ('name', 123),
    ('subject', {'text': 'Hi'}),
    ('manager_email', 5),
])
def test_create_with_wrongly_typed_field(client, employees, field, value):
    payload = {'name': 'Typed', 'template_key': 'login-mimic', 'recipients': ['alice@co.com']}
    payload[field] = value

    response = client.post('/api/campaigns', json=payload)

    assert response.status_code == 400
    assert field in response.get_json()['error']


def test_edit_with_wrongly_typed_template_key(client, created):
    response = client.put(f"/api/campaigns/{created['id']}", json={'template_key': {'key': 1}})

    assert response.status_code == 400


def test_create_requires_json_body(client):
    response = client.post('/api/campaigns', data='name=x')

    assert response.status_code == 400


def test_list_campaigns(client, created):
    data = client.get('/api/campaigns').get_json()

    assert len(data) == 1
    assert data[0]['recipient_count'] == 2
    assert data[0]['smtp_pass'] == '********'


def test_campaign_detail_hides_tokens(client, created):
    data = client.get(f"/api/campaigns/{created['id']}").get_json()

    assert sorted(t['email'] for t in data['targets']) == ['alice@co.com', 'bob@co.com']
    assert all('token' not in t for t in data['targets'])
    assert data['recipient_count'] == 2


def test_unknown_campaign_is_404(client):
    assert client.get('/api/campaigns/999').status_code == 404
    assert client.put('/api/campaigns/999', json={'name': 'x'}).status_code == 404
    assert client.post('/api/campaigns/999/approve').status_code == 404
    assert client.get('/api/campaigns/999/analytics').status_code == 404


def test_edit_campaign(client, created):
    response = client.put(f"/api/campaigns/{created['id']}", json={
        'name': 'Renamed', 'scheduled_time': FUTURE, 'recipients': ['alice@co.com'],
    })
    data = response.get_json()

    assert response.status_code == 200
    assert data['name'] == 'Renamed'
    assert data['status'] == 'scheduled'
    detail = client.get(f"/api/campaigns/{created['id']}").get_json()
    assert detail['recipient_count'] == 1


def test_approve_and_send(client, engine, created, transport):
    cid = created['id']
    assert client.post(f'/api/campaigns/{cid}/send').status_code == 400

    approved = client.post(f'/api/campaigns/{cid}/approve').get_json()
    assert approved['approval'] is True

    response = client.post(f'/api/campaigns/{cid}/send')
    assert response.status_code == 200
    assert response.get_json()['campaign']['status'] == 'scheduled'

    engine.scheduler.tick()
    assert client.get(f'/api/campaigns/{cid}').get_json()['status'] == 'running'

    locked = client.put(f'/api/campaigns/{cid}', json={'name': 'Too late'})
    assert locked.status_code == 400
    assert 'Cannot edit running or completed campaigns' in locked.get_json()['error']


def test_analytics_endpoint(client, engine, created, transport):
    cid = created['id']
    client.put(f'/api/campaigns/{cid}', json={'scheduled_time': PAST})
    client.post(f'/api/campaigns/{cid}/approve')
    engine.scheduler.tick()

    data = client.get(f'/api/campaigns/{cid}/analytics').get_json()

    assert data['delivered'] == 2
    assert data['openRate'] == 0
    assert set(data) >= {'delivered', 'opened', 'clicked', 'submitted',
                         'openRate', 'clickRate', 'submitRate'}


def test_export_csv_download(client, engine, created):
    engine.events.record(created['id'], 'alice@co.com', 'opened')

    response = client.get(f"/api/campaigns/{created['id']}/export")

    assert response.status_code == 200
    assert response.mimetype == 'text/csv'
    assert 'campaign-results.csv' in response.headers['Content-Disposition']
    lines = response.get_data(as_text=True).strip().split('\n')
    assert lines[0] == 'email,event_type,timestamp,simulated_entry'
    assert lines[1].startswith('alice@co.com,opened,')
