"""
Full lifecycle through the HTTP surface and the scheduler, from allowlist to debrief.
"""

from datetime import datetime, timedelta, timezone


def test_login_mimic_campaign_lifecycle(client, engine, transport):
    client.post('/api/allowlist', json={'employees': [
        {'email': 'a@co.com', 'name': 'Ada', 'department': 'Ops'},
    ]})

    created = client.post('/api/campaigns', json={
        'name': 'Login check', 'template_key': 'login-mimic', 'recipients': ['a@co.com'],
    }).get_json()
    cid = created['id']
    assert created['subject'] == 'Action Required: Verify Your Account Access'
    assert created['status'] == 'draft'

    client.post(f'/api/campaigns/{cid}/approve')
    now = datetime.now(timezone.utc).isoformat()
    client.put(f'/api/campaigns/{cid}', json={'scheduled_time': now})

    result = engine.scheduler.tick()
    assert result['started'] == [cid]
    assert engine.campaigns.get(cid)['status'] == 'running'
    assert len(transport.sent) == 1
    stats = client.get(f'/api/campaigns/{cid}/analytics').get_json()
    assert stats['delivered'] == 1

    token = engine.targets.list(cid)[0]['token']
    client.get(f'/track/open/{token}.gif')
    landing = client.get(f'/track/click/{token}')
    assert landing.status_code == 302

    stats = client.get(f'/api/campaigns/{cid}/analytics').get_json()
    assert (stats['opened'], stats['clicked']) == (1, 1)
    assert stats['openRate'] == 1.0
    assert stats['clickRate'] == 1.0

    client.post(f'/landing/{token}/submit', data={'employeeId': '42'})

    stats = client.get(f'/api/campaigns/{cid}/analytics').get_json()
    assert stats['submitted'] == 1
    assert stats['submitRate'] == 1.0


def test_campaign_debriefs_and_completes(client, engine, transport):
    client.post('/api/allowlist', json={'employees': [{'email': 'a@co.com', 'name': 'Ada'}]})
    start = datetime.now(timezone.utc) - timedelta(minutes=5)
    created = client.post('/api/campaigns', json={
        'name': 'Short run',
        'template_key': 'package-delivery',
        'recipients': ['a@co.com'],
        'scheduled_time': start.isoformat(),
        'end_time': (start + timedelta(minutes=1)).isoformat(),
    }).get_json()
    cid = created['id']
    assert created['status'] == 'scheduled'

    client.post(f'/api/campaigns/{cid}/approve')
    result = engine.scheduler.tick()

    assert result == {'started': [cid], 'completed': [cid]}
    assert engine.campaigns.get(cid)['status'] == 'completed'
    assert [m['subject'] for m in transport.sent] == [
        'Package Arrival Confirmation Needed',
        'Security Simulation Debrief: Short run',
    ]

    # the campaign is finished; nothing more may change
    assert client.put(f'/api/campaigns/{cid}', json={'name': 'x'}).status_code == 400
    assert client.post(f'/api/campaigns/{cid}/approve').status_code == 400
    assert engine.scheduler.tick() == {'started': [], 'completed': []}


def test_gmail_recipient_cannot_enter_the_system(client, engine):
    rejected = client.post('/api/allowlist', json={'employees': [{'email': 'x@gmail.com'}]}).get_json()
    assert rejected['employees'] == []

    response = client.post('/api/campaigns', json={
        'name': 'Nope', 'template_key': 'login-mimic', 'recipients': ['x@gmail.com'],
    })

    assert response.status_code == 400
    assert 'gmail.com' in response.get_json()['error']
    assert client.get('/api/campaigns').get_json() == []
