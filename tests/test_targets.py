"""
Target registry: allowlist membership, domain deny-list and snapshots.
"""

import pytest

from phishtrain.core import IntegrityError, ValidationError


def test_recipients_are_required(engine, make_campaign):
    with pytest.raises(ValidationError):
        make_campaign(recipients=[])
    with pytest.raises(ValidationError):
        make_campaign(recipients=None)


def test_forbidden_domain_names_domain_and_address(engine, make_campaign):
    with pytest.raises(ValidationError) as exc:
        make_campaign(recipients=['x@gmail.com'])

    assert 'gmail.com' in str(exc.value)
    assert exc.value.offenders == ['x@gmail.com']


def test_recipient_missing_from_allowlist(engine, make_campaign):
    with pytest.raises(ValidationError) as exc:
        make_campaign(recipients=['alice@co.com', 'stranger@co.com'])

    assert exc.value.offenders == ['stranger@co.com']


def test_rejected_create_leaves_no_campaign(engine, make_campaign):
    with pytest.raises(ValidationError):
        make_campaign(recipients=['alice@co.com', 'x@gmail.com'])

    assert engine.campaigns.list_all() == []


def test_recipients_are_normalised_and_deduplicated(engine, make_campaign):
    campaign = make_campaign(recipients=['Alice@Co.com', ' alice@co.com ', 'bob@co.com'])
    emails = [t['email'] for t in engine.targets.list(campaign['id'])]

    assert sorted(emails) == ['alice@co.com', 'bob@co.com']


def test_target_is_snapshot_of_employee(engine, make_campaign):
    campaign = make_campaign(recipients=['alice@co.com'])
    engine.allowlist.upsert_many([{'email': 'alice@co.com', 'name': 'Alicia', 'department': 'Legal'}])

    target = engine.targets.list(campaign['id'])[0]
    assert target['name'] == 'Alice'
    assert target['department'] == 'Finance'
    assert target['delivered'] is False


def test_failed_replacement_keeps_previous_targets(engine, make_campaign):
    campaign = make_campaign()
    before = engine.targets.list(campaign['id'])

    with pytest.raises(ValidationError):
        engine.state.edit(campaign['id'], {'recipients': ['x@gmail.com']})

    assert engine.targets.list(campaign['id']) == before


def test_token_collision_leaves_targets_unchanged(engine, make_campaign, monkeypatch):
    campaign = make_campaign(recipients=['alice@co.com'])
    before = engine.targets.list(campaign['id'])

    monkeypatch.setattr('phishtrain.modules.campaigns.targets.issue_token', lambda seed: 'fixed-token')
    with pytest.raises(IntegrityError):
        engine.state.edit(campaign['id'], {'recipients': ['alice@co.com', 'bob@co.com']})

    assert engine.targets.list(campaign['id']) == before


def test_token_collision_on_create_reports_server_error(client, employees, monkeypatch):
    monkeypatch.setattr('phishtrain.modules.campaigns.targets.issue_token', lambda seed: 'fixed-token')

    response = client.post('/api/campaigns', json={
        'name': 'Collide', 'template_key': 'login-mimic', 'recipients': ['alice@co.com', 'bob@co.com'],
    })

    assert response.status_code == 500
    assert client.get('/api/campaigns').get_json() == []
