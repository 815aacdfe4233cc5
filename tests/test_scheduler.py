"""
Scheduler loop: ordering within a tick, failure isolation and single-flight.
"""

from phishtrain.modules.campaigns.models import COMPLETED, RUNNING, SCHEDULED

from conftest import FUTURE, PAST, PAST_END


def _approved(engine, make_campaign, **overrides):
    campaign = make_campaign(**overrides)
    engine.state.approve(campaign['id'])
    return campaign


def test_tick_starts_due_campaigns(engine, make_campaign, transport):
    due = _approved(engine, make_campaign, name='Due', scheduled_time=PAST)
    later = _approved(engine, make_campaign, name='Later', scheduled_time=FUTURE)
    unapproved = make_campaign(name='Unapproved', scheduled_time=PAST)

    result = engine.scheduler.tick()

    assert result == {'started': [due['id']], 'completed': []}
    assert engine.campaigns.get(due['id'])['status'] == RUNNING
    assert engine.campaigns.get(later['id'])['status'] == SCHEDULED
    assert engine.campaigns.get(unapproved['id'])['status'] == SCHEDULED
    assert sorted(m['to'] for m in transport.sent) == ['alice@co.com', 'bob@co.com']


def test_tick_completes_after_end_time_with_debrief(engine, make_campaign, transport):
    campaign = _approved(engine, make_campaign, scheduled_time=PAST, end_time=PAST_END)

    result = engine.scheduler.tick()

    assert result == {'started': [campaign['id']], 'completed': [campaign['id']]}
    assert engine.campaigns.get(campaign['id'])['status'] == COMPLETED
    subjects = [m['subject'] for m in transport.sent]
    assert subjects.count('Action Required: Verify Your Account Access') == 2
    assert subjects.count('Security Simulation Debrief: Quarterly simulation') == 2
    # dispatch happens before the debrief
    assert subjects.index('Security Simulation Debrief: Quarterly simulation') == 2


def test_failure_in_one_campaign_does_not_stop_the_tick(engine, make_campaign, transport, monkeypatch):
    bad = _approved(engine, make_campaign, name='Bad', scheduled_time=PAST)
    good = _approved(engine, make_campaign, name='Good', scheduled_time=PAST)

    original = engine.dispatcher.dispatch_campaign

    def flaky(campaign_id):
        if campaign_id == bad['id']:
            raise RuntimeError('template store offline')
        return original(campaign_id)

    monkeypatch.setattr(engine.dispatcher, 'dispatch_campaign', flaky)
    result = engine.scheduler.tick()

    assert result['started'] == [good['id']]
    assert engine.campaigns.get(good['id'])['status'] == RUNNING
    assert engine.targets.count_delivered(good['id']) == 2
    assert engine.targets.count_delivered(bad['id']) == 0


def test_campaign_in_flight_is_skipped(engine, make_campaign, transport):
    campaign = _approved(engine, make_campaign, scheduled_time=PAST)

    assert engine.scheduler._claim(campaign['id'])
    assert engine.scheduler.tick()['started'] == []
    assert engine.campaigns.get(campaign['id'])['status'] == SCHEDULED

    engine.scheduler._release(campaign['id'])
    assert engine.scheduler.tick()['started'] == [campaign['id']]


def test_second_tick_does_not_redispatch(engine, make_campaign, transport):
    _approved(engine, make_campaign, scheduled_time=PAST)

    engine.scheduler.tick()
    engine.scheduler.tick()

    assert len(transport.sent) == 2


def test_tick_records_last_run(engine):
    assert engine.scheduler.status()['last_tick'] is None
    engine.scheduler.tick()
    assert engine.scheduler.status()['last_tick'] is not None


def test_background_thread_starts_once(engine):
    scheduler = engine.scheduler
    try:
        assert scheduler.start() is True
        assert scheduler.start() is False
        assert scheduler.status()['running'] is True
    finally:
        scheduler.stop(timeout=2)
    assert scheduler.status()['running'] is False


def test_cli_tick(app, engine, make_campaign, transport):
    campaign = _approved(engine, make_campaign, scheduled_time=PAST)

    result = app.test_cli_runner().invoke(args=['phishtrain', 'tick'])

    assert result.exit_code == 0
    assert f"started=[{campaign['id']}]" in result.output
