"""
Shared fixtures for the PhishTrain test suite.

NOTE: pytest and pytest-flask are listed under extras_require["dev"] in setup.py.
Install with: pip install -e ".[dev]"
"""

import os
import shutil
import tempfile
import threading

import pytest
from flask import Flask

from phishtrain import PhishTrain
from phishtrain.core import Result, TransportError


PAST = '2020-01-01T09:00:00Z'
PAST_END = '2020-01-02T09:00:00Z'
FUTURE = '2999-01-01T09:00:00Z'


class RecordingTransport:
    """Transport double: remembers every message, refuses addresses in fail_for."""

    name = 'recording'

    def __init__(self, fail_for=()):
        self.sent = []
        self.fail_for = set(fail_for)
        self._lock = threading.Lock()

    def send(self, to, from_addr, subject, text, html=None):
        if to in self.fail_for:
            return Result.fail(TransportError(f'mailbox refused: {to}'))
        with self._lock:
            self.sent.append({
                'to': to, 'from': from_addr, 'subject': subject, 'text': text, 'html': html,
            })
        return Result.ok(f'msg-{len(self.sent)}')

    def to(self, address):
        return [m for m in self.sent if m['to'] == address]


# ---------------------------------------------------------------------------
# App fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def tmp_db_dir():
    """Create a temporary directory for test databases, cleaned up after."""
    d = tempfile.mkdtemp(prefix="phishtrain-test-")
    yield d
    shutil.rmtree(d, ignore_errors=True)


@pytest.fixture
def app(tmp_db_dir):
    """Flask app with PhishTrain registered and the background scheduler disabled."""
    app = Flask(__name__)
    app.config["TESTING"] = True
    app.config["SECRET_KEY"] = "test-secret"
    app.config["DB_DIR"] = tmp_db_dir
    app.config["PHISHTRAIN_DB"] = os.path.join(tmp_db_dir, "phishtrain.db")
    app.config["PUBLIC_TRACKING_URL"] = "http://track.test"
    app.config["DEBRIEF_URL"] = "https://intranet.test/awareness"
    app.config["DO_NOT_SEND_DOMAINS"] = ["gmail.com", "yahoo.com", "outlook.com", "hotmail.com"]
    app.config["HIGH_CLICK_THRESHOLD"] = 0.5
    app.config["MAIL_FROM"] = "security-training@example.com"
    PhishTrain(app)
    yield app
    app.extensions["phishtrain"].engine.scheduler.stop(timeout=1)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def engine(app):
    return app.extensions["phishtrain"].engine


@pytest.fixture
def transport(engine, monkeypatch):
    """Route every send through a RecordingTransport."""
    recorder = RecordingTransport()
    monkeypatch.setattr(engine.email_service, "create_transport", lambda campaign: recorder)
    return recorder


# ---------------------------------------------------------------------------
# Data fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def employees(engine):
    saved, rejected = engine.allowlist.upsert_many([
        {'email': 'alice@co.com', 'name': 'Alice', 'department': 'Finance'},
        {'email': 'bob@co.com', 'name': 'Bob', 'department': 'Engineering'},
        {'email': 'carol@co.com', 'name': '', 'department': ''},
        {'email': 'a@co.com', 'name': 'A', 'department': 'Ops'},
    ])
    assert not rejected
    return saved


@pytest.fixture
def make_campaign(engine, employees):
    """Factory creating a campaign for alice and bob unless overridden."""
    def _make(**overrides):
        data = {
            'name': 'Quarterly simulation',
            'template_key': 'login-mimic',
            'recipients': ['alice@co.com', 'bob@co.com'],
        }
        data.update(overrides)
        return engine.state.create(data)
    return _make


@pytest.fixture
def running_campaign(engine, make_campaign, transport):
    """Approved campaign that has been promoted and dispatched to alice and bob."""
    def _make(**overrides):
        overrides.setdefault('scheduled_time', PAST)
        campaign = make_campaign(**overrides)
        engine.state.approve(campaign['id'])
        summary = engine.state.promote_to_running(campaign['id'])
        assert summary is not None
        return engine.campaigns.get(campaign['id'])
    return _make
