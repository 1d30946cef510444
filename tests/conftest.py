"""
Shared fixtures for the Mailchimp widget tests.

Run with: pytest tests -v
Install with: pip install -e ".[dev]"
"""

import os
import shutil
import tempfile

import pytest
from flask import Flask

from mailchimp_widget import MailchimpWidget
from mailchimp_widget.core.config import Config
from mailchimp_widget.modules.mailchimp import MemberLookup, ProviderUnavailable


class FakeMailchimp:
    """Records provider calls; one instance is shared by every client the factory builds"""

    def __init__(self, merge_fields=None, lookup=None, subscribe_error=None, fetch_error=None):
        self.merge_fields = merge_fields if merge_fields is not None else []
        self.lookup = lookup if lookup is not None else MemberLookup(232, 'not found')
        self.subscribe_error = subscribe_error
        self.fetch_error = fetch_error
        self.api_keys = []
        self.fetch_calls = []
        self.lookup_calls = []
        self.subscribe_calls = []

    def __call__(self, api_key):
        self.api_keys.append(api_key)
        return self

    def fetch_merge_fields(self, list_id):
        self.fetch_calls.append(list_id)
        if self.fetch_error:
            raise self.fetch_error
        return [dict(record) for record in self.merge_fields]

    def lookup_member(self, list_id, email):
        self.lookup_calls.append((list_id, email))
        if isinstance(self.lookup, Exception):
            raise self.lookup
        return self.lookup

    def subscribe(self, list_id, email, merge_fields=None, double_optin=False):
        self.subscribe_calls.append({
            'list_id': list_id,
            'email': email,
            'merge_fields': dict(merge_fields or {}),
            'double_optin': double_optin,
        })
        if self.subscribe_error:
            raise self.subscribe_error
        return True


class MemoryStore:
    """Dict-backed property store"""

    def __init__(self):
        self.values = {}
        self.writes = 0

    def get(self, key, default=None):
        return self.values.get(key, default)

    def set(self, key, value):
        self.writes += 1
        self.values[key] = value

    def delete(self, key):
        return self.values.pop(key, None) is not None


EMAIL_FIELD = {'tag': 'EMAIL', 'name': 'Email Address', 'field_type': 'email', 'req': True, 'public': True}
FNAME_FIELD = {'tag': 'FNAME', 'name': 'First Name', 'field_type': 'text', 'req': False, 'public': True}
LNAME_FIELD = {'tag': 'LNAME', 'name': 'Last Name', 'field_type': 'text', 'req': True, 'public': True}
BIRTHDAY_FIELD = {'tag': 'BDAY', 'name': 'Birthday', 'field_type': 'date', 'req': False, 'public': True}
SECRET_FIELD = {'tag': 'NOTES', 'name': 'Notes', 'field_type': 'text', 'req': False, 'public': False}


@pytest.fixture
def tmp_db_dir():
    """Create a temporary directory for test databases, cleaned up after."""
    d = tempfile.mkdtemp(prefix="mailchimp-widget-test-")
    yield d
    shutil.rmtree(d, ignore_errors=True)


@pytest.fixture(autouse=True)
def isolated_databases(tmp_db_dir, monkeypatch):
    """Default database paths point into the temp dir outside an app context too"""
    monkeypatch.setattr(Config, "WIDGET_DB", os.path.join(tmp_db_dir, "widgets.db"))
    monkeypatch.setattr(Config, "ANALYTICS_DB", os.path.join(tmp_db_dir, "analytics.db"))


@pytest.fixture
def fake_mailchimp():
    return FakeMailchimp(merge_fields=[EMAIL_FIELD, FNAME_FIELD])


@pytest.fixture
def unavailable_mailchimp():
    return FakeMailchimp(lookup=ProviderUnavailable("timed out"), fetch_error=ProviderUnavailable("timed out"))


@pytest.fixture
def store():
    return MemoryStore()


def make_app(db_dir, client_factory, **config):
    app = Flask(__name__)
    app.config["TESTING"] = True
    app.config["SECRET_KEY"] = "test-secret"
    app.config["DB_DIR"] = db_dir
    app.config["WIDGET_DB"] = os.path.join(db_dir, "widgets.db")
    app.config["ANALYTICS_DB"] = os.path.join(db_dir, "analytics.db")
    app.config["MAILCHIMP_RETRY_DELAY"] = 0
    app.config.update(config)
    MailchimpWidget(app, {'client_factory': client_factory})
    return app


@pytest.fixture
def app(tmp_db_dir, fake_mailchimp):
    """Flask app with the widget blueprints and a fake provider"""
    return make_app(tmp_db_dir, fake_mailchimp, MAILCHIMP_NODE_URLS={
        'thanks': {'en': '/thanks', 'nl': '/bedankt'},
        'oops': '/oops',
    })


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin_client(client):
    with client.session_transaction() as sess:
        sess['admin_id'] = 1
    return client
