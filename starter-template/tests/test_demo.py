"""
Critical tests for the Mailchimp widget demo site.
Run with: pytest starter-template/tests/test_demo.py -v
"""

import os
import sys
import pytest

# Add parent directory to path so we can import main
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))


@pytest.fixture
def app():
    """Create application for testing."""
    from main import app
    app.config['TESTING'] = True
    return app


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


def test_app_starts(app):
    """App should start without errors."""
    assert 'mailchimp_widget' in app.extensions


def test_health_endpoint(client):
    """Health endpoint should return 200."""
    response = client.get('/health')
    assert response.status_code == 200


def test_homepage_embeds_widget(client):
    """Homepage should embed the widget."""
    response = client.get('/')
    assert response.status_code == 200
    assert b'/widgets/mailchimp/home' in response.data


def test_properties_redirect_to_admin_login(client):
    """Properties editor should send anonymous users to the demo login."""
    response = client.get('/admin/widgets/home/properties')
    assert response.status_code == 302
    assert '/admin/login' in response.headers['Location']
