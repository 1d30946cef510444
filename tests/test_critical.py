"""
Critical Integration Tests for the Mailchimp Widget
===================================================

Focused tests covering the integration points most likely to break:
extension setup, the widget pages, the JSON endpoints and the admin editor.
Run with: pytest tests/test_critical.py -v
"""

from flask import Flask

from mailchimp_widget import MailchimpWidget
from mailchimp_widget.modules.mailchimp import MailchimpClient, MemberLookup, ProviderUnavailable
from mailchimp_widget.modules.properties.database import WidgetProperties
from mailchimp_widget.modules.properties.helpers import WidgetSettings, save_widget_settings
from mailchimp_widget.modules.subscribe.schema import ListSchemaCache

from conftest import FakeMailchimp, EMAIL_FIELD, FNAME_FIELD, LNAME_FIELD, make_app


def configure(app, widget_id='w1', **settings):
    settings.setdefault('api_key', 'K-us6')
    settings.setdefault('list_id', 'L')
    settings.setdefault('locale', 'en')
    with app.app_context():
        save_widget_settings(WidgetProperties(widget_id, 'en'), WidgetSettings(**settings))


# ---------------------------------------------------------------------------
# 1. Extension initialisation
# ---------------------------------------------------------------------------

def test_extension_initialisation(tmp_db_dir):
    app = Flask(__name__)
    app.config["TESTING"] = True
    app.config["DB_DIR"] = tmp_db_dir

    widget = MailchimpWidget(app)

    assert app.extensions['mailchimp_widget'] is widget
    assert widget.client_factory is MailchimpClient
    assert widget.get_registered_modules() == ['subscribe', 'properties']
    assert 'mailchimp_subscribe' in app.blueprints
    assert 'mailchimp_properties' in app.blueprints


def test_features_can_be_disabled(tmp_db_dir):
    app = Flask(__name__)
    app.config["DB_DIR"] = tmp_db_dir
    widget = MailchimpWidget(app, {'features': {'properties': False}})
    assert widget.get_registered_modules() == ['subscribe']
    assert 'mailchimp_properties' not in app.blueprints


# ---------------------------------------------------------------------------
# 2. Signup form page
# ---------------------------------------------------------------------------

def test_unconfigured_widget_renders_nothing(client):
    assert client.get('/widgets/mailchimp/w1').status_code == 204


def test_form_renders_visible_fields(app, client, fake_mailchimp):
    configure(app, title='Newsletter')

    resp = client.get('/widgets/mailchimp/w1?FNAME=Ann')
    html = resp.get_data(as_text=True)

    assert resp.status_code == 200
    assert 'Newsletter' in html
    assert 'name="EMAIL"' in html
    assert 'First name' in html
    assert 'value="Ann"' in html
    assert fake_mailchimp.api_keys == ['K-us6']


def test_schema_is_fetched_once_across_renders(app, client, fake_mailchimp):
    configure(app)
    client.get('/widgets/mailchimp/w1')
    client.get('/widgets/mailchimp/w1')
    assert fake_mailchimp.fetch_calls == ['L']


def test_submit_subscribes_and_redirects_to_clean_page(app, client, fake_mailchimp):
    configure(app)

    resp = client.post('/widgets/mailchimp/w1?utm=x', data={'EMAIL': 'Ann@B.com', 'FNAME': 'Ann'})

    assert resp.status_code == 302
    assert resp.headers['Location'].endswith('/widgets/mailchimp/w1')
    assert fake_mailchimp.subscribe_calls == [{
        'list_id': 'L', 'email': 'ann@b.com', 'merge_fields': {'FNAME': 'Ann'}, 'double_optin': True,
    }]

    page = client.get(resp.headers['Location']).get_data(as_text=True)
    assert 'You are now subscribed' in page


def test_submit_with_finish_node_redirects_there(app, client):
    configure(app, finish_node='thanks')
    resp = client.post('/widgets/mailchimp/w1', data={'EMAIL': 'a@b.com'})
    assert resp.status_code == 302
    assert resp.headers['Location'].endswith('/thanks')


def test_already_subscribed_redirects_with_warning(app, client, fake_mailchimp):
    configure(app, error_node='oops')
    fake_mailchimp.lookup = MemberLookup(230)

    resp = client.post('/widgets/mailchimp/w1', data={'EMAIL': 'a@b.com'})

    assert resp.headers['Location'].endswith('/oops')
    assert fake_mailchimp.subscribe_calls == []
    with client.session_transaction() as sess:
        assert ('warning', 'This email address is already subscribed.') in sess['_flashes']


def test_invalid_submission_rerenders_form(app, client, fake_mailchimp):
    configure(app)

    resp = client.post('/widgets/mailchimp/w1', data={'EMAIL': 'nope', 'FNAME': 'Ann'})
    html = resp.get_data(as_text=True)

    assert resp.status_code == 400
    assert 'Please enter a valid email address.' in html
    assert 'value="Ann"' in html
    assert fake_mailchimp.lookup_calls == []


def test_unreachable_provider_on_render(tmp_db_dir, unavailable_mailchimp):
    app = make_app(tmp_db_dir, unavailable_mailchimp)
    configure(app)

    resp = app.test_client().get('/widgets/mailchimp/w1')

    assert resp.status_code == 503
    assert 'unavailable' in resp.get_data(as_text=True)


def test_unreachable_provider_on_submit(tmp_db_dir):
    provider = FakeMailchimp(merge_fields=[EMAIL_FIELD], lookup=ProviderUnavailable("timed out"))
    app = make_app(tmp_db_dir, provider)
    configure(app)

    resp = app.test_client().post('/widgets/mailchimp/w1', data={'EMAIL': 'a@b.com'})

    assert resp.status_code == 503
    assert 'value="a@b.com"' in resp.get_data(as_text=True)


# ---------------------------------------------------------------------------
# 3. JSON endpoints
# ---------------------------------------------------------------------------

def test_form_json_for_embedding(app, client):
    configure(app, title='Newsletter')

    resp = client.get('/widgets/mailchimp/w1/form.json', headers={'Origin': 'https://other.example'})
    data = resp.get_json()

    assert resp.status_code == 200
    assert 'Access-Control-Allow-Origin' in resp.headers
    assert data['title'] == 'Newsletter'
    assert [f['name'] for f in data['fields']] == ['EMAIL', 'FNAME']
    assert data['fields'][0]['required'] is True


def test_form_json_of_unconfigured_widget(client):
    assert client.get('/widgets/mailchimp/nope/form.json').status_code == 404


def test_json_subscribe(app, client, fake_mailchimp):
    configure(app)

    resp = client.post('/widgets/mailchimp/w1/subscribe', json={'EMAIL': 'a@b.com', 'FNAME': 'Ann'})
    data = resp.get_json()

    assert resp.status_code == 201
    assert data['outcome'] == 'subscribed'
    assert data['notice'].startswith('Thanks!')
    assert len(fake_mailchimp.subscribe_calls) == 1


def test_json_subscribe_validation_errors(app, client):
    configure(app)

    resp = client.post('/widgets/mailchimp/w1/subscribe', json={'FNAME': 'Ann'})

    assert resp.status_code == 400
    assert resp.get_json()['field_errors'] == {'EMAIL': 'This field is required.'}


def test_json_subscribe_requires_json_body(app, client):
    configure(app)
    resp = client.post('/widgets/mailchimp/w1/subscribe', data='EMAIL=a@b.com')
    assert resp.status_code == 400


# ---------------------------------------------------------------------------
# 4. Admin properties editor
# ---------------------------------------------------------------------------

def test_properties_requires_admin(client):
    resp = client.get('/admin/widgets/w1/properties')
    assert resp.status_code == 302
    assert '/admin/login' in resp.headers['Location']


def test_properties_page_lists_fields(app, admin_client):
    configure(app)

    resp = admin_client.get('/admin/widgets/w1/properties')
    html = resp.get_data(as_text=True)

    assert resp.status_code == 200
    assert 'name="field.FNAME"' in html
    assert 'name="field.EMAIL"' not in html


def test_save_properties_requires_api_key_and_list(admin_client):
    resp = admin_client.post('/admin/widgets/w1/properties', data={'title': 'News', 'listid': 'L'})
    assert resp.status_code == 400
    assert 'This field is required.' in resp.get_data(as_text=True)


def test_save_properties(app, admin_client, fake_mailchimp):
    resp = admin_client.post('/admin/widgets/w1/properties', data={
        'title': 'News', 'apikey': 'K-us6', 'listid': 'L', 'template': 'mailchimp/default.html'})

    assert resp.status_code == 302
    assert fake_mailchimp.fetch_calls == ['L']
    with app.app_context():
        props = WidgetProperties('w1', 'en')
        assert props.get('apikey') == 'K-us6'
        assert props.get_localized('listid') == 'L'
        assert props.get_localized('title') == 'News'


def test_cancel_does_not_save(app, admin_client):
    resp = admin_client.post('/admin/widgets/w1/properties', data={'apikey': 'K', 'listid': 'L', 'cancel': '1'})
    assert resp.status_code == 302
    with app.app_context():
        assert WidgetProperties('w1', 'en').get('apikey') is None


def test_visibility_toggle_hides_field(tmp_db_dir):
    provider = FakeMailchimp(merge_fields=[EMAIL_FIELD, FNAME_FIELD, LNAME_FIELD])
    app = make_app(tmp_db_dir, provider)
    configure(app)
    client = app.test_client()
    with client.session_transaction() as sess:
        sess['admin_id'] = 1

    client.post('/admin/widgets/w1/properties', data={
        'apikey': 'K-us6', 'listid': 'L',
        'visibility_fields': ['FNAME', 'LNAME'],
        'field.LNAME': '1',
    })

    with app.app_context():
        schema = ListSchemaCache(WidgetProperties('w1', 'en')).get_cached('K-us6', 'L')
    assert {f.tag: f.visible for f in schema} == {'EMAIL': True, 'FNAME': False, 'LNAME': True}

    html = client.get('/widgets/mailchimp/w1').get_data(as_text=True)
    assert 'name="FNAME"' not in html
    assert 'name="LNAME"' in html
    assert provider.fetch_calls == ['L']


def test_schema_refresh_refetches(app, admin_client, fake_mailchimp):
    configure(app)
    admin_client.get('/widgets/mailchimp/w1')

    admin_client.post('/admin/widgets/w1/properties', data={
        'apikey': 'K-us6', 'listid': 'L', 'schema_refresh': '1'})

    assert fake_mailchimp.fetch_calls == ['L', 'L']


def test_preview_json(app, admin_client):
    configure(app, title='News')
    data = admin_client.get('/admin/widgets/w1/preview').get_json()
    assert data['success'] is True
    assert data['configured'] is True
    assert 'News' in data['preview']


def test_widget_logs_list_subscriptions(app, admin_client):
    configure(app)
    admin_client.post('/widgets/mailchimp/w1', data={'EMAIL': 'a@b.com'})
    admin_client.post('/admin/widgets/w2/properties', data={'apikey': 'K-us6', 'listid': 'L2'})

    data = admin_client.get('/admin/widgets/w1/logs').get_json()

    assert data['success'] is True
    assert data['logs']
    assert all(entry['widget_id'] == 'w1' for entry in data['logs'])
    assert any(entry['message'] == 'New subscriber: a@b.com' for entry in data['logs'])


def test_widget_logs_require_admin(client):
    assert client.get('/admin/widgets/w1/logs').status_code == 302


# ---------------------------------------------------------------------------
# 5. Embed origins
# ---------------------------------------------------------------------------

def test_embed_origins_come_from_app_config(tmp_db_dir, fake_mailchimp):
    app = make_app(tmp_db_dir, fake_mailchimp, MAILCHIMP_EMBED_ORIGINS=['https://allowed.example'])
    configure(app)
    client = app.test_client()

    allowed = client.get('/widgets/mailchimp/w1/form.json', headers={'Origin': 'https://allowed.example'})
    other = client.get('/widgets/mailchimp/w1/form.json', headers={'Origin': 'https://other.example'})

    assert allowed.headers.get('Access-Control-Allow-Origin') == 'https://allowed.example'
    assert 'Access-Control-Allow-Origin' not in other.headers


def test_embed_origins_as_comma_separated_string(tmp_db_dir, fake_mailchimp):
    app = make_app(tmp_db_dir, fake_mailchimp, MAILCHIMP_EMBED_ORIGINS='https://a.example, https://b.example')
    configure(app)

    resp = app.test_client().get('/widgets/mailchimp/w1/form.json', headers={'Origin': 'https://b.example'})

    assert resp.headers.get('Access-Control-Allow-Origin') == 'https://b.example'


def test_json_subscribe_preflight(app, client):
    configure(app)

    resp = client.options('/widgets/mailchimp/w1/subscribe', headers={
        'Origin': 'https://other.example',
        'Access-Control-Request-Method': 'POST',
        'Access-Control-Request-Headers': 'Content-Type',
    })

    assert resp.status_code == 200
    assert 'Access-Control-Allow-Origin' in resp.headers
