"""
Properties Admin Routes
=======================

Admin editor for one widget instance: title, api key, list id, finish and
error nodes, template, and which list fields show on the signup form.
Also serves a JSON preview and the recent log entries of the widget.
"""

import logging
from functools import wraps

from flask import render_template, request, redirect, url_for, session, jsonify, flash
from werkzeug.routing import BuildError

from ...core.config import Config, get_config_value
from ...core.logging_service import LoggingService
from ..mailchimp import ProviderError, ProviderUnavailable, get_client_factory
from ..subscribe.schema import ListSchemaCache
from ..subscribe.translations import Translator
from . import properties_bp
from .database import WidgetProperties
from .helpers import WidgetSettings, DEFAULT_TEMPLATE, load_widget_settings, save_widget_settings, get_properties_preview

logger = logging.getLogger(__name__)

TEMPLATE_OPTIONS = [DEFAULT_TEMPLATE]

# (form name, label translation key, required)
PROPERTY_ROWS = [
    ('title', 'label.title', False),
    ('apikey', 'label.key.api', True),
    ('listid', 'label.id.list', True),
    ('finishNode', 'label.node.finish', False),
    ('errorNode', 'label.node.error', False),
]


def _db_log(level, message, details=None, widget_id=None):
    """Log to the persistent DB logger (survives container rebuilds)"""
    try:
        from ...core import db_log
        db_log(level, 'properties', message, details, widget_id=widget_id)
    except Exception:
        pass  # Fall back to stdout logger only


def admin_required(f):
    """Decorator to require admin login"""

    @wraps(f)
    def decorated_function(*args, **kwargs):
        if 'admin_id' not in session:
            endpoint = get_config_value('WIDGET_LOGIN_ENDPOINT', Config.WIDGET_LOGIN_ENDPOINT)
            try:
                login_url = url_for(endpoint, next=request.path)
            except BuildError:
                login_url = f"/admin/login?next={request.path}"
            return redirect(login_url)
        return f(*args, **kwargs)
    return decorated_function


def _locale():
    return session.get('locale') or get_config_value('MAILCHIMP_DEFAULT_LOCALE', Config.MAILCHIMP_DEFAULT_LOCALE)


def _widget_parts(widget_id):
    locale = _locale()
    properties = WidgetProperties(widget_id, locale)
    cache = ListSchemaCache(properties, client_factory=get_client_factory())
    return properties, cache, Translator(locale), locale


def _form_values(settings):
    return {
        'title': settings.title,
        'apikey': settings.api_key,
        'listid': settings.list_id,
        'finishNode': settings.finish_node,
        'errorNode': settings.error_node,
    }


def _render(settings, schema, translator, values=None, errors=None, status=200):
    values = values or _form_values(settings)
    rows = [(name, label, values.get(name), required) for name, label, required in PROPERTY_ROWS]
    return render_template(
        'mailchimp/properties.html',
        settings=settings,
        schema=schema or [],
        rows=rows,
        errors=errors or {},
        templates=TEMPLATE_OPTIONS,
        preview=get_properties_preview(settings, translator),
        translate=translator.translate,
    ), status


def _visibility_map(form, schema):
    """Visibility toggles for the editable fields; unchecked boxes are absent from the form"""
    listed = set(form.getlist('visibility_fields'))
    editable = [f for f in schema if not f.is_email and not f.required and f.tag in listed]
    return {f.tag: form.get(f'field.{f.tag}', '') for f in editable}


@properties_bp.route('/<widget_id>/properties', methods=['GET'])
@admin_required
def properties_page(widget_id):
    """Properties editor page"""
    properties, cache, translator, locale = _widget_parts(widget_id)
    settings = load_widget_settings(properties, locale)

    schema = None
    if settings.is_configured:
        try:
            schema = cache.get_schema(settings.api_key, settings.list_id)
        except (ProviderUnavailable, ProviderError) as e:
            logger.warning(f"Could not load list schema for widget {widget_id}: {e}")
            flash(translator.translate('error.mailchimp.unavailable'), 'warning')

    return _render(settings, schema, translator)


@properties_bp.route('/<widget_id>/properties', methods=['POST'])
@admin_required
def save_properties(widget_id):
    """Save properties and field visibility"""
    if request.form.get('cancel'):
        return redirect(url_for('mailchimp_properties.properties_page', widget_id=widget_id))

    properties, cache, translator, locale = _widget_parts(widget_id)
    current = load_widget_settings(properties, locale)
    previous_schema = cache.get_cached(current.api_key, current.list_id) if current.is_configured else None

    values = {name: (request.form.get(name) or '').strip() for name, _, _ in PROPERTY_ROWS}
    template = request.form.get('template') or DEFAULT_TEMPLATE
    errors = {name: translator.translate('error.required')
              for name, _, required in PROPERTY_ROWS if required and not values[name]}
    if template not in TEMPLATE_OPTIONS:
        errors['template'] = translator.translate('error.required')

    if errors:
        return _render(current, previous_schema, translator, values=values, errors=errors, status=400)

    settings = WidgetSettings(
        api_key=values['apikey'],
        list_id=values['listid'],
        title=values['title'],
        finish_node=values['finishNode'],
        error_node=values['errorNode'],
        template=template,
        locale=locale,
    )
    save_widget_settings(properties, settings)

    try:
        if request.form.get('schema_refresh'):
            cache.get_schema(settings.api_key, settings.list_id, force_refresh=True)
        else:
            schema = cache.get_schema(settings.api_key, settings.list_id)
            submitted = _visibility_map(request.form, schema)
            if submitted:
                cache.save_visibility(settings.api_key, settings.list_id, submitted)
        flash(translator.translate('success.properties.saved'), 'success')
    except ProviderUnavailable as e:
        logger.error(f"List schema fetch failed for widget {widget_id}: {e}")
        flash(translator.translate('error.mailchimp.unavailable'), 'error')
    except ProviderError as e:
        logger.warning(f"Mailchimp rejected list schema fetch for widget {widget_id}: {e.message}")
        flash(translator.translate('error.mailchimp.subscribe.general', {'error': e.message}), 'warning')

    logger.info(f"Saved properties of widget {widget_id}")
    _db_log('info', f'Widget properties saved: {widget_id}', {'list_id': settings.list_id, 'locale': locale},
            widget_id=widget_id)
    return redirect(url_for('mailchimp_properties.properties_page', widget_id=widget_id))


@properties_bp.route('/<widget_id>/preview', methods=['GET'])
@admin_required
def properties_preview(widget_id):
    """JSON preview of the widget configuration"""
    properties, _, translator, locale = _widget_parts(widget_id)
    settings = load_widget_settings(properties, locale)
    return jsonify({
        'success': True,
        'configured': settings.is_configured,
        'preview': get_properties_preview(settings, translator),
    })


@properties_bp.route('/<widget_id>/logs', methods=['GET'])
@admin_required
def widget_logs(widget_id):
    """Recent persistent log entries of a widget (subscriptions, provider errors, schema refreshes)"""
    try:
        limit = min(int(request.args.get('limit', 50)), 500)
    except ValueError:
        limit = 50
    return jsonify({
        'success': True,
        'logs': LoggingService.recent(widget_id=widget_id, limit=limit),
    })
