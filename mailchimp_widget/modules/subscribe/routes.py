"""
Subscribe Routes
================

Provides:
- GET /<widget_id> -- render the signup form
- POST /<widget_id> -- submit the signup form, then redirect or re-render
- GET /<widget_id>/form.json -- form definition for embedding on other sites
- POST /<widget_id>/subscribe -- JSON signup for embedded forms

Every failure re-renders the form or redirects; nothing raises to the page.
"""

import logging
from functools import wraps

from flask import request, jsonify, render_template, redirect, flash, session, current_app
from flask_cors import cross_origin

from ...core.config import Config, get_config_value
from ..mailchimp import get_client_factory
from ..mailchimp import ProviderError as MailchimpProviderError
from ..mailchimp import ProviderUnavailable as MailchimpUnavailable
from ..mailchimp import codes
from ..properties.database import WidgetProperties
from ..properties.helpers import load_widget_settings
from . import subscribe_bp
from . import outcomes
from .coordinator import SubscriptionCoordinator
from .nodes import resolve_node_url
from .schema import ListSchemaCache
from .translations import Translator

logger = logging.getLogger(__name__)

# Allowed origins for the embeddable endpoints; empty means any origin
DEFAULT_EMBED_ORIGINS = '*'

# HTTP status per outcome for the JSON endpoint
JSON_STATUS = {
    outcomes.SUBSCRIBED: 201,
    outcomes.ALREADY_SUBSCRIBED: 200,
    outcomes.VALIDATION_FAILED: 400,
    outcomes.PROVIDER_ERROR: 502,
    outcomes.PROVIDER_UNAVAILABLE: 503,
}


def _get_locale():
    """Locale of the current request: session, then the configured default"""
    return session.get('locale') or get_config_value('MAILCHIMP_DEFAULT_LOCALE', Config.MAILCHIMP_DEFAULT_LOCALE)


def _embed_origins():
    origins = get_config_value('MAILCHIMP_EMBED_ORIGINS', Config.MAILCHIMP_EMBED_ORIGINS)
    if isinstance(origins, str):
        origins = [o.strip() for o in origins.split(',') if o.strip()]
    return list(origins) if origins else DEFAULT_EMBED_ORIGINS


def embeddable(f):
    """cross_origin with the allowed origins resolved on every request"""

    @wraps(f)
    def decorated_function(*args, **kwargs):
        return cross_origin(origins=_embed_origins())(f)(*args, **kwargs)

    # Preflight requests reach the view so cross_origin can answer them
    decorated_function.required_methods = {'OPTIONS'}
    decorated_function.provide_automatic_options = False
    return decorated_function


def _get_node_resolver():
    ext = current_app.extensions.get('mailchimp_widget')
    return getattr(ext, 'node_resolver', None) or resolve_node_url


def _build_coordinator(widget_id):
    """Settings, translator and coordinator for a widget instance"""
    locale = _get_locale()
    properties = WidgetProperties(widget_id, locale)
    settings = load_widget_settings(properties, locale)
    translator = Translator(locale)
    client_factory = get_client_factory()
    coordinator = SubscriptionCoordinator(
        settings,
        ListSchemaCache(properties, client_factory=client_factory),
        client_factory=client_factory,
        translator=translator,
        node_resolver=_get_node_resolver(),
        widget_id=widget_id,
    )
    return settings, translator, coordinator


def _render(settings, translator, form_spec, parameters, errors=None, notice=None, status=200):
    return render_template(
        settings.template,
        title=settings.title,
        form=form_spec or [],
        parameters=parameters,
        errors=errors or {},
        notice=notice,
        translate=translator.translate,
    ), status


@subscribe_bp.route('/<widget_id>', methods=['GET', 'POST'])
def widget(widget_id):
    """Show and handle the signup form"""
    settings, translator, coordinator = _build_coordinator(widget_id)
    if not settings.is_configured:
        return '', 204

    parameters = request.args.to_dict()

    try:
        form_spec = coordinator.build_form(defaults=parameters)
    except MailchimpUnavailable as e:
        logger.error(f"Could not load list schema for widget {widget_id}: {e}")
        notice = ('error', translator.translate(codes.MESSAGE_UNAVAILABLE))
        return _render(settings, translator, None, parameters, notice=notice, status=503)
    except MailchimpProviderError as e:
        logger.warning(f"Mailchimp rejected schema fetch for widget {widget_id}: {e.message}")
        notice = ('warning', translator.translate(codes.MESSAGE_GENERAL_ERROR, {'error': e.message}))
        return _render(settings, translator, None, parameters, notice=notice, status=502)

    if request.method == 'GET':
        return _render(settings, translator, form_spec, parameters)

    outcome = coordinator.submit(form_spec, request.form.to_dict(), current_url=request.url)

    if isinstance(outcome, outcomes.ValidationFailed):
        return _render(settings, translator, form_spec, request.form.to_dict(),
                       errors={name: translator.translate(key) for name, key in outcome.field_errors.items()},
                       notice=('error', translator.translate(outcome.message_key)), status=400)

    if isinstance(outcome, outcomes.ProviderUnavailable):
        return _render(settings, translator, form_spec, request.form.to_dict(),
                       notice=('error', translator.translate(outcome.message_key)), status=503)

    if outcome.show_notice:
        flash(translator.translate(outcome.message_key, {'error': outcome.message}), outcome.level)

    return redirect(outcome.redirect_url or request.base_url)


@subscribe_bp.route('/<widget_id>/form.json', methods=['GET'])
@embeddable
def widget_form(widget_id):
    """Form definition of a widget for embedding (public endpoint)"""
    settings, translator, coordinator = _build_coordinator(widget_id)
    if not settings.is_configured:
        return jsonify({'error': translator.translate('label.mailchimp.not.set')}), 404

    try:
        form_spec = coordinator.build_form(defaults=request.args.to_dict())
    except MailchimpUnavailable:
        return jsonify({'error': translator.translate(codes.MESSAGE_UNAVAILABLE)}), 503
    except MailchimpProviderError as e:
        return jsonify({'error': translator.translate(codes.MESSAGE_GENERAL_ERROR, {'error': e.message})}), 502

    return jsonify({
        'title': settings.title,
        'fields': [spec.to_dict() for spec in form_spec],
        'submit_label': translator.translate('label.mailchimp.subscribe'),
    }), 200


@subscribe_bp.route('/<widget_id>/subscribe', methods=['POST'])
@embeddable
def widget_subscribe(widget_id):
    """JSON signup for embedded forms"""
    settings, translator, coordinator = _build_coordinator(widget_id)
    if not settings.is_configured:
        return jsonify({'error': translator.translate('label.mailchimp.not.set')}), 404

    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({'error': translator.translate('error.required')}), 400

    try:
        form_spec = coordinator.build_form()
    except MailchimpUnavailable:
        return jsonify({'error': translator.translate(codes.MESSAGE_UNAVAILABLE)}), 503
    except MailchimpProviderError as e:
        return jsonify({'error': translator.translate(codes.MESSAGE_GENERAL_ERROR, {'error': e.message})}), 502

    outcome = coordinator.submit(form_spec, data)
    body = outcome.to_dict()
    body['notice'] = translator.translate(outcome.message_key, {'error': outcome.message})
    body['field_errors'] = {name: translator.translate(key) for name, key in outcome.field_errors.items()}
    if outcome.is_success and outcome.redirect_url and not outcome.show_notice:
        body['redirect'] = outcome.redirect_url

    return jsonify(body), JSON_STATUS[outcome.kind]
