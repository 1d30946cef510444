"""
Mailchimp Widget - A Flask CMS Newsletter Widget
================================================

A page widget that renders a newsletter signup form from the fields of a
Mailchimp list and subscribes visitors to it:
- List field schema, cached per widget instance
- Signup form built from the visible list fields
- Member lookup and subscribe, mapped onto user-facing outcomes
- Admin properties editor with per-field visibility toggles

Usage:
    from mailchimp_widget import MailchimpWidget

    widget = MailchimpWidget(app)
"""

import os

__version__ = '0.1.0'
__author__ = 'Laurence Stephan'

from .core.config import Config
from .modules.mailchimp import MailchimpClient
from .modules.subscribe import subscribe_bp
from .modules.properties import properties_bp

DEFAULT_FEATURES = {
    'subscribe': True,
    'properties': True,
}

BLUEPRINTS = {
    'subscribe': subscribe_bp,
    'properties': properties_bp,
}


class MailchimpWidget:
    """Flask extension registering the widget blueprints"""

    def __init__(self, app=None, config=None):
        self._config = dict(config or {})
        self.client_factory = self._config.pop('client_factory', None) or MailchimpClient
        self.node_resolver = self._config.pop('node_resolver', None)
        self._registered = []
        if app is not None:
            self.init_app(app)

    def _setup_database_dir(self, app):
        app.config.setdefault('DB_DIR', Config.DB_DIR)
        app.config.setdefault('WIDGET_DB', os.path.join(app.config['DB_DIR'], 'widgets.db'))
        app.config.setdefault('ANALYTICS_DB', os.path.join(app.config['DB_DIR'], 'analytics_log.db'))
        os.makedirs(app.config['DB_DIR'], exist_ok=True)

    def init_app(self, app):
        self._setup_database_dir(app)

        for key in ('MAILCHIMP_NODE_URLS', 'MAILCHIMP_TRANSLATIONS'):
            if key.lower() in self._config:
                app.config[key] = self._config[key.lower()]

        features = dict(DEFAULT_FEATURES, **self._config.get('features', {}))
        for name, enabled in features.items():
            if enabled and name in BLUEPRINTS and name not in self._registered:
                app.register_blueprint(BLUEPRINTS[name])
                self._registered.append(name)

        app.extensions['mailchimp_widget'] = self

        @app.context_processor
        def inject_widget_config():
            return {'widget_config': dict(self._config)}

    def get_registered_modules(self):
        return list(self._registered)


__all__ = ['MailchimpWidget', 'Config', '__version__']
