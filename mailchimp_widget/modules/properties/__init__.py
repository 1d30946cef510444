"""
Properties Module
=================

Provides the per-widget property store and the admin properties editor.
The api key is encrypted at rest.
"""

from flask import Blueprint

properties_bp = Blueprint(
    'mailchimp_properties',
    __name__,
    url_prefix='/admin/widgets',
    template_folder='templates',
)

from .database import WidgetProperties
from .helpers import WidgetSettings, load_widget_settings, save_widget_settings, get_properties_preview
from . import routes

__all__ = [
    'properties_bp', 'WidgetProperties', 'WidgetSettings', 'load_widget_settings',
    'save_widget_settings', 'get_properties_preview'
]
