"""
Subscribe Module
================

Provides:
- GET/POST /widgets/mailchimp/<widget_id> -- render and submit the signup form
- GET /widgets/mailchimp/<widget_id>/form.json -- embeddable form definition (CORS)
- POST /widgets/mailchimp/<widget_id>/subscribe -- JSON signup for embedded forms

Core pieces usable without the blueprint:
- ListSchemaCache, sync_visibility -- cached list field schema
- build_form_spec, validate_submission -- signup form definition
- SubscriptionCoordinator -- submit flow and outcome mapping
"""

from flask import Blueprint

subscribe_bp = Blueprint(
    'mailchimp_subscribe',
    __name__,
    url_prefix='/widgets/mailchimp',
    template_folder='templates',
)

from .schema import ListField, ListSchemaCache, sync_visibility
from .forms import FieldSpec, build_form_spec, validate_submission
from .coordinator import SubscriptionCoordinator
from .translations import Translator
from . import outcomes
from . import routes

__all__ = [
    'subscribe_bp', 'ListField', 'ListSchemaCache', 'sync_visibility', 'FieldSpec',
    'build_form_spec', 'validate_submission', 'SubscriptionCoordinator', 'Translator', 'outcomes'
]
