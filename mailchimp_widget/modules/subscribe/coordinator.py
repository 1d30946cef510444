"""
Subscription Coordinator
========================

Builds the signup form for a widget and resolves submissions against
Mailchimp:

1. validate the submission (no provider call when it fails)
2. split it into the email address and the merge fields
3. look the address up on the list
4. interpret the lookup code: already subscribed, eligible (subscribe), or error

No exception leaves submit(); every path returns a SubscriptionOutcome.
"""

import logging

from ..mailchimp import MailchimpClient, codes
from ..mailchimp import ProviderError as MailchimpProviderError
from ..mailchimp import ProviderUnavailable as MailchimpUnavailable
from . import outcomes
from .forms import build_form_spec, validate_submission
from .nodes import resolve_node_url, strip_query
from .schema import EMAIL_TAG
from .translations import Translator

logger = logging.getLogger(__name__)

UNKNOWN_ERROR = 'unknown'


def _db_log(level, message, details=None, widget_id=None):
    """Log to the persistent DB logger (survives container rebuilds)"""
    try:
        from ...core import db_log
        db_log(level, 'subscribe', message, details, widget_id=widget_id)
    except Exception:
        pass  # Fall back to stdout logger only


class SubscriptionCoordinator:
    """Signup form and submit flow of one configured widget instance"""

    def __init__(self, settings, schema_cache, client_factory=MailchimpClient, translator=None,
                 node_resolver=resolve_node_url, widget_id=None):
        self.settings = settings
        self.schema_cache = schema_cache
        self.client_factory = client_factory
        self.translator = translator or Translator(settings.locale)
        self.node_resolver = node_resolver
        self.widget_id = widget_id

    def load_schema(self, force_refresh=False):
        """Current list schema; raises the provider exceptions of the schema cache"""
        return self.schema_cache.get_schema(self.settings.api_key, self.settings.list_id, force_refresh)

    def build_form(self, defaults=None, force_refresh=False):
        """Form definition for the widget's list, pre-filled from defaults"""
        return build_form_spec(self.load_schema(force_refresh), self.translator, defaults)

    def _node_url(self, node_id):
        if not node_id or not self.node_resolver:
            return None
        return self.node_resolver(node_id, self.settings.locale)

    def _finish(self, outcome, current_url):
        """Attach redirect instructions to an outcome"""
        fallback = strip_query(current_url)

        if isinstance(outcome, outcomes.Subscribed):
            finish_url = self._node_url(self.settings.finish_node)
            if finish_url:
                outcome.redirect_url = finish_url
                outcome.show_notice = False
            else:
                outcome.redirect_url = fallback
                outcome.clear_query = True
        elif isinstance(outcome, (outcomes.AlreadySubscribed, outcomes.ProviderError)):
            outcome.redirect_url = self._node_url(self.settings.error_node) or fallback
            outcome.clear_query = True

        return outcome

    def submit(self, form_spec, values, current_url=None):
        """
        Validate and submit a signup.

        Args:
            form_spec: form definition the values were entered into
            values: submitted values by field name
            current_url: URL of the page the widget is on, for redirects

        Returns:
            SubscriptionOutcome
        """
        cleaned, errors = validate_submission(form_spec, values)
        if errors:
            return outcomes.ValidationFailed(errors)

        if not self.settings.is_configured:
            logger.warning("Signup submitted to an unconfigured widget")
            return outcomes.ProviderError(UNKNOWN_ERROR)

        email = cleaned.pop(EMAIL_TAG)
        merge_fields = cleaned
        list_id = self.settings.list_id

        try:
            client = self.client_factory(self.settings.api_key)
            lookup = client.lookup_member(list_id, email)
        except MailchimpUnavailable as e:
            logger.error(f"Member lookup failed for {email}: {e}")
            return outcomes.ProviderUnavailable(message=str(e))
        except MailchimpProviderError as e:
            logger.warning(f"Member lookup rejected for {email}: {e.message}")
            _db_log('warning', 'Member lookup rejected', {'email': email, 'code': e.code, 'error': e.message},
                    widget_id=self.widget_id)
            return self._finish(outcomes.ProviderError(e.message or UNKNOWN_ERROR), current_url)

        code = getattr(lookup, 'code', None)
        kind = codes.classify_code(code)

        if kind == codes.CLASS_EXISTS:
            logger.info(f"Already subscribed: {email}")
            return self._finish(outcomes.AlreadySubscribed(), current_url)

        if kind == codes.CLASS_UNKNOWN:
            message = getattr(lookup, 'message', None) if code is not None else None
            logger.warning(f"Unexpected member lookup result for {email}: {lookup!r}")
            _db_log('warning', 'Unexpected member lookup result', {'email': email, 'code': code},
                    widget_id=self.widget_id)
            return self._finish(outcomes.ProviderError(message or UNKNOWN_ERROR), current_url)

        double_optin = codes.requires_double_optin(code)
        try:
            client.subscribe(list_id, email, merge_fields, double_optin=double_optin)
        except MailchimpUnavailable as e:
            logger.error(f"Subscribe failed for {email}: {e}")
            return outcomes.ProviderUnavailable(message=str(e))
        except MailchimpProviderError as e:
            logger.warning(f"Subscribe rejected for {email}: {e.message}")
            _db_log('warning', 'Subscribe rejected', {'email': email, 'code': e.code, 'error': e.message},
                    widget_id=self.widget_id)
            return self._finish(outcomes.ProviderError(e.message or UNKNOWN_ERROR), current_url)

        logger.info(f"New subscription added: {email} (double opt-in: {double_optin})")
        _db_log('info', f'New subscriber: {email}', {'list_id': list_id, 'double_optin': double_optin},
                widget_id=self.widget_id)
        return self._finish(outcomes.Subscribed(double_optin=double_optin), current_url)
