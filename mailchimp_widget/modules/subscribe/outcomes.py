"""
Subscription Outcomes
=====================

What a submission resolved to. The coordinator always returns one of these;
the widget routes turn them into redirects and flash messages.
"""

from ..mailchimp import codes

SUBSCRIBED = 'subscribed'
ALREADY_SUBSCRIBED = 'already_subscribed'
VALIDATION_FAILED = 'validation_failed'
PROVIDER_ERROR = 'provider_error'
PROVIDER_UNAVAILABLE = 'provider_unavailable'


class SubscriptionOutcome:
    kind = None
    level = 'info'
    message_key = None

    def __init__(self, message=None, field_errors=None, redirect_url=None, clear_query=False,
                 show_notice=True):
        self.message = message
        self.field_errors = field_errors or {}
        self.redirect_url = redirect_url
        self.clear_query = clear_query
        self.show_notice = show_notice

    @property
    def is_success(self):
        return self.kind == SUBSCRIBED

    def to_dict(self):
        return {
            'outcome': self.kind,
            'level': self.level,
            'message_key': self.message_key,
            'message': self.message,
            'field_errors': self.field_errors,
        }

    def __eq__(self, other):
        return type(self) is type(other) and self.to_dict() == other.to_dict()

    def __repr__(self):
        return f"{type(self).__name__}({self.to_dict()!r})"


class Subscribed(SubscriptionOutcome):
    kind = SUBSCRIBED
    level = 'success'
    message_key = codes.MESSAGE_SUBSCRIBED

    def __init__(self, double_optin=False, **kwargs):
        super().__init__(**kwargs)
        self.double_optin = double_optin


class AlreadySubscribed(SubscriptionOutcome):
    kind = ALREADY_SUBSCRIBED
    level = 'warning'
    message_key = codes.MESSAGE_EXISTS


class ValidationFailed(SubscriptionOutcome):
    kind = VALIDATION_FAILED
    level = 'error'
    message_key = codes.MESSAGE_VALIDATION

    def __init__(self, field_errors, **kwargs):
        super().__init__(field_errors=field_errors, **kwargs)


class ProviderError(SubscriptionOutcome):
    kind = PROVIDER_ERROR
    level = 'warning'
    message_key = codes.MESSAGE_GENERAL_ERROR

    def __init__(self, message='unknown', **kwargs):
        super().__init__(message=message, **kwargs)


class ProviderUnavailable(SubscriptionOutcome):
    kind = PROVIDER_UNAVAILABLE
    level = 'error'
    message_key = codes.MESSAGE_UNAVAILABLE
