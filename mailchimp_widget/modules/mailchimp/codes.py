"""
Mailchimp Status Codes
======================

Member-info codes returned by the Mailchimp 2.0 API and how the widget
reacts to them. Codes are matched by identity only, never by message text.
"""

# Email_AlreadySubscribed
CODE_ALREADY_SUBSCRIBED = 230
# Email_AlreadyUnsubscribed
CODE_ALREADY_UNSUBSCRIBED = 231
# Email_NotExists
CODE_NOT_EXISTS = 232
# Email_NotSubscribed
CODE_NOT_SUBSCRIBED = 233

EXISTS_CODES = frozenset([CODE_ALREADY_SUBSCRIBED])
ELIGIBLE_CODES = frozenset([CODE_ALREADY_UNSUBSCRIBED, CODE_NOT_EXISTS, CODE_NOT_SUBSCRIBED])

# A brand new address has to confirm through the opt-in email
CODE_DOUBLE_OPTIN = CODE_NOT_EXISTS

# member-info returns a data entry instead of an error for known addresses
MEMBER_STATUS_CODES = {
    'subscribed': CODE_ALREADY_SUBSCRIBED,
    'pending': CODE_ALREADY_SUBSCRIBED,
    'unsubscribed': CODE_ALREADY_UNSUBSCRIBED,
    'cleaned': CODE_NOT_SUBSCRIBED,
}

CLASS_EXISTS = 'exists'
CLASS_ELIGIBLE = 'eligible'
CLASS_UNKNOWN = 'unknown'

# Translation keys for the user-facing notices
MESSAGE_EXISTS = 'warning.mailchimp.email.exists'
MESSAGE_SUBSCRIBED = 'success.mailchimp.subscribe'
MESSAGE_GENERAL_ERROR = 'error.mailchimp.subscribe.general'
MESSAGE_UNAVAILABLE = 'error.mailchimp.unavailable'
MESSAGE_VALIDATION = 'error.mailchimp.validation'


def _as_code(code):
    """Exact integer codes and digit strings only"""
    if isinstance(code, bool):
        return None
    if isinstance(code, int):
        return code
    if isinstance(code, str) and code.strip().isdigit():
        return int(code.strip())
    return None


def classify_code(code):
    """Classify a member-info code: exists first, then eligible, then unknown"""
    code = _as_code(code)
    if code is None:
        return CLASS_UNKNOWN
    if code in EXISTS_CODES:
        return CLASS_EXISTS
    if code in ELIGIBLE_CODES:
        return CLASS_ELIGIBLE
    return CLASS_UNKNOWN


def requires_double_optin(code):
    """True only for the code of an address the list has never seen"""
    return _as_code(code) == CODE_DOUBLE_OPTIN
