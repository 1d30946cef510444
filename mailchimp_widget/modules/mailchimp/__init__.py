"""
Mailchimp Module
================

Provider side of the widget:
- MailchimpClient -- merge-vars, member-info and subscribe calls
- Status code table used to interpret member-info lookups
"""

from .client import (
    get_client_factory,
    MailchimpClient, MemberLookup, MailchimpError, ProviderError, ProviderUnavailable
)
from . import codes

__all__ = [
    'MailchimpClient', 'MemberLookup', 'MailchimpError', 'ProviderError',
    'ProviderUnavailable', 'get_client_factory', 'codes'
]
