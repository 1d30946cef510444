"""
Mailchimp API Client
====================

Narrow client for the three Mailchimp 2.0 calls the widget needs:
merge-vars (list field schema), member-info (membership lookup) and subscribe.
The api key carries the data center as its suffix, e.g. "abc123-us6".
"""

import time
import logging
import requests
from typing import Optional, Dict, Any, List

from ...core.config import Config, get_config_value
from . import codes

logger = logging.getLogger(__name__)

API_BASE = "https://{dc}.api.mailchimp.com/2.0"
DEFAULT_DC = "us1"


def _db_log(level, message, details=None):
    """Log to the persistent DB logger (survives container rebuilds)"""
    try:
        from ...core import db_log
        db_log(level, 'mailchimp', message, details)
    except Exception:
        pass  # Fall back to stdout logger only


def _as_list(value):
    """Response lists as a list; a lone entry is wrapped, anything falsy is empty"""
    if not value:
        return []
    return value if isinstance(value, list) else [value]


class MailchimpError(Exception):
    """Base class for provider failures"""


class ProviderUnavailable(MailchimpError):
    """Transport failure: the provider could not be reached or answered garbage"""


class ProviderError(MailchimpError):
    """The provider answered with an error structure"""

    def __init__(self, message, code=None):
        super().__init__(message)
        self.message = message
        self.code = code


class MemberLookup:
    """Result of a member-info call: a status/error code plus optional message"""

    def __init__(self, code=None, message=None):
        self.code = code
        self.message = message

    def __eq__(self, other):
        return isinstance(other, MemberLookup) and (self.code, self.message) == (other.code, other.message)

    def __repr__(self):
        return f"MemberLookup(code={self.code!r}, message={self.message!r})"


class MailchimpClient:
    """Client for the Mailchimp 2.0 lists API"""

    def __init__(self, api_key: str, timeout: float = None, max_retries: int = None,
                 retry_delay: float = None, session=None):
        self.api_key = api_key
        self.timeout = timeout if timeout is not None else float(
            get_config_value('MAILCHIMP_TIMEOUT', Config.MAILCHIMP_TIMEOUT))
        self.max_retries = max(1, max_retries if max_retries is not None else int(
            get_config_value('MAILCHIMP_MAX_RETRIES', Config.MAILCHIMP_MAX_RETRIES)))
        self.retry_delay = retry_delay if retry_delay is not None else float(
            get_config_value('MAILCHIMP_RETRY_DELAY', Config.MAILCHIMP_RETRY_DELAY))
        self.session = session or requests.Session()

    @property
    def base_url(self) -> str:
        dc = DEFAULT_DC
        if self.api_key and '-' in self.api_key:
            dc = self.api_key.rsplit('-', 1)[1] or DEFAULT_DC
        return API_BASE.format(dc=dc)

    def _post(self, method: str, payload: Dict[str, Any], retry: bool = False) -> Any:
        """
        POST to a 2.0 API method and return the decoded JSON body.

        Args:
            method: API method path, e.g. "lists/member-info"
            payload: Method parameters (the api key is added here)
            retry: Retry transport failures; only safe for read calls

        Raises:
            ProviderUnavailable: network failure, timeout or non-JSON body
            ProviderError: top-level {"status": "error"} response
        """
        url = f"{self.base_url}/{method}.json"
        body = dict(payload, apikey=self.api_key)
        attempts = self.max_retries if retry else 1

        for attempt in range(attempts):
            try:
                resp = self.session.post(url, json=body, timeout=self.timeout)
                break
            except requests.RequestException as e:
                if attempt < attempts - 1:
                    logger.warning(
                        f"Mailchimp {method} failed: {e}. "
                        f"Retrying in {self.retry_delay}s (attempt {attempt + 1}/{attempts})"
                    )
                    time.sleep(self.retry_delay)
                else:
                    logger.error(f"Mailchimp {method} unreachable: {e}")
                    _db_log('error', f'Mailchimp {method} unreachable', {'error': str(e)})
                    raise ProviderUnavailable(f"Mailchimp {method} unreachable: {e}") from e

        try:
            data = resp.json()
        except ValueError as e:
            logger.error(f"Mailchimp {method} returned non-JSON body (HTTP {resp.status_code})")
            raise ProviderUnavailable(
                f"Mailchimp {method} returned an unreadable response (HTTP {resp.status_code})"
            ) from e

        if isinstance(data, dict) and data.get('status') == 'error':
            message = data.get('error') or data.get('name') or 'unknown'
            logger.warning(f"Mailchimp {method} error {data.get('code')}: {message}")
            raise ProviderError(message, code=data.get('code'))

        return data

    def fetch_merge_fields(self, list_id: str) -> List[Dict[str, Any]]:
        """
        Fetch the merge-vars of a list.

        Returns:
            list of raw field records ({tag, name, field_type, req, public, ...})
        """
        data = self._post('lists/merge-vars', {'id': [list_id]}, retry=True)
        if not isinstance(data, dict):
            raise ProviderUnavailable("Mailchimp lists/merge-vars returned an unexpected body")

        errors = _as_list(data.get('errors'))
        if errors:
            error = errors[0] if isinstance(errors[0], dict) else {}
            raise ProviderError(error.get('error') or 'unknown', code=error.get('code'))

        for entry in _as_list(data.get('data')):
            if isinstance(entry, dict) and entry.get('id') in (None, list_id):
                return [record for record in _as_list(entry.get('merge_vars')) if isinstance(record, dict)]

        return []

    def lookup_member(self, list_id: str, email: str) -> MemberLookup:
        """
        Look up an address on a list.

        Error entries carry their code verbatim; a data entry is turned into a
        code from the member status. Anything else has no code.
        """
        data = self._post('lists/member-info', {'id': list_id, 'emails': [{'email': email}]}, retry=True)
        if not isinstance(data, dict):
            return MemberLookup()

        errors = _as_list(data.get('errors'))
        if errors and isinstance(errors[0], dict) and 'code' in errors[0]:
            return MemberLookup(errors[0].get('code'), errors[0].get('error'))

        entries = _as_list(data.get('data'))
        if entries and isinstance(entries[0], dict):
            status = entries[0].get('status')
            code = codes.MEMBER_STATUS_CODES.get(status)
            if code is not None:
                return MemberLookup(code, status)
            return MemberLookup(None, status)

        return MemberLookup()

    def subscribe(self, list_id: str, email: str, merge_fields: Optional[Dict[str, Any]] = None,
                  double_optin: bool = False) -> bool:
        """Subscribe an address. Never retried: the write is not idempotent."""
        payload = {
            'id': list_id,
            'email': {'email': email},
            'double_optin': bool(double_optin),
            'update_existing': False,
        }
        if merge_fields:
            payload['merge_vars'] = dict(merge_fields)

        data = self._post('lists/subscribe', payload)
        if isinstance(data, dict) and (data.get('email') or data.get('euid') or data.get('leid')):
            return True

        raise ProviderError('unknown')


def get_client_factory():
    """Client factory of the registered extension, or MailchimpClient"""
    try:
        from flask import current_app
        ext = current_app.extensions.get('mailchimp_widget')
    except RuntimeError:
        ext = None
    return getattr(ext, 'client_factory', None) or MailchimpClient
