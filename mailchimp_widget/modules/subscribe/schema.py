"""
List Schema
===========

The merge fields of a Mailchimp list, as the widget sees them, and the cache
that keeps them in the widget's property store. The schema rarely changes and
every fetch is a network round trip, so it is only re-fetched on request.
"""

import hashlib
import json
import logging
import threading
import weakref

from ..mailchimp import MailchimpClient

logger = logging.getLogger(__name__)

FIELD_TEXT = 'text'
FIELD_EMAIL = 'email'
FIELD_DATE = 'date'
FIELD_OTHER = 'other'

RENDERABLE_TYPES = frozenset([FIELD_TEXT, FIELD_EMAIL])

EMAIL_TAG = 'EMAIL'

# Property key prefix the schema is cached under, one entry per list
PROPERTY_SCHEMA = 'mailchimp'


def _db_log(level, message, details=None, widget_id=None):
    """Log to the persistent DB logger (survives container rebuilds)"""
    try:
        from ...core import db_log
        db_log(level, 'subscribe', message, details, widget_id=widget_id)
    except Exception:
        pass  # Fall back to stdout logger only


def _truthy(value):
    if isinstance(value, str):
        return value.strip().lower() not in ('', '0', 'false', 'off', 'no', 'none')
    return bool(value)


class ListField:
    """One merge field of a list; identified by its tag"""

    def __init__(self, tag, display_name=None, type=FIELD_TEXT, required=False, visible=True):
        self.tag = tag
        self.display_name = display_name if display_name is not None else tag
        self.type = type if type in (FIELD_TEXT, FIELD_EMAIL, FIELD_DATE) else FIELD_OTHER
        self.required = bool(required)
        self.visible = bool(visible)

    @property
    def is_email(self):
        return self.tag == EMAIL_TAG

    @property
    def is_renderable(self):
        return self.visible and self.type in RENDERABLE_TYPES

    @classmethod
    def from_provider(cls, record):
        """Map a merge-vars record; required and public flags are copied as given"""
        return cls(
            tag=record.get('tag'),
            display_name=record.get('name'),
            type=(record.get('field_type') or record.get('type') or '').lower(),
            required=record.get('req', record.get('required', False)),
            visible=record.get('public', True),
        )

    @classmethod
    def from_dict(cls, data):
        return cls(
            tag=data['tag'],
            display_name=data.get('display_name'),
            type=data.get('type', FIELD_TEXT),
            required=data.get('required', False),
            visible=data.get('visible', True),
        )

    def to_dict(self):
        return {
            'tag': self.tag,
            'display_name': self.display_name,
            'type': self.type,
            'required': self.required,
            'visible': self.visible,
        }

    def copy(self, **changes):
        data = self.to_dict()
        data.update(changes)
        return ListField.from_dict(data)

    def __eq__(self, other):
        return isinstance(other, ListField) and self.to_dict() == other.to_dict()

    def __repr__(self):
        return f"ListField({self.tag!r}, type={self.type!r}, required={self.required}, visible={self.visible})"


def sync_visibility(schema, submitted):
    """
    Apply visibility toggles from the properties form.

    Every tag present in submitted gets visible = truthy(value); other fields
    are left unchanged. The email field is never toggled. Returns a new list.
    """
    updated = []
    for field in schema:
        if not field.is_email and field.tag in submitted:
            field = field.copy(visible=_truthy(submitted[field.tag]))
        updated.append(field)
    return updated


def _fingerprint(api_key):
    return hashlib.sha256((api_key or '').encode()).hexdigest()[:16]


def schema_property(list_id):
    """Property key of the cached schema of one list"""
    return f'{PROPERTY_SCHEMA}.{list_id}'


class ListSchemaCache:
    """
    Caches the field schema of a list in a property store.

    The store needs get(key), set(key, value) and delete(key). Each list has
    its own entry, and the whole schema is written as one value, so a refresh
    replaces it atomically.
    """

    # Locks live only while a caller holds them
    _locks = weakref.WeakValueDictionary()
    _locks_guard = threading.Lock()

    def __init__(self, store, client_factory=MailchimpClient):
        self.store = store
        self.client_factory = client_factory

    @property
    def widget_id(self):
        return getattr(self.store, 'widget_id', None)

    @classmethod
    def _lock_for(cls, api_key, list_id):
        key = (_fingerprint(api_key), list_id)
        with cls._locks_guard:
            lock = cls._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                cls._locks[key] = lock
            return lock

    def _read(self, api_key, list_id):
        raw = self.store.get(schema_property(list_id))
        if not raw:
            return None
        try:
            cached = json.loads(raw)
        except (TypeError, ValueError):
            logger.warning(f"Discarding unreadable cached list schema of {list_id}")
            return None

        if not isinstance(cached, dict):
            return None
        if cached.get('list_id') != list_id or cached.get('key') != _fingerprint(api_key):
            return None
        return [ListField.from_dict(item) for item in cached.get('fields', [])]

    def _write(self, api_key, list_id, schema):
        self.store.set(schema_property(list_id), json.dumps({
            'key': _fingerprint(api_key),
            'list_id': list_id,
            'fields': [field.to_dict() for field in schema],
        }))

    def get_cached(self, api_key, list_id):
        """Cached schema for this list, or None; never contacts the provider"""
        return self._read(api_key, list_id)

    def fetch(self, api_key, list_id):
        """Fetch the schema from the provider without touching the cache"""
        records = self.client_factory(api_key).fetch_merge_fields(list_id)
        return [ListField.from_provider(record) for record in records if record.get('tag')]

    def get_schema(self, api_key, list_id, force_refresh=False):
        """
        Return the schema of a list, fetching it when not cached or forced.

        Raises:
            ProviderUnavailable: the provider could not be reached
            ProviderError: the provider rejected the request
        """
        if not force_refresh:
            cached = self._read(api_key, list_id)
            if cached is not None:
                return cached

        with self._lock_for(api_key, list_id):
            if not force_refresh:
                cached = self._read(api_key, list_id)
                if cached is not None:
                    return cached

            schema = self.fetch(api_key, list_id)
            self._write(api_key, list_id, schema)

        logger.info(f"Fetched list schema for {list_id}: {len(schema)} fields")
        _db_log('info', f'List schema refreshed for {list_id}', {'fields': [f.tag for f in schema]},
                widget_id=self.widget_id)
        return schema

    def save_visibility(self, api_key, list_id, submitted):
        """Apply visibility toggles to the cached schema and persist it"""
        with self._lock_for(api_key, list_id):
            schema = self._read(api_key, list_id)
            if schema is None:
                return None
            schema = sync_visibility(schema, submitted)
            self._write(api_key, list_id, schema)
        return schema

    def invalidate(self, list_id):
        """Drop the cached schema of a list; the next get_schema fetches it again"""
        self.store.delete(schema_property(list_id))
