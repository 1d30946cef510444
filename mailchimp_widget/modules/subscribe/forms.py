"""
Signup Form
===========

Builds the signup form definition from a list schema and validates
submissions against it.
"""

import re

from .schema import EMAIL_TAG, FIELD_EMAIL, FIELD_TEXT
from .translations import Translator

# Email validation regex — rejects consecutive dots, leading/trailing dots
EMAIL_REGEX = re.compile(r'^[a-zA-Z0-9_%+-]+(\.[a-zA-Z0-9_%+-]+)*@[a-zA-Z0-9-]+(\.[a-zA-Z0-9-]+)*\.[a-zA-Z]{2,}$')

INPUT_EMAIL = 'email'
INPUT_STRING = 'string'

# Provider field type -> form input type
INPUT_TYPES = {
    FIELD_EMAIL: INPUT_EMAIL,
    FIELD_TEXT: INPUT_STRING,
}

MAX_VALUE_LENGTH = 255


class FieldSpec:
    """One input of the rendered signup form"""

    def __init__(self, name, type=INPUT_STRING, label=None, required=False, default=None):
        self.name = name
        self.type = type
        self.label = label if label is not None else name
        self.required = required
        self.default = default

    def to_dict(self):
        return {
            'name': self.name,
            'type': self.type,
            'label': self.label,
            'required': self.required,
            'default': self.default,
        }

    def __eq__(self, other):
        return isinstance(other, FieldSpec) and self.to_dict() == other.to_dict()

    def __repr__(self):
        return f"FieldSpec({self.name!r}, type={self.type!r}, required={self.required})"


def label_key(display_name):
    return 'label.mailchimp.' + (display_name or '').strip().lower().replace(' ', '_')


def build_form_spec(schema, translator=None, defaults=None):
    """
    Build the ordered form definition for a schema.

    The mandatory email input always comes first. Visible text/email fields
    follow in schema order; everything else is skipped. Defaults (usually the
    query parameters) pre-fill inputs by tag.
    """
    translator = translator or Translator()
    defaults = defaults or {}

    form_spec = [FieldSpec(
        EMAIL_TAG,
        INPUT_EMAIL,
        label=translator.translate('label.mailchimp.email'),
        required=True,
        default=defaults.get(EMAIL_TAG),
    )]

    for field in schema:
        if field.is_email or not field.is_renderable:
            continue

        key = label_key(field.display_name)
        label = translator.translate(key) if translator.has(key) else field.tag

        form_spec.append(FieldSpec(
            field.tag,
            INPUT_TYPES[field.type],
            label=label,
            required=field.required,
            default=defaults.get(field.tag),
        ))

    return form_spec


def validate_email(email):
    """Validate email format"""
    if not email or len(email) > MAX_VALUE_LENGTH:
        return False
    return EMAIL_REGEX.match(email.lower().strip()) is not None


def validate_submission(form_spec, values):
    """
    Validate submitted values against a form definition.

    Returns:
        (cleaned, errors) -- cleaned maps field name to stripped value for
        every non-blank field of the form; errors maps field name to an
        error translation key (required, email or length). Keys not in the
        form are dropped.
    """
    cleaned = {}
    errors = {}

    for spec in form_spec:
        raw = values.get(spec.name)
        value = raw.strip() if isinstance(raw, str) else ('' if raw is None else str(raw).strip())

        if not value:
            if spec.required:
                errors[spec.name] = 'error.required'
            continue

        if spec.type == INPUT_EMAIL:
            if not validate_email(value):
                errors[spec.name] = 'error.email'
                continue
            value = value.lower()
        elif len(value) > MAX_VALUE_LENGTH:
            errors[spec.name] = 'error.length'
            continue

        cleaned[spec.name] = value

    return cleaned, errors
