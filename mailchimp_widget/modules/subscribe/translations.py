"""
Widget Translations
===================

Translation lookups for user-facing widget text. Host apps add or override
keys per locale through app.config['MAILCHIMP_TRANSLATIONS'].
"""

from ...core.config import Config, get_config_value

DEFAULT_TRANSLATIONS = {
    'en': {
        'label.title': 'Title',
        'label.key.api': 'API key',
        'label.key.api.mailchimp.description': 'The API key of your Mailchimp account, e.g. abc123-us6',
        'label.id.list': 'List ID',
        'label.id.list.mailchimp.description': 'The ID of the Mailchimp list to subscribe to',
        'label.node.finish': 'Finish node',
        'label.node.finish.description': 'Page to redirect to after a successful subscription',
        'label.node.error': 'Error node',
        'label.node.error.description': 'Page to redirect to when the subscription fails',
        'label.template': 'Template',
        'label.schema.refresh': 'Refresh list fields from Mailchimp',
        'label.mailchimp.email': 'Email address',
        'label.mailchimp.first_name': 'First name',
        'label.mailchimp.last_name': 'Last name',
        'label.mailchimp.subscribe': 'Subscribe',
        'label.mailchimp.not.set': 'Mailchimp API key or list ID not set',
        'label.mailchimp.description.field': 'Show this field on the signup form',
        'success.mailchimp.subscribe': 'Thanks! You are now subscribed to our newsletter.',
        'warning.mailchimp.email.exists': 'This email address is already subscribed.',
        'error.mailchimp.subscribe.general': 'We could not subscribe you: %error%',
        'error.mailchimp.unavailable': 'The newsletter service is unavailable, please try again later.',
        'error.mailchimp.validation': 'Please correct the highlighted fields.',
        'error.required': 'This field is required.',
        'error.email': 'Please enter a valid email address.',
        'error.length': 'Please use at most 255 characters.',
        'success.properties.saved': 'Widget properties saved.',
        'button.save': 'Save',
        'button.cancel': 'Cancel',
    },
}


class Translator:
    """Looks up translation keys for one locale, falling back to English"""

    def __init__(self, locale=None, translations=None):
        self.locale = locale or get_config_value('MAILCHIMP_DEFAULT_LOCALE', Config.MAILCHIMP_DEFAULT_LOCALE)
        if translations is None:
            translations = get_config_value('MAILCHIMP_TRANSLATIONS') or {}
        self._tables = []
        for table in (translations.get(self.locale), DEFAULT_TRANSLATIONS.get(self.locale),
                      translations.get('en'), DEFAULT_TRANSLATIONS['en']):
            if table and table not in self._tables:
                self._tables.append(table)

    def has(self, key):
        return any(key in table for table in self._tables)

    def translate(self, key, params=None, default=None):
        """
        Translate a key, substituting %name% placeholders from params.
        Unknown keys return default, or the key itself.
        """
        for table in self._tables:
            if key in table:
                text = table[key]
                break
        else:
            return default if default is not None else key

        for name, value in (params or {}).items():
            text = text.replace(f'%{name}%', str(value))
        return text
