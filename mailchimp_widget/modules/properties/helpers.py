"""
Properties Helpers
==================

Turns the property bag of a widget instance into an explicit settings
object, and back.
"""

from markupsafe import escape

PROPERTY_TITLE = 'title'
PROPERTY_API_KEY = 'apikey'
PROPERTY_LIST_ID = 'listid'
PROPERTY_FINISH_NODE = 'finish.node'
PROPERTY_ERROR_NODE = 'error.node'
PROPERTY_TEMPLATE = 'template'

DEFAULT_TEMPLATE = 'mailchimp/default.html'


class WidgetSettings:
    """Configuration of one widget instance for one locale"""

    def __init__(self, api_key=None, list_id=None, title=None, finish_node=None,
                 error_node=None, template=None, locale=None):
        self.api_key = api_key or None
        self.list_id = list_id or None
        self.title = title or ''
        self.finish_node = finish_node or None
        self.error_node = error_node or None
        self.template = template or DEFAULT_TEMPLATE
        self.locale = locale

    @property
    def is_configured(self):
        return bool(self.api_key and self.list_id)

    def to_dict(self):
        return {
            'api_key': self.api_key,
            'list_id': self.list_id,
            'title': self.title,
            'finish_node': self.finish_node,
            'error_node': self.error_node,
            'template': self.template,
            'locale': self.locale,
        }


def load_widget_settings(properties, locale=None):
    """Build WidgetSettings from a WidgetProperties store"""
    locale = locale or properties.locale
    return WidgetSettings(
        api_key=properties.get(PROPERTY_API_KEY),
        list_id=properties.get_localized(PROPERTY_LIST_ID, locale=locale),
        title=properties.get_localized(PROPERTY_TITLE, locale=locale),
        finish_node=properties.get(PROPERTY_FINISH_NODE),
        error_node=properties.get(PROPERTY_ERROR_NODE),
        template=properties.get(PROPERTY_TEMPLATE),
        locale=locale,
    )


def save_widget_settings(properties, settings):
    """Persist WidgetSettings; title and list id are stored per locale"""
    locale = settings.locale or properties.locale
    properties.set_localized(PROPERTY_TITLE, settings.title, locale=locale)
    properties.set(PROPERTY_API_KEY, settings.api_key)
    properties.set_localized(PROPERTY_LIST_ID, settings.list_id, locale=locale)
    properties.set(PROPERTY_FINISH_NODE, settings.finish_node)
    properties.set(PROPERTY_ERROR_NODE, settings.error_node)
    properties.set(PROPERTY_TEMPLATE, settings.template)


def get_properties_preview(settings, translator):
    """HTML summary of the widget configuration for the page editor"""
    if not settings.is_configured:
        return f"<strong>{escape(translator.translate('label.mailchimp.not.set'))}</strong>"

    preview = ''
    if settings.title:
        preview += f"<strong>{escape(translator.translate('label.title'))}</strong> {escape(settings.title)}<br/>"
    preview += f"<strong>{escape(translator.translate('label.key.api'))}</strong> {escape(settings.api_key)}<br/>"
    preview += f"<strong>{escape(translator.translate('label.id.list'))}</strong> {escape(settings.list_id)}<br/>"
    return preview
