"""
Node URL resolution for finish/error redirects.

app.config['MAILCHIMP_NODE_URLS'] maps a node id to either a URL or a
{locale: URL} dict. Host apps with a real page tree can pass their own
resolver to the coordinator instead.
"""

from urllib.parse import urlsplit, urlunsplit

from ...core.config import get_config_value


def strip_query(url):
    """Drop query string and fragment from a URL"""
    if not url:
        return url
    parts = urlsplit(url)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, '', ''))


def resolve_node_url(node_id, locale=None, node_urls=None):
    """URL of a node for a locale, or None when the node is unknown"""
    if not node_id:
        return None

    if node_urls is None:
        node_urls = get_config_value('MAILCHIMP_NODE_URLS') or {}

    target = node_urls.get(str(node_id))
    if isinstance(target, dict):
        target = target.get(locale) or target.get('default')
    return target or None
