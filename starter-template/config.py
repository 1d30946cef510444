import os
from dotenv import load_dotenv

load_dotenv()

IS_PRODUCTION = (
    os.getenv('ENVIRONMENT') == 'production' or
    os.getenv('FLASK_ENV') == 'production' or
    os.getenv('PRODUCTION') == '1'
)

DB_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'databases')


class Config:
    SECRET_KEY = os.getenv('FLASK_SECRET_KEY', 'dev-secret-key-change-in-production')

    # Database paths
    DB_DIR = DB_DIR
    WIDGET_DB = os.path.join(DB_DIR, 'widgets.db')
    ANALYTICS_DB = os.path.join(DB_DIR, 'analytics_log.db')

    # Admin login for the properties editor
    ADMIN_PASSWORD = os.getenv('ADMIN_PASSWORD', '')
    WIDGET_LOGIN_ENDPOINT = 'admin.login'

    # Pages the widget redirects to after signing up
    MAILCHIMP_NODE_URLS = {
        'thanks': {'en': '/thanks', 'nl': '/bedankt', 'default': '/thanks'},
    }
    MAILCHIMP_DEFAULT_LOCALE = os.getenv('MAILCHIMP_DEFAULT_LOCALE', 'en')
