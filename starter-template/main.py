"""
Mailchimp Widget Demo Site
==========================

Flask app hosting one newsletter widget.

Run with:
    python main.py

Visit:
    http://localhost:5000                               - Page with the widget
    http://localhost:5000/admin/login                   - Admin login
    http://localhost:5000/admin/widgets/home/properties - Widget properties
"""

import os
from flask import Flask, Blueprint, request, session, redirect, url_for, render_template_string, jsonify

# ===== App Setup =====

app = Flask(__name__)

# Load config
from config import Config, IS_PRODUCTION
app.config['SECRET_KEY'] = Config.SECRET_KEY
app.config['DB_DIR'] = Config.DB_DIR
app.config['WIDGET_DB'] = Config.WIDGET_DB
app.config['ANALYTICS_DB'] = Config.ANALYTICS_DB
app.config['WIDGET_LOGIN_ENDPOINT'] = Config.WIDGET_LOGIN_ENDPOINT

# Session security
app.config['SESSION_COOKIE_SECURE'] = IS_PRODUCTION
app.config['SESSION_COOKIE_HTTPONLY'] = True
app.config['SESSION_COOKIE_SAMESITE'] = 'Lax'

# Ensure database directory exists
os.makedirs(Config.DB_DIR, exist_ok=True)

# ===== Mailchimp Widget =====

from mailchimp_widget import MailchimpWidget
widget = MailchimpWidget(app, {
    'mailchimp_node_urls': Config.MAILCHIMP_NODE_URLS,
})

# ===== Admin Login =====

admin_bp = Blueprint('admin', __name__, url_prefix='/admin')

LOGIN_PAGE = """
<form method="post">
    {% if error %}<p>{{ error }}</p>{% endif %}
    <input type="password" name="password" placeholder="Password">
    <button type="submit">Log in</button>
</form>
"""


@admin_bp.route('/login', methods=['GET', 'POST'])
def login():
    """Single-password admin login for the demo"""
    error = None
    if request.method == 'POST':
        if Config.ADMIN_PASSWORD and request.form.get('password') == Config.ADMIN_PASSWORD:
            session['admin_id'] = 1
            return redirect(request.args.get('next') or url_for('home'))
        error = 'Invalid password'
    return render_template_string(LOGIN_PAGE, error=error)


@admin_bp.route('/logout')
def logout():
    session.pop('admin_id', None)
    return redirect(url_for('home'))


app.register_blueprint(admin_bp)


# ===== Routes =====

PAGE = """
<!doctype html>
<title>{{ title }}</title>
<h1>{{ title }}</h1>
{{ body|safe }}
"""


@app.route('/health')
def health():
    return jsonify({'status': 'ok'})


@app.route('/')
def home():
    """Home page with the newsletter widget"""
    return render_template_string(
        PAGE, title='Newsletter',
        body='<iframe src="/widgets/mailchimp/home" width="400" height="320" frameborder="0"></iframe>')


@app.route('/thanks')
@app.route('/bedankt')
def thanks():
    return render_template_string(PAGE, title='Thanks!', body='<p>Check your inbox to confirm.</p>')


# ===== Run =====

if __name__ == '__main__':
    print("[DEMO] Starting on port 5000...")
    app.run(debug=not IS_PRODUCTION, port=5000, host='0.0.0.0')
