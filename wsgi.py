"""
WSGI / Flask-Migrate entry point.

Usage:
    flask --app wsgi db upgrade
    gunicorn wsgi:app
"""

import atexit

from onboarding import create_app, shutdown_app

app = create_app()
atexit.register(shutdown_app, app)
