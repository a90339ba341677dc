"""
WSGI entry point for the immigration case-management API.

    gunicorn wsgi:app
    flask --app wsgi seed-case-statuses --tenant default
    flask --app wsgi db migrate -m "..."   # Flask-Migrate
"""

from immigration import create_app

app = create_app()
