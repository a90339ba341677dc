"""
Immigration Case Management API
Shared SQLAlchemy instance.

Usage:
    from immigration.models import db
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
