"""
extensions.py — Flask extension singletons.

`db` is created unbound and attached to an app in create_app() via
db.init_app(app). Models, services and tests import it from here:

    from grabit.app.extensions import db
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
