# sippool/extensions.py
# -*- coding: utf-8 -*-
"""
Flask extensions instances.
Central place to initialize extensions to avoid circular imports.
"""

import os

from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

# Database ORM: backs the SIP credential store
db = SQLAlchemy()

# Database Migrations: Alembic scripts live in the project-level migrations/ folder
migrations_dir = os.path.join(os.path.dirname(__file__), '..', 'migrations')

migrate = Migrate(directory=migrations_dir)
