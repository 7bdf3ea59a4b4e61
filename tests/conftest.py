# tests/conftest.py
# -*- coding: utf-8 -*-
"""
Pytest fixtures for integration tests.

Sets up the Flask application in testing mode (in-memory SQLite unless
TEST_DATABASE_URI is set), creates fresh tables for every test, and provides
fixtures for making gateway API requests and seeding the SIP pool.
"""

import logging

import pytest

from sippool import create_app
from sippool.extensions import db as _db
from sippool.database import models  # noqa Registers models with SQLAlchemy metadata
from sippool.database.pool_repository import SipConfigRepository

log = logging.getLogger(__name__)


# ---- Application Fixtures ----

@pytest.fixture(scope='session')
def app():
    """
    Session-wide test Flask application instance configured for 'testing'.
    Establishes an application context for the session.
    """
    log.info("Setting up session-scoped Flask app for testing...")
    _app = create_app(config_name='testing')

    ctx = _app.app_context()
    ctx.push()

    yield _app

    ctx.pop()


@pytest.fixture(scope='function')
def client(app, db):
    """Function-scoped test client for the Flask application."""
    return app.test_client()


@pytest.fixture(scope='function')
def auth_headers(app):
    """Headers carrying the internal gateway token."""
    return {'X-Internal-API-Token': app.config['INTERNAL_API_TOKEN']}


# ---- Database Fixtures ----

@pytest.fixture(scope='function')
def db(app):
    """
    Fresh tables for every test.
    Tests and API calls commit freely; everything is dropped afterwards.
    """
    _db.create_all()

    yield _db

    _db.session.remove()
    _db.drop_all()


@pytest.fixture(scope='function')
def session(db):
    """The scoped database session, bound to the test's fresh tables."""
    yield db.session


# ---- Pool Fixtures ----

def make_sip_config(index, extension=None, **overrides):
    """Build the keyword arguments for one provisioned SIP account."""
    data = {
        'username': f"sipuser{index}",
        'password': f"secret-{index}",
        'domain': "sip.example.org",
        'server': "wss://sip.example.org:8089/ws",
        'port': 8089,
        'transport': 'WSS',
        'extension': extension,
        'ice_servers': {"urls": ["stun:stun.example.org:3478"]},
    }
    data.update(overrides)
    return data


@pytest.fixture(scope='function')
def seed_pool(session):
    """
    Factory fixture: seed_pool(n) provisions n available records (ids 1..n on a
    fresh table), commits, and returns their ids in ascending order.
    """
    def _seed(count, first_extension=None):
        ids = []
        for i in range(count):
            extension = first_extension + i if first_extension is not None else None
            record = SipConfigRepository.add_record(**make_sip_config(i + 1, extension=extension))
            ids.append(record.id)
        session.commit()
        log.debug(f"Seeded SIP pool with ids {ids}")
        return ids
    return _seed
