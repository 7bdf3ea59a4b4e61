# sippool/database/models/__init__.py
# -*- coding: utf-8 -*-
"""
Models Package Initialization.

Exposes model classes for easier importing throughout the application,
e.g., `from sippool.database.models import SipConfigModel`.
"""

from .sip_config import SipConfigModel, TRANSPORTS

__all__ = [
    'SipConfigModel',
    'TRANSPORTS',
]
