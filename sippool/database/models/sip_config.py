# sippool/database/models/sip_config.py
# -*- coding: utf-8 -*-
"""SIP credential record model (one row per line in the pool)."""

from sqlalchemy.sql import func, true
from sippool.extensions import db

TRANSPORTS = ('UDP', 'TCP', 'WSS')


def default_ice_servers():
    return {"urls": []}


class SipConfigModel(db.Model):
    """
    A provisioned SIP account that can be handed out to one user at a time.
    A null assigned_user_id means the record is free; it is handed out only
    while it is also enabled.
    """
    __tablename__ = 'sip_configs'

    id = db.Column(db.Integer, primary_key=True)
    # Numeric extension, used to carve out test ranges of the pool
    extension = db.Column(db.Integer, unique=True, nullable=True, index=True)
    username = db.Column(db.String(100), nullable=False)
    password = db.Column(db.String(255), nullable=False)
    domain = db.Column(db.String(255), nullable=False)
    server = db.Column(db.String(255), nullable=False)
    port = db.Column(db.Integer, nullable=False, default=5060)
    transport = db.Column(db.String(5), nullable=False, default='WSS')
    ice_servers = db.Column(db.JSON, nullable=False, default=default_ice_servers)

    # Administrative switch: disabled lines stay provisioned but are never handed out
    enabled = db.Column(db.Boolean, nullable=False, default=True, server_default=true())

    # Owner. UNIQUE: a user holds at most one record (NULLs are not compared)
    assigned_user_id = db.Column(db.Integer, unique=True, nullable=True, index=True)
    assigned_username = db.Column(db.String(100), nullable=True)
    assigned_email = db.Column(db.String(255), nullable=True)
    assigned_at = db.Column(db.TIMESTAMP(timezone=True), nullable=True)

    created_at = db.Column(db.TIMESTAMP(timezone=True), nullable=False, server_default=func.now())
    updated_at = db.Column(db.TIMESTAMP(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        db.CheckConstraint("transport IN ('UDP', 'TCP', 'WSS')", name='ck_sip_configs_transport'),
        db.CheckConstraint("port > 0 AND port < 65536", name='ck_sip_configs_port'),
    )

    @property
    def is_assigned(self):
        return self.assigned_user_id is not None

    @property
    def is_available(self):
        """Free and enabled, i.e. eligible for the next assignment."""
        return not self.is_assigned and bool(self.enabled)

    @property
    def status(self):
        """'assigned', 'disabled' or 'available', derived from the owner and enabled columns."""
        if self.is_assigned:
            return 'assigned'
        return 'available' if self.enabled else 'disabled'

    def __repr__(self):
        """Represent instance as a unique string."""
        return f"<SipConfig(id={self.id}, username='{self.username}', assigned_user_id={self.assigned_user_id})>"
