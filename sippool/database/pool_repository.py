# sippool/database/pool_repository.py
# -*- coding: utf-8 -*-
"""
Pool Repository
Query layer over the sip_configs table.

`update_assignment` is the only code path that writes the owner columns. It
issues a single conditional UPDATE (compare-and-swap on assigned_user_id) and
inspects the row count, so two requests racing for the same record are
serialized by the database rather than by application locks.

Repository methods modify the session but DO NOT COMMIT.
"""
import logging

from flask import current_app
from flask_sqlalchemy.pagination import Pagination
from sqlalchemy import update, case, func, and_, or_
from sqlalchemy.exc import IntegrityError

from sippool.database.models.sip_config import SipConfigModel
from sippool.extensions import db
from sippool.utils.exceptions import ResourceNotFound, ConflictError, ServiceError

log = logging.getLogger(__name__)

# Columns that describe the SIP account itself, plus the enabled switch (admin-correctable)
DETAIL_FIELDS = ('extension', 'username', 'password', 'domain', 'server', 'port', 'transport', 'ice_servers',
                 'enabled')

OWNER_CLEARED = {
    'assigned_user_id': None,
    'assigned_username': None,
    'assigned_email': None,
    'assigned_at': None,
}


def _is_free():
    return SipConfigModel.assigned_user_id.is_(None)


def _is_available():
    return and_(_is_free(), SipConfigModel.enabled.is_(True))


def _in_pool_range(query):
    """Restrict a query to the configured extension window, when enabled."""
    if not current_app.config.get('SIP_POOL_RANGE_ENABLED'):
        return query
    start = current_app.config['SIP_POOL_RANGE_START']
    end = current_app.config['SIP_POOL_RANGE_END']
    return query.filter(SipConfigModel.extension.between(start, end))


class SipConfigRepository:

    @staticmethod
    def list_all(page: int = 1, per_page: int = 20, status: str | None = None) -> Pagination:
        """
        Fetches a paginated list of records, ordered by id for stable pages.

        Args:
            page (int): Page number.
            per_page (int): Items per page.
            status (str, optional): 'available', 'assigned' or 'disabled'.

        Returns:
            Pagination: Flask-SQLAlchemy Pagination object.
        """
        query = db.session.query(SipConfigModel).order_by(SipConfigModel.id)
        if status == 'available':
            query = query.filter(_is_available())
        elif status == 'assigned':
            query = query.filter(SipConfigModel.assigned_user_id.is_not(None))
        elif status == 'disabled':
            query = query.filter(_is_free(), SipConfigModel.enabled.is_(False))
        query = _in_pool_range(query).populate_existing()
        return query.paginate(page=page, per_page=per_page, error_out=False, count=True)

    @staticmethod
    def list_available_ids(limit: int) -> list[int]:
        """Ids of available records, lowest first, at most `limit` of them."""
        if limit <= 0:
            return []
        query = db.session.query(SipConfigModel.id).filter(_is_available())
        rows = _in_pool_range(query).order_by(SipConfigModel.id).limit(limit).all()
        return [config_id for (config_id,) in rows]

    @staticmethod
    def get_by_id(config_id: int) -> SipConfigModel | None:
        # populate_existing: never trust an identity-map copy for assignment state
        return db.session.get(SipConfigModel, config_id, populate_existing=True)

    @staticmethod
    def get_by_user(user_id: int) -> SipConfigModel | None:
        """The record currently held by `user_id`, if any."""
        return db.session.query(SipConfigModel)\
            .filter(SipConfigModel.assigned_user_id == user_id)\
            .populate_existing()\
            .one_or_none()

    @staticmethod
    def count_available() -> int:
        query = db.session.query(func.count(SipConfigModel.id)).filter(_is_available())
        return _in_pool_range(query).scalar() or 0

    @staticmethod
    def count_by_state() -> tuple[int, int]:
        """
        Returns (total, available) from a single aggregate statement so both
        numbers describe the same snapshot of the table.

        Disabled lines are out of rotation and are not part of the total.
        """
        query = db.session.query(
            func.count(SipConfigModel.id),
            func.coalesce(func.sum(case((_is_available(), 1), else_=0)), 0),
        ).filter(or_(SipConfigModel.enabled.is_(True), SipConfigModel.assigned_user_id.is_not(None)))
        total, available = _in_pool_range(query).one()
        return int(total or 0), int(available or 0)

    @staticmethod
    def update_assignment(config_id: int, user_id: int | None, expected_user_id: int | None = None,
                          force: bool = False, username: str | None = None,
                          user_email: str | None = None) -> SipConfigModel:
        """
        Atomically sets (or clears) the owner of a record (DOES NOT COMMIT).

        The UPDATE only matches when the current owner equals `expected_user_id`
        (None meaning "currently available"). With `force=True` the owner
        precondition is dropped, which is only used for admin releases.

        Args:
            config_id (int): Record to update.
            user_id (int | None): New owner, or None to release.
            expected_user_id (int | None): Required current owner.
            force (bool): Skip the owner precondition.
            username (str, optional): Owner's username, stored with the assignment.
            user_email (str, optional): Owner's email, stored with the assignment.

        Returns:
            SipConfigModel: The record as it is after the update.

        Raises:
            ResourceNotFound: If no record has this id.
            ConflictError: If the precondition did not hold, or the user already
                           holds another record (unique owner constraint).
        """
        if user_id is None:
            values = dict(OWNER_CLEARED)
        else:
            values = {
                'assigned_user_id': user_id,
                'assigned_username': username,
                'assigned_email': user_email,
                'assigned_at': func.now(),
            }

        stmt = update(SipConfigModel).where(SipConfigModel.id == config_id)
        if not force:
            if expected_user_id is None:
                stmt = stmt.where(_is_available())
            else:
                stmt = stmt.where(SipConfigModel.assigned_user_id == expected_user_id)
        stmt = stmt.values(**values).execution_options(synchronize_session=False)

        try:
            result = db.session.execute(stmt)
        except IntegrityError as e:
            db.session.rollback()
            log.warning(f"Owner constraint rejected assigning SIP config {config_id} to user {user_id}: {e.orig}")
            raise ConflictError(f"User {user_id} already holds a SIP configuration.") from e

        if result.rowcount == 1:
            log.debug(f"SIP config {config_id} owner {expected_user_id!r} -> {user_id!r} (force={force}).")
            return SipConfigRepository.get_by_id(config_id)

        if SipConfigRepository.get_by_id(config_id) is None:
            raise ResourceNotFound(f"SIP configuration with ID {config_id} not found.")
        raise ConflictError(f"SIP configuration {config_id} was assigned, released or disabled concurrently.")

    @staticmethod
    def add_record(username: str, password: str, domain: str, server: str, port: int = 5060,
                   transport: str = 'WSS', extension: int | None = None,
                   ice_servers: dict | None = None, enabled: bool = True) -> SipConfigModel:
        """
        Adds a provisioned SIP account to the pool (DOES NOT COMMIT).
        New records are free; they join the rotation when enabled.

        Raises:
            ConflictError: If the extension is already provisioned.
            ServiceError: For other integrity errors during flush.
        """
        record = SipConfigModel(
            username=username,
            password=password,
            domain=domain,
            server=server,
            port=port,
            transport=transport.upper(),
            extension=extension,
            ice_servers=ice_servers if ice_servers is not None else {"urls": []},
            enabled=enabled,
        )
        try:
            db.session.add(record)
            db.session.flush()
            log.info(f"SIP config '{username}' (extension {extension}) added to session.")
            return record
        except IntegrityError as e:
            db.session.rollback()
            log.error(f"Database integrity error adding SIP config '{username}': {e.orig}")
            if extension is not None and 'extension' in str(e.orig).lower():
                raise ConflictError(f"Extension {extension} is already provisioned.") from e
            raise ServiceError(f"Database integrity error adding SIP config: {e.orig}") from e

    @staticmethod
    def update_details(config_id: int, **kwargs) -> SipConfigModel:
        """
        Corrects SIP account fields, or enables/disables a record that no user
        holds (DOES NOT COMMIT).
        Held records cannot be edited, so a user never sees credentials change
        underneath an active assignment.

        Raises:
            ResourceNotFound: If no record has this id.
            ConflictError: If the record is currently assigned, or the new
                           extension collides with another record.
        """
        values = {key: value for key, value in kwargs.items() if key in DETAIL_FIELDS}
        if 'transport' in values:
            values['transport'] = values['transport'].upper()
        if not values:
            record = SipConfigRepository.get_by_id(config_id)
            if record is None:
                raise ResourceNotFound(f"SIP configuration with ID {config_id} not found.")
            return record

        stmt = update(SipConfigModel)\
            .where(SipConfigModel.id == config_id)\
            .where(_is_free())\
            .values(**values)\
            .execution_options(synchronize_session=False)
        try:
            result = db.session.execute(stmt)
        except IntegrityError as e:
            db.session.rollback()
            log.warning(f"Integrity error updating SIP config {config_id}: {e.orig}")
            raise ConflictError(f"Update of SIP configuration {config_id} violates a uniqueness rule.") from e

        record = SipConfigRepository.get_by_id(config_id)
        if record is None:
            raise ResourceNotFound(f"SIP configuration with ID {config_id} not found.")
        if result.rowcount != 1:
            raise ConflictError(f"SIP configuration {config_id} is assigned to a user and cannot be edited.")
        log.info(f"SIP config {config_id} details updated in session: {sorted(values)}")
        return record
