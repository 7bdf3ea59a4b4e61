# sippool/services/assignment_service.py
# -*- coding: utf-8 -*-
"""
Assignment Service
Turns "a user needs a SIP line" into a race-free credential handout and
returns lines to the pool on logout/deactivation.

Concurrency model: optimistic. Every decision re-reads the table, then
attempts a conditional update through SipConfigRepository.update_assignment.
A lost race surfaces as ConflictError and assign_next moves on to the next
candidate, up to a fixed bound. There is no in-process lock or cache.

Service methods modify the session but DO NOT COMMIT.
"""
import logging

from flask import current_app

from sippool.database.models.sip_config import SipConfigModel
from sippool.database.pool_repository import SipConfigRepository
from sippool.utils.exceptions import (
    ResourceNotFound, ConflictError, PoolExhaustedError, AuthorizationError
)

log = logging.getLogger(__name__)

DEFAULT_MAX_ASSIGN_RETRIES = 10


class AssignmentService:

    @staticmethod
    def assign_next(user_id: int, username: str | None = None,
                    user_email: str | None = None) -> SipConfigModel:
        """
        Assigns the lowest-id available record to a user.

        Re-assigning a user who already holds a record returns that record.

        Args:
            user_id (int): Requesting user (trusted, supplied by the backend).
            username (str, optional): Stored with the assignment.
            user_email (str, optional): Stored with the assignment.

        Returns:
            SipConfigModel: The record now held by the user, credentials included.

        Raises:
            PoolExhaustedError: If no candidate could be claimed within the retry bound.
        """
        held = SipConfigRepository.get_by_user(user_id)
        if held is not None:
            log.info(f"User {user_id} already holds SIP config {held.id}; returning it.")
            return held

        available = SipConfigRepository.count_available()
        if available == 0:
            log.warning(f"SIP pool exhausted: no available configuration for user {user_id}.")
            raise PoolExhaustedError()

        max_retries = current_app.config.get('SIP_POOL_MAX_ASSIGN_RETRIES', DEFAULT_MAX_ASSIGN_RETRIES)
        attempts = min(max_retries, available)
        candidates = SipConfigRepository.list_available_ids(limit=attempts)

        for attempt, config_id in enumerate(candidates, start=1):
            try:
                record = SipConfigRepository.update_assignment(
                    config_id, user_id, expected_user_id=None,
                    username=username, user_email=user_email,
                )
                log.info(f"Assigned SIP config {config_id} to user {user_id} (attempt {attempt}/{attempts}).")
                return record
            except ConflictError as e:
                log.info(f"Lost race for SIP config {config_id} (user {user_id}, attempt {attempt}/{attempts}): {e}")
                # A concurrent request for the same user may have won elsewhere
                held = SipConfigRepository.get_by_user(user_id)
                if held is not None:
                    log.info(f"User {user_id} acquired SIP config {held.id} concurrently; returning it.")
                    return held

        log.warning(f"SIP pool exhausted for user {user_id} after {len(candidates)} attempt(s).")
        raise PoolExhaustedError()

    @staticmethod
    def assign_specific(config_id: int, user_id: int, username: str | None = None,
                        user_email: str | None = None) -> SipConfigModel:
        """
        Admin-directed assignment of a chosen record.

        Raises:
            ResourceNotFound: If the record does not exist.
            ConflictError: If the record is held by another user, is disabled,
                           or the user already holds a different record.
        """
        record = SipConfigRepository.get_by_id(config_id)
        if record is None:
            raise ResourceNotFound(f"SIP configuration with ID {config_id} not found.")

        if record.assigned_user_id == user_id:
            log.info(f"SIP config {config_id} already assigned to user {user_id}; nothing to do.")
            return record
        if record.assigned_user_id is not None:
            raise ConflictError(f"SIP configuration {config_id} is already assigned to another user.")
        if not record.enabled:
            raise ConflictError(f"SIP configuration {config_id} is disabled and cannot be assigned.")

        held = SipConfigRepository.get_by_user(user_id)
        if held is not None:
            raise ConflictError(
                f"User {user_id} already holds SIP configuration {held.id}; release it before assigning another."
            )

        try:
            record = SipConfigRepository.update_assignment(
                config_id, user_id, expected_user_id=None,
                username=username, user_email=user_email,
            )
        except ConflictError:
            current = SipConfigRepository.get_by_id(config_id)
            if current is not None and current.assigned_user_id == user_id:
                return current
            raise
        log.info(f"Assigned SIP config {config_id} to user {user_id} by admin request.")
        return record

    @staticmethod
    def release(config_id: int, user_id: int | None = None) -> SipConfigModel:
        """
        Returns a record to the pool.

        Without `user_id` this is an admin release: forced regardless of owner,
        and a no-op when the record is already available. With `user_id` it is
        a self-service release and the record must be held by that user.

        Raises:
            ResourceNotFound: If the record does not exist.
            AuthorizationError: Self-service release of another user's record.
            ConflictError: Self-service release of a record that is not held,
                           or that changed hands concurrently.
        """
        record = SipConfigRepository.get_by_id(config_id)
        if record is None:
            raise ResourceNotFound(f"SIP configuration with ID {config_id} not found.")

        if user_id is None:
            if not record.is_assigned:
                log.info(f"SIP config {config_id} is not assigned; release is a no-op.")
                return record
            previous_owner = record.assigned_user_id
            record = SipConfigRepository.update_assignment(config_id, None, force=True)
            log.info(f"Admin released SIP config {config_id} (was user {previous_owner}).")
            return record

        if not record.is_assigned:
            raise ConflictError(f"SIP configuration {config_id} is not assigned to any user.")
        if record.assigned_user_id != user_id:
            raise AuthorizationError(f"SIP configuration {config_id} is not assigned to user {user_id}.")

        record = SipConfigRepository.update_assignment(config_id, None, expected_user_id=user_id)
        log.info(f"User {user_id} released SIP config {config_id}.")
        return record

    @staticmethod
    def release_for_user(user_id: int) -> SipConfigModel | None:
        """
        Releases whatever record the user holds (logout / deactivation).
        Idempotent: returns None when the user holds nothing.
        """
        record = SipConfigRepository.get_by_user(user_id)
        if record is None:
            log.info(f"User {user_id} holds no SIP configuration; nothing to release.")
            return None

        try:
            released = SipConfigRepository.update_assignment(record.id, None, expected_user_id=user_id)
        except ConflictError:
            # Released (or reassigned) concurrently; the user holds nothing either way
            log.info(f"SIP config {record.id} left user {user_id} concurrently; treating release as done.")
            return None
        log.info(f"Released SIP config {released.id} held by user {user_id}.")
        return released

    @staticmethod
    def get_user_config(user_id: int) -> SipConfigModel:
        record = SipConfigRepository.get_by_user(user_id)
        if record is None:
            raise ResourceNotFound(f"No SIP configuration is assigned to user {user_id}.")
        return record

    @staticmethod
    def peek_next_available() -> SipConfigModel:
        """
        The record assign_next would try first. This is NOT a reservation:
        callers that need a line must call assign_next.
        """
        candidates = SipConfigRepository.list_available_ids(limit=1)
        record = SipConfigRepository.get_by_id(candidates[0]) if candidates else None
        if record is None:
            raise PoolExhaustedError()
        return record
