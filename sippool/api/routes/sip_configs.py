# sippool/api/routes/sip_configs.py
# -*- coding: utf-8 -*-
"""
Gateway API Routes for the SIP configuration pool.
Every response uses the envelope {success, data?, error?, code?}.
Handles transaction commit/rollback and catches custom service exceptions.
"""
from flask import Blueprint, request, jsonify, current_app, abort
from marshmallow import ValidationError
from sqlalchemy.exc import OperationalError

from sippool.extensions import db
from sippool.database.pool_repository import SipConfigRepository
from sippool.services.assignment_service import AssignmentService
from sippool.services.stats_service import PoolStatsService
from sippool.utils.exceptions import ServiceError, ResourceNotFound, StoreUnavailableError
from sippool.utils.decorators import internal_api_token_required
from sippool.api.schemas.sip_config_schemas import (
    SipConfigSchema, UpdateSipConfigSchema, AssignSipConfigSchema, ReleaseSipConfigSchema,
    SipConfigListQuerySchema, SipConfigListSchema, PoolStatsSchema
)

# Create Blueprint
sip_configs_bp = Blueprint('sip_configs_api', __name__)

# Instantiate schemas
sip_config_schema = SipConfigSchema()
update_sip_config_schema = UpdateSipConfigSchema()
assign_schema = AssignSipConfigSchema()
release_schema = ReleaseSipConfigSchema()
list_query_schema = SipConfigListQuerySchema()
sip_config_list_schema = SipConfigListSchema()
pool_stats_schema = PoolStatsSchema()


# --- Envelope helpers ---

def _ok(data, status_code=200):
    return jsonify({"success": True, "data": data}), status_code


def _fail(status_code, message, code, **extra):
    body = {"success": False, "error": message, "code": code}
    body.update(extra)
    return jsonify(body), status_code


def _validation_failed(err, action):
    current_app.logger.warning(f"{action} validation error: {err.messages}")
    return _fail(400, "Invalid request payload.", "VALIDATION_ERROR", errors=err.messages)


def _service_failed(e, action):
    db.session.rollback()
    if e.status_code >= 500:
        current_app.logger.error(f"{action} service error: {e}", exc_info=True)
    else:
        current_app.logger.warning(f"{action} failed: {e}")
    return jsonify(e.to_dict()), e.status_code


def _store_failed(e, action):
    # Connection loss or statement timeout: a write may or may not have landed
    db.session.rollback()
    current_app.logger.error(f"{action} store error (outcome unknown): {e}", exc_info=True)
    err = StoreUnavailableError()
    return jsonify(err.to_dict()), err.status_code


def _unexpected(e, action):
    db.session.rollback()
    current_app.logger.exception(f"Unexpected error during {action}: {e}")
    return _fail(500, f"Could not complete {action} due to an internal error.", "INTERNAL_ERROR")


def _json_body():
    """
    The request's JSON body, or None when the request carries no body at all.
    A body that is present but is not JSON aborts with 400.
    """
    if not request.get_data():
        return None
    if not request.is_json:
        abort(400, description="Request body must be JSON (Content-Type: application/json).")
    # Malformed JSON raises BadRequest, answered by the 400 handler
    return request.get_json()


def _range_info():
    return {
        'enabled': bool(current_app.config.get('SIP_POOL_RANGE_ENABLED')),
        'start': current_app.config.get('SIP_POOL_RANGE_START'),
        'end': current_app.config.get('SIP_POOL_RANGE_END'),
    }


def _list_response(status):
    try:
        args = list_query_schema.load(request.args)
    except ValidationError as err:
        return _validation_failed(err, "List SIP configs")
    if status is not None:
        args['status'] = status

    try:
        pagination = SipConfigRepository.list_all(**args)
        result_data = {
            'items': pagination.items,
            'page': pagination.page,
            'per_page': pagination.per_page,
            'total': pagination.total,
            'pages': pagination.pages,
            'range_info': _range_info(),
        }
        return _ok(sip_config_list_schema.dump(result_data))
    except OperationalError as e:
        return _store_failed(e, "List SIP configs")
    except Exception as e:
        return _unexpected(e, "listing SIP configurations")


# --- Read endpoints ---

@sip_configs_bp.route('', methods=['GET'])
@internal_api_token_required
def list_sip_configs():
    """Gateway: List all SIP configurations (paginated, ordered by id)."""
    return _list_response(status=None)


@sip_configs_bp.route('/available', methods=['GET'])
@internal_api_token_required
def list_available_sip_configs():
    """
    Gateway: List available SIP configurations.
    Informational only; a listed record is not held for the caller.
    """
    return _list_response(status='available')


@sip_configs_bp.route('/available/next', methods=['GET'])
@internal_api_token_required
def peek_next_available():
    """Gateway: Show the record the next assignment would try first (no hold)."""
    try:
        record = AssignmentService.peek_next_available()
        return _ok(sip_config_schema.dump(record))
    except ServiceError as e:
        return _service_failed(e, "Peek next available")
    except OperationalError as e:
        return _store_failed(e, "Peek next available")
    except Exception as e:
        return _unexpected(e, "peeking the next available SIP configuration")


@sip_configs_bp.route('/<int:config_id>', methods=['GET'])
@internal_api_token_required
def get_sip_config(config_id):
    """Gateway: Get a SIP configuration by id."""
    try:
        record = SipConfigRepository.get_by_id(config_id)
        if record is None:
            raise ResourceNotFound(f"SIP configuration with ID {config_id} not found.")
        return _ok(sip_config_schema.dump(record))
    except ServiceError as e:
        return _service_failed(e, f"Get SIP config {config_id}")
    except OperationalError as e:
        return _store_failed(e, f"Get SIP config {config_id}")
    except Exception as e:
        return _unexpected(e, f"fetching SIP configuration {config_id}")


@sip_configs_bp.route('/user/<int:user_id>', methods=['GET'])
@internal_api_token_required
def get_user_sip_config(user_id):
    """Gateway: Get the SIP configuration held by a user."""
    try:
        record = AssignmentService.get_user_config(user_id)
        return _ok(sip_config_schema.dump(record))
    except ServiceError as e:
        return _service_failed(e, f"Get SIP config for user {user_id}")
    except OperationalError as e:
        return _store_failed(e, f"Get SIP config for user {user_id}")
    except Exception as e:
        return _unexpected(e, f"fetching the SIP configuration of user {user_id}")


@sip_configs_bp.route('/stats', methods=['GET'])
@sip_configs_bp.route('/stats/overview', methods=['GET'])
@internal_api_token_required
def get_pool_stats():
    """Gateway: Pool utilization (total, available, assigned, percentageUsed)."""
    try:
        stats = PoolStatsService.get_stats()
        return _ok(pool_stats_schema.dump(stats))
    except OperationalError as e:
        return _store_failed(e, "Pool stats")
    except Exception as e:
        return _unexpected(e, "computing pool statistics")


# --- Assignment endpoints ---

@sip_configs_bp.route('/assign', methods=['POST'])
@internal_api_token_required
def assign_next_sip_config():
    """Gateway: Hand the next available SIP configuration to a user."""
    json_data = _json_body()
    if not json_data:
        return _fail(400, "No input data provided.", "VALIDATION_ERROR")
    try:
        data = assign_schema.load(json_data)
    except ValidationError as err:
        return _validation_failed(err, "Assign next")

    try:
        record = AssignmentService.assign_next(**data)

        # --- Commit Transaction ---
        db.session.commit()
        current_app.logger.info(f"SIP config {record.id} handed to user {data['user_id']}")
        return _ok(sip_config_schema.dump(record))
    except ServiceError as e:
        return _service_failed(e, f"Assign next for user {data['user_id']}")
    except OperationalError as e:
        return _store_failed(e, f"Assign next for user {data['user_id']}")
    except Exception as e:
        return _unexpected(e, "assigning a SIP configuration")


@sip_configs_bp.route('/<int:config_id>/assign', methods=['PUT'])
@internal_api_token_required
def assign_specific_sip_config(config_id):
    """Gateway: Assign a chosen SIP configuration to a user."""
    json_data = _json_body()
    if not json_data:
        return _fail(400, "No input data provided.", "VALIDATION_ERROR")
    try:
        data = assign_schema.load(json_data)
    except ValidationError as err:
        return _validation_failed(err, f"Assign SIP config {config_id}")

    try:
        record = AssignmentService.assign_specific(config_id=config_id, **data)

        # --- Commit Transaction ---
        db.session.commit()
        current_app.logger.info(f"SIP config {config_id} assigned to user {data['user_id']}")
        return _ok(sip_config_schema.dump(record))
    except ServiceError as e:
        return _service_failed(e, f"Assign SIP config {config_id}")
    except OperationalError as e:
        return _store_failed(e, f"Assign SIP config {config_id}")
    except Exception as e:
        return _unexpected(e, f"assigning SIP configuration {config_id}")


@sip_configs_bp.route('/<int:config_id>/release', methods=['PUT'])
@internal_api_token_required
def release_sip_config(config_id):
    """
    Gateway: Release a SIP configuration back to the pool.
    Body {userId} makes it a self-service release by the owner; only an empty
    request body is an admin release.
    """
    json_data = _json_body()
    if json_data is None and not request.get_data():
        json_data = {}
    try:
        data = release_schema.load(json_data)
    except ValidationError as err:
        return _validation_failed(err, f"Release SIP config {config_id}")

    try:
        record = AssignmentService.release(config_id=config_id, user_id=data['user_id'])

        # --- Commit Transaction ---
        db.session.commit()
        current_app.logger.info(f"SIP config {config_id} released")
        return _ok(sip_config_schema.dump(record))
    except ServiceError as e:
        return _service_failed(e, f"Release SIP config {config_id}")
    except OperationalError as e:
        return _store_failed(e, f"Release SIP config {config_id}")
    except Exception as e:
        return _unexpected(e, f"releasing SIP configuration {config_id}")


@sip_configs_bp.route('/user/<int:user_id>/release', methods=['PUT'])
@internal_api_token_required
def release_user_sip_config(user_id):
    """Gateway: Release whatever the user holds (logout / deactivation). Idempotent."""
    try:
        record = AssignmentService.release_for_user(user_id)

        # --- Commit Transaction ---
        db.session.commit()
        return _ok(sip_config_schema.dump(record) if record is not None else None)
    except ServiceError as e:
        return _service_failed(e, f"Release for user {user_id}")
    except OperationalError as e:
        return _store_failed(e, f"Release for user {user_id}")
    except Exception as e:
        return _unexpected(e, f"releasing the SIP configuration of user {user_id}")


# --- Admin correction ---

@sip_configs_bp.route('/<int:config_id>', methods=['PUT'])
@internal_api_token_required
def update_sip_config(config_id):
    """Gateway: Correct SIP account fields of a free record, or enable/disable it."""
    json_data = _json_body()
    if not json_data:
        return _fail(400, "No input data provided.", "VALIDATION_ERROR")
    try:
        data_to_update = update_sip_config_schema.load(json_data)
    except ValidationError as err:
        return _validation_failed(err, f"Update SIP config {config_id}")

    if not data_to_update:
        return _fail(400, "No valid fields provided for update.", "VALIDATION_ERROR")

    try:
        record = SipConfigRepository.update_details(config_id, **data_to_update)

        # --- Commit Transaction ---
        db.session.commit()
        current_app.logger.info(f"SIP config {config_id} details updated: {sorted(data_to_update)}")
        return _ok(sip_config_schema.dump(record))
    except ServiceError as e:
        return _service_failed(e, f"Update SIP config {config_id}")
    except OperationalError as e:
        return _store_failed(e, f"Update SIP config {config_id}")
    except Exception as e:
        return _unexpected(e, f"updating SIP configuration {config_id}")
