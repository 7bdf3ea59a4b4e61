# sippool/utils/decorators.py
# -*- coding: utf-8 -*-
"""Custom helper decorators for Flask routes."""

import hmac
from functools import wraps
from flask import current_app, request, abort


# --- Gateway API Security ---

def internal_api_token_required(f):
    """
    Decorator to verify the shared secret sent by the backend on every gateway call.
    Checks the 'X-Internal-API-Token' header against the app's configured token.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        expected_token = current_app.config.get('INTERNAL_API_TOKEN')
        provided_token = request.headers.get('X-Internal-API-Token')

        if not expected_token:
            current_app.logger.critical(f"Internal API token not configured for endpoint {request.endpoint}. Denying access.")
            abort(500, description="Internal server configuration error: API token missing.")

        if not provided_token or not hmac.compare_digest(provided_token, expected_token):
            current_app.logger.warning(f"Unauthorized gateway API access attempt to {request.endpoint}: Invalid or missing token.")
            abort(401, description="Invalid or missing internal API token.")

        return f(*args, **kwargs)
    return decorated_function
