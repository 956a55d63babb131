"""Middleware for authentication and per-request caller context."""
from functools import wraps

from flask import current_app, g, request

from storefront.context import RequestContext
from storefront.exceptions import UnauthorizedError
from storefront.services import auth_service


def _bearer_token():
    header = request.headers.get('Authorization', '')
    scheme, _, token = header.partition(' ')
    if scheme.lower() != 'bearer' or not token.strip():
        return None
    return token.strip()


def load_request_context():
    """
    Build g.ctx from the bearer token and the session-id header.

    Called before each request. A bad token does not fail the request here:
    optional-auth routes treat the caller as anonymous, and require_login
    turns the recorded error into a 401.
    """
    session_id = request.headers.get(current_app.config['SESSION_ID_HEADER']) or None
    g.auth_error = None

    token = _bearer_token()
    if not token:
        g.ctx = RequestContext.anonymous(session_id)
        return

    try:
        user_id, role = auth_service.decode_token(token)
    except UnauthorizedError as e:
        current_app.logger.debug(f"Ignoring invalid bearer token: {e.message}")
        g.auth_error = e.message
        g.ctx = RequestContext.anonymous(session_id)
        return

    g.ctx = RequestContext(user_id=user_id, role=role, session_id=session_id)


def require_login(f):
    """
    Decorator: Require an authenticated caller.

    Raises UnauthorizedError (401) when no valid bearer token was sent.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        ctx = g.get('ctx')
        if ctx is None or not ctx.is_authenticated:
            raise UnauthorizedError(g.get('auth_error') or 'Authentication required')
        return f(*args, **kwargs)

    return decorated_function
