"""Middleware for authentication context."""
from functools import wraps
from flask import session, g, request, current_app
from flask_wtf.csrf import CSRFProtect
from omahub.database import get_session
from omahub.models import AppUser
from omahub.exceptions import AuthenticationError

csrf = CSRFProtect()

UNSAFE_METHODS = ('POST', 'PUT', 'PATCH', 'DELETE')


def _bearer_token():
    """Token from an `Authorization: Bearer ...` header, if any."""
    header = request.headers.get('Authorization', '')
    if header.lower().startswith('bearer '):
        return header[7:].strip() or None
    return None


def resolve_current_user():
    """
    Resolve the acting user for this request.

    Session cookie first; if it yields no user, fall back to a direct
    lookup from the bearer token. Any failure resolves to None.
    """
    db_session = get_session()
    try:
        user_id = session.get('user_id')
        if user_id:
            user = db_session.query(AppUser).filter_by(id=user_id, active=True).first()
            if user:
                return user, 'session'
            # Stale cookie (user removed or deactivated)
            session.pop('user_id', None)

        token = _bearer_token()
        if token:
            from omahub.services.auth_service import load_user_from_token
            user = load_user_from_token(db_session, token)
            if user:
                return user, 'token'
    except Exception as e:
        # Avoid crashing the whole app if context loading fails
        current_app.logger.error(f"Error resolving current user: {e}")
        db_session.rollback()

    return None, None


def load_current_user():
    """
    Load current user into g (Flask's per-request global).

    Called before each request. Sets g.user and g.auth_method.
    """
    g.user, g.auth_method = resolve_current_user()


def protect_cookie_request():
    """
    CSRF-check an unsafe request unless it came in with a bearer token.

    Bearer token requests are not cookie-bound and skip the check.
    """
    if request.method not in UNSAFE_METHODS or g.get('auth_method') == 'token':
        return
    if current_app.config.get('WTF_CSRF_ENABLED', True):
        csrf.protect()


def csrf_checked(f):
    """Decorator: CSRF-check anonymous form-style endpoints (login, signup)."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        protect_cookie_request()
        return f(*args, **kwargs)
    return decorated_function


def require_login(f):
    """
    Decorator: Require a resolved user.

    Raises AuthenticationError (401 JSON) before the view runs, so an
    unauthenticated call never performs any work. The CSRF check only
    follows once a user is known, so a missing login is always a 401.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if g.get('user') is None:
            current_app.logger.info(f"Authentication failed - no valid user ({request.path})")
            raise AuthenticationError()
        protect_cookie_request()
        return f(*args, **kwargs)
    return decorated_function
