"""
Authentication service for user management.

Handles account creation, credential checks and the bearer tokens used
when a request carries no session cookie.
"""
import re
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional
from flask import current_app
import jwt
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from omahub.models import AppUser, Profile
from omahub.exceptions import BusinessLogicError, ConflictError

logger = logging.getLogger(__name__)

TOKEN_AUDIENCE = 'omahub-api'
EMAIL_PATTERN = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'


def is_valid_email(email: str) -> bool:
    """Validate email format."""
    return bool(email) and re.match(EMAIL_PATTERN, email) is not None


def create_user(session, email: str, password: str, full_name: Optional[str] = None,
                phone: Optional[str] = None, address=None) -> AppUser:
    """
    Create a user and the profile that orders copy contact details from.

    Raises:
        BusinessLogicError: invalid email or password too short
        ConflictError: email already registered
    """
    email = (email or '').strip().lower()
    if not is_valid_email(email):
        raise BusinessLogicError('Invalid email address')
    if not password or len(password) < 6:
        raise BusinessLogicError('Password must be at least 6 characters')

    existing = session.query(AppUser).filter(func.lower(AppUser.email) == email).first()
    if existing:
        raise ConflictError('An account with this email already exists')

    try:
        user = AppUser(email=email, active=True)
        user.set_password(password)
        session.add(user)
        session.flush()

        session.add(Profile(id=user.id, full_name=full_name, phone=phone, address=address))
        session.commit()
    except IntegrityError as e:
        session.rollback()
        logger.error(f"Error creating user {email} (IntegrityError): {e}")
        raise ConflictError('An account with this email already exists')

    logger.info(f"Created user {user.id} ({email})")
    return user


def authenticate(session, email: str, password: str) -> Optional[AppUser]:
    """Return the active user matching the credentials, or None."""
    email = (email or '').strip().lower()
    if not email or not password:
        return None

    user = session.query(AppUser).filter(
        func.lower(AppUser.email) == email,
        AppUser.active == True  # noqa: E712
    ).first()

    if user and user.check_password(password):
        return user

    logger.warning(f"Failed login attempt for {email}")
    return None


def issue_api_token(user: AppUser) -> str:
    """Signed (HS256 JWT), time-limited bearer token carrying the user id."""
    max_age = current_app.config.get('API_TOKEN_MAX_AGE', 7 * 86400)
    payload = {
        'user_id': user.id,
        'aud': TOKEN_AUDIENCE,
        'exp': datetime.now(timezone.utc) + timedelta(seconds=max_age)
    }
    return jwt.encode(payload, current_app.config['SECRET_KEY'], algorithm='HS256')


def load_user_from_token(session, token: str) -> Optional[AppUser]:
    """Resolve a bearer token to an active user, or None if invalid/expired."""
    if not token:
        return None

    try:
        payload = jwt.decode(
            token,
            current_app.config['SECRET_KEY'],
            algorithms=['HS256'],
            audience=TOKEN_AUDIENCE
        )
    except jwt.ExpiredSignatureError:
        logger.info("Expired API token presented")
        return None
    except jwt.InvalidTokenError:
        logger.warning("Invalid API token presented")
        return None

    user_id = payload.get('user_id')
    if not user_id:
        return None

    return session.query(AppUser).filter_by(id=user_id, active=True).first()
