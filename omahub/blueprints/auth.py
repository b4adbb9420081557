"""
Authentication blueprint.
Handles signup, login (session cookie plus bearer token) and logout.
"""

from flask import Blueprint, request, session, g, jsonify
from flask_wtf.csrf import generate_csrf
import logging
from omahub.database import get_session
from omahub.middleware import csrf_checked
from omahub.services import auth_service
from omahub.exceptions import AuthenticationError, BusinessLogicError

logger = logging.getLogger(__name__)


auth_bp = Blueprint('auth', __name__, url_prefix='/api/auth')


def _serialize_user(user):
    profile = user.profile
    return {
        'id': user.id,
        'email': user.email,
        'full_name': profile.full_name if profile else None,
    }


@auth_bp.route('/csrf-token', methods=['GET'])
def csrf_token():
    """CSRF token for cookie-authenticated clients."""
    return jsonify({'csrf_token': generate_csrf()})


@auth_bp.route('/signup', methods=['POST'])
@csrf_checked
def signup():
    data = request.get_json(silent=True) or {}
    db_session = get_session()

    user = auth_service.create_user(
        db_session,
        email=data.get('email'),
        password=data.get('password'),
        full_name=(data.get('full_name') or '').strip() or None,
        phone=(data.get('phone') or '').strip() or None,
        address=data.get('address')
    )

    session.clear()
    session['user_id'] = user.id
    logger.info(f"User {user.id} signed up")

    return jsonify({
        'user': _serialize_user(user),
        'token': auth_service.issue_api_token(user),
    }), 201


@auth_bp.route('/login', methods=['POST'])
@csrf_checked
def login():
    data = request.get_json(silent=True) or {}
    email = (data.get('email') or '').strip()
    password = data.get('password') or ''

    if not email or not password:
        raise BusinessLogicError('Email and password are required')

    user = auth_service.authenticate(get_session(), email, password)
    if not user:
        raise AuthenticationError('Invalid email or password')

    session.clear()
    session['user_id'] = user.id
    logger.info(f"User {user.id} logged in")

    return jsonify({
        'user': _serialize_user(user),
        'token': auth_service.issue_api_token(user),
    })


@auth_bp.route('/logout', methods=['POST'])
@csrf_checked
def logout():
    user = g.get('user')
    session.clear()
    if user:
        logger.info(f"User {user.id} logged out")
    return jsonify({'success': True})
