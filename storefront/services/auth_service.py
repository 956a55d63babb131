"""
Authentication service for user management.

Handles local registration, password login and bearer token handling.
"""
import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Tuple

import jwt
from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.database import unit_of_work
from storefront.exceptions import InvalidArgumentError, UnauthorizedError
from storefront.models import Role, User
from storefront.utils.formatters import iso

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')
USERNAME_MIN, USERNAME_MAX = 3, 30
PASSWORD_MIN = 6


def _validate_registration(email: Any, username: Any, password: Any) -> Tuple[str, str, str]:
    if not isinstance(email, str) or not EMAIL_RE.match(email.strip()):
        raise InvalidArgumentError('A valid email is required')
    if not isinstance(username, str) or not USERNAME_MIN <= len(username.strip()) <= USERNAME_MAX:
        raise InvalidArgumentError(
            f'Username must be between {USERNAME_MIN} and {USERNAME_MAX} characters'
        )
    if not isinstance(password, str) or len(password) < PASSWORD_MIN:
        raise InvalidArgumentError(f'Password must be at least {PASSWORD_MIN} characters long')
    return email.strip().lower(), username.strip(), password


def register(
    session: Session,
    email: Any,
    username: Any,
    password: Any,
    first_name: Optional[str] = None,
    last_name: Optional[str] = None
) -> Dict[str, Any]:
    """
    Create a USER account and return a token for it.

    Raises:
        InvalidArgumentError: invalid fields, or email/username already taken
    """
    email, username, password = _validate_registration(email, username, password)

    if session.query(User).filter(func.lower(User.email) == email).first():
        raise InvalidArgumentError('User with this email already exists')
    if session.query(User).filter(User.username == username).first():
        raise InvalidArgumentError('User with this username already exists')

    try:
        with unit_of_work(session):
            user = User(
                email=email,
                username=username,
                first_name=first_name,
                last_name=last_name,
                role=Role.USER,
                active=True,
            )
            user.set_password(password)
            session.add(user)
    except IntegrityError:
        # Lost a race against a concurrent registration
        logger.warning(f"Duplicate registration for {email} / {username}")
        raise InvalidArgumentError('User with this email or username already exists')

    logger.info(f"Registered user {user.id} ({email})")
    return {'accessToken': issue_token(user), 'user': serialize_user(user)}


def login(session: Session, email: Any, password: Any) -> Dict[str, Any]:
    """Password login; every failure looks the same to the caller."""
    if not isinstance(email, str) or not isinstance(password, str) or not email or not password:
        raise UnauthorizedError('Invalid credentials')

    user = session.query(User).filter(func.lower(User.email) == email.strip().lower()).first()
    if not user or not user.active or not user.check_password(password):
        logger.warning(f"Failed login for {email}")
        raise UnauthorizedError('Invalid credentials')

    logger.info(f"User {user.id} logged in")
    return {'accessToken': issue_token(user), 'user': serialize_user(user)}


def issue_token(user: User) -> str:
    """HS256 bearer token carrying the subject id and role."""
    now = datetime.now(timezone.utc)
    payload = {
        'sub': str(user.id),
        'email': user.email,
        'role': user.role.value,
        'iat': now,
        'exp': now + timedelta(minutes=current_app.config['JWT_EXPIRES_MINUTES']),
    }
    return jwt.encode(
        payload,
        current_app.config['JWT_SECRET_KEY'],
        algorithm=current_app.config['JWT_ALGORITHM']
    )


def decode_token(token: str) -> Tuple[int, Role]:
    """
    Resolve a bearer token to (user id, role).

    Raises:
        UnauthorizedError: expired, tampered or malformed token
    """
    try:
        payload = jwt.decode(
            token,
            current_app.config['JWT_SECRET_KEY'],
            algorithms=[current_app.config['JWT_ALGORITHM']]
        )
    except jwt.ExpiredSignatureError:
        raise UnauthorizedError('Token has expired')
    except jwt.InvalidTokenError:
        raise UnauthorizedError('Invalid token')

    try:
        return int(payload['sub']), Role(payload['role'])
    except (KeyError, TypeError, ValueError):
        raise UnauthorizedError('Invalid token')


def get_profile(session: Session, user_id: int) -> Dict[str, Any]:
    user = session.get(User, user_id)
    if not user or not user.active:
        raise UnauthorizedError('User no longer exists')
    return serialize_user(user)


def serialize_user(user: User) -> Dict[str, Any]:
    return {
        'id': user.id,
        'email': user.email,
        'username': user.username,
        'firstName': user.first_name,
        'lastName': user.last_name,
        'role': user.role.value,
        'isActive': user.active,
        'createdAt': iso(user.created_at),
        'updatedAt': iso(user.updated_at),
    }
