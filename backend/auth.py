"""
Email/password accounts with opaque bearer tokens.
"""
import hashlib
import hmac
import logging
import secrets
import uuid
from datetime import timedelta
from typing import Optional

import config
from dates import now
from database import (
    create_session_db,
    create_user_db,
    delete_session_db,
    find_user_by_email_db,
    get_session_user_db,
)
from errors import AccountExistsError, AuthenticationError
from models import Session, User

logger = logging.getLogger(__name__)

PBKDF2_ITERATIONS = 240_000


def hash_password(password: str, salt: Optional[str] = None) -> str:
    """Salted PBKDF2-SHA256, stored as 'iterations$salt$hexdigest'."""
    salt = salt or secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), PBKDF2_ITERATIONS)
    return f"{PBKDF2_ITERATIONS}${salt}${digest.hex()}"


def verify_password(password: str, stored: str) -> bool:
    try:
        iterations, salt, expected = stored.split("$")
        digest = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), int(iterations))
    except ValueError:
        return False
    return hmac.compare_digest(digest.hex(), expected)


def _normalize_email(email: str) -> str:
    return email.strip().lower()


def _start_session(user: User) -> Session:
    token = secrets.token_urlsafe(32)
    create_session_db(token, user.id, now() + timedelta(days=config.SESSION_DAYS))
    return Session(token=token, user=user)


def sign_up(email: str, password: str) -> Session:
    user = create_user_db(str(uuid.uuid4()), _normalize_email(email), hash_password(password))
    if user is None:
        raise AccountExistsError("An account with this email already exists")
    logger.info("Created account %s", user.id)
    return _start_session(user)


def sign_in(email: str, password: str) -> Session:
    found = find_user_by_email_db(_normalize_email(email))
    if not found or not verify_password(password, found[1]):
        raise AuthenticationError("Invalid email or password")
    return _start_session(found[0])


def sign_out(token: str) -> None:
    delete_session_db(token)


def current_user(token: str) -> User:
    """Resolve a bearer token to its user. Expired sessions are removed."""
    found = get_session_user_db(token)
    if not found:
        raise AuthenticationError("Not signed in")
    user, expires_at = found
    if expires_at is None or expires_at <= now():
        delete_session_db(token)
        raise AuthenticationError("Session expired, please sign in again")
    return user
