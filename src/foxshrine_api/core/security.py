"""JWT token creation/validation and password hashing.

Uses PyJWT for JWT operations and passlib with bcrypt (12 rounds) for
password hashing.
"""

import uuid
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

import jwt
from passlib.context import CryptContext

from foxshrine_api.core.config import Settings

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=12)


@dataclass(frozen=True)
class TokenPair:
    """An access/refresh token pair issued together."""

    access_token: str
    refresh_token: str


def hash_password(password: str) -> str:
    """Hash a plaintext password using bcrypt.

    Args:
        password: The plaintext password to hash.

    Returns:
        The bcrypt-hashed password string.
    """
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plaintext password against a bcrypt hash.

    Malformed hashes verify as False instead of raising.
    """
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError):
        return False


def _encode(
    subject: int,
    token_type: str,
    expires_delta: timedelta,
    secret_key: str,
    algorithm: str,
) -> str:
    now = datetime.now(UTC)
    payload = {
        "sub": str(subject),
        "type": token_type,
        "iat": now,
        "exp": now + expires_delta,
        "jti": uuid.uuid4().hex,
    }
    return jwt.encode(payload, secret_key, algorithm=algorithm)


def create_access_token(
    user_id: int,
    secret_key: str,
    algorithm: str = "HS256",
    expires_minutes: int = 24 * 60,
) -> str:
    """Create a JWT access token for a user id.

    Args:
        user_id: The user the token is issued to.
        secret_key: Secret key for signing.
        algorithm: JWT signing algorithm.
        expires_minutes: Token expiration in minutes.

    Returns:
        The encoded JWT string.
    """
    return _encode(user_id, ACCESS_TOKEN_TYPE, timedelta(minutes=expires_minutes), secret_key, algorithm)


def create_refresh_token(
    user_id: int,
    secret_key: str,
    algorithm: str = "HS256",
    expires_days: int = 7,
) -> str:
    """Create a JWT refresh token (payload ``type`` is ``"refresh"``)."""
    return _encode(user_id, REFRESH_TOKEN_TYPE, timedelta(days=expires_days), secret_key, algorithm)


def issue_token_pair(user_id: int, settings: Settings) -> TokenPair:
    """Issue a fresh access/refresh token pair using the configured lifetimes."""
    return TokenPair(
        access_token=create_access_token(
            user_id,
            secret_key=settings.jwt_secret_key,
            algorithm=settings.jwt_algorithm,
            expires_minutes=settings.jwt_access_token_expire_minutes,
        ),
        refresh_token=create_refresh_token(
            user_id,
            secret_key=settings.jwt_secret_key,
            algorithm=settings.jwt_algorithm,
            expires_days=settings.jwt_refresh_token_expire_days,
        ),
    )


def decode_token(
    token: str,
    secret_key: str,
    algorithm: str = "HS256",
) -> dict:
    """Decode and validate a JWT token.

    Args:
        token: The JWT string to decode.
        secret_key: Secret key used for signing.
        algorithm: JWT signing algorithm.

    Returns:
        The decoded token payload.

    Raises:
        jwt.ExpiredSignatureError: If the token has expired.
        jwt.InvalidTokenError: If the token is invalid.
    """
    return jwt.decode(token, secret_key, algorithms=[algorithm], options={"require": ["exp", "sub"]})


def token_subject(payload: dict) -> int:
    """Return the user id carried in a decoded payload.

    Raises:
        jwt.InvalidTokenError: If the subject is not an integer id.
    """
    try:
        return int(payload["sub"])
    except (KeyError, TypeError, ValueError) as e:
        msg = "Token subject is not a user id"
        raise jwt.InvalidTokenError(msg) from e
