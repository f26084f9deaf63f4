import logging
from dataclasses import dataclass

from jose import ExpiredSignatureError, JWTError, jwt
from expense_tracker.config import settings
from expense_tracker.core.exceptions import UnauthorizedException

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    """Verified caller identity read from the token claims."""

    auth_user_id: str
    email: str | None = None
    name: str | None = None


def decode_jwt(token: str) -> dict:
    """
    Decode and validate JWT token using shared SECRET_KEY.

    Args:
        token: JWT access token from Authorization header

    Returns:
        Decoded token payload with 'sub' (user_id), 'email', 'exp', etc.

    Raises:
        UnauthorizedException: If token invalid, expired, or malformed
    """
    if not token or not token.strip():
        raise UnauthorizedException("ID token was not provided or was invalid.")

    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except ExpiredSignatureError:
        raise UnauthorizedException("Session expired. Please log in again.")
    except JWTError as e:
        logger.info("Rejected ID token: %s", e)
        raise UnauthorizedException("Invalid ID token. Please try logging in again.")

    exp = payload.get("exp")
    if exp is None:
        raise UnauthorizedException("Token missing expiration")

    # 'sub' carries the identity provider's user id
    user_id = payload.get("sub")
    if not user_id:
        raise UnauthorizedException("Token missing user identifier")

    return payload


def verify_token(token: str) -> Identity:
    """Verify a bearer token and return the caller identity it carries"""
    payload = decode_jwt(token)
    email = payload.get("email")
    return Identity(
        auth_user_id=str(payload["sub"]),
        email=email.strip().lower() if isinstance(email, str) and email.strip() else None,
        name=payload.get("name"),
    )
