import jwt
from datetime import datetime, timezone
from typing import Optional

ALGORITHM = "HS256"


def encode_session_token(session_id: str, user_id: int, expires_at: datetime, secret: str) -> str:
    """
    Sign a session token for the cookie

    Args:
        session_id: Random session identifier (the server stores only its digest)
        user_id: Owner of the session
        expires_at: Naive UTC expiry, mirrored in the "exp" claim
        secret: Signing key

    Returns:
        Encoded JWT string
    """
    payload = {
        "sid": session_id,
        "sub": str(user_id),
        "exp": expires_at.replace(tzinfo=timezone.utc),
    }
    return jwt.encode(payload, secret, algorithm=ALGORITHM)


def verify_jwt(token: str, secret: str, verify_exp: bool = True) -> Optional[dict]:
    """
    Verify JWT token and return payload

    Args:
        token: JWT token string
        secret: Signing key
        verify_exp: Reject tokens whose "exp" claim has passed

    Returns:
        Decoded payload if valid, None otherwise
    """
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[ALGORITHM],
            options={"verify_exp": verify_exp, "require": ["sid", "sub", "exp"]},
        )
    except jwt.InvalidTokenError:
        return None

    if not isinstance(payload.get("sid"), str):
        return None
    return payload


def get_user_id_from_token(payload: dict) -> Optional[int]:
    """
    Extract user ID from a verified payload

    Args:
        payload: Result of verify_jwt

    Returns:
        User ID if the subject is numeric, None otherwise
    """
    try:
        return int(payload["sub"])  # Subject is user ID
    except (KeyError, TypeError, ValueError):
        return None
