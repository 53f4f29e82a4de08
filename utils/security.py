"""Salted one-way hashing for login secrets."""
import hashlib
import hmac
import secrets

SCHEME = "pbkdf2_sha256"


def hash_secret(secret: str, iterations: int) -> str:
    """Hash a secret for storage as scheme$iterations$salt$digest"""
    salt = secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", secret.encode("utf-8"), salt.encode("ascii"), iterations)
    return f"{SCHEME}${iterations}${salt}${digest.hex()}"


def verify_secret(secret: str, stored: str) -> bool:
    """Check a secret against a stored hash in constant time"""
    try:
        scheme, iterations, salt, expected = stored.split("$")
        rounds = int(iterations)
    except ValueError:
        return False
    if scheme != SCHEME:
        return False
    digest = hashlib.pbkdf2_hmac("sha256", secret.encode("utf-8"), salt.encode("ascii"), rounds)
    return hmac.compare_digest(digest.hex(), expected)


def new_session_id() -> str:
    """256 bits of randomness, URL safe"""
    return secrets.token_urlsafe(32)


def session_digest(session_id: str) -> str:
    return hashlib.sha256(session_id.encode("utf-8")).hexdigest()
