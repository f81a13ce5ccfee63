import hashlib
import hmac

from config import PASSWORD_SALT, PASSWORD_ITERATIONS


def hash_password(password: str) -> str:
    """PBKDF2-SHA256 digest of a password"""
    digest = hashlib.pbkdf2_hmac(
        "sha256", password.encode(), PASSWORD_SALT.encode(), PASSWORD_ITERATIONS
    )
    return digest.hex()


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Constant-time comparison against a stored hash"""
    return hmac.compare_digest(hash_password(plain_password), hashed_password)
