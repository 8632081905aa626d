"""
Security utilities for ClassPulse

- bcrypt password hashing and strength checks for the account layer
- JWT signing secret management for credential issuance/verification
"""

import logging
import os
import secrets
from pathlib import Path

import bcrypt

logger = logging.getLogger(__name__)

SECURITY_DIR = Path.home() / ".classpulse"
JWT_SECRET_FILE = SECURITY_DIR / "jwt.secret"

PASSWORD_SPECIAL_CHARS = "!@#$%^&*()_+-=[]{}|;:,.<>?"


def hash_password(password: str) -> str:
    """Hash password using bcrypt."""
    salt = bcrypt.gensalt()
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Verify password against hash; a malformed hash never verifies."""
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def validate_password(password: str, min_length: int = 8) -> bool:
    """Length, upper, lower, digit and special character required."""
    if len(password) < min_length:
        return False
    if not any(c.isupper() for c in password):
        return False
    if not any(c.islower() for c in password):
        return False
    if not any(c.isdigit() for c in password):
        return False
    return any(c in PASSWORD_SPECIAL_CHARS for c in password)


def get_or_create_jwt_secret() -> str:
    """
    Get or create the persistent JWT secret.

    ``CLASSPULSE_JWT_SECRET`` wins; otherwise the secret lives in
    ~/.classpulse/jwt.secret (mode 0600), generated on first use.
    """
    env_secret = os.getenv("CLASSPULSE_JWT_SECRET")
    if env_secret:
        return env_secret

    SECURITY_DIR.mkdir(parents=True, exist_ok=True)

    if JWT_SECRET_FILE.exists():
        return JWT_SECRET_FILE.read_text().strip()

    secret = secrets.token_urlsafe(32)
    JWT_SECRET_FILE.write_text(secret)

    try:
        os.chmod(JWT_SECRET_FILE, 0o600)
    except OSError as e:
        logger.debug(f"Cannot set file permissions on {JWT_SECRET_FILE}: {e}")

    return secret
