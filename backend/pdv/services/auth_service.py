# Overview: Service-layer operations for auth; user accounts and credential checks.

"""
Authentication Service

WHY: Every sale and register session is attributed to a user. Secrets are
stored as salted bcrypt hashes and checked with bcrypt.checkpw; the
plaintext-PIN comparison of earlier terminals is not supported.

SECURITY NOTES:
- Cost factor from BCRYPT_ROUNDS (default 12)
- Secrets (PIN or password) must be at least 4 characters
- Inactive users never authenticate
"""

import bcrypt
from flask import current_app, has_app_context

from ..errors import NotFound, ValidationError
from ..models import User, UserRole, new_id
from pdv.time_utils import utcnow

MIN_SECRET_LENGTH = 4
USER_MUTABLE_FIELDS = {"username", "name", "role", "is_active", "password"}


def validate_secret(secret) -> None:
    """Raises ValidationError unless the secret is a string of MIN_SECRET_LENGTH+ characters."""
    if not isinstance(secret, str) or len(secret) < MIN_SECRET_LENGTH:
        raise ValidationError(f"Password/PIN must be at least {MIN_SECRET_LENGTH} characters long")


def hash_password(secret: str) -> str:
    """Validate then hash with bcrypt; the salt is embedded in the result."""
    validate_secret(secret)
    rounds = current_app.config.get("BCRYPT_ROUNDS", 12) if has_app_context() else 12
    hashed = bcrypt.hashpw(secret.encode("utf-8"), bcrypt.gensalt(rounds=rounds))
    return hashed.decode("utf-8")  # Store as string in database


def verify_password(secret: str, password_hash: str) -> bool:
    """Timing-safe check; malformed hashes simply fail."""
    if not isinstance(secret, str) or not isinstance(password_hash, str):
        return False
    if not secret or not password_hash:
        return False
    try:
        return bcrypt.checkpw(secret.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def authenticate(repository, username: str, secret: str) -> User | None:
    """
    Return the active user whose secret matches, else None.

    Updates last_login_at on success.
    """
    if not isinstance(username, str) or not isinstance(secret, str):
        return None
    if not username or not secret:
        return None

    user = repository.get_user_by_username(username.strip())
    if user is None or not user.is_active:
        return None

    if not verify_password(secret, user.password_hash):
        return None

    user.last_login_at = utcnow()
    return repository.upsert_user(user)


def _clean_user_patch(repository, patch: dict, user_id: str | None) -> dict:
    cleaned = {}
    for key, value in patch.items():
        if key not in USER_MUTABLE_FIELDS:
            continue
        if key == "username":
            username = str(value or "").strip()
            if not username:
                raise ValidationError("username is required")
            existing = repository.get_user_by_username(username)
            if existing is not None and existing.id != user_id:
                raise ValidationError("Username already exists", details={"username": username})
            cleaned["username"] = username
        elif key == "name":
            name = str(value or "").strip()
            if not name:
                raise ValidationError("name is required")
            cleaned["name"] = name
        elif key == "role":
            try:
                cleaned["role"] = UserRole.parse(value)
            except ValueError as exc:
                raise ValidationError(str(exc)) from exc
        elif key == "is_active":
            cleaned["is_active"] = bool(value)
        elif key == "password":
            cleaned["password_hash"] = hash_password(value)
    return cleaned


def create_user(repository, patch: dict) -> User:
    """
    Create a user from username, name, password, role (default OPERATOR).

    Raises ValidationError for missing fields, a taken username or a
    short secret.
    """
    for required in ("username", "name", "password"):
        if not patch.get(required):
            raise ValidationError(f"{required} is required")

    user = User(id=new_id(), role=UserRole.OPERATOR, is_active=True)
    for key, value in _clean_user_patch(repository, patch, None).items():
        setattr(user, key, value)
    return repository.upsert_user(user)


def update_user(repository, user_id: str, patch: dict) -> User:
    user = repository.get_user(user_id)
    if user is None:
        raise NotFound("User not found", details={"user_id": user_id})
    cleaned = _clean_user_patch(repository, patch, user_id)
    for key, value in cleaned.items():
        setattr(user, key, value)
    return repository.upsert_user(user)


def delete_user(repository, user_id: str, acting_user=None) -> None:
    if acting_user is not None and acting_user.id == user_id:
        raise ValidationError("You cannot delete your own account")
    if not repository.delete_user(user_id):
        raise NotFound("User not found", details={"user_id": user_id})
