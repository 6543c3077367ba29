# Overview: Bearer token issue, validation and revocation for the HTTP API.

"""
Auth Token Service

Tokens are 32 random bytes (hex) handed to the client once; only their
SHA-256 is stored. A token stops working when it expires, is revoked at
logout, or its user is deactivated.
"""

import hashlib
import secrets
from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import AuthToken, User
from pdv.time_utils import utcnow


def generate_token() -> str:
    """64-character hex string from the OS CSPRNG."""
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """SHA-256 is enough here: tokens are already high-entropy."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def create_token(user: User) -> tuple[AuthToken, str]:
    """Returns (token_record, plaintext_token)."""
    plaintext_token = generate_token()
    now = utcnow()
    ttl = timedelta(hours=current_app.config.get("AUTH_TOKEN_TTL_HOURS", 12))

    record = AuthToken(
        user_id=user.id,
        token_hash=hash_token(plaintext_token),
        created_at=now,
        last_used_at=now,
        expires_at=now + ttl,
        is_revoked=False,
    )
    db.session.add(record)
    db.session.commit()

    return record, plaintext_token


def validate_token(token: str) -> User | None:
    """
    Return the token's user if the token is live, else None.

    Tokens of deactivated users are revoked on sight.
    """
    record = db.session.query(AuthToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False,
    ).first()
    if record is None:
        return None

    now = utcnow()
    if record.expires_at < now:
        return None

    user = record.user
    if user is None or not user.is_active:
        record.is_revoked = True
        record.revoked_at = now
        db.session.commit()
        return None

    record.last_used_at = now
    db.session.commit()
    return user


def revoke_token(token: str) -> bool:
    record = db.session.query(AuthToken).filter_by(token_hash=hash_token(token), is_revoked=False).first()
    if record is None:
        return False
    record.is_revoked = True
    record.revoked_at = utcnow()
    db.session.commit()
    return True
