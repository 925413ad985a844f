"""
auth/tokens.py -- JWT issuance and password hashing utilities.

Security design decisions:
  JWT: python-jose with HS256. Each token is signed with the *requesting
       app's* secret, not a service-wide key, so a token is only verifiable by
       that app's trusted verifiers. Claims are uid, app_id, email and exp
       (integer Unix seconds). Checking exp is the verifier's job;
       decode_token() does it for callers in this codebase.

  Passwords: bcrypt directly, no passlib wrapper. Cost factor is passed in by
       the caller (Settings.bcrypt_rounds) so it is fixed by configuration.
       The raw bcrypt output (bytes, with salt and cost embedded) is what the
       store persists.

  dummy_hash(rounds) enables timing equalization in AuthService.login() so
       response time does not reveal whether an email is registered. It is
       built at the same cost as real hashes; bcrypt time grows 2x per round.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import TYPE_CHECKING

import bcrypt
from jose import jwt

if TYPE_CHECKING:
    from auth.models import App, User

logger = logging.getLogger("sso.auth.tokens")

_ALGORITHM = "HS256"

# ---------------------------------------------------------------------------
# Password hashing (bcrypt -- direct usage, no passlib wrapper)
# ---------------------------------------------------------------------------


def hash_password(plain: str, rounds: int) -> bytes:
    """Return a salted bcrypt hash of the given plaintext password.

    bcrypt only looks at the first 72 bytes and current releases raise
    ValueError beyond that. The API layer rejects longer passwords before
    they get here; AuthService turns any ValueError into InternalError.
    """
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds))


def verify_password(plain: str, hashed: bytes) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    bcrypt.checkpw compares in constant time. Malformed hashes and over-long
    passwords count as a mismatch.
    """
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed)
    except (ValueError, TypeError):
        return False


@lru_cache(maxsize=None)
def dummy_hash(rounds: int) -> bytes:
    """Return a throwaway bcrypt hash at the given cost, built once per cost."""
    return hash_password("sso_timing_dummy", rounds)


def burn_dummy_check(plain: str, rounds: int) -> None:
    """Run one bcrypt comparison at `rounds` cost and discard the result.

    Must use the same cost as stored hashes or the unknown-email path is
    measurably faster or slower than a wrong password.
    """
    verify_password(plain, dummy_hash(rounds))


# ---------------------------------------------------------------------------
# JWT encode / decode
# ---------------------------------------------------------------------------


def new_token(user: User, app: App, ttl: timedelta, now: datetime | None = None) -> str:
    """Encode a JWT for user, scoped to app and signed with app.secret.

    Args:
        user: Authenticated user (id and email go into the claims).
        app:  Requesting tenant app. app.id becomes the app_id claim.
        ttl:  Token lifetime. exp = now + ttl.
        now:  Issue time. Defaults to the current UTC time; passing one makes
              the output deterministic.

    Raises jose.JWTError if signing fails.
    """
    issued_at = now if now is not None else datetime.now(timezone.utc)
    claims = {
        "uid": user.id,
        "app_id": app.id,
        "email": user.email,
        "exp": int((issued_at + ttl).timestamp()),
    }
    return jwt.encode(claims, app.secret, algorithm=_ALGORITHM)


def decode_token(token: str, secret: str) -> dict:
    """Verify signature and expiry and return the claims.

    Raises jose.JWTError (ExpiredSignatureError for stale tokens) on any
    failure, including a token signed with another app's secret.
    """
    return jwt.decode(token, secret, algorithms=[_ALGORITHM])
