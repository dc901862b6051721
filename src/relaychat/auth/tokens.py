"""Identity token creation and verification.

Learn: JWT (JSON Web Token) lets the relay trust an identity without
talking to the directory. The token's "sub" claim is the username the
connection is allowed to register as.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from relaychat.config import Settings, settings as default_settings
from relaychat.realtime.channels import normalize_identity


class TokenError(Exception):
    """Raised when token creation/verification fails."""


def create_identity_token(
    identity: str,
    expires_minutes: Optional[int] = None,
    settings: Optional[Settings] = None,
) -> str:
    """Create a signed identity token for a username.

    The identity must pass the same rules set-identity applies, so a token
    is never minted for a name the relay would refuse.
    """
    cfg = settings or default_settings
    try:
        identity = normalize_identity(identity, cfg.max_identity_length)
    except ValueError as e:
        raise TokenError(str(e))
    if expires_minutes is None:
        expires_minutes = cfg.identity_token_expire_minutes
    now = datetime.now(timezone.utc)
    payload = {
        "sub": identity,
        "type": "identity",
        "exp": now + timedelta(minutes=expires_minutes),
        "iat": now,
    }
    return jwt.encode(payload, cfg.jwt_secret, algorithm=cfg.jwt_algorithm)


def verify_identity_token(token: str, settings: Optional[Settings] = None) -> str:
    """Verify a token and return the identity it was issued for.

    Raises TokenError on failure.
    """
    cfg = settings or default_settings
    try:
        payload = jwt.decode(token, cfg.jwt_secret, algorithms=[cfg.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        raise TokenError("Token has expired")
    except jwt.InvalidTokenError as e:
        raise TokenError(f"Invalid token: {e}")

    identity = payload.get("sub")
    if not isinstance(identity, str) or not identity:
        raise TokenError("Token has no subject")
    return identity
