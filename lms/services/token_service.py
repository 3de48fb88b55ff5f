"""JWT access token creation and validation (ES256).

Tokens are minted by the platform's identity provider; this service only
verifies them.  create_access_token() exists for local runs and tests,
which sign with the same ephemeral key the verifier uses.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta

import jwt
from cryptography.hazmat.primitives.asymmetric import ec

# Dev/test: ephemeral EC key pair generated on import.
_private_key = ec.generate_private_key(ec.SECP256R1())
_public_key = _private_key.public_key()

ALGORITHM = "ES256"
ISSUER = "lms-platform"
AUDIENCE = "lms-completion-service"
ACCESS_TOKEN_TTL_MIN = 15


def create_access_token(
    *,
    sub: str,
    roles: list[str] | None = None,
    ttl_minutes: int = ACCESS_TOKEN_TTL_MIN,
) -> str:
    """Build and sign an access token: sub, iss, aud, exp, iat, jti, roles."""
    now = datetime.now(UTC)
    payload = {
        "sub": sub,
        "iss": ISSUER,
        "aud": AUDIENCE,
        "exp": now + timedelta(minutes=ttl_minutes),
        "iat": now,
        "jti": str(uuid.uuid4()),
        "roles": roles or ["student"],
    }
    return jwt.encode(payload, _private_key, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    """Verify signature and claims, return the payload.

    The algorithm is pinned to ES256, which rules out alg:none and
    algorithm switching.  Raises jwt.ExpiredSignatureError or
    jwt.InvalidTokenError on failure.
    """
    return jwt.decode(
        token,
        _public_key,
        algorithms=[ALGORITHM],
        issuer=ISSUER,
        audience=AUDIENCE,
        options={"require": ["sub", "exp", "iat", "jti"]},
    )
