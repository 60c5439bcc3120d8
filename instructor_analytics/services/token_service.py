"""Access token verification (ES256).

Tokens are issued by the platform's auth service; this service only
verifies them.  With JWT_PUBLIC_KEY set, verification uses that key and
nothing here can sign.  Without it (dev, test, the demo script) an
ephemeral key pair is generated on import and `create_access_token`
mints tokens with the same claims the auth service issues.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

import jwt
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from instructor_analytics.core.config import SETTINGS

ALGORITHM = "ES256"
ACCESS_TOKEN_TTL = timedelta(minutes=15)
# Tolerated clock drift between this service and the issuer.
LEEWAY = timedelta(seconds=30)


@dataclass(frozen=True, slots=True)
class TokenKeys:
    public_key: ec.EllipticCurvePublicKey
    private_key: ec.EllipticCurvePrivateKey | None = None

    @property
    def can_sign(self) -> bool:
        return self.private_key is not None


def load_keys(public_pem: str | None) -> TokenKeys:
    """The configured verification key, or a fresh signing pair for dev."""
    if not public_pem:
        private_key = ec.generate_private_key(ec.SECP256R1())
        return TokenKeys(public_key=private_key.public_key(), private_key=private_key)

    key = serialization.load_pem_public_key(public_pem.encode())
    if not isinstance(key, ec.EllipticCurvePublicKey):
        raise ValueError("JWT_PUBLIC_KEY must be an EC (P-256) public key")
    return TokenKeys(public_key=key)


_keys = load_keys(SETTINGS.jwt_public_key)


def create_access_token(
    *,
    sub: str,
    roles: list[str] | None = None,
    ttl: timedelta = ACCESS_TOKEN_TTL,
    keys: TokenKeys | None = None,
) -> str:
    keys = keys or _keys
    if keys.private_key is None:
        raise RuntimeError("Token signing needs the ephemeral dev key pair")
    now = datetime.now(UTC)
    payload = {
        "sub": sub,
        "iss": SETTINGS.jwt_issuer,
        "aud": SETTINGS.jwt_audience,
        "exp": now + ttl,
        "iat": now,
        "jti": str(uuid.uuid4()),
        "roles": roles or ["user"],
    }
    return jwt.encode(payload, keys.private_key, algorithm=ALGORITHM)


def decode_access_token(token: str, *, keys: TokenKeys | None = None) -> dict:
    """Verify signature, issuer, audience and expiry; return the claims.

    The algorithm list is pinned so a token cannot pick its own (alg:none,
    HS256 with the public key as secret).

    Raises jwt.ExpiredSignatureError or jwt.InvalidTokenError.
    """
    return jwt.decode(
        token,
        (keys or _keys).public_key,
        algorithms=[ALGORITHM],
        issuer=SETTINGS.jwt_issuer,
        audience=SETTINGS.jwt_audience,
        leeway=LEEWAY,
        options={"require": ["sub", "exp", "iat", "iss", "aud"]},
    )
