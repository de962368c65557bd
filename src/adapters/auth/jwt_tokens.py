"""
JWT token adapter - Admin session tokens via PyJWT.

Tokens are HS256-signed and carry the admin username as `sub` plus an
`admin` role claim. Verification checks signature, issuer, audience and
expiry with no clock skew.
"""

import uuid
from datetime import datetime, timedelta, timezone

import jwt

ALGORITHM = "HS256"
ADMIN_ROLE = "admin"


class JwtTokenService:
    """Issues and verifies admin bearer tokens."""

    def __init__(
        self,
        secret_key: str,
        issuer: str = "keygate",
        audience: str = "keygate",
        lifetime: timedelta = timedelta(minutes=30),
    ) -> None:
        self._secret_key = secret_key
        self._issuer = issuer
        self._audience = audience
        self._lifetime = lifetime

    def issue(self, username: str, now: datetime | None = None) -> str:
        now = now or datetime.now(timezone.utc)
        payload = {
            "sub": username,
            "role": ADMIN_ROLE,
            "jti": uuid.uuid4().hex,
            "iat": now,
            "exp": now + self._lifetime,
            "iss": self._issuer,
            "aud": self._audience,
        }
        return jwt.encode(payload, self._secret_key, algorithm=ALGORITHM)

    def verify(self, token: str) -> str | None:
        """
        Verify a bearer token.

        Returns:
            The admin username, or None if the token is invalid or expired
        """
        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[ALGORITHM],
                issuer=self._issuer,
                audience=self._audience,
                options={"require": ["exp", "sub"]},
            )
        except jwt.InvalidTokenError:
            return None

        if payload.get("role") != ADMIN_ROLE:
            return None
        return payload["sub"]
