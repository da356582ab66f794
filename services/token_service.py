"""
Session token issuing and verification.

Tokens are stateless JWTs (no server-side revocation list) carrying the
subject id, the account id and a snapshot of the role at issuance. The role
claim is informational only; AuthService re-reads the user on every request.

RS256 is used when a key pair is configured, HS256 with the shared secret
otherwise.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import jwt

from config import JWTSettings
from errors import TokenInvalidError, TokenMissingError
from shared.logging import get_logger

log = get_logger(__name__)


@dataclass(frozen=True)
class TokenClaims:
    subject_id: str
    role: Optional[str]
    account_id: Optional[str]
    issued_at: int
    expires_at: int


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Return the credential part of an ``Authorization`` header, if any."""
    if not authorization:
        return None
    parts = authorization.split(" ")
    if len(parts) < 2:
        return None
    return parts[1].strip() or None


class TokenService:
    def __init__(self, settings: JWTSettings) -> None:
        self._issuer = settings.jwt_issuer
        self._audience = settings.jwt_audience
        self._ttl = settings.session_token_ttl_seconds

        if settings.use_rs256:
            # Keys provided via env often carry literal \n sequences
            self._algorithm = "RS256"
            self._signing_key: Any = settings.jwt_private_key.replace("\\n", "\n")
            self._verify_key: Any = settings.jwt_public_key.replace("\\n", "\n")
        else:
            if not settings.jwt_secret:
                raise RuntimeError(
                    "JWT_SECRET (or SESSION_SECRET) must be set when RS256 keys "
                    "are not provided"
                )
            self._algorithm = "HS256"
            self._signing_key = settings.jwt_secret
            self._verify_key = settings.jwt_secret

    @property
    def ttl_seconds(self) -> int:
        return self._ttl

    def issue(
        self,
        subject_id: str,
        role: str,
        account_id: Optional[str] = None,
        *,
        now: Optional[datetime] = None,
    ) -> str:
        now = now or datetime.now(timezone.utc)
        claims: dict[str, Any] = {
            "iss": self._issuer,
            "aud": self._audience,
            "sub": str(subject_id),
            "role": role,
            "iat": int(now.timestamp()),
            "exp": int((now + timedelta(seconds=self._ttl)).timestamp()),
        }
        if account_id is not None:
            claims["account_id"] = str(account_id)
        return jwt.encode(claims, self._signing_key, algorithm=self._algorithm)

    def verify(self, token: Optional[str]) -> TokenClaims:
        if not token:
            raise TokenMissingError()

        try:
            payload = jwt.decode(
                token,
                self._verify_key,
                algorithms=[self._algorithm],
                audience=self._audience,
                issuer=self._issuer,
                options={"require": ["exp", "iat", "sub"]},
            )
        except jwt.ExpiredSignatureError:
            log.info("session_token_rejected", reason="expired")
            raise TokenInvalidError()
        except jwt.InvalidTokenError as e:
            log.warning(
                "session_token_rejected",
                reason="invalid",
                error_type=type(e).__name__,
            )
            raise TokenInvalidError()

        return TokenClaims(
            subject_id=str(payload["sub"]),
            role=payload.get("role"),
            account_id=payload.get("account_id"),
            issued_at=int(payload["iat"]),
            expires_at=int(payload["exp"]),
        )
