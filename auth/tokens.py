"""
auth/tokens.py -- JWT signing and verification for access and refresh tokens.

Security design decisions:
  JWT: python-jose. HS256 with SECRET_KEY by default; RS256 with a PEM key
       pair when JWT_ALGORITHM=RS256. Keys live in an immutable TokenKeys
       object handed to JWTCodec at construction -- nothing reads settings
       at module load, so tests can build codecs with distinct keys.

  Roles: every token carries typ="access" or typ="refresh". verify() takes
       the role the caller expects and raises WrongTokenType on mismatch, so
       an access token can never be replayed against the refresh endpoint.

  Uniqueness: every token carries a random jti, so two tokens minted in the
       same second for the same payload are still distinct strings.

  Expiry: checked here against an injectable clock rather than by jose, so
       verification is a pure function of (token, clock()) and a TTL of 0
       yields a token that is already expired.

Layer rule: no imports from api/. Import from core/ is allowed.
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Callable, Protocol

from jose import JWTError, jwt
from jose.exceptions import JWTClaimsError

from auth.errors import BadSignature, MalformedToken, TokenExpired, WrongTokenType

if TYPE_CHECKING:
    from core.config import Settings

logger = logging.getLogger("storefront.auth")

# Claims the codec owns. Caller payloads cannot override them.
_RESERVED_CLAIMS = ("iat", "exp", "jti", "typ")


class TokenType(str, Enum):
    ACCESS = "access"
    REFRESH = "refresh"


@dataclass(frozen=True)
class TokenKeys:
    """Process-wide signing configuration. Built once at startup, never mutated.

    For HS256 signing_key and verifying_key are the same shared secret.
    For RS256 signing_key is the PEM private key, verifying_key the PEM public key.
    """

    algorithm: str
    signing_key: str = field(repr=False)
    verifying_key: str = field(repr=False)
    access_ttl: int = 15 * 60
    refresh_ttl: int = 365 * 24 * 60 * 60

    @classmethod
    def from_settings(cls, settings: Settings) -> TokenKeys:
        if settings.jwt_algorithm == "RS256":
            signing, verifying = settings.jwt_private_key, settings.jwt_public_key
        else:
            signing = verifying = settings.secret_key
        return cls(
            algorithm=settings.jwt_algorithm,
            signing_key=signing,
            verifying_key=verifying,
            access_ttl=settings.access_token_ttl_seconds,
            refresh_ttl=settings.refresh_token_ttl_seconds,
        )

    @classmethod
    def shared_secret(cls, secret: str, **ttls: int) -> TokenKeys:
        """HS256 keys from a single secret. Convenience for scripts and tests."""
        return cls(algorithm="HS256", signing_key=secret, verifying_key=secret, **ttls)


class TokenCodec(Protocol):
    def sign(self, payload: dict, ttl: float, token_type: TokenType) -> str: ...

    def verify(self, token: str, token_type: TokenType) -> dict: ...


class JWTCodec:
    """Signs and verifies compact JWS tokens. Holds no mutable state."""

    def __init__(self, keys: TokenKeys, clock: Callable[[], float] = time.time) -> None:
        self._keys = keys
        self._clock = clock

    @property
    def keys(self) -> TokenKeys:
        return self._keys

    def sign(self, payload: dict, ttl: float, token_type: TokenType) -> str:
        """Return a signed token carrying payload plus iat/exp/jti/typ.

        exp is iat + ttl in whole seconds. ttl=0 gives a token that verify()
        already rejects as expired.
        """
        issued_at = int(self._clock())
        claims = {k: v for k, v in payload.items() if k not in _RESERVED_CLAIMS}
        claims.update(
            iat=issued_at,
            exp=issued_at + int(ttl),
            jti=uuid.uuid4().hex,
            typ=TokenType(token_type).value,
        )
        return jwt.encode(claims, self._keys.signing_key, algorithm=self._keys.algorithm)

    def verify(self, token: str, token_type: TokenType) -> dict:
        """Return the claims of a valid token of the expected role.

        Raises (all subclasses of Unauthorized):
          MalformedToken  -- not a parseable JWT, or required claims missing
          BadSignature    -- signature or algorithm mismatch
          TokenExpired    -- clock() >= exp
          WrongTokenType  -- typ is not token_type
        """
        if not isinstance(token, str) or not token:
            raise MalformedToken("token is empty")
        try:
            jwt.get_unverified_header(token)
            jwt.get_unverified_claims(token)
        except JWTError as exc:
            raise MalformedToken(str(exc)) from exc

        try:
            # Expiry is enforced below against our own clock.
            claims = jwt.decode(
                token,
                self._keys.verifying_key,
                algorithms=[self._keys.algorithm],
                options={"verify_exp": False, "verify_aud": False},
            )
        except JWTClaimsError as exc:
            raise MalformedToken(str(exc)) from exc
        except JWTError as exc:
            raise BadSignature(str(exc)) from exc

        exp = claims.get("exp")
        if not isinstance(exp, (int, float)) or isinstance(exp, bool):
            raise MalformedToken("missing exp claim")
        if self._clock() >= exp:
            raise TokenExpired(f"expired at {exp}")

        if claims.get("typ") != TokenType(token_type).value:
            raise WrongTokenType(f"expected {TokenType(token_type).value}, got {claims.get('typ')!r}")
        return claims
