from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from coinsensei.shared_kernel.primitives import AccountId


@dataclass(frozen=True, slots=True)
class AccessTokenClaims:
    """
    AccessTokenClaims — typed claims of the bearer access token.

    Related:
      - src/coinsensei/contexts/identity/adapters/outbound/security/jwt/
        hs256_access_token_codec.py
      - src/coinsensei/contexts/identity/adapters/inbound/api/deps/current_account.py
    """

    account_id: AccountId
    email: str
    issued_at: datetime
    expires_at: datetime

    def __post_init__(self) -> None:
        """
        Validate claims datetime invariants for token serialization.

        Args:
            None.
        Returns:
            None.
        Assumptions:
            `issued_at` and `expires_at` are timezone-aware UTC datetimes.
        Raises:
            ValueError: If datetimes are naive, non-UTC, or expiration is not after issue time.
        Side Effects:
            None.
        """
        _ensure_utc_datetime(name="issued_at", value=self.issued_at)
        _ensure_utc_datetime(name="expires_at", value=self.expires_at)
        if self.expires_at <= self.issued_at:
            raise ValueError("AccessTokenClaims.expires_at must be after issued_at")


class AccessTokenDecodeError(ValueError):
    """
    AccessTokenDecodeError — deterministic access token verification error.
    """

    def __init__(self, *, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message


class AccessTokenCodec(Protocol):
    """
    AccessTokenCodec — port signing and verifying bearer access tokens.

    Related:
      - src/coinsensei/contexts/identity/adapters/outbound/security/jwt/
        hs256_access_token_codec.py
      - src/coinsensei/contexts/identity/adapters/outbound/identity_provider/
        in_memory_identity_provider.py
      - src/coinsensei/contexts/identity/adapters/inbound/api/deps/current_account.py
    """

    def encode(self, *, claims: AccessTokenClaims) -> str:
        """
        Sign claims into compact token string.

        Args:
            claims: Typed claims.
        Returns:
            str: Signed compact token.
        Assumptions:
            Signing key is configured and non-empty.
        Raises:
            ValueError: If claims cannot be serialized.
        Side Effects:
            None.
        """
        ...

    def decode(self, *, token: str) -> AccessTokenClaims:
        """
        Verify token signature and expiry, then return typed claims.

        Args:
            token: Compact token string.
        Returns:
            AccessTokenClaims: Verified claims.
        Assumptions:
            Expiry is checked against the codec clock.
        Raises:
            AccessTokenDecodeError: If token is malformed, tampered or expired.
        Side Effects:
            None.
        """
        ...


def _ensure_utc_datetime(*, name: str, value: datetime) -> None:
    offset = value.utcoffset()
    if value.tzinfo is None or offset is None:
        raise ValueError(f"AccessTokenClaims.{name} must be timezone-aware UTC datetime")
    if offset.total_seconds() != 0:
        raise ValueError(f"AccessTokenClaims.{name} must be UTC datetime")
