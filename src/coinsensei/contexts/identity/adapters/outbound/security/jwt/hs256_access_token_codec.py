from __future__ import annotations

import base64
import hashlib
import hmac
import json
from datetime import datetime, timezone
from typing import Any

from coinsensei.contexts.identity.application.ports.access_token_codec import (
    AccessTokenClaims,
    AccessTokenCodec,
    AccessTokenDecodeError,
)
from coinsensei.contexts.identity.application.ports.clock import IdentityClock
from coinsensei.shared_kernel.primitives import AccountId

_HEADER: dict[str, str] = {
    "alg": "HS256",
    "typ": "JWT",
}
_REQUIRED_CLAIMS = ("sub", "email", "iat", "exp")


class Hs256AccessTokenCodec(AccessTokenCodec):
    """
    Hs256AccessTokenCodec — compact HS256 JWT codec for bearer access tokens.

    Related:
      - src/coinsensei/contexts/identity/application/ports/access_token_codec.py
      - src/coinsensei/contexts/identity/adapters/inbound/api/deps/current_account.py
      - src/coinsensei/contexts/identity/adapters/outbound/identity_provider/
        in_memory_identity_provider.py
    """

    def __init__(
        self,
        *,
        secret_key: str,
        clock: IdentityClock,
        leeway_seconds: int = 0,
    ) -> None:
        """
        Initialize HS256 codec with signing key and runtime clock.

        Args:
            secret_key: Token signing key (`IDENTITY_ACCESS_TOKEN_SECRET`).
            clock: Runtime clock for expiration checks.
            leeway_seconds: Optional expiration leeway.
        Returns:
            None.
        Assumptions:
            Secret key is stable per deployment environment.
        Raises:
            ValueError: If secret key is empty, clock missing, or leeway negative.
        Side Effects:
            None.
        """
        normalized_secret = secret_key.strip()
        if not normalized_secret:
            raise ValueError("Hs256AccessTokenCodec requires non-empty secret_key")
        if clock is None:  # type: ignore[truthy-bool]
            raise ValueError("Hs256AccessTokenCodec requires clock")
        if leeway_seconds < 0:
            raise ValueError("Hs256AccessTokenCodec requires leeway_seconds >= 0")

        self._secret_key = normalized_secret.encode("utf-8")
        self._clock = clock
        self._leeway_seconds = leeway_seconds

    def encode(self, *, claims: AccessTokenClaims) -> str:
        header_segment = _encode_json_segment(_HEADER)
        payload_segment = _encode_json_segment(
            {
                "email": claims.email,
                "exp": int(claims.expires_at.timestamp()),
                "iat": int(claims.issued_at.timestamp()),
                "sub": str(claims.account_id),
            }
        )
        signature = self._sign(header_segment=header_segment, payload_segment=payload_segment)
        return f"{header_segment}.{payload_segment}.{_b64url_encode(signature)}"

    def decode(self, *, token: str) -> AccessTokenClaims:
        """
        Verify signature and expiry and return typed claims.

        Args:
            token: Compact token.
        Returns:
            AccessTokenClaims: Verified claims.
        Assumptions:
            Token carries `sub`, `email`, `iat` and `exp`.
        Raises:
            AccessTokenDecodeError: If token format, signature or claims are invalid.
            ValueError: If codec clock returns non-UTC datetime.
        Side Effects:
            None.
        """
        segments = token.strip().split(".")
        if segments == [""]:
            raise AccessTokenDecodeError(code="missing_token", message="Access token is empty")
        if len(segments) != 3:
            raise AccessTokenDecodeError(
                code="invalid_token_format",
                message="Access token must contain 3 dot-separated segments",
            )

        header_segment, payload_segment, signature_segment = segments
        header = _decode_json_segment(header_segment)
        if header.get("alg") != "HS256" or header.get("typ") != "JWT":
            raise AccessTokenDecodeError(
                code="invalid_header",
                message="Access token header must contain alg=HS256 and typ=JWT",
            )
        expected = self._sign(header_segment=header_segment, payload_segment=payload_segment)
        if not hmac.compare_digest(expected, _b64url_decode(signature_segment)):
            raise AccessTokenDecodeError(
                code="invalid_signature",
                message="Access token signature verification failed",
            )

        payload = _decode_json_segment(payload_segment)
        if any(payload.get(name) in (None, "") for name in _REQUIRED_CLAIMS):
            raise AccessTokenDecodeError(
                code="invalid_claims",
                message="Access token payload must contain sub, email, iat, and exp",
            )
        try:
            claims = AccessTokenClaims(
                account_id=AccountId.from_string(str(payload["sub"])),
                email=str(payload["email"]),
                issued_at=datetime.fromtimestamp(int(payload["iat"]), tz=timezone.utc),
                expires_at=datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc),
            )
        except (OSError, OverflowError, TypeError, ValueError) as error:
            raise AccessTokenDecodeError(
                code="invalid_claims",
                message="Access token payload claims are malformed",
            ) from error

        now = self._clock.now()
        offset = now.utcoffset()
        if now.tzinfo is None or offset is None or offset.total_seconds() != 0:
            raise ValueError("Hs256AccessTokenCodec clock must return timezone-aware UTC datetime")
        if int(claims.expires_at.timestamp()) <= int(now.timestamp()) - self._leeway_seconds:
            raise AccessTokenDecodeError(code="expired_token", message="Access token is expired")
        return claims

    def _sign(self, *, header_segment: str, payload_segment: str) -> bytes:
        signing_input = f"{header_segment}.{payload_segment}".encode("utf-8")
        return hmac.new(self._secret_key, signing_input, hashlib.sha256).digest()


def _encode_json_segment(payload: dict[str, Any]) -> str:
    raw = json.dumps(payload, separators=(",", ":"), sort_keys=True).encode("utf-8")
    return _b64url_encode(raw)


def _decode_json_segment(segment: str) -> dict[str, Any]:
    """
    Decode base64url JSON segment into mapping.

    Args:
        segment: Base64url token segment.
    Returns:
        dict[str, Any]: Decoded JSON object.
    Assumptions:
        Segment contains a JSON object.
    Raises:
        AccessTokenDecodeError: If segment cannot be decoded into JSON object.
    Side Effects:
        None.
    """
    try:
        loaded = json.loads(_b64url_decode(segment).decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as error:
        raise AccessTokenDecodeError(
            code="invalid_token_format",
            message="Access token segment is not valid JSON",
        ) from error
    if not isinstance(loaded, dict):
        raise AccessTokenDecodeError(
            code="invalid_token_format",
            message="Access token JSON segment must be an object",
        )
    return loaded


def _b64url_encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def _b64url_decode(segment: str) -> bytes:
    padding = "=" * ((4 - len(segment) % 4) % 4)
    try:
        return base64.urlsafe_b64decode(f"{segment}{padding}".encode("ascii"))
    except (ValueError, UnicodeEncodeError) as error:
        raise AccessTokenDecodeError(
            code="invalid_token_format",
            message="Access token segment is not valid base64url",
        ) from error
