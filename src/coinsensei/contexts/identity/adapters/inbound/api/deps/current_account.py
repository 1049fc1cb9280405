from fastapi import HTTPException
from starlette.requests import Request

from coinsensei.contexts.identity.application.ports.access_token_codec import (
    AccessTokenClaims,
    AccessTokenCodec,
    AccessTokenDecodeError,
)

_BEARER_PREFIX = "bearer "


class RequireCurrentAccountDependency:
    """
    RequireCurrentAccountDependency — FastAPI dependency resolving the bearer-token account.

    Related:
      - src/coinsensei/contexts/identity/application/ports/access_token_codec.py
      - src/coinsensei/contexts/identity/adapters/outbound/security/jwt/
        hs256_access_token_codec.py
      - src/coinsensei/contexts/identity/adapters/inbound/api/routes/two_factor_gateway.py
    """

    def __init__(self, *, token_codec: AccessTokenCodec) -> None:
        if token_codec is None:  # type: ignore[truthy-bool]
            raise ValueError("RequireCurrentAccountDependency requires token_codec")
        self._token_codec = token_codec

    def __call__(self, request: Request) -> AccessTokenClaims:
        """
        Resolve verified claims from `Authorization: Bearer <token>` header.

        Args:
            request: FastAPI HTTP request.
        Returns:
            AccessTokenClaims: Verified claims of the calling account.
        Assumptions:
            Tokens are issued by the identity provider with the shared HS256 key.
        Raises:
            HTTPException: 401 with deterministic payload for unauthorized requests.
        Side Effects:
            None.
        """
        header = request.headers.get("authorization", "")
        if not header.lower().startswith(_BEARER_PREFIX):
            raise HTTPException(
                status_code=401,
                detail={
                    "error": "missing_token",
                    "message": "Bearer access token is required",
                },
            )
        try:
            return self._token_codec.decode(token=header[len(_BEARER_PREFIX) :])
        except AccessTokenDecodeError as error:
            raise HTTPException(
                status_code=401,
                detail={
                    "error": error.code,
                    "message": error.message,
                },
            ) from error
