from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from coinsensei.contexts.identity.adapters.inbound.api.deps.current_account import (
    RequireCurrentAccountDependency,
)
from coinsensei.contexts.identity.application.ports.access_token_codec import AccessTokenClaims
from coinsensei.contexts.identity.application.use_cases import (
    SecondFactorGateway,
    TwoFactorInvalidCodeError,
    TwoFactorOperationError,
    TwoFactorSetupUseCase,
)


class TwoFactorStatusResponse(BaseModel):
    enabled: bool
    has_secret: bool
    backup_codes_remaining: int


class TwoFactorSetupResponse(BaseModel):
    """
    TwoFactorSetupResponse — `POST /2fa/setup` payload; the UI renders `otpauth_uri` as QR.
    """

    secret: str
    otpauth_uri: str


class TwoFactorEnableRequest(BaseModel):
    secret: str
    code: str


class TwoFactorEnableResponse(BaseModel):
    enabled: bool
    backup_codes: list[str]


class TwoFactorDisableResponse(BaseModel):
    enabled: bool


class TwoFactorVerifyRequest(BaseModel):
    code: str


class TwoFactorVerifyResponse(BaseModel):
    valid: bool


class TwoFactorBackupCodesResponse(BaseModel):
    backup_codes: list[str]


def build_two_factor_gateway_router(
    *,
    gateway: SecondFactorGateway,
    setup_use_case: TwoFactorSetupUseCase,
    current_account_dependency: RequireCurrentAccountDependency,
) -> APIRouter:
    """
    Build router exposing the second-factor verification gateway.

    Args:
        gateway: Server-side 2FA gateway.
        setup_use_case: Guided setup flow (begin and confirm).
        current_account_dependency: Bearer-token auth dependency.
    Returns:
        APIRouter: Router with `/2fa/status`, `/2fa/setup`, `/2fa/enable`, `/2fa/disable`,
            `/2fa/verify` and `/2fa/backup-codes`.
    Assumptions:
        Every endpoint acts on the account of the bearer token only.
    Raises:
        ValueError: If required dependencies are missing.
    Side Effects:
        None.
    """
    if gateway is None:  # type: ignore[truthy-bool]
        raise ValueError("build_two_factor_gateway_router requires gateway")
    if setup_use_case is None:  # type: ignore[truthy-bool]
        raise ValueError("build_two_factor_gateway_router requires setup_use_case")
    if current_account_dependency is None:  # type: ignore[truthy-bool]
        raise ValueError("build_two_factor_gateway_router requires current_account_dependency")

    router = APIRouter(tags=["identity"])

    @router.get("/2fa/status", response_model=TwoFactorStatusResponse)
    def get_two_factor_status(
        claims: AccessTokenClaims = Depends(current_account_dependency),
    ) -> TwoFactorStatusResponse:
        status = gateway.get_status(account_id=claims.account_id)
        return TwoFactorStatusResponse(
            enabled=status.enabled,
            has_secret=status.has_secret,
            backup_codes_remaining=status.backup_codes_remaining,
        )

    @router.post("/2fa/setup", response_model=TwoFactorSetupResponse)
    def post_two_factor_setup(
        claims: AccessTokenClaims = Depends(current_account_dependency),
    ) -> TwoFactorSetupResponse:
        """
        Store fresh pending secret and return it with the otpauth URI.

        Args:
            claims: Authenticated account claims.
        Returns:
            TwoFactorSetupResponse: Secret for manual entry and URI for QR rendering.
        Assumptions:
            Rejected with 409 while 2FA is enabled.
        Raises:
            HTTPException: Deterministic 4xx payload on policy errors.
        Side Effects:
            Persists encrypted pending secret.
        """
        try:
            start = setup_use_case.begin(account_id=claims.account_id, account_label=claims.email)
        except TwoFactorOperationError as error:
            raise _http_error(error) from error
        return TwoFactorSetupResponse(secret=start.secret, otpauth_uri=start.otpauth_uri)

    @router.post("/2fa/enable", response_model=TwoFactorEnableResponse)
    def post_two_factor_enable(
        request: TwoFactorEnableRequest,
        claims: AccessTokenClaims = Depends(current_account_dependency),
    ) -> TwoFactorEnableResponse:
        """
        Confirm authenticator enrollment with a code, enable 2FA and issue backup codes.

        Args:
            request: Secret from setup and the current authenticator code.
            claims: Authenticated account claims.
        Returns:
            TwoFactorEnableResponse: Enabled marker and one-time visible backup codes.
        Assumptions:
            Wrong code leaves storage untouched.
        Raises:
            HTTPException: 422 for wrong code or malformed secret, 409 when already enabled.
        Side Effects:
            Enables 2FA and stores backup code digests.
        """
        try:
            result = setup_use_case.confirm(
                account_id=claims.account_id,
                secret=request.secret,
                code=request.code,
            )
            if not result.enabled:
                raise TwoFactorInvalidCodeError()
        except TwoFactorOperationError as error:
            raise _http_error(error) from error
        return TwoFactorEnableResponse(enabled=True, backup_codes=list(result.backup_codes))

    @router.post("/2fa/disable", response_model=TwoFactorDisableResponse)
    def post_two_factor_disable(
        claims: AccessTokenClaims = Depends(current_account_dependency),
    ) -> TwoFactorDisableResponse:
        gateway.disable(account_id=claims.account_id)
        return TwoFactorDisableResponse(enabled=False)

    @router.post("/2fa/verify", response_model=TwoFactorVerifyResponse)
    def post_two_factor_verify(
        request: TwoFactorVerifyRequest,
        claims: AccessTokenClaims = Depends(current_account_dependency),
    ) -> TwoFactorVerifyResponse:
        """
        Verify TOTP or backup code of the calling account.

        Args:
            request: Submitted code.
            claims: Authenticated account claims.
        Returns:
            TwoFactorVerifyResponse: `valid=false` for any wrong or malformed code.
        Assumptions:
            Accepted backup codes are consumed.
        Raises:
            None.
        Side Effects:
            May remove one backup code.
        """
        valid = gateway.verify_code(account_id=claims.account_id, code=request.code)
        return TwoFactorVerifyResponse(valid=valid)

    @router.post("/2fa/backup-codes", response_model=TwoFactorBackupCodesResponse)
    def post_two_factor_backup_codes(
        claims: AccessTokenClaims = Depends(current_account_dependency),
    ) -> TwoFactorBackupCodesResponse:
        try:
            codes = gateway.generate_backup_codes(account_id=claims.account_id)
        except TwoFactorOperationError as error:
            raise _http_error(error) from error
        return TwoFactorBackupCodesResponse(backup_codes=list(codes))

    return router


def _http_error(error: TwoFactorOperationError) -> HTTPException:
    return HTTPException(status_code=error.status_code, detail=error.payload())
