from .two_factor_gateway import (
    TwoFactorBackupCodesResponse,
    TwoFactorDisableResponse,
    TwoFactorEnableRequest,
    TwoFactorEnableResponse,
    TwoFactorSetupResponse,
    TwoFactorStatusResponse,
    TwoFactorVerifyRequest,
    TwoFactorVerifyResponse,
    build_two_factor_gateway_router,
)

__all__ = [
    "TwoFactorBackupCodesResponse",
    "TwoFactorDisableResponse",
    "TwoFactorEnableRequest",
    "TwoFactorEnableResponse",
    "TwoFactorSetupResponse",
    "TwoFactorStatusResponse",
    "TwoFactorVerifyRequest",
    "TwoFactorVerifyResponse",
    "build_two_factor_gateway_router",
]
