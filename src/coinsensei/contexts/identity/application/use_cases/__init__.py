from .biometric_credentials import (
    BIOMETRIC_CREDENTIALS_KEY,
    BIOMETRIC_ENABLED_KEY,
    BiometricCredentialStore,
    BiometricEnrollmentUseCase,
)
from .change_password import ChangePasswordFailure, ChangePasswordResult, ChangePasswordUseCase
from .login_errors import (
    LoginContextMissingError,
    LoginFlowInvariantError,
    LoginFlowStateError,
    PendingAccountMissingError,
    ReauthenticatedAccountMismatchError,
    RetainedPasswordMissingError,
)
from .login_orchestrator import AUTH_CHAIN_MARKER_KEY, AuthenticationOrchestrator
from .login_state import LoginContext, LoginFailure, LoginOutcome, LoginState
from .resend_cooldown import ResendCooldown
from .second_factor_gateway import SecondFactorGateway, TwoFactorStatus, backup_code_digest
from .two_factor_errors import (
    TwoFactorAlreadyEnabledError,
    TwoFactorInvalidCodeError,
    TwoFactorInvalidSecretError,
    TwoFactorOperationError,
    TwoFactorSetupRequiredError,
)
from .two_factor_setup import TwoFactorSetupResult, TwoFactorSetupStart, TwoFactorSetupUseCase

__all__ = [
    "AUTH_CHAIN_MARKER_KEY",
    "BIOMETRIC_CREDENTIALS_KEY",
    "BIOMETRIC_ENABLED_KEY",
    "AuthenticationOrchestrator",
    "BiometricCredentialStore",
    "BiometricEnrollmentUseCase",
    "ChangePasswordFailure",
    "ChangePasswordResult",
    "ChangePasswordUseCase",
    "LoginContext",
    "LoginContextMissingError",
    "LoginFailure",
    "LoginFlowInvariantError",
    "LoginFlowStateError",
    "LoginOutcome",
    "LoginState",
    "PendingAccountMissingError",
    "ReauthenticatedAccountMismatchError",
    "ResendCooldown",
    "RetainedPasswordMissingError",
    "SecondFactorGateway",
    "TwoFactorAlreadyEnabledError",
    "TwoFactorInvalidCodeError",
    "TwoFactorInvalidSecretError",
    "TwoFactorOperationError",
    "TwoFactorSetupRequiredError",
    "TwoFactorSetupResult",
    "TwoFactorSetupStart",
    "TwoFactorSetupUseCase",
    "TwoFactorStatus",
    "backup_code_digest",
]
