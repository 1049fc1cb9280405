from .ports import (
    AccountProfileStore,
    AuthSession,
    IdentityClock,
    IdentityProvider,
    SecondFactorVerifier,
    SecretCipher,
    SecretVault,
    SecurityProfileRepository,
    SessionEvent,
    SessionEventKind,
    TotpEngine,
)
from .use_cases import (
    AuthenticationOrchestrator,
    LoginFailure,
    LoginOutcome,
    LoginState,
    SecondFactorGateway,
    TwoFactorSetupUseCase,
)

__all__ = [
    "AccountProfileStore",
    "AuthSession",
    "AuthenticationOrchestrator",
    "IdentityClock",
    "IdentityProvider",
    "LoginFailure",
    "LoginOutcome",
    "LoginState",
    "SecondFactorGateway",
    "SecondFactorVerifier",
    "SecretCipher",
    "SecretVault",
    "SecurityProfileRepository",
    "SessionEvent",
    "SessionEventKind",
    "TotpEngine",
    "TwoFactorSetupUseCase",
]
