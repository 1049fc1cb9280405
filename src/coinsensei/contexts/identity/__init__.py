from .application import (
    AuthenticationOrchestrator,
    AuthSession,
    LoginFailure,
    LoginOutcome,
    LoginState,
    SecondFactorGateway,
    SessionEvent,
    SessionEventKind,
    TwoFactorSetupUseCase,
)
from .domain import AccountProfile, AccountSecurityProfile, BiometricCredential

__all__ = [
    "AccountProfile",
    "AccountSecurityProfile",
    "AuthSession",
    "AuthenticationOrchestrator",
    "BiometricCredential",
    "LoginFailure",
    "LoginOutcome",
    "LoginState",
    "SecondFactorGateway",
    "SessionEvent",
    "SessionEventKind",
    "TwoFactorSetupUseCase",
]
