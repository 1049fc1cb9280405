from .access_token_codec import AccessTokenClaims, AccessTokenCodec, AccessTokenDecodeError
from .account_profile_store import AccountProfileStore, AccountProfileUnavailableError
from .biometric_challenge import BiometricChallenge
from .clock import IdentityClock
from .identity_provider import (
    AuthSession,
    IdentityCredentialsRejectedError,
    IdentityProvider,
    IdentityProviderError,
    IdentityProviderUnavailableError,
    SessionEvent,
    SessionEventKind,
)
from .second_factor_verifier import SecondFactorVerifier, SecondFactorVerifierUnavailableError
from .secret_cipher import SecretCipher
from .secret_vault import SecretVault
from .security_profile_repository import SecurityProfileRepository
from .totp_engine import TotpEngine

__all__ = [
    "AccessTokenClaims",
    "AccessTokenCodec",
    "AccessTokenDecodeError",
    "AccountProfileStore",
    "AccountProfileUnavailableError",
    "AuthSession",
    "BiometricChallenge",
    "IdentityClock",
    "IdentityCredentialsRejectedError",
    "IdentityProvider",
    "IdentityProviderError",
    "IdentityProviderUnavailableError",
    "SecondFactorVerifier",
    "SecondFactorVerifierUnavailableError",
    "SecretCipher",
    "SecretVault",
    "SecurityProfileRepository",
    "SessionEvent",
    "SessionEventKind",
    "TotpEngine",
]
