from .identity_provider import InMemoryIdentityProvider
from .persistence import (
    IdentityPostgresGateway,
    InMemoryAccountProfileStore,
    InMemorySecurityProfileRepository,
    PostgresSecurityProfileRepository,
    PsycopgIdentityPostgresGateway,
)
from .second_factor import InProcessSecondFactorVerifier
from .security import (
    DEVICE_VAULT_AAD,
    TOTP_SECRET_AAD,
    AesGcmEnvelopeSecretCipher,
    Hs256AccessTokenCodec,
    PyOtpTotpEngine,
)
from .time import SystemIdentityClock
from .vault import EncryptedFileSecretVault, InMemorySecretVault

__all__ = [
    "DEVICE_VAULT_AAD",
    "TOTP_SECRET_AAD",
    "AesGcmEnvelopeSecretCipher",
    "EncryptedFileSecretVault",
    "Hs256AccessTokenCodec",
    "IdentityPostgresGateway",
    "InMemoryAccountProfileStore",
    "InMemoryIdentityProvider",
    "InMemorySecretVault",
    "InMemorySecurityProfileRepository",
    "InProcessSecondFactorVerifier",
    "PostgresSecurityProfileRepository",
    "PsycopgIdentityPostgresGateway",
    "PyOtpTotpEngine",
    "SystemIdentityClock",
]
