"""
Adapters package for identity bounded context.
"""

from .inbound import RequireCurrentAccountDependency, build_two_factor_gateway_router
from .outbound import (
    AesGcmEnvelopeSecretCipher,
    EncryptedFileSecretVault,
    Hs256AccessTokenCodec,
    InMemoryAccountProfileStore,
    InMemoryIdentityProvider,
    InMemorySecretVault,
    InMemorySecurityProfileRepository,
    InProcessSecondFactorVerifier,
    PostgresSecurityProfileRepository,
    PsycopgIdentityPostgresGateway,
    PyOtpTotpEngine,
    SystemIdentityClock,
)

__all__ = [
    "AesGcmEnvelopeSecretCipher",
    "EncryptedFileSecretVault",
    "Hs256AccessTokenCodec",
    "InMemoryAccountProfileStore",
    "InMemoryIdentityProvider",
    "InMemorySecretVault",
    "InMemorySecurityProfileRepository",
    "InProcessSecondFactorVerifier",
    "PostgresSecurityProfileRepository",
    "PsycopgIdentityPostgresGateway",
    "PyOtpTotpEngine",
    "RequireCurrentAccountDependency",
    "SystemIdentityClock",
    "build_two_factor_gateway_router",
]
