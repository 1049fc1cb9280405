from .jwt import Hs256AccessTokenCodec
from .two_factor import (
    DEVICE_VAULT_AAD,
    TOTP_SECRET_AAD,
    AesGcmEnvelopeSecretCipher,
    PyOtpTotpEngine,
)

__all__ = [
    "DEVICE_VAULT_AAD",
    "TOTP_SECRET_AAD",
    "AesGcmEnvelopeSecretCipher",
    "Hs256AccessTokenCodec",
    "PyOtpTotpEngine",
]
