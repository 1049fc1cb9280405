from .aes_gcm_envelope_secret_cipher import (
    DEVICE_VAULT_AAD,
    TOTP_SECRET_AAD,
    AesGcmEnvelopeSecretCipher,
)
from .pyotp_totp_engine import PyOtpTotpEngine

__all__ = [
    "DEVICE_VAULT_AAD",
    "TOTP_SECRET_AAD",
    "AesGcmEnvelopeSecretCipher",
    "PyOtpTotpEngine",
]
