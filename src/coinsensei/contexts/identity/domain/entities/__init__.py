from .account_profile import KYC_NOT_SUBMITTED, AccountProfile
from .account_security_profile import AccountSecurityProfile
from .biometric_credential import BiometricCredential

__all__ = [
    "KYC_NOT_SUBMITTED",
    "AccountProfile",
    "AccountSecurityProfile",
    "BiometricCredential",
]
