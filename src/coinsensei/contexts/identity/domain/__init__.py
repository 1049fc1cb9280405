from .entities import AccountProfile, AccountSecurityProfile, BiometricCredential
from .value_objects import SecondFactorCodeKind, sanitize_code

__all__ = [
    "AccountProfile",
    "AccountSecurityProfile",
    "BiometricCredential",
    "SecondFactorCodeKind",
    "sanitize_code",
]
