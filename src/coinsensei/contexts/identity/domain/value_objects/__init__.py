from .one_time_code import (
    BACKUP_CODE_LENGTH,
    EMAIL_CODE_LENGTH,
    TOTP_CODE_LENGTH,
    SecondFactorCodeKind,
    classify_second_factor_code,
    is_email_code,
    sanitize_code,
)

__all__ = [
    "BACKUP_CODE_LENGTH",
    "EMAIL_CODE_LENGTH",
    "TOTP_CODE_LENGTH",
    "SecondFactorCodeKind",
    "classify_second_factor_code",
    "is_email_code",
    "sanitize_code",
]
