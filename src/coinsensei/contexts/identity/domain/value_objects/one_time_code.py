from __future__ import annotations

import re
from enum import Enum

TOTP_CODE_LENGTH = 6
BACKUP_CODE_LENGTH = 8
EMAIL_CODE_LENGTH = 6

_NON_DIGITS = re.compile(r"[^0-9]")


class SecondFactorCodeKind(str, Enum):
    """
    SecondFactorCodeKind — verifier a sanitized second-factor code is routed to.
    """

    TOTP = "totp"
    BACKUP = "backup"


def sanitize_code(raw_code: str) -> str:
    """
    Strip every character other than ASCII 0-9 from user-entered code.

    Args:
        raw_code: Raw input (may contain spaces, dashes, pasted text).
    Returns:
        str: ASCII digits only, possibly empty. Non-ASCII digits are dropped.
    Assumptions:
        Length and format are validated by caller after sanitization.
    Raises:
        None.
    Side Effects:
        None.
    """
    return _NON_DIGITS.sub("", raw_code or "")


def classify_second_factor_code(code: str) -> SecondFactorCodeKind | None:
    """
    Classify sanitized code by length: 6 digits is TOTP, 8 digits is a backup code.

    Args:
        code: Sanitized digits-only code.
    Returns:
        SecondFactorCodeKind | None: Code kind or `None` for unsupported length.
    Assumptions:
        Input was passed through `sanitize_code`.
    Raises:
        None.
    Side Effects:
        None.
    """
    if len(code) == TOTP_CODE_LENGTH:
        return SecondFactorCodeKind.TOTP
    if len(code) == BACKUP_CODE_LENGTH:
        return SecondFactorCodeKind.BACKUP
    return None


def is_email_code(code: str) -> bool:
    return len(code) == EMAIL_CODE_LENGTH and code.isascii() and code.isdigit()
