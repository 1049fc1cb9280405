from __future__ import annotations

from dataclasses import dataclass

from coinsensei.shared_kernel.primitives import AccountId

KYC_NOT_SUBMITTED = "not_submitted"


@dataclass(frozen=True, slots=True)
class AccountProfile:
    """
    AccountProfile — user profile materialized once a session is established.

    `degraded` marks a profile built from session claims while the profile store was
    unreachable; the session itself stays valid.

    Related:
      - src/coinsensei/contexts/identity/application/ports/account_profile_store.py
      - src/coinsensei/contexts/identity/application/use_cases/login_orchestrator.py
    """

    account_id: AccountId
    email: str
    full_name: str
    two_factor_enabled: bool
    kyc_status: str = KYC_NOT_SUBMITTED
    biometric_enabled: bool = False
    degraded: bool = False

    def __post_init__(self) -> None:
        if not self.kyc_status.strip():
            raise ValueError("AccountProfile.kyc_status must be non-empty")
