from __future__ import annotations

from typing import Protocol

from coinsensei.shared_kernel.primitives import AccountId


class SecondFactorVerifierUnavailableError(Exception):
    """
    SecondFactorVerifierUnavailableError — verification service could not be reached.
    """


class SecondFactorVerifier(Protocol):
    """
    SecondFactorVerifier — async client-side port of the second-factor verification gateway.

    Related:
      - src/coinsensei/contexts/identity/application/use_cases/second_factor_gateway.py
      - src/coinsensei/contexts/identity/application/use_cases/login_orchestrator.py
      - src/coinsensei/contexts/identity/adapters/outbound/second_factor/
        in_process_second_factor_verifier.py
    """

    async def verify_code(self, *, account_id: AccountId, code: str) -> bool:
        """
        Verify TOTP or backup code for account.

        Args:
            account_id: Account identifier.
            code: Sanitized 6- or 8-digit code.
        Returns:
            bool: `True` when code is accepted; backup codes are consumed.
        Assumptions:
            Wrong codes are reported as `False`.
        Raises:
            SecondFactorVerifierUnavailableError: If gateway cannot be reached.
        Side Effects:
            May consume one backup code.
        """
        ...
