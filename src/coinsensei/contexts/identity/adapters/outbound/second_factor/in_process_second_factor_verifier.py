from __future__ import annotations

import asyncio
import logging

from coinsensei.contexts.identity.application.ports.second_factor_verifier import (
    SecondFactorVerifier,
    SecondFactorVerifierUnavailableError,
)
from coinsensei.contexts.identity.application.use_cases.second_factor_gateway import (
    SecondFactorGateway,
)
from coinsensei.shared_kernel.primitives import AccountId

log = logging.getLogger(__name__)


class InProcessSecondFactorVerifier(SecondFactorVerifier):
    """
    InProcessSecondFactorVerifier — async client calling the gateway in the same process.

    Gateway calls block on storage, so they run in a worker thread.

    Related:
      - src/coinsensei/contexts/identity/application/ports/second_factor_verifier.py
      - src/coinsensei/contexts/identity/application/use_cases/second_factor_gateway.py
    """

    def __init__(self, *, gateway: SecondFactorGateway) -> None:
        if gateway is None:  # type: ignore[truthy-bool]
            raise ValueError("InProcessSecondFactorVerifier requires gateway")
        self._gateway = gateway

    async def verify_code(self, *, account_id: AccountId, code: str) -> bool:
        """
        Delegate verification to gateway in a worker thread.

        Args:
            account_id: Account identifier.
            code: Sanitized 6- or 8-digit code.
        Returns:
            bool: Gateway verdict.
        Assumptions:
            Wrong codes are `False`; storage failures are transient.
        Raises:
            SecondFactorVerifierUnavailableError: If gateway storage fails.
        Side Effects:
            May consume one backup code.
        """
        try:
            return await asyncio.to_thread(
                self._gateway.verify_code,
                account_id=account_id,
                code=code,
            )
        except (OSError, ValueError) as error:
            log.exception("second factor gateway failed account_id=%s", account_id)
            raise SecondFactorVerifierUnavailableError(
                "second factor verification unavailable"
            ) from error
