from __future__ import annotations

from typing import Protocol


class BiometricChallenge(Protocol):
    """
    BiometricChallenge — async port of the device biometric prompt.

    Related:
      - src/coinsensei/contexts/identity/application/use_cases/biometric_credentials.py
      - src/coinsensei/contexts/identity/application/use_cases/login_orchestrator.py
    """

    async def is_available(self) -> bool:
        """
        Report whether device has biometric hardware with enrolled data.

        Args:
            None.
        Returns:
            bool: `True` when a challenge can be presented.
        Assumptions:
            None.
        Raises:
            None.
        Side Effects:
            None.
        """
        ...

    async def challenge(self, *, prompt: str) -> bool:
        """
        Present biometric prompt and wait for the user.

        Args:
            prompt: Prompt text shown by the device.
        Returns:
            bool: `True` when the user passed the challenge.
        Assumptions:
            User cancellation is reported as `False`.
        Raises:
            None.
        Side Effects:
            Shows device prompt.
        """
        ...
