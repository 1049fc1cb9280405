from __future__ import annotations


class TwoFactorOperationError(ValueError):
    """
    TwoFactorOperationError — base deterministic application error of the 2FA gateway.

    Related:
      - src/coinsensei/contexts/identity/application/use_cases/second_factor_gateway.py
      - src/coinsensei/contexts/identity/application/use_cases/two_factor_setup.py
      - src/coinsensei/contexts/identity/adapters/inbound/api/routes/two_factor_gateway.py
    """

    def __init__(self, *, code: str, message: str, status_code: int) -> None:
        """
        Initialize stable operation error attributes for HTTP mapping.

        Args:
            code: Machine-readable deterministic error code.
            message: Human-readable deterministic message.
            status_code: HTTP status expected by inbound adapter.
        Returns:
            None.
        Assumptions:
            Status code is final; the router maps it without extra logic.
        Raises:
            None.
        Side Effects:
            None.
        """
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code

    def payload(self) -> dict[str, str]:
        """
        Build deterministic HTTP error payload with stable key order.

        Args:
            None.
        Returns:
            dict[str, str]: `{"error": "...", "message": "..."}` payload.
        Assumptions:
            Payload is consumed by FastAPI HTTPException `detail`.
        Raises:
            None.
        Side Effects:
            None.
        """
        return {
            "error": self.code,
            "message": self.message,
        }


class TwoFactorAlreadyEnabledError(TwoFactorOperationError):
    """
    TwoFactorAlreadyEnabledError — secret rotation or re-enable requested while 2FA is on.

    An explicit disable must come first so an enabled secret is never silently replaced.
    """

    def __init__(self) -> None:
        super().__init__(
            code="two_factor_already_enabled",
            message="Two-factor authentication is already enabled.",
            status_code=409,
        )


class TwoFactorSetupRequiredError(TwoFactorOperationError):
    """
    TwoFactorSetupRequiredError — operation needs a stored secret but none exists.
    """

    def __init__(self) -> None:
        super().__init__(
            code="two_factor_setup_required",
            message="Two-factor setup must be completed first.",
            status_code=422,
        )


class TwoFactorInvalidSecretError(TwoFactorOperationError):
    """
    TwoFactorInvalidSecretError — submitted secret is empty or not base32.
    """

    def __init__(self) -> None:
        super().__init__(
            code="invalid_two_factor_secret",
            message="Invalid two-factor authentication secret.",
            status_code=422,
        )


class TwoFactorInvalidCodeError(TwoFactorOperationError):
    """
    TwoFactorInvalidCodeError — submitted code was malformed or verification failed.

    Raised only by HTTP-facing flows; `SecondFactorGateway.verify_code` reports `False`.
    """

    def __init__(self) -> None:
        super().__init__(
            code="invalid_two_factor_code",
            message="Invalid two-factor authentication code.",
            status_code=422,
        )
