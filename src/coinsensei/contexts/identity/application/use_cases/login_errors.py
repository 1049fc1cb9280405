from __future__ import annotations


class LoginFlowInvariantError(ValueError):
    """
    LoginFlowInvariantError — corrupted login flow; the attempt is torn down before raising.

    Expected failures (wrong password, wrong code) never use this family; they are
    reported through `LoginOutcome.failure`.

    Related:
      - src/coinsensei/contexts/identity/application/use_cases/login_orchestrator.py
      - src/coinsensei/contexts/identity/application/use_cases/login_state.py
    """

    def __init__(self, *, code: str, message: str) -> None:
        """
        Initialize invariant error with stable error code.

        Args:
            code: Machine-readable deterministic error code.
            message: Human-readable error description.
        Returns:
            None.
        Assumptions:
            Message never contains credentials or codes.
        Raises:
            None.
        Side Effects:
            None.
        """
        super().__init__(message)
        self.code = code
        self.message = message


class LoginContextMissingError(LoginFlowInvariantError):
    """
    LoginContextMissingError — a step was invoked with no login attempt in flight.
    """

    def __init__(self, *, step: str) -> None:
        super().__init__(
            code="login_context_missing",
            message=f"No login attempt in flight for step {step!r}.",
        )


class LoginFlowStateError(LoginFlowInvariantError):
    """
    LoginFlowStateError — a step was invoked from the wrong orchestrator state.
    """

    def __init__(self, *, step: str, expected: str, actual: str) -> None:
        super().__init__(
            code="login_flow_state",
            message=f"Step {step!r} requires state {expected!r}, got {actual!r}.",
        )
        self.expected = expected
        self.actual = actual


class RetainedPasswordMissingError(LoginFlowInvariantError):
    """
    RetainedPasswordMissingError — second factor accepted but no password left to re-auth with.
    """

    def __init__(self) -> None:
        super().__init__(
            code="retained_password_missing",
            message="Login attempt has no retained password for re-authentication.",
        )


class PendingAccountMissingError(LoginFlowInvariantError):
    """
    PendingAccountMissingError — second factor requested before an account was identified.
    """

    def __init__(self) -> None:
        super().__init__(
            code="pending_account_missing",
            message="Login attempt has no pending account for second-factor check.",
        )


class ReauthenticatedAccountMismatchError(LoginFlowInvariantError):
    """
    ReauthenticatedAccountMismatchError — provider returned a different account mid-attempt.
    """

    def __init__(self) -> None:
        super().__init__(
            code="reauthenticated_account_mismatch",
            message="Re-authenticated account does not match the pending account.",
        )
