from __future__ import annotations

import base64
from datetime import datetime, timezone
from urllib.parse import parse_qs, urlparse

import pytest

from coinsensei.contexts.identity.adapters.outbound import (
    AesGcmEnvelopeSecretCipher,
    InMemorySecurityProfileRepository,
    PyOtpTotpEngine,
)
from coinsensei.contexts.identity.application.ports import IdentityClock
from coinsensei.contexts.identity.application.use_cases import (
    SecondFactorGateway,
    TwoFactorAlreadyEnabledError,
    TwoFactorSetupUseCase,
)
from coinsensei.shared_kernel.primitives import AccountId

_KEK_B64 = base64.b64encode(b"coinsensei-test-2fa-kek-00000001").decode("ascii")
_ACCOUNT_ID = AccountId.from_string("00000000-0000-0000-0000-000000000801")


class _FixedClock(IdentityClock):
    def __init__(self, *, now_value: datetime) -> None:
        self._now_value = now_value

    def now(self) -> datetime:
        return self._now_value


def _build() -> tuple[TwoFactorSetupUseCase, SecondFactorGateway, PyOtpTotpEngine, _FixedClock]:
    engine = PyOtpTotpEngine()
    clock = _FixedClock(now_value=datetime(2026, 3, 2, 8, 30, 0, tzinfo=timezone.utc))
    gateway = SecondFactorGateway(
        repository=InMemorySecurityProfileRepository(),
        secret_cipher=AesGcmEnvelopeSecretCipher(kek_b64=_KEK_B64),
        totp_engine=engine,
        clock=clock,
    )
    use_case = TwoFactorSetupUseCase(
        gateway=gateway,
        totp_engine=engine,
        clock=clock,
        issuer="CoinSensei",
    )
    return use_case, gateway, engine, clock


def _wrong_code(engine: PyOtpTotpEngine, secret: str, clock: _FixedClock) -> str:
    candidate = 0
    while engine.verify(secret=secret, code=f"{candidate:06d}", at_time=clock.now()):
        candidate += 1
    return f"{candidate:06d}"


def test_begin_then_confirm_enables_and_returns_backup_codes() -> None:
    """
    Verify full setup: secret + URI, confirmation with a current code, eight backup codes.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Default backup code count is 8.
    Raises:
        AssertionError: If setup does not end in enabled state.
    Side Effects:
        None.
    """
    use_case, gateway, engine, clock = _build()

    start = use_case.begin(account_id=_ACCOUNT_ID, account_label="bob@example.com")
    query = parse_qs(urlparse(start.otpauth_uri).query)
    assert query["secret"] == [start.secret]
    assert query["issuer"] == ["CoinSensei"]
    assert start.secret not in repr(start)

    code = engine.generate(secret=start.secret, at_time=clock.now())
    result = use_case.confirm(account_id=_ACCOUNT_ID, secret=start.secret, code=code)

    assert result.enabled is True
    assert len(result.backup_codes) == 8
    status = gateway.get_status(account_id=_ACCOUNT_ID)
    assert status.enabled is True
    assert status.backup_codes_remaining == 8
    assert gateway.verify_code(account_id=_ACCOUNT_ID, code=result.backup_codes[0]) is True


def test_confirm_with_wrong_code_leaves_account_disabled() -> None:
    use_case, gateway, engine, clock = _build()
    start = use_case.begin(account_id=_ACCOUNT_ID, account_label="bob@example.com")

    wrong = use_case.confirm(
        account_id=_ACCOUNT_ID,
        secret=start.secret,
        code=_wrong_code(engine, start.secret, clock),
    )
    short = use_case.confirm(account_id=_ACCOUNT_ID, secret=start.secret, code="123")

    assert wrong.enabled is False
    assert wrong.backup_codes == ()
    assert short.enabled is False
    status = gateway.get_status(account_id=_ACCOUNT_ID)
    assert status.enabled is False
    assert status.has_secret is True


def test_begin_again_replaces_pending_secret_and_refuses_after_enable() -> None:
    use_case, _, engine, clock = _build()
    first = use_case.begin(account_id=_ACCOUNT_ID, account_label="bob@example.com")
    second = use_case.begin(account_id=_ACCOUNT_ID, account_label="bob@example.com")
    assert first.secret != second.secret

    code = engine.generate(secret=second.secret, at_time=clock.now())
    assert use_case.confirm(account_id=_ACCOUNT_ID, secret=second.secret, code=code).enabled

    with pytest.raises(TwoFactorAlreadyEnabledError):
        use_case.begin(account_id=_ACCOUNT_ID, account_label="bob@example.com")
