from __future__ import annotations

import base64
from datetime import datetime, timedelta, timezone

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
    TwoFactorInvalidSecretError,
    TwoFactorSetupRequiredError,
    backup_code_digest,
)
from coinsensei.contexts.identity.domain.entities import AccountSecurityProfile
from coinsensei.shared_kernel.primitives import AccountId

_KEK_B64 = base64.b64encode(b"coinsensei-test-2fa-kek-00000001").decode("ascii")
_ACCOUNT_ID = AccountId.from_string("00000000-0000-0000-0000-000000000701")
_ARABIC_INDIC_DIGITS = str.maketrans("0123456789", "٠١٢٣٤٥٦٧٨٩")


class _MutableClock(IdentityClock):
    def __init__(self, *, now_value: datetime) -> None:
        self._now_value = now_value

    def advance(self, *, seconds: int) -> None:
        self._now_value = self._now_value + timedelta(seconds=seconds)

    def now(self) -> datetime:
        return self._now_value


class _ConcurrentEnableRepository(InMemorySecurityProfileRepository):
    """
    Repository where another request enables 2FA between the gateway check and its write.
    """

    def __init__(self, *, competing_secret_enc: bytes) -> None:
        super().__init__()
        self._competing_secret_enc = competing_secret_enc

    def enable(
        self,
        *,
        account_id: AccountId,
        secret_enc: bytes,
        updated_at: datetime,
    ) -> AccountSecurityProfile:
        super().enable(
            account_id=account_id,
            secret_enc=self._competing_secret_enc,
            updated_at=updated_at,
        )
        return super().enable(account_id=account_id, secret_enc=secret_enc, updated_at=updated_at)

def _build() -> tuple[
    SecondFactorGateway,
    InMemorySecurityProfileRepository,
    PyOtpTotpEngine,
    _MutableClock,
]:
    repository = InMemorySecurityProfileRepository()
    engine = PyOtpTotpEngine()
    clock = _MutableClock(now_value=datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc))
    gateway = SecondFactorGateway(
        repository=repository,
        secret_cipher=AesGcmEnvelopeSecretCipher(kek_b64=_KEK_B64),
        totp_engine=engine,
        clock=clock,
    )
    return gateway, repository, engine, clock


def _enable(gateway: SecondFactorGateway) -> str:
    secret = gateway.generate_secret(account_id=_ACCOUNT_ID)
    assert gateway.enable(account_id=_ACCOUNT_ID, secret=secret) is True
    return secret


def test_generate_secret_stores_encrypted_pending_secret() -> None:
    gateway, repository, _, _ = _build()

    secret = gateway.generate_secret(account_id=_ACCOUNT_ID)

    stored = repository.find_by_account_id(account_id=_ACCOUNT_ID)
    assert stored is not None
    assert stored.two_factor_secret_enc is not None
    assert secret.encode("ascii") not in stored.two_factor_secret_enc
    status = gateway.get_status(account_id=_ACCOUNT_ID)
    assert (status.enabled, status.has_secret, status.backup_codes_remaining) == (False, True, 0)


def test_verify_code_accepts_current_totp_and_rejects_stale_code() -> None:
    """
    Verify enabled account accepts current TOTP code and rejects code outside the window.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Default engine accepts one step on each side of the current step.
    Raises:
        AssertionError: If gateway verdicts differ.
    Side Effects:
        None.
    """
    gateway, _, engine, clock = _build()
    secret = _enable(gateway)
    code = engine.generate(secret=secret, at_time=clock.now())

    assert gateway.verify_code(account_id=_ACCOUNT_ID, code=code) is True
    assert gateway.verify_code(account_id=_ACCOUNT_ID, code=f"{code[:3]} {code[3:]}") is True

    clock.advance(seconds=90)
    assert gateway.verify_code(account_id=_ACCOUNT_ID, code=code) is False


def test_verify_code_rejects_unsupported_lengths_and_unknown_accounts() -> None:
    gateway, _, _, _ = _build()
    _enable(gateway)
    unknown = AccountId.from_string("00000000-0000-0000-0000-000000000799")

    assert gateway.verify_code(account_id=_ACCOUNT_ID, code="") is False
    assert gateway.verify_code(account_id=_ACCOUNT_ID, code="12345") is False
    assert gateway.verify_code(account_id=_ACCOUNT_ID, code="1234567") is False
    assert gateway.verify_code(account_id=unknown, code="123456") is False


def test_backup_codes_are_single_use_and_replaced_as_a_set() -> None:
    gateway, repository, _, _ = _build()
    _enable(gateway)

    first_batch = gateway.generate_backup_codes(account_id=_ACCOUNT_ID)
    stored = repository.find_by_account_id(account_id=_ACCOUNT_ID)
    assert stored is not None
    assert stored.backup_code_digests == frozenset(
        backup_code_digest(code) for code in first_batch
    )

    assert gateway.verify_code(account_id=_ACCOUNT_ID, code=first_batch[0]) is True
    assert gateway.verify_code(account_id=_ACCOUNT_ID, code=first_batch[0]) is False
    assert gateway.get_status(account_id=_ACCOUNT_ID).backup_codes_remaining == 7

    second_batch = gateway.generate_backup_codes(account_id=_ACCOUNT_ID)
    assert gateway.verify_code(account_id=_ACCOUNT_ID, code=first_batch[1]) is (
        first_batch[1] in second_batch
    )
    assert gateway.get_status(account_id=_ACCOUNT_ID).backup_codes_remaining == 8


def test_disable_clears_secret_and_is_idempotent() -> None:
    gateway, _, engine, clock = _build()
    secret = _enable(gateway)
    codes = gateway.generate_backup_codes(account_id=_ACCOUNT_ID)

    gateway.disable(account_id=_ACCOUNT_ID)
    gateway.disable(account_id=_ACCOUNT_ID)

    code = engine.generate(secret=secret, at_time=clock.now())
    assert gateway.verify_code(account_id=_ACCOUNT_ID, code=code) is False
    assert gateway.verify_code(account_id=_ACCOUNT_ID, code=codes[0]) is False
    status = gateway.get_status(account_id=_ACCOUNT_ID)
    assert (status.enabled, status.has_secret, status.backup_codes_remaining) == (False, False, 0)


def test_enabled_account_refuses_secret_rotation_and_re_enable() -> None:
    gateway, _, _, _ = _build()
    secret = _enable(gateway)

    with pytest.raises(TwoFactorAlreadyEnabledError) as error_info:
        gateway.generate_secret(account_id=_ACCOUNT_ID)
    assert error_info.value.status_code == 409
    with pytest.raises(TwoFactorAlreadyEnabledError):
        gateway.enable(account_id=_ACCOUNT_ID, secret=secret)


def test_enable_rejects_malformed_secret_and_backup_codes_require_secret() -> None:
    gateway, _, _, _ = _build()

    with pytest.raises(TwoFactorInvalidSecretError):
        gateway.enable(account_id=_ACCOUNT_ID, secret="not-base32!")
    with pytest.raises(TwoFactorSetupRequiredError) as error_info:
        gateway.generate_backup_codes(account_id=_ACCOUNT_ID)
    assert error_info.value.payload()["error"] == "two_factor_setup_required"


def test_verify_code_returns_false_for_non_ascii_digits_without_consuming() -> None:
    """
    Verify codes typed with non-ASCII digits are rejected instead of raising.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Sanitization keeps ASCII 0-9 only, so Arabic-Indic digits leave an empty code.
    Raises:
        AssertionError: If verification raises or consumes a backup code.
    Side Effects:
        None.
    """
    gateway, _, engine, clock = _build()
    secret = _enable(gateway)
    codes = gateway.generate_backup_codes(account_id=_ACCOUNT_ID)
    totp_code = engine.generate(secret=secret, at_time=clock.now())

    assert gateway.verify_code(account_id=_ACCOUNT_ID, code="١٢٣٤٥٦٧٨") is False
    assert (
        gateway.verify_code(account_id=_ACCOUNT_ID, code=codes[0].translate(_ARABIC_INDIC_DIGITS))
        is False
    )
    assert (
        gateway.verify_code(account_id=_ACCOUNT_ID, code=totp_code.translate(_ARABIC_INDIC_DIGITS))
        is False
    )
    assert gateway.get_status(account_id=_ACCOUNT_ID).backup_codes_remaining == 8
    assert gateway.verify_code(account_id=_ACCOUNT_ID, code=codes[0]) is True


def test_enable_losing_a_concurrent_enable_raises_and_keeps_winning_secret() -> None:
    """
    Verify enable refuses to overwrite a secret committed by a concurrent enable.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Repository `enable` never overwrites an enabled row and returns it unchanged.
    Raises:
        AssertionError: If the later enable reports success or replaces the secret.
    Side Effects:
        None.
    """
    cipher = AesGcmEnvelopeSecretCipher(kek_b64=_KEK_B64)
    engine = PyOtpTotpEngine()
    competing_secret = engine.create_secret()
    repository = _ConcurrentEnableRepository(
        competing_secret_enc=cipher.encrypt_secret(secret=competing_secret),
    )
    clock = _MutableClock(now_value=datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc))
    gateway = SecondFactorGateway(
        repository=repository,
        secret_cipher=cipher,
        totp_engine=engine,
        clock=clock,
    )
    own_secret = gateway.generate_secret(account_id=_ACCOUNT_ID)

    with pytest.raises(TwoFactorAlreadyEnabledError):
        gateway.enable(account_id=_ACCOUNT_ID, secret=own_secret)

    stored = repository.find_by_account_id(account_id=_ACCOUNT_ID)
    assert stored is not None
    assert stored.two_factor_enabled
    assert stored.two_factor_secret_enc is not None
    assert cipher.decrypt_secret(secret_enc=stored.two_factor_secret_enc) == competing_secret


def test_in_memory_enable_returns_enabled_row_unchanged() -> None:
    repository = InMemorySecurityProfileRepository()
    now = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)
    first = repository.enable(account_id=_ACCOUNT_ID, secret_enc=b"first", updated_at=now)

    second = repository.enable(
        account_id=_ACCOUNT_ID,
        secret_enc=b"second",
        updated_at=now + timedelta(seconds=5),
    )

    assert second == first
    assert second.two_factor_secret_enc == b"first"
