"""
Composition helpers for identity API module (second-factor verification gateway).

Related: coinsensei.contexts.identity.adapters.inbound.api.routes.two_factor_gateway,
  coinsensei.platform.config.auth_flow,
  apps.api.main.app
"""

from __future__ import annotations

import base64
import hashlib
import logging
from dataclasses import dataclass
from typing import Mapping

from fastapi import APIRouter

from coinsensei.contexts.identity.adapters.inbound.api import (
    RequireCurrentAccountDependency,
    build_two_factor_gateway_router,
)
from coinsensei.contexts.identity.adapters.outbound import (
    AesGcmEnvelopeSecretCipher,
    Hs256AccessTokenCodec,
    InMemorySecurityProfileRepository,
    PostgresSecurityProfileRepository,
    PsycopgIdentityPostgresGateway,
    PyOtpTotpEngine,
    SystemIdentityClock,
)
from coinsensei.contexts.identity.application import (
    IdentityClock,
    SecondFactorGateway,
    SecurityProfileRepository,
    TwoFactorSetupUseCase,
)
from coinsensei.platform.config import AuthFlowConfig, load_auth_flow_config

log = logging.getLogger(__name__)

_ENV_NAME_KEY = "COINSENSEI_ENV"
_IDENTITY_FAIL_FAST_KEY = "IDENTITY_FAIL_FAST"
_ACCESS_TOKEN_SECRET_KEY = "IDENTITY_ACCESS_TOKEN_SECRET"
_TWO_FACTOR_KEK_KEY = "IDENTITY_2FA_KEK_B64"
_IDENTITY_PG_DSN_KEY = "IDENTITY_PG_DSN"
_IDENTITY_PROFILE_TABLE_KEY = "IDENTITY_PROFILE_TABLE"
_ALLOWED_ENVS = ("dev", "prod", "test")

_DEV_ACCESS_TOKEN_SECRET = "dev-identity-access-token-secret"
_DEV_KEK_SEED = b"coinsensei-dev-2fa-kek"


@dataclass(frozen=True, slots=True)
class IdentityRuntimeSettings:
    """
    IdentityRuntimeSettings — runtime policy for identity API wiring.

    Related:
      - apps/api/wiring/modules/identity.py
      - apps/api/main/app.py
      - src/coinsensei/contexts/identity/application/use_cases/second_factor_gateway.py
    """

    env_name: str
    fail_fast: bool
    access_token_secret: str
    two_factor_kek_b64: str
    postgres_dsn: str
    profile_table: str

    def __post_init__(self) -> None:
        """
        Validate identity runtime settings invariants.

        Args:
            None.
        Returns:
            None.
        Assumptions:
            Values are normalized by resolver before dataclass construction.
        Raises:
            ValueError: If one of invariants is violated.
        Side Effects:
            None.
        """
        if self.env_name not in _ALLOWED_ENVS:
            raise ValueError(
                f"IdentityRuntimeSettings.env_name must be one of {_ALLOWED_ENVS}, "
                f"got {self.env_name!r}"
            )
        if not self.access_token_secret:
            raise ValueError("IdentityRuntimeSettings.access_token_secret must be non-empty")
        if not self.two_factor_kek_b64:
            raise ValueError("IdentityRuntimeSettings.two_factor_kek_b64 must be non-empty")
        if not self.profile_table:
            raise ValueError("IdentityRuntimeSettings.profile_table must be non-empty")


@dataclass(frozen=True, slots=True)
class IdentityApiModule:
    """
    IdentityApiModule — wired 2FA router plus the gateway it serves.

    Related:
      - apps/api/main/app.py
      - src/coinsensei/contexts/identity/adapters/inbound/api/deps/current_account.py
    """

    router: APIRouter
    gateway: SecondFactorGateway


def build_identity_api_module(
    *,
    environ: Mapping[str, str],
    clock: IdentityClock | None = None,
    repository: SecurityProfileRepository | None = None,
) -> IdentityApiModule:
    """
    Build fully wired identity API module from environment settings.

    Args:
        environ: Runtime environment mapping.
        clock: Optional clock override (tests).
        repository: Optional 2FA repository override (tests).
    Returns:
        IdentityApiModule: Router and gateway.
    Assumptions:
        Fail-fast policy and secrets are resolved by `_resolve_identity_runtime_settings`.
    Raises:
        FileNotFoundError: If auth flow YAML is missing.
        ValueError: If fail-fast settings require missing secrets or values are invalid.
    Side Effects:
        Reads auth flow YAML.
    """
    settings = _resolve_identity_runtime_settings(environ=environ)
    flow_config = load_auth_flow_config(environ=environ)
    effective_clock = SystemIdentityClock() if clock is None else clock
    effective_repository = (
        _build_security_repository(settings=settings) if repository is None else repository
    )

    totp_engine = _build_totp_engine(config=flow_config)
    gateway = SecondFactorGateway(
        repository=effective_repository,
        secret_cipher=AesGcmEnvelopeSecretCipher(kek_b64=settings.two_factor_kek_b64),
        totp_engine=totp_engine,
        clock=effective_clock,
    )
    setup_use_case = TwoFactorSetupUseCase(
        gateway=gateway,
        totp_engine=totp_engine,
        clock=effective_clock,
        issuer=flow_config.issuer,
    )
    token_codec = Hs256AccessTokenCodec(
        secret_key=settings.access_token_secret,
        clock=effective_clock,
    )
    current_account_dependency = RequireCurrentAccountDependency(token_codec=token_codec)

    router = build_two_factor_gateway_router(
        gateway=gateway,
        setup_use_case=setup_use_case,
        current_account_dependency=current_account_dependency,
    )
    log.info(
        "identity api module wired env=%s persistence=%s",
        settings.env_name,
        "postgres" if settings.postgres_dsn else "in_memory",
    )
    return IdentityApiModule(
        router=router,
        gateway=gateway,
    )


def _build_totp_engine(*, config: AuthFlowConfig) -> PyOtpTotpEngine:
    return PyOtpTotpEngine(
        period_seconds=config.totp_period_seconds,
        valid_window=config.totp_valid_window,
        backup_code_count=config.backup_code_count,
    )


def _build_security_repository(*, settings: IdentityRuntimeSettings) -> SecurityProfileRepository:
    """
    Build 2FA repository adapter based on runtime DSN availability.

    Args:
        settings: Resolved runtime settings.
    Returns:
        SecurityProfileRepository: Postgres or in-memory adapter.
    Assumptions:
        Postgres DSN is optional in dev/test, in-memory fallback is acceptable for local runs.
    Raises:
        ValueError: If Postgres DSN is malformed for gateway construction.
    Side Effects:
        None.
    """
    if settings.postgres_dsn:
        gateway = PsycopgIdentityPostgresGateway(dsn=settings.postgres_dsn)
        return PostgresSecurityProfileRepository(
            gateway=gateway,
            profile_table=settings.profile_table,
        )
    return InMemorySecurityProfileRepository()


def _resolve_identity_runtime_settings(*, environ: Mapping[str, str]) -> IdentityRuntimeSettings:
    """
    Resolve identity runtime settings with fail-fast policy and defaults.

    Args:
        environ: Runtime environment mapping.
    Returns:
        IdentityRuntimeSettings: Validated normalized settings.
    Assumptions:
        Missing `COINSENSEI_ENV` defaults to `dev`.
    Raises:
        ValueError: If env values are invalid or fail-fast policy requires missing secrets.
    Side Effects:
        None.
    """
    env_name = _resolve_env_name(environ=environ)
    fail_fast = _resolve_fail_fast(environ=environ, env_name=env_name)

    access_token_secret = environ.get(_ACCESS_TOKEN_SECRET_KEY, "").strip()
    two_factor_kek_b64 = environ.get(_TWO_FACTOR_KEK_KEY, "").strip()

    if fail_fast:
        if not access_token_secret:
            raise ValueError(
                f"{_ACCESS_TOKEN_SECRET_KEY} must be set when {_IDENTITY_FAIL_FAST_KEY}=true"
            )
        if not two_factor_kek_b64:
            raise ValueError(
                f"{_TWO_FACTOR_KEK_KEY} must be set when {_IDENTITY_FAIL_FAST_KEY}=true"
            )

    return IdentityRuntimeSettings(
        env_name=env_name,
        fail_fast=fail_fast,
        access_token_secret=access_token_secret or _DEV_ACCESS_TOKEN_SECRET,
        two_factor_kek_b64=two_factor_kek_b64 or _dev_kek_b64(),
        postgres_dsn=environ.get(_IDENTITY_PG_DSN_KEY, "").strip(),
        profile_table=environ.get(_IDENTITY_PROFILE_TABLE_KEY, "user_profile").strip(),
    )


def _dev_kek_b64() -> str:
    return base64.b64encode(hashlib.sha256(_DEV_KEK_SEED).digest()).decode("ascii")


def _resolve_env_name(*, environ: Mapping[str, str]) -> str:
    raw_env_name = environ.get(_ENV_NAME_KEY, "dev").strip().lower()
    if raw_env_name not in _ALLOWED_ENVS:
        raise ValueError(
            f"{_ENV_NAME_KEY} must be one of {_ALLOWED_ENVS}, got {raw_env_name!r}"
        )
    return raw_env_name


def _resolve_fail_fast(*, environ: Mapping[str, str], env_name: str) -> bool:
    """
    Resolve fail-fast policy for identity startup validation.

    Args:
        environ: Runtime environment mapping.
        env_name: Normalized environment name.
    Returns:
        bool: Effective fail-fast flag.
    Assumptions:
        Default is enabled for `prod` and disabled for `dev`/`test`.
    Raises:
        ValueError: If override value is not parseable as boolean.
    Side Effects:
        None.
    """
    raw_override = environ.get(_IDENTITY_FAIL_FAST_KEY, "").strip()
    if not raw_override:
        return env_name == "prod"
    return _parse_bool(raw_value=raw_override, key=_IDENTITY_FAIL_FAST_KEY)


def _parse_bool(*, raw_value: str, key: str) -> bool:
    normalized = raw_value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise ValueError(
        f"{key} must be a boolean literal (1/0/true/false/yes/no/on/off), got {raw_value!r}"
    )
