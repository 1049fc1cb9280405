"""
Runtime config loader for the login / second-factor authentication flow.

Related: coinsensei.contexts.identity.application.use_cases.login_orchestrator,
  coinsensei.contexts.identity.adapters.outbound.security.two_factor.pyotp_totp_engine,
  apps.api.wiring.modules.identity
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

import yaml

_ENV_NAME_KEY = "COINSENSEI_ENV"
_CONFIG_PATH_KEY = "COINSENSEI_AUTH_CONFIG"
_ALLOWED_ENVS = ("dev", "prod", "test")

_ISSUER_ENV_KEY = "COINSENSEI_TOTP_ISSUER"
_RESEND_COOLDOWN_ENV_KEY = "COINSENSEI_RESEND_COOLDOWN_SECONDS"
_VALID_WINDOW_ENV_KEY = "COINSENSEI_TOTP_VALID_WINDOW"
_BIOMETRIC_2FA_ENV_KEY = "COINSENSEI_REQUIRE_2FA_AFTER_BIOMETRIC"

_DEFAULT_ISSUER = "CoinSensei"
_DEFAULT_RESEND_COOLDOWN_SECONDS = 30
_DEFAULT_TOTP_PERIOD_SECONDS = 30
_DEFAULT_TOTP_VALID_WINDOW = 1
_DEFAULT_BACKUP_CODE_COUNT = 8
_DEFAULT_PROFILE_FETCH_ATTEMPTS = 2
_DEFAULT_PROFILE_RETRY_DELAY_SECONDS = 0.5

_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off")


@dataclass(frozen=True, slots=True)
class AuthFlowConfig:
    """
    Immutable settings shared by the authentication orchestrator and 2FA gateway.

    Related: coinsensei.contexts.identity.application.use_cases.login_orchestrator,
      coinsensei.contexts.identity.application.use_cases.second_factor_gateway
    """

    issuer: str = _DEFAULT_ISSUER
    resend_cooldown_seconds: int = _DEFAULT_RESEND_COOLDOWN_SECONDS
    totp_period_seconds: int = _DEFAULT_TOTP_PERIOD_SECONDS
    totp_valid_window: int = _DEFAULT_TOTP_VALID_WINDOW
    backup_code_count: int = _DEFAULT_BACKUP_CODE_COUNT
    profile_fetch_attempts: int = _DEFAULT_PROFILE_FETCH_ATTEMPTS
    profile_retry_delay_seconds: float = _DEFAULT_PROFILE_RETRY_DELAY_SECONDS
    require_second_factor_after_biometric: bool = False

    def __post_init__(self) -> None:
        """
        Validate flow settings invariants.

        Args:
            None.
        Returns:
            None.
        Assumptions:
            TOTP period must match the authenticator apps (30 seconds in practice).
        Raises:
            ValueError: If any value violates required bounds.
        Side Effects:
            Normalizes issuer whitespace.
        """
        normalized_issuer = self.issuer.strip()
        if not normalized_issuer:
            raise ValueError("issuer must be non-empty")
        if self.resend_cooldown_seconds <= 0:
            raise ValueError(
                f"resend_cooldown_seconds must be > 0, got {self.resend_cooldown_seconds}"
            )
        if self.totp_period_seconds <= 0:
            raise ValueError(f"totp_period_seconds must be > 0, got {self.totp_period_seconds}")
        if self.totp_valid_window < 0:
            raise ValueError(f"totp_valid_window must be >= 0, got {self.totp_valid_window}")
        if self.backup_code_count <= 0:
            raise ValueError(f"backup_code_count must be > 0, got {self.backup_code_count}")
        if self.profile_fetch_attempts <= 0:
            raise ValueError(
                f"profile_fetch_attempts must be > 0, got {self.profile_fetch_attempts}"
            )
        if self.profile_retry_delay_seconds < 0:
            raise ValueError(
                "profile_retry_delay_seconds must be >= 0, "
                f"got {self.profile_retry_delay_seconds}"
            )
        object.__setattr__(self, "issuer", normalized_issuer)


def load_auth_flow_config(*, environ: Mapping[str, str]) -> AuthFlowConfig:
    """
    Load authentication flow config from YAML and env overrides.

    Args:
        environ: Environment mapping used to resolve env and override values.
    Returns:
        AuthFlowConfig: Validated runtime settings.
    Assumptions:
        Optional `auth` section lives in `configs/<env>/auth.yaml`.
    Raises:
        FileNotFoundError: If the auth YAML path does not exist.
        ValueError: If YAML or environment values are invalid.
    Side Effects:
        Reads one YAML file from disk.
    """
    config_path = _resolve_auth_config_path(environ=environ)
    payload = _load_auth_payload(path=config_path)

    issuer = environ.get(_ISSUER_ENV_KEY, "").strip() or _payload_str(
        payload=payload,
        key="issuer",
        default=_DEFAULT_ISSUER,
    )
    resend_cooldown_seconds = _resolve_int(
        environ=environ,
        env_key=_RESEND_COOLDOWN_ENV_KEY,
        payload=payload,
        payload_key="resend_cooldown_seconds",
        default=_DEFAULT_RESEND_COOLDOWN_SECONDS,
    )
    totp_valid_window = _resolve_int(
        environ=environ,
        env_key=_VALID_WINDOW_ENV_KEY,
        payload=payload,
        payload_key="totp_valid_window",
        default=_DEFAULT_TOTP_VALID_WINDOW,
    )
    require_after_biometric = _resolve_bool(
        environ=environ,
        env_key=_BIOMETRIC_2FA_ENV_KEY,
        payload=payload,
        payload_key="require_second_factor_after_biometric",
        default=False,
    )

    return AuthFlowConfig(
        issuer=issuer,
        resend_cooldown_seconds=resend_cooldown_seconds,
        totp_period_seconds=_payload_int(
            payload=payload,
            key="totp_period_seconds",
            default=_DEFAULT_TOTP_PERIOD_SECONDS,
        ),
        totp_valid_window=totp_valid_window,
        backup_code_count=_payload_int(
            payload=payload,
            key="backup_code_count",
            default=_DEFAULT_BACKUP_CODE_COUNT,
        ),
        profile_fetch_attempts=_payload_int(
            payload=payload,
            key="profile_fetch_attempts",
            default=_DEFAULT_PROFILE_FETCH_ATTEMPTS,
        ),
        profile_retry_delay_seconds=_payload_float(
            payload=payload,
            key="profile_retry_delay_seconds",
            default=_DEFAULT_PROFILE_RETRY_DELAY_SECONDS,
        ),
        require_second_factor_after_biometric=require_after_biometric,
    )


def _resolve_auth_config_path(*, environ: Mapping[str, str]) -> Path:
    """
    Resolve auth YAML path using explicit override or `COINSENSEI_ENV`.

    Args:
        environ: Environment mapping.
    Returns:
        Path: Auth YAML path.
    Assumptions:
        `COINSENSEI_AUTH_CONFIG` has priority over env-derived path.
    Raises:
        ValueError: If env value is invalid.
    Side Effects:
        None.
    """
    override = environ.get(_CONFIG_PATH_KEY, "").strip()
    if override:
        return Path(override)

    raw_env = environ.get(_ENV_NAME_KEY, "dev").strip().lower()
    if raw_env not in _ALLOWED_ENVS:
        raise ValueError(f"{_ENV_NAME_KEY} must be one of {_ALLOWED_ENVS}, got {raw_env!r}")
    return Path("configs") / raw_env / "auth.yaml"


def _load_auth_payload(*, path: Path) -> Mapping[str, Any]:
    """
    Load optional `auth` mapping from YAML file.

    Args:
        path: Auth config path.
    Returns:
        Mapping[str, Any]: `auth` mapping, or empty mapping.
    Assumptions:
        Unknown keys are ignored by this loader.
    Raises:
        FileNotFoundError: If YAML path does not exist.
        ValueError: If YAML structure is invalid.
    Side Effects:
        Reads one UTF-8 file from disk.
    """
    if not path.exists():
        raise FileNotFoundError(f"auth flow config not found: {path}")
    raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ValueError("auth config must be a mapping at top-level")
    auth_map = raw.get("auth")
    if auth_map is None:
        return {}
    if not isinstance(auth_map, dict):
        raise ValueError("auth section must be a mapping")
    return auth_map


def _resolve_int(
    *,
    environ: Mapping[str, str],
    env_key: str,
    payload: Mapping[str, Any],
    payload_key: str,
    default: int,
) -> int:
    raw = environ.get(env_key, "").strip()
    if raw:
        try:
            return int(raw, 10)
        except ValueError as error:
            raise ValueError(f"{env_key} must be int, got {raw!r}") from error
    return _payload_int(payload=payload, key=payload_key, default=default)


def _resolve_bool(
    *,
    environ: Mapping[str, str],
    env_key: str,
    payload: Mapping[str, Any],
    payload_key: str,
    default: bool,
) -> bool:
    raw = environ.get(env_key, "").strip().lower()
    if raw:
        if raw in _TRUE_VALUES:
            return True
        if raw in _FALSE_VALUES:
            return False
        raise ValueError(f"{env_key} must be boolean, got {raw!r}")
    value = payload.get(payload_key)
    if value is None:
        return default
    if not isinstance(value, bool):
        raise ValueError(f"expected bool for auth.{payload_key}, got {type(value).__name__}")
    return value


def _payload_int(*, payload: Mapping[str, Any], key: str, default: int) -> int:
    value = payload.get(key)
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"expected int for auth.{key}, got {type(value).__name__}")
    return value


def _payload_float(*, payload: Mapping[str, Any], key: str, default: float) -> float:
    value = payload.get(key)
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"expected number for auth.{key}, got {type(value).__name__}")
    return float(value)


def _payload_str(*, payload: Mapping[str, Any], key: str, default: str) -> str:
    value = payload.get(key)
    if value is None:
        return default
    if not isinstance(value, str):
        raise ValueError(f"expected string for auth.{key}, got {type(value).__name__}")
    return value


__all__ = [
    "AuthFlowConfig",
    "load_auth_flow_config",
]
