from __future__ import annotations

from pathlib import Path

import pytest

from coinsensei.platform.config import AuthFlowConfig, load_auth_flow_config


def _write_auth_yaml(tmp_path: Path, body: str) -> Path:
    path = tmp_path / "auth.yaml"
    path.write_text(body, encoding="utf-8")
    return path


def test_load_auth_flow_config_reads_yaml_section(tmp_path: Path) -> None:
    """
    Verify YAML `auth` section values are mapped onto `AuthFlowConfig`.

    Args:
        tmp_path: pytest temporary directory fixture.
    Returns:
        None.
    Assumptions:
        Explicit `COINSENSEI_AUTH_CONFIG` path overrides env-derived path.
    Raises:
        AssertionError: If loaded values differ from YAML.
    Side Effects:
        Writes one temporary YAML file.
    """
    path = _write_auth_yaml(
        tmp_path,
        "auth:\n"
        "  issuer: CoinSensei Staging\n"
        "  resend_cooldown_seconds: 45\n"
        "  totp_valid_window: 0\n"
        "  backup_code_count: 10\n"
        "  profile_fetch_attempts: 3\n"
        "  profile_retry_delay_seconds: 0.25\n"
        "  require_second_factor_after_biometric: true\n",
    )

    config = load_auth_flow_config(environ={"COINSENSEI_AUTH_CONFIG": str(path)})

    assert config == AuthFlowConfig(
        issuer="CoinSensei Staging",
        resend_cooldown_seconds=45,
        totp_period_seconds=30,
        totp_valid_window=0,
        backup_code_count=10,
        profile_fetch_attempts=3,
        profile_retry_delay_seconds=0.25,
        require_second_factor_after_biometric=True,
    )


def test_load_auth_flow_config_applies_env_overrides(tmp_path: Path) -> None:
    path = _write_auth_yaml(tmp_path, "auth:\n  resend_cooldown_seconds: 45\n")

    config = load_auth_flow_config(
        environ={
            "COINSENSEI_AUTH_CONFIG": str(path),
            "COINSENSEI_TOTP_ISSUER": "CoinSensei QA",
            "COINSENSEI_RESEND_COOLDOWN_SECONDS": "10",
            "COINSENSEI_TOTP_VALID_WINDOW": "2",
            "COINSENSEI_REQUIRE_2FA_AFTER_BIOMETRIC": "yes",
        }
    )

    assert config.issuer == "CoinSensei QA"
    assert config.resend_cooldown_seconds == 10
    assert config.totp_valid_window == 2
    assert config.require_second_factor_after_biometric is True


def test_load_auth_flow_config_uses_defaults_for_empty_file(tmp_path: Path) -> None:
    path = _write_auth_yaml(tmp_path, "")

    config = load_auth_flow_config(environ={"COINSENSEI_AUTH_CONFIG": str(path)})

    assert config == AuthFlowConfig()


def test_load_auth_flow_config_rejects_missing_file_and_bad_values(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_auth_flow_config(environ={"COINSENSEI_AUTH_CONFIG": str(tmp_path / "missing.yaml")})

    path = _write_auth_yaml(tmp_path, "auth:\n  resend_cooldown_seconds: soon\n")
    with pytest.raises(ValueError):
        load_auth_flow_config(environ={"COINSENSEI_AUTH_CONFIG": str(path)})

    with pytest.raises(ValueError):
        load_auth_flow_config(
            environ={
                "COINSENSEI_AUTH_CONFIG": str(_write_auth_yaml(tmp_path, "")),
                "COINSENSEI_REQUIRE_2FA_AFTER_BIOMETRIC": "maybe",
            }
        )

    with pytest.raises(ValueError):
        load_auth_flow_config(environ={"COINSENSEI_ENV": "staging"})


def test_auth_flow_config_validates_bounds() -> None:
    with pytest.raises(ValueError):
        AuthFlowConfig(issuer="  ")
    with pytest.raises(ValueError):
        AuthFlowConfig(resend_cooldown_seconds=0)
    with pytest.raises(ValueError):
        AuthFlowConfig(totp_valid_window=-1)
    with pytest.raises(ValueError):
        AuthFlowConfig(profile_fetch_attempts=0)

    assert AuthFlowConfig(issuer="  CoinSensei ").issuer == "CoinSensei"
