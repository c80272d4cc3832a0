from __future__ import annotations

from pathlib import Path

import pytest

from ipam_controller.config import ControllerSettings, parse_bool


def _write_runtime_config(tmp_path: Path, content: str) -> Path:
    runtime_config = tmp_path / "runtime-config.yaml"
    runtime_config.write_text(content, encoding="utf-8")
    return runtime_config


def test_from_yaml_reads_static_provider_settings(tmp_path: Path) -> None:
    runtime_config = _write_runtime_config(
        tmp_path,
        """
log_level: debug
orchestration:
  name: manifest
  manifest_path: /etc/ipam/hosts.yaml
  resync_interval_seconds: 15
ip_provider:
  name: static
  static:
    ip_range: 10.10.0.0/16
status:
  port: 8081
""",
    )

    settings = ControllerSettings.from_yaml(str(runtime_config))

    assert settings.orchestration == "manifest"
    assert settings.manifest_path == "/etc/ipam/hosts.yaml"
    assert settings.resync_interval_seconds == 15.0
    assert settings.ip_provider == "static"
    assert settings.ip_range == "10.10.0.0/16"
    assert settings.status_port == 8081
    assert settings.default_cidr == "10.10.0.0/16"
    assert settings.validate().log_level == "DEBUG"


def test_from_yaml_reads_infoblox_settings(tmp_path: Path) -> None:
    runtime_config = _write_runtime_config(
        tmp_path,
        """
orchestration: manifest
ip_provider:
  name: infoblox
  infoblox:
    host: grid.example.com
    port: 443
    version: "2.10"
    username: admin
    password: infoblox
    ssl_verify: "true"
    dns_view: internal
""",
    )

    settings = ControllerSettings.from_yaml(str(runtime_config)).validate()

    assert settings.ip_provider == "infoblox"
    assert settings.wapi_port == "443"
    assert settings.wapi_version == "2.10"
    assert settings.ssl_verify is True
    assert settings.dns_view == "internal"
    assert settings.network_view == "default"
    assert settings.default_cidr is None


def test_password_falls_back_to_environment(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("WAPI_PASSWORD", "from-env")
    runtime_config = _write_runtime_config(tmp_path, "ip_provider:\n  name: infoblox\n")

    settings = ControllerSettings.from_yaml(str(runtime_config))

    assert settings.wapi_password == "from-env"
    assert "from-env" not in repr(settings)


def test_missing_runtime_config_uses_defaults(tmp_path: Path) -> None:
    settings = ControllerSettings.from_yaml(str(tmp_path / "absent.yaml"))

    assert settings.ip_provider == "static"
    assert settings.log_level == "INFO"
    assert settings.status_port == 0


def test_with_overrides_ignores_none_values() -> None:
    settings = ControllerSettings(orchestration="manifest", ip_range="10.0.0.0/24")

    updated = settings.with_overrides(ip_range=None, log_level="ERROR")

    assert updated.ip_range == "10.0.0.0/24"
    assert updated.log_level == "ERROR"


def test_validate_normalizes_names_and_strips_quotes() -> None:
    settings = ControllerSettings(
        orchestration="Manifest",
        ip_provider="STATIC",
        ip_range="\"10.0.0.0/24\"",
        log_level="warning",
    ).validate()

    assert settings.orchestration == "manifest"
    assert settings.ip_provider == "static"
    assert settings.ip_range == "10.0.0.0/24"
    assert settings.log_level == "WARNING"


@pytest.mark.parametrize(
    ("overrides", "message"),
    [
        ({"log_level": "TRACE"}, "unknown log level"),
        ({"orchestration": ""}, "orchestration is required"),
        ({"ip_range": "''"}, "ip range not provided"),
        ({"ip_provider": "bluecat"}, "unknown ip provider"),
        (
            {"ip_provider": "infoblox", "infoblox_host": "grid", "wapi_port": "443"},
            "--wapi-username, --wapi-password, --wapi-version required",
        ),
    ],
)
def test_validate_rejects_misconfiguration(overrides: dict[str, str], message: str) -> None:
    settings = ControllerSettings(orchestration="manifest", ip_range="10.0.0.0/24")

    with pytest.raises(ValueError, match=message):
        settings.with_overrides(**overrides).validate()


def test_parse_bool() -> None:
    assert parse_bool("TRUE") is True
    assert parse_bool("off") is False
    with pytest.raises(ValueError, match="invalid boolean"):
        parse_bool("maybe")
