"""Controller configuration loading."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, cast

import yaml

IP_PROVIDER_STATIC = "static"
IP_PROVIDER_INFOBLOX = "infoblox"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
DEFAULT_RUNTIME_CONFIG_PATH = "runtime-config.yaml"


@dataclass(frozen=True, slots=True)
class ControllerSettings:
    orchestration: str = ""
    ip_provider: str = IP_PROVIDER_STATIC
    ip_range: str = ""
    infoblox_host: str = ""
    wapi_port: str = ""
    wapi_username: str = ""
    wapi_password: str = field(default="", repr=False)
    wapi_version: str = ""
    ssl_verify: bool = False
    network_view: str = "default"
    dns_view: str = "default"
    http_timeout_seconds: float = 10.0
    log_level: str = "INFO"
    manifest_path: str = "hosts.yaml"
    resync_interval_seconds: float = 30.0
    status_host: str = "127.0.0.1"
    status_port: int = 0
    runtime_config_path: str = DEFAULT_RUNTIME_CONFIG_PATH

    @property
    def default_cidr(self) -> str | None:
        if self.ip_provider == IP_PROVIDER_STATIC and self.ip_range:
            return self.ip_range
        return None

    @classmethod
    def from_yaml(
        cls, runtime_config_path: str = DEFAULT_RUNTIME_CONFIG_PATH
    ) -> ControllerSettings:
        normalized_path = runtime_config_path.strip() or DEFAULT_RUNTIME_CONFIG_PATH
        config = _load_runtime_config(normalized_path)

        orchestration_cfg = _section(config, "orchestration")
        provider_cfg = _section(config, "ip_provider")
        static_cfg = _section(provider_cfg, "static")
        infoblox_cfg = _section(provider_cfg, "infoblox")
        status_cfg = _section(config, "status")

        return cls(
            orchestration=str(orchestration_cfg.get("name", "")),
            ip_provider=str(provider_cfg.get("name", IP_PROVIDER_STATIC)),
            ip_range=str(static_cfg.get("ip_range", "")),
            infoblox_host=str(infoblox_cfg.get("host", "")),
            wapi_port=str(infoblox_cfg.get("port", "")),
            wapi_username=str(infoblox_cfg.get("username", "")),
            wapi_password=str(
                infoblox_cfg.get("password", os.environ.get("WAPI_PASSWORD", ""))
            ),
            wapi_version=str(infoblox_cfg.get("version", "")),
            ssl_verify=parse_bool(infoblox_cfg.get("ssl_verify", False)),
            network_view=str(infoblox_cfg.get("network_view", "default")),
            dns_view=str(infoblox_cfg.get("dns_view", "default")),
            http_timeout_seconds=max(
                1.0, float(infoblox_cfg.get("timeout_seconds", 10.0))
            ),
            log_level=str(config.get("log_level", "INFO")),
            manifest_path=str(orchestration_cfg.get("manifest_path", "hosts.yaml")),
            resync_interval_seconds=max(
                0.1, float(orchestration_cfg.get("resync_interval_seconds", 30.0))
            ),
            status_host=str(status_cfg.get("host", "127.0.0.1")),
            status_port=max(0, int(status_cfg.get("port", 0))),
            runtime_config_path=normalized_path,
        )

    def with_overrides(self, **overrides: Any) -> ControllerSettings:
        """Return a copy with every non-None override applied."""
        applied = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **applied)

    def validate(self) -> ControllerSettings:
        """Normalize the settings, raising ValueError on misconfiguration."""
        log_level = self.log_level.strip().upper()
        if log_level not in LOG_LEVELS:
            raise ValueError(
                f"unknown log level requested: {self.log_level!r}; "
                f"valid log levels are: {', '.join(LOG_LEVELS)}"
            )

        orchestration = self.orchestration.strip().lower()
        if not orchestration:
            raise ValueError("orchestration is required")

        ip_provider = self.ip_provider.strip().lower()
        ip_range = self.ip_range.strip().strip('"').strip("'")
        if ip_provider == IP_PROVIDER_STATIC:
            if not ip_range:
                raise ValueError(f"ip range not provided for provider: {IP_PROVIDER_STATIC}")
        elif ip_provider == IP_PROVIDER_INFOBLOX:
            missing = [
                flag
                for flag, value in (
                    ("--infoblox-host", self.infoblox_host),
                    ("--wapi-port", self.wapi_port),
                    ("--wapi-username", self.wapi_username),
                    ("--wapi-password", self.wapi_password),
                    ("--wapi-version", self.wapi_version),
                )
                if not value.strip()
            ]
            if missing:
                raise ValueError(
                    f"{', '.join(missing)} required for provider: {IP_PROVIDER_INFOBLOX}"
                )
        else:
            raise ValueError(
                f"unknown ip provider {self.ip_provider!r}; expected one of "
                f"{IP_PROVIDER_STATIC!r}, {IP_PROVIDER_INFOBLOX!r}"
            )

        return replace(
            self,
            log_level=log_level,
            orchestration=orchestration,
            ip_provider=ip_provider,
            ip_range=ip_range,
        )


def parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    normalized = str(value).strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off", ""}:
        return False
    raise ValueError(f"invalid boolean value: {value!r}")


def _load_runtime_config(runtime_config_path: str) -> dict[str, Any]:
    path = Path(runtime_config_path)
    if not path.exists() or not path.is_file():
        return {}

    parsed = yaml.safe_load(path.read_text(encoding="utf-8"))
    if isinstance(parsed, dict):
        return parsed
    return {}


def _section(config: dict[str, Any], key: str) -> dict[str, Any]:
    value = config.get(key, {})
    if isinstance(value, dict):
        return cast(dict[str, Any], value)
    if key in {"orchestration", "ip_provider"} and isinstance(value, str):
        # Shorthand form: `ip_provider: static`.
        return {"name": value}
    return {}
