"""Blacklist Alliance client configuration from environment variables and config.yaml."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from blacklist_alliance.common.resilience import CircuitBreakerConfig

DEFAULT_BASE_URL = "https://api.blacklistalliance.net"
SUPPORTED_VERSIONS = ("v1", "v2", "v3", "v5")

ENV_PREFIX = "BLACKLIST_ALLIANCE_"

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUE_VALUES


def _setting(name: str, file_data: Dict[str, Any], default: Any = None) -> Any:
    """Env var wins over the file value, which wins over the default."""
    env_value = os.getenv(f"{ENV_PREFIX}{name.upper()}")
    if env_value is not None and env_value != "":
        return env_value
    return file_data.get(name, default)


@dataclass
class ClientConfig:
    """Blacklist Alliance client configuration.

    Load from environment using ClientConfig.from_env() or from a YAML file
    plus environment using ClientConfig.load_config(path).
    All timing values in milliseconds.
    """

    api_key: str
    default_version: str = "v5"
    timeout_ms: int = 30000
    max_retries: int = 3
    base_url: str = DEFAULT_BASE_URL
    dry_run: bool = False

    # Circuit breaker (None threshold disables the breaker)
    circuit_failure_threshold: Optional[int] = None
    circuit_reset_timeout_ms: int = 30000

    @classmethod
    def _from_mapping(cls, file_data: Dict[str, Any]) -> "ClientConfig":
        api_key = _setting("api_key", file_data)
        if not api_key:
            raise ValueError(
                "API key is required. Set BLACKLIST_ALLIANCE_API_KEY or "
                "'api_key' under 'blacklist_alliance:' in config.yaml."
            )

        threshold = _setting("circuit_failure_threshold", file_data)

        return cls(
            api_key=str(api_key),
            default_version=str(_setting("version", file_data, file_data.get("default_version", "v5"))),
            timeout_ms=int(_setting("timeout_ms", file_data, 30000)),
            max_retries=int(_setting("max_retries", file_data, 3)),
            base_url=str(_setting("base_url", file_data, DEFAULT_BASE_URL)),
            dry_run=_parse_bool(_setting("dry_run", file_data, False)),
            circuit_failure_threshold=int(threshold) if threshold not in (None, "") else None,
            circuit_reset_timeout_ms=int(_setting("circuit_reset_timeout_ms", file_data, 30000)),
        )

    @classmethod
    def from_env(cls) -> "ClientConfig":
        """Load configuration from environment variables.

        Required environment variables:
            BLACKLIST_ALLIANCE_API_KEY: API key

        Optional environment variables (with defaults):
            BLACKLIST_ALLIANCE_VERSION: API version (default: v5)
            BLACKLIST_ALLIANCE_TIMEOUT_MS: Per-attempt timeout (default: 30000)
            BLACKLIST_ALLIANCE_MAX_RETRIES: Retries after first attempt (default: 3)
            BLACKLIST_ALLIANCE_BASE_URL: API base URL
            BLACKLIST_ALLIANCE_DRY_RUN: Skip network calls (default: false)
            BLACKLIST_ALLIANCE_CIRCUIT_FAILURE_THRESHOLD: Enables the breaker when set
            BLACKLIST_ALLIANCE_CIRCUIT_RESET_TIMEOUT_MS: Breaker cooldown (default: 30000)

        Raises:
            ValueError: If required environment variables are missing
        """
        return cls._from_mapping({})

    @classmethod
    def load_config(cls, config_path: Optional[Union[str, Path]] = None) -> "ClientConfig":
        """Load configuration from config.yaml and environment variables.

        Configuration priority (highest to lowest):
        1. Environment variables
        2. config.yaml file (under 'blacklist_alliance:' key)
        3. Dataclass defaults

        Args:
            config_path: YAML file path; a missing file is ignored

        Raises:
            ValueError: If no API key is configured
        """
        file_data: Dict[str, Any] = {}
        if config_path is not None:
            path = Path(config_path)
            if path.exists():
                with open(path, "r") as f:
                    yaml_data = yaml.safe_load(f) or {}
                file_data = yaml_data.get("blacklist_alliance", {}) or {}

        return cls._from_mapping(file_data)

    def validate(self) -> None:
        """Validate configuration values.

        Raises:
            ValueError: On a missing key, unknown version, negative retries or
                non-positive timeout
        """
        if not self.api_key:
            raise ValueError("api_key is required")
        if self.default_version not in SUPPORTED_VERSIONS:
            raise ValueError(
                f"default_version must be one of {', '.join(SUPPORTED_VERSIONS)}, "
                f"got {self.default_version}"
            )
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be non-negative, got {self.max_retries}")
        if self.timeout_ms <= 0:
            raise ValueError(f"timeout_ms must be positive, got {self.timeout_ms}")
        if self.circuit_failure_threshold is not None and self.circuit_failure_threshold <= 0:
            raise ValueError(
                f"circuit_failure_threshold must be positive, got {self.circuit_failure_threshold}"
            )

    def circuit_breaker_config(self) -> Optional[CircuitBreakerConfig]:
        """Breaker config for the client, or None when the breaker is disabled."""
        if self.circuit_failure_threshold is None:
            return None
        return CircuitBreakerConfig(
            failure_threshold=self.circuit_failure_threshold,
            reset_timeout_ms=self.circuit_reset_timeout_ms,
        )
