"""
Configuration schema and loading for the arbitrage engine.

The configuration is built once at startup from (in increasing priority) an
optional YAML file, environment variables and explicit overrides, validated
with Pydantic and then passed by reference into every component.
"""

import os
from pathlib import Path
from typing import Any, Dict, Literal, Mapping, Optional, Union

import yaml
from dotenv import load_dotenv
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SecretStr,
    ValidationError,
    field_validator,
    model_validator,
)

from .exceptions import ConfigurationError
from .utils import mask_secret, parse_felt, to_hex

MIN_POWER_OF_2_FLOOR = 32
MAX_POWER_OF_2_CEILING = 65
MIN_HOPS = 2
MIN_CHECK_INTERVAL_MS = 3000
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# Field name -> environment variable
ENV_VARS: Dict[str, str] = {
    "quote_api_url": "EKUBO_API_QUOTE_URL",
    "token_to_arbitrage": "TOKEN_TO_ARBITRAGE",
    "max_hops": "MAX_HOPS",
    "max_splits": "MAX_SPLITS",
    "check_interval_ms": "CHECK_INTERVAL_MS",
    "min_power_of_2": "MIN_POWER_OF_2",
    "max_power_of_2": "MAX_POWER_OF_2",
    "min_profit": "MIN_PROFIT",
    "num_top_quotes_to_estimate": "NUM_TOP_QUOTES_TO_ESTIMATE",
    "json_rpc_url": "JSON_RPC_URL",
    "account_address": "ACCOUNT_ADDRESS",
    "account_private_key": "ACCOUNT_PRIVATE_KEY",
    "router_address": "ROUTER_ADDRESS",
    "chain": "STARKNET_CHAIN",
    "explorer_tx_prefix": "EXPLORER_TX_PREFIX",
    "execution_mode": "EXECUTION_MODE",
    "quote_timeout_ms": "QUOTE_TIMEOUT_MS",
    "max_concurrent_quotes": "MAX_CONCURRENT_QUOTES",
    "confirmation_poll_ms": "CONFIRMATION_POLL_MS",
    "confirmation_timeout_ms": "CONFIRMATION_TIMEOUT_MS",
    "metrics_port": "METRICS_PORT",
    "log_level": "LOG_LEVEL",
}

FELT_FIELDS = ("token_to_arbitrage", "router_address", "account_address")


def _as_int(value: Any, name: str) -> int:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        raise ValueError(f"{name} must be an integer, got {value!r}")


class ArbitrageConfig(BaseModel):
    """Immutable runtime configuration."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    # Quote API
    quote_api_url: str = Field(min_length=1, description="Ekubo quote API base URL")
    token_to_arbitrage: int = Field(description="Base token address")
    max_hops: int = Field(default=3, description="Routing hint, clamped to >= 2")
    max_splits: int = Field(default=0, description="Routing hint, clamped to >= 0")
    quote_timeout_ms: int = Field(default=10_000, gt=0)
    max_concurrent_quotes: int = Field(default=16, ge=1)

    # Sweep and ranking
    min_power_of_2: int = MIN_POWER_OF_2_FLOOR
    max_power_of_2: int = MAX_POWER_OF_2_CEILING
    min_profit: int = Field(default=0, description="Strict profit threshold")
    num_top_quotes_to_estimate: int = 1

    # Scheduling
    check_interval_ms: int = MIN_CHECK_INTERVAL_MS

    # Network and execution
    execution_mode: Literal["live", "estimate", "scan"] = "live"
    json_rpc_url: Optional[str] = None
    account_address: Optional[int] = None
    account_private_key: Optional[SecretStr] = None
    router_address: int
    chain: Literal["mainnet", "sepolia"] = "mainnet"
    explorer_tx_prefix: str = ""
    confirmation_poll_ms: int = Field(default=3000, gt=0)
    confirmation_timeout_ms: int = Field(
        default=300_000, ge=0, description="0 waits without bound"
    )

    # Observability
    metrics_port: int = Field(default=0, ge=0, le=65535)
    log_level: str = "INFO"

    @field_validator(*FELT_FIELDS, mode="before")
    @classmethod
    def parse_address(cls, v):
        if v is None:
            return v
        return parse_felt(v)

    @field_validator("quote_api_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("max_hops")
    @classmethod
    def clamp_max_hops(cls, v: int) -> int:
        return max(MIN_HOPS, v)

    @field_validator("max_splits", "min_profit")
    @classmethod
    def clamp_non_negative(cls, v: int) -> int:
        return max(0, v)

    @field_validator("check_interval_ms")
    @classmethod
    def clamp_check_interval(cls, v: int) -> int:
        return max(MIN_CHECK_INTERVAL_MS, v)

    @field_validator("num_top_quotes_to_estimate")
    @classmethod
    def clamp_top_quotes(cls, v: int) -> int:
        return max(1, v)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"Invalid log level: {v}")
        return level

    @model_validator(mode="before")
    @classmethod
    def clamp_power_range(cls, data: Any) -> Any:
        """Clamp the ladder exponents so that 32 <= min < max <= 65."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        min_power = min(
            MAX_POWER_OF_2_CEILING - 1,
            max(
                MIN_POWER_OF_2_FLOOR,
                _as_int(data.get("min_power_of_2", MIN_POWER_OF_2_FLOOR), "min_power_of_2"),
            ),
        )
        max_power = _as_int(
            data.get("max_power_of_2", MAX_POWER_OF_2_CEILING), "max_power_of_2"
        )
        data["min_power_of_2"] = min_power
        data["max_power_of_2"] = max(min_power + 1, min(MAX_POWER_OF_2_CEILING, max_power))
        return data

    @model_validator(mode="after")
    def validate_execution_credentials(self) -> "ArbitrageConfig":
        if self.execution_mode == "scan":
            return self
        missing = [
            ENV_VARS[name]
            for name in ("json_rpc_url", "account_address", "account_private_key")
            if getattr(self, name) is None
        ]
        if missing:
            raise ValueError(
                f"execution_mode={self.execution_mode} requires: {', '.join(missing)}"
            )
        return self

    @property
    def check_interval_seconds(self) -> float:
        return self.check_interval_ms / 1000

    def masked(self) -> Dict[str, Any]:
        """Config as a plain dict that is safe to log."""
        data = self.model_dump()
        for name in FELT_FIELDS:
            if data.get(name) is not None:
                data[name] = to_hex(data[name])
        secret = self.account_private_key
        data["account_private_key"] = (
            mask_secret(secret.get_secret_value()) if secret is not None else None
        )
        return data


def load_yaml_config(config_path: Union[str, Path]) -> Dict[str, Any]:
    """Load and parse YAML configuration file."""
    config_path = Path(config_path)

    if not config_path.exists():
        raise ConfigurationError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path, "r") as f:
            config_dict = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {config_path}: {e}")

    if config_dict is None:
        return {}
    if not isinstance(config_dict, dict):
        raise ConfigurationError(
            f"Configuration file {config_path} must contain a mapping"
        )
    return config_dict


def config_from_env(env: Mapping[str, str]) -> Dict[str, Any]:
    """Collect known settings from an environment mapping, skipping blanks."""
    values = {}
    for name, env_var in ENV_VARS.items():
        raw = env.get(env_var)
        if raw is not None and raw.strip() != "":
            values[name] = raw.strip()
    return values


def load_config(
    config_path: Optional[Union[str, Path]] = None,
    env: Optional[Mapping[str, str]] = None,
    overrides: Optional[Dict[str, Any]] = None,
    dotenv_path: Optional[Union[str, Path]] = None,
) -> ArbitrageConfig:
    """
    Build the runtime configuration.

    Args:
        config_path: Optional YAML file with snake_case keys
        env: Environment mapping; defaults to os.environ after loading .env
        overrides: Highest priority values (e.g. from CLI flags), None entries ignored
        dotenv_path: Explicit .env path; only used when env is None

    Raises:
        ConfigurationError: If the resulting configuration is invalid
    """
    data: Dict[str, Any] = {}
    if config_path is not None:
        data.update(load_yaml_config(config_path))

    if env is None:
        load_dotenv(dotenv_path, override=False)
        env = os.environ
    data.update(config_from_env(env))

    if overrides:
        data.update({k: v for k, v in overrides.items() if v is not None})

    try:
        return ArbitrageConfig(**data)
    except ValidationError as e:
        raise ConfigurationError(
            f"Invalid configuration: {e}", details={"errors": e.errors()}
        )
