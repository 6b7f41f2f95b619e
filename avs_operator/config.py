"""
Configuration module for operator registration.

Configuration is read from the environment once, validated, and passed
explicitly to the registration flow.
"""

import os
from typing import Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, SecretStr, ValidationError, field_validator
from web3 import Web3

from .errors import ConfigurationError
from .util import DEFAULT_EXPIRY_WINDOW, validate_hex_string

# ============================================================
# Environment Variables
# ============================================================

REQUIRED_ENV = {
    "RPC_URL": "rpc_url",
    "PRIVATE_KEY": "operator_private_key",
    "DELEGATION_MANAGER_ADDRESS": "delegation_manager_address",
    "AVS_DIRECTORY_ADDRESS": "avs_directory_address",
    "STAKE_REGISTRY_ADDRESS": "stake_registry_address",
    "SERVICE_MANAGER_ADDRESS": "service_manager_address",
}

OPTIONAL_ENV = {
    "EXPIRY_WINDOW_SECONDS": "expiry_window_seconds",
    "TX_RECEIPT_TIMEOUT": "tx_receipt_timeout",
    "LOG_LEVEL": "log_level",
    "LOG_JSON": "log_json",
}

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


# ============================================================
# Configuration Model
# ============================================================

class OperatorConfig(BaseModel):
    """Validated, immutable configuration for one registration run."""

    model_config = ConfigDict(frozen=True)

    rpc_url: str
    operator_private_key: SecretStr
    delegation_manager_address: str
    avs_directory_address: str
    stake_registry_address: str
    service_manager_address: str
    expiry_window_seconds: int = Field(default=DEFAULT_EXPIRY_WINDOW, gt=0)
    tx_receipt_timeout: float = Field(default=120.0, gt=0)
    log_level: str = "INFO"
    log_json: bool = False

    @field_validator("rpc_url")
    @classmethod
    def _check_rpc_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("must be an http(s) URL")
        return v

    @field_validator("operator_private_key")
    @classmethod
    def _check_private_key(cls, v: SecretStr) -> SecretStr:
        if not validate_hex_string(v.get_secret_value(), expected_bytes=32):
            raise ValueError("must be a 32-byte hex string")
        return v

    @field_validator(
        "delegation_manager_address",
        "avs_directory_address",
        "stake_registry_address",
        "service_manager_address",
    )
    @classmethod
    def _check_address(cls, v: str) -> str:
        if not Web3.is_address(v):
            raise ValueError(f"not an address: {v!r}")
        return Web3.to_checksum_address(v)

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, v: str) -> str:
        v = v.upper()
        if v not in LOG_LEVELS:
            raise ValueError(f"must be one of {', '.join(LOG_LEVELS)}")
        return v

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "OperatorConfig":
        """
        Load configuration from environment variables.

        Every missing or malformed variable is reported in a single
        ConfigurationError.
        """
        environ = os.environ if environ is None else environ

        problems: List[str] = []
        values: Dict[str, str] = {}
        for env_name, field_name in REQUIRED_ENV.items():
            raw = environ.get(env_name, "").strip()
            if not raw:
                problems.append(f"{env_name} is not set")
            else:
                values[field_name] = raw
        for env_name, field_name in OPTIONAL_ENV.items():
            raw = environ.get(env_name, "").strip()
            if raw:
                values[field_name] = raw

        try:
            config = cls(**values)
        except ValidationError as e:
            # missing fields are already reported as "is not set"
            env_names = {v: k for k, v in {**REQUIRED_ENV, **OPTIONAL_ENV}.items()}
            problems.extend(
                f"{env_names.get(str(err['loc'][0]), err['loc'][0])}: {err['msg']}"
                for err in e.errors()
                if err["type"] != "missing"
            )
            raise ConfigurationError(problems) from e
        return config

    def private_key(self) -> str:
        """Return the raw operator private key."""
        return self.operator_private_key.get_secret_value()
