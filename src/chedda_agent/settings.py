"""Settings module with unified configuration precedence: CLI > ENV > CONFIG FILE."""

from __future__ import annotations

import os
import tomllib
from enum import Enum
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from .constants import (
    BASE_MAINNET,
    BASE_SEPOLIA,
    DEFAULT_RECEIPT_POLL_INTERVAL,
    DEFAULT_RECEIPT_TIMEOUT,
    NETWORKS,
    SAFE_V141_DEPLOYMENT,
)

load_dotenv()

SECRET_FIELDS = {"agent_private_key", "coordinator_private_key", "safe_txn_srvc_api_key"}


class Network(str, Enum):
    BASE_SEPOLIA = BASE_SEPOLIA
    BASE_MAINNET = BASE_MAINNET


class ExecutionMode(str, Enum):
    """How mutating lending actions are completed.

    CALLDATA returns unsigned calldata for someone else to submit, DIRECT signs
    and broadcasts with the agent wallet and waits for the receipt.
    """

    CALLDATA = "calldata"
    DIRECT = "direct"


# Safe Transaction Service URLs by network
SAFE_SERVICE_URLS: dict[Network, str] = {
    Network.BASE_SEPOLIA: "https://safe-transaction-base-sepolia.safe.global",
    Network.BASE_MAINNET: "https://safe-transaction-base.safe.global",
}


class AgentSettings(BaseSettings):
    """Single source of truth for configuration. Values may come from:
    - CLI (init kwargs)
    - ENV / .env (prefixed with CHEDDA_AGENT_)
    - Config file (TOML), lowest precedence

    Do not read os.environ or files elsewhere in the codebase.
    """

    # --- network ---
    network: Network = Network.BASE_SEPOLIA
    rpc_url: str | None = None

    # --- agent identity / signing ---
    agent_id: str = "default"
    agent_private_key: SecretStr | None = None
    coordinator_private_key: SecretStr | None = None

    # --- action behaviour ---
    execution_mode: ExecutionMode = ExecutionMode.CALLDATA
    receipt_timeout: float = Field(default=DEFAULT_RECEIPT_TIMEOUT, gt=0)
    receipt_poll_interval: float = Field(default=DEFAULT_RECEIPT_POLL_INTERVAL, gt=0)

    # --- multisig ---
    multisig_threshold: int = Field(
        default=3,
        ge=1,
        le=3,
        description="Signatures required on the (agent, user, coordinator) Safe.",
    )
    safe_service_url: str | None = None
    safe_txn_srvc_api_key: SecretStr | None = None
    safe_proxy_factory: str = SAFE_V141_DEPLOYMENT["proxy_factory"]
    safe_singleton: str = SAFE_V141_DEPLOYMENT["singleton"]
    safe_fallback_handler: str = SAFE_V141_DEPLOYMENT["fallback_handler"]
    registry_db_path: Path = Path.home() / ".config" / "chedda-agent" / "multisig.db"

    # --- RPC settings ---
    rpc_max_concurrent_calls: int = 5
    rpc_timeout: float = 15.0

    # --- logging ---
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="CHEDDA_AGENT_",
        env_file=".env",
        extra="ignore",  # ignore unknown keys in env/config file
    )

    @field_validator(*SECRET_FIELDS, mode="before")
    @classmethod
    def wrap_secrets(cls, v: Any) -> SecretStr | None:
        """Wrap string secrets in SecretStr."""
        if v is None or isinstance(v, SecretStr):
            return v
        return SecretStr(v)

    @model_validator(mode="after")
    def fill_network_defaults(self) -> "AgentSettings":
        """Fill endpoints that default per network."""
        if self.rpc_url is None:
            self.rpc_url = NETWORKS[self.network.value]["rpc_url"]
        if self.safe_service_url is None:
            self.safe_service_url = SAFE_SERVICE_URLS.get(self.network)
        return self

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Custom config-file source with explicit precedence: CLI > ENV > FILE."""
        env_cfg = os.environ.get("CHEDDA_AGENT_CONFIG")
        cfg_path = Path(env_cfg) if env_cfg else None

        class TomlConfigSource(PydanticBaseSettingsSource):
            def __init__(self, settings_cls: type[BaseSettings], path: Path | None):
                super().__init__(settings_cls)
                self._path = path

            def get_field_value(
                self, field: Any, field_name: str
            ) -> tuple[Any, str, bool]:
                return None, "", False

            def __call__(self) -> dict[str, Any]:
                if not self._path:
                    # Try default locations
                    local_config = Path("chedda-agent.toml")
                    user_config = (
                        Path.home() / ".config" / "chedda-agent" / "config.toml"
                    )
                    if local_config.exists():
                        self._path = local_config
                    elif user_config.exists():
                        self._path = user_config
                    else:
                        return {}

                if not self._path.exists():
                    return {}

                with self._path.open("rb") as f:
                    data = tomllib.load(f)  # supports top-level or [chedda_agent]
                body = data.get("chedda_agent", data)
                if not isinstance(body, dict):
                    return {}

                for key in SECRET_FIELDS:
                    if key in body:
                        raise ValueError(
                            f"Security violation: '{key}' found in TOML config file. "
                            f"Secrets must only be provided via environment variables or CLI flags."
                        )

                return body

        return (
            init_settings,  # CLI (highest)
            env_settings,  # ENV
            dotenv_settings,  # .env
            TomlConfigSource(settings_cls, cfg_path),  # CONFIG (lowest)
            file_secret_settings,  # optional secrets dir
        )

    def as_safe_dict(self) -> dict[str, Any]:
        """Return the config as a dict with secrets redacted."""
        data = self.model_dump(mode="json")
        for key in SECRET_FIELDS:
            if getattr(self, key):
                data[key] = "***redacted***"
        return data

    @property
    def chain_id(self) -> int:
        return NETWORKS[self.network.value]["chain_id"]

    @property
    def explorer_url(self) -> str:
        return NETWORKS[self.network.value]["explorer_url"]

    @property
    def is_direct(self) -> bool:
        return self.execution_mode == ExecutionMode.DIRECT

    @property
    def rpc_url_required(self) -> str:
        """Get rpc_url, raising ValueError if not set."""
        if self.rpc_url is None:
            raise ValueError("rpc_url must be configured")
        return self.rpc_url

    @property
    def safe_service_url_required(self) -> str:
        """Get safe_service_url, raising ValueError if not set."""
        if self.safe_service_url is None:
            raise ValueError(
                f"safe_service_url must be configured for network {self.network.value}"
            )
        return self.safe_service_url.rstrip("/")

    @property
    def agent_private_key_required(self) -> str:
        if self.agent_private_key is None:
            raise ValueError("agent_private_key must be configured")
        return self.agent_private_key.get_secret_value()

    @property
    def coordinator_private_key_required(self) -> str:
        if self.coordinator_private_key is None:
            raise ValueError("coordinator_private_key must be configured")
        return self.coordinator_private_key.get_secret_value()

    def tx_url(self, tx_hash: str) -> str:
        return f"{self.explorer_url}/tx/{tx_hash}"
