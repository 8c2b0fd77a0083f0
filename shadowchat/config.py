"""Configuration for the ShadowChat relay.

Settings are resolved in three layers: model defaults, an optional YAML file
(``SHADOWCHAT_CONFIG`` or an explicit path) and ``SHADOWCHAT_<FIELD>``
environment variables. ``PORT`` is honoured for hosted deployments.
"""

import os
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

CONFIG_ENV_VAR = "SHADOWCHAT_CONFIG"
ENV_PREFIX = "SHADOWCHAT_"
# Transport frame cap as a multiple of max_payload_bytes.
TRANSPORT_HEADROOM = 4


class GroupJoinPolicy(str, Enum):
    """How a non-member gets into a group."""

    OPEN = "open"
    APPROVAL = "approval"


class Settings(BaseModel):
    """Relay settings."""

    host: str = "0.0.0.0"
    port: int = Field(10000, ge=1, le=65535)
    log_level: str = "INFO"
    log_file: Optional[str] = None

    max_payload_bytes: int = Field(200 * 1024, gt=0)

    rate_limit_window_ms: int = Field(5_000, gt=0)
    rate_limit_max_events: int = Field(40, gt=0)

    session_ttl_ms: int = Field(30 * 60 * 1000, gt=0)
    session_sweep_interval_ms: int = Field(60_000, gt=0)
    heartbeat_interval_ms: int = Field(30_000, gt=0)
    self_destruct_max_ms: int = Field(5 * 60 * 1000, gt=0)

    group_join_policy: GroupJoinPolicy = GroupJoinPolicy.OPEN
    allowed_origins: List[str] = Field(default_factory=lambda: ["*"])

    turn_secret: Optional[str] = None
    turn_urls: List[str] = Field(default_factory=list)
    turn_ttl_seconds: int = Field(24 * 3600, gt=0)

    @field_validator("allowed_origins", "turn_urls", mode="before")
    @classmethod
    def _split_csv(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value

    @property
    def transport_max_bytes(self) -> int:
        """Hard frame cap for the server transport.

        Frames between ``max_payload_bytes`` and this cap are dropped by the
        relay; frames beyond it make the transport close the socket (1009).
        """
        return self.max_payload_bytes * TRANSPORT_HEADROOM

    def masked(self) -> Dict[str, Any]:
        """Settings as a plain dict with secrets hidden, for start-up output."""
        data = self.model_dump(mode="json")
        if data.get("turn_secret"):
            data["turn_secret"] = "********"
        return data


def _read_yaml(path: str) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping")
    return data


def _env_overrides(environ: Mapping[str, str]) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    if environ.get("PORT"):
        overrides["port"] = environ["PORT"]
    for field_name in Settings.model_fields:
        value = environ.get(ENV_PREFIX + field_name.upper())
        if value is not None:
            overrides[field_name] = value
    return overrides


def load_settings(
    path: Optional[str] = None, environ: Optional[Mapping[str, str]] = None
) -> Settings:
    """Build settings from defaults, YAML file and environment."""
    environ = os.environ if environ is None else environ
    path = path or environ.get(CONFIG_ENV_VAR)

    data: Dict[str, Any] = {}
    if path:
        data.update(_read_yaml(path))
    data.update(_env_overrides(environ))
    return Settings.model_validate(data)
