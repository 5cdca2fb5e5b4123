from __future__ import annotations

import os
from typing import Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from cellgate.core.constants import (
    CSRF_BROWSER_USERAGENTS_REGEX_DEFAULT,
    CSRF_CUSTOM_HEADER_DEFAULT,
    CSRF_METHODS_TO_IGNORE_DEFAULT,
    DEFAULT_MAX_PARALLEL_READS,
    DEFAULT_REQUEST_TIMEOUT,
)


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def parse_tables(raw: str) -> Dict[str, List[str]]:
    """Parse ``"T:a,b;U:x"`` into ``{"T": ["a", "b"], "U": ["x"]}``."""
    tables: Dict[str, List[str]] = {}
    for entry in raw.split(";"):
        entry = entry.strip()
        if not entry:
            continue
        name, _, families = entry.partition(":")
        family_list = [f.strip() for f in families.split(",") if f.strip()]
        if not name.strip() or not family_list:
            raise ValueError(f"Invalid table definition: {entry!r}")
        tables[name.strip()] = family_list
    return tables


class GatewayConfig(BaseModel):
    """Gateway service configuration."""

    host: str = Field("127.0.0.1", description="Bind address")
    port: int = Field(8080, description="Bind port")
    request_timeout: float = Field(
        DEFAULT_REQUEST_TIMEOUT,
        gt=0,
        description="Deadline for all point reads of one request (seconds)",
    )
    max_parallel_reads: int = Field(
        DEFAULT_MAX_PARALLEL_READS,
        ge=1,
        description="Concurrent point reads per multiget",
    )
    read_retries: int = Field(
        1,
        ge=1,
        description="Attempts per point read on upstream failure",
    )
    retry_backoff_base: float = Field(
        0.1,
        ge=0,
        description="Base of exponential backoff between point read attempts",
    )
    csrf_enabled: bool = Field(False, description="Require the CSRF header")
    csrf_custom_header: str = Field(CSRF_CUSTOM_HEADER_DEFAULT)
    csrf_methods_to_ignore: str = Field(CSRF_METHODS_TO_IGNORE_DEFAULT)
    csrf_browser_useragents_regex: str = Field(CSRF_BROWSER_USERAGENTS_REGEX_DEFAULT)
    store_backend: str = Field(
        "memory",
        description="Store backend: memory or remote",
    )
    upstream_url: Optional[str] = Field(
        None,
        description="Upstream gateway URL if store_backend=remote",
    )
    tables: Dict[str, List[str]] = Field(
        default_factory=dict,
        description="Tables (name -> column families) created in the memory store",
    )
    log_level: str = Field("INFO")
    log_json: bool = Field(True)

    @field_validator("store_backend")
    @classmethod
    def _check_backend(cls, value: str) -> str:
        if value not in ("memory", "remote"):
            raise ValueError(f"Unknown store backend: {value}")
        return value

    @classmethod
    def from_env(cls) -> "GatewayConfig":
        tables_raw = os.getenv("CELLGATE_TABLES", "")
        backend = os.getenv("CELLGATE_STORE_BACKEND", "memory")
        upstream = os.getenv("CELLGATE_UPSTREAM_URL")

        return cls(
            host=os.getenv("CELLGATE_HOST", "127.0.0.1"),
            port=int(os.getenv("CELLGATE_PORT", "8080")),
            request_timeout=float(
                os.getenv("CELLGATE_REQUEST_TIMEOUT", str(DEFAULT_REQUEST_TIMEOUT))
            ),
            max_parallel_reads=int(
                os.getenv("CELLGATE_MAX_PARALLEL_READS", str(DEFAULT_MAX_PARALLEL_READS))
            ),
            read_retries=int(os.getenv("CELLGATE_READ_RETRIES", "1")),
            retry_backoff_base=float(os.getenv("CELLGATE_RETRY_BACKOFF_BASE", "0.1")),
            csrf_enabled=_env_bool("CELLGATE_CSRF_ENABLED", False),
            csrf_custom_header=os.getenv(
                "CELLGATE_CSRF_CUSTOM_HEADER", CSRF_CUSTOM_HEADER_DEFAULT
            ),
            csrf_methods_to_ignore=os.getenv(
                "CELLGATE_CSRF_METHODS_TO_IGNORE", CSRF_METHODS_TO_IGNORE_DEFAULT
            ),
            csrf_browser_useragents_regex=os.getenv(
                "CELLGATE_CSRF_BROWSER_USERAGENTS_REGEX",
                CSRF_BROWSER_USERAGENTS_REGEX_DEFAULT,
            ),
            store_backend=backend,
            upstream_url=upstream if upstream else None,
            tables=parse_tables(tables_raw),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_json=_env_bool("CELLGATE_LOG_JSON", True),
        )

    @classmethod
    def from_yaml(cls, path: str) -> "GatewayConfig":
        with open(path, "r", encoding="utf-8") as handle:
            raw = yaml.safe_load(handle) or {}
        if not isinstance(raw, dict):
            raise ValueError(f"{path}: expected a mapping at the top level")
        section = raw.get("gateway", raw)
        return cls.model_validate(section)


def load_config() -> GatewayConfig:
    """YAML file from ``CELLGATE_CONFIG`` if set, otherwise environment."""
    path = os.getenv("CELLGATE_CONFIG")
    if path:
        return GatewayConfig.from_yaml(path)
    try:
        return GatewayConfig.from_env()
    except (ValueError, ValidationError) as exc:
        raise RuntimeError(f"Invalid gateway configuration: {exc}") from exc


__all__ = ["GatewayConfig", "load_config", "parse_tables"]
