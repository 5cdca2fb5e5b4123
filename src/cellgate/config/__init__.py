"""Configuration management."""

from cellgate.config.gateway_config import GatewayConfig, load_config, parse_tables

__all__ = ["GatewayConfig", "load_config", "parse_tables"]
