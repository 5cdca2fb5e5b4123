"""Store backends behind the gateway."""

from cellgate.config.gateway_config import GatewayConfig
from cellgate.store.base import ColumnSpec, RowStore, StoredCell, parse_column_selector
from cellgate.store.memory import InMemoryRowStore
from cellgate.store.remote import RemoteRowStore


def build_store(config: GatewayConfig) -> RowStore:
    """Create the store selected by ``config.store_backend``."""
    if config.store_backend == "remote":
        if not config.upstream_url:
            raise ValueError("upstream_url is required for store_backend=remote")
        return RemoteRowStore(config.upstream_url, timeout=config.request_timeout)
    return InMemoryRowStore(tables=config.tables)


__all__ = [
    "ColumnSpec",
    "RowStore",
    "StoredCell",
    "parse_column_selector",
    "InMemoryRowStore",
    "RemoteRowStore",
    "build_store",
]
