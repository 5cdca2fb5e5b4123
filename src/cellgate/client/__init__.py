from cellgate.client.rest_client import GatewayClient

__all__ = ["GatewayClient"]
