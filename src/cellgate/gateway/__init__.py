from cellgate.gateway.multiget import MultiGetHandler, MultiGetRequest, RowSpec

__all__ = ["MultiGetHandler", "MultiGetRequest", "RowSpec"]
