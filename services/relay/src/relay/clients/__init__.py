from relay.clients.upstream import UPSTREAM_REQUESTS, UpstreamClient

__all__ = ["UPSTREAM_REQUESTS", "UpstreamClient"]
