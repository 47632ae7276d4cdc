from generator.clients.relay_client import RelayClient, build_relay_client

__all__ = ["RelayClient", "build_relay_client"]
