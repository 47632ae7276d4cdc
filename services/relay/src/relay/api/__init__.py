from relay.api.routes import router

__all__ = ["router"]
