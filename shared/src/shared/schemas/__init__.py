"""Common DTOs and schemas."""
from shared.schemas.errors import ErrorBody, ErrorEnvelope
from shared.schemas.health import HealthResponse

__all__ = ["ErrorBody", "ErrorEnvelope", "HealthResponse"]
