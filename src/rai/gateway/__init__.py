"""AI provider gateway."""

from rai.gateway.gateway import (
    AIGateway,
    GatewayResponse,
    apology_response,
    build_gateway,
    decode_audio,
)
from rai.gateway.language import detect_language

__all__ = [
    "AIGateway",
    "GatewayResponse",
    "apology_response",
    "build_gateway",
    "decode_audio",
    "detect_language",
]
