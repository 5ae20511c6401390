"""Content negotiation: preference codes, negotiation and surrogate enrichment."""

from .mime import WeightedRepresentation, decode_all, encode
from .negotiator import (
    any_carrier,
    decode_preferences,
    is_acceptable,
    is_broader_or_equal,
    negotiate,
    negotiate_or_default,
    negotiate_surrogate,
)

__all__ = [
    "WeightedRepresentation",
    "decode_all",
    "encode",
    "any_carrier",
    "decode_preferences",
    "is_acceptable",
    "is_broader_or_equal",
    "negotiate",
    "negotiate_or_default",
    "negotiate_surrogate",
]
