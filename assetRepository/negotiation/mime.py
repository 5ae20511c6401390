from __future__ import annotations

"""Codec for weighted representation preference codes.

A preference code is a comma separated list of items. Each item is either

* a ``key=value`` list separated by ``;`` using the keys ``lang``, ``fmt``,
  ``charset``, ``enc`` and ``q``, e.g. ``lang=KNART;fmt=XML;q=0.5``; or
* a MIME code such as ``model/knart+xml;q=0.5``, ``text/html`` or
  ``application/json``, optionally followed by ``;charset=``, ``;enc=`` and
  ``;q=`` parameters.

Tokens are normalised to upper case. Items that carry no recognisable
information decode to ``None`` and are dropped by :func:`decode_all`.
"""

from dataclasses import dataclass
import logging
from typing import Dict, List, Optional, Tuple

from ..model import Representation
from ..vocab import HTML, JSON, TTL, TXT, XML

logger = logging.getLogger(__name__)

WEIGHT_UNSPECIFIED = 1.0

_KEYS = {
    "lang": "language",
    "fmt": "format",
    "charset": "charset",
    "enc": "encoding",
}

# MIME codes outside the model/ tree that map onto a representation.
_WELL_KNOWN: Dict[str, Tuple[Optional[str], Optional[str]]] = {
    "text/html": (HTML, TXT),
    "application/xhtml+xml": (HTML, XML),
    "application/json": (None, JSON),
    "application/xml": (None, XML),
    "text/xml": (None, XML),
    "text/plain": (None, TXT),
    "text/turtle": (None, TTL),
    "*/*": (None, None),
}


@dataclass(frozen=True, slots=True)
class WeightedRepresentation:
    rep: Representation
    weight: float = WEIGHT_UNSPECIFIED


def _token(value: str | None) -> Optional[str]:
    raw = (value or "").strip()
    return raw.upper() if raw else None


def _weight(value: str) -> float:
    try:
        return float(value)
    except ValueError:
        logger.debug("Ignoring malformed weight %r", value)
        return WEIGHT_UNSPECIFIED


def _decode_key_values(parts: List[str]) -> Optional[WeightedRepresentation]:
    fields: Dict[str, Optional[str]] = {}
    weight = WEIGHT_UNSPECIFIED
    for part in parts:
        key, _, value = part.partition("=")
        key = key.strip().lower()
        if key == "q":
            weight = _weight(value)
        elif key in _KEYS:
            fields[_KEYS[key]] = _token(value)
    if not any(fields.values()):
        return None
    return WeightedRepresentation(Representation(**fields), weight)


def _decode_mime(parts: List[str]) -> Optional[WeightedRepresentation]:
    code = parts[0].strip().lower()
    language: Optional[str] = None
    fmt: Optional[str] = None
    if code.startswith("model/"):
        body = code[len("model/"):]
        lang_part, _, fmt_part = body.partition("+")
        # Drop any profile or version suffix, e.g. "knart-1.3".
        language = _token(lang_part.split("-", 1)[0]) if lang_part != "*" else None
        fmt = _token(fmt_part.split("-", 1)[0]) if fmt_part and fmt_part != "*" else None
    elif code in _WELL_KNOWN:
        language, fmt = _WELL_KNOWN[code]
    elif code.endswith("+xml") or code.endswith("+json"):
        fmt = _token(code.rsplit("+", 1)[1])
    else:
        return None

    charset = encoding = None
    weight = WEIGHT_UNSPECIFIED
    for part in parts[1:]:
        key, _, value = part.partition("=")
        key = key.strip().lower()
        if key == "q":
            weight = _weight(value)
        elif key == "charset":
            charset = _token(value)
        elif key == "enc":
            encoding = _token(value)
    return WeightedRepresentation(Representation(language, fmt, charset, encoding), weight)


def decode(item: str) -> Optional[WeightedRepresentation]:
    """Decode one preference item, or return ``None`` when it carries nothing."""

    parts = [p for p in (item or "").split(";") if p.strip()]
    if not parts:
        return None
    if "/" in parts[0]:
        return _decode_mime(parts)
    if "=" in parts[0]:
        return _decode_key_values(parts)
    return None


def decode_all(code: str | None) -> List[WeightedRepresentation]:
    """Decode a full preference code, strongest weight first.

    ``sorted`` is stable, so items with equal weights keep their input order.
    """

    decoded = [decode(item) for item in (code or "").split(",")]
    return sorted(
        (item for item in decoded if item is not None),
        key=lambda item: item.weight,
        reverse=True,
    )


def encode(rep: Representation, weight: float | None = None) -> str:
    parts = [
        f"{key}={getattr(rep, attr)}"
        for key, attr in _KEYS.items()
        if getattr(rep, attr) is not None
    ]
    if weight is not None:
        parts.append(f"q={weight:g}")
    return ";".join(parts)


__all__ = [
    "WEIGHT_UNSPECIFIED",
    "WeightedRepresentation",
    "decode",
    "decode_all",
    "encode",
]
