from __future__ import annotations

"""Representation negotiation over carrier and surrogate descriptors."""

from typing import Iterable, List, Optional, Sequence

from ..errors import NotAcceptable
from ..model import KnowledgeArtifact, KnowledgeAsset, Representation
from ..vocab import HTML
from .mime import WeightedRepresentation, decode_all

_DIMENSIONS = ("language", "format", "charset", "encoding")


def same_token(left: Optional[str], right: Optional[str]) -> bool:
    return left is not None and right is not None and left.upper() == right.upper()


def decode_preferences(
    code: str | None, fallback: Representation | None = None
) -> List[WeightedRepresentation]:
    """Decode ``code`` into preferences ordered by weight.

    When nothing decodes and ``fallback`` is given, the result is
    ``[fallback]``.
    """

    preferences = decode_all(code)
    if not preferences and fallback is not None:
        preferences.append(WeightedRepresentation(fallback))
    return preferences


def is_broader_or_equal(requested: Representation, candidate: Representation) -> bool:
    """True when every dimension set on ``requested`` matches ``candidate``."""

    for dimension in _DIMENSIONS:
        wanted = getattr(requested, dimension)
        if wanted is None:
            continue
        if not same_token(wanted, getattr(candidate, dimension)):
            return False
    return True


def best_candidate(
    candidates: Iterable[KnowledgeArtifact], preference: WeightedRepresentation
) -> Optional[KnowledgeArtifact]:
    for candidate in candidates:
        if is_broader_or_equal(preference.rep, candidate.representation):
            return candidate
    return None


def negotiate(
    candidates: Sequence[KnowledgeArtifact],
    preferences: Sequence[WeightedRepresentation],
) -> Optional[KnowledgeArtifact]:
    """Return the first candidate matching the strongest satisfiable preference."""

    for preference in preferences:
        chosen = best_candidate(candidates, preference)
        if chosen is not None:
            return chosen
    return None


def any_carrier(candidates: Iterable[KnowledgeArtifact]) -> Optional[KnowledgeArtifact]:
    """Any one candidate; the first one in the collection's iteration order."""

    return next(iter(candidates), None)


def negotiate_or_default(
    candidates: Sequence[KnowledgeArtifact],
    preferences: Sequence[WeightedRepresentation],
) -> Optional[KnowledgeArtifact]:
    if all(p.rep.language is None for p in preferences):
        return any_carrier(candidates)
    chosen = negotiate(candidates, preferences)
    return chosen if chosen is not None else any_carrier(candidates)


def is_acceptable(candidate: KnowledgeArtifact, code: str | None) -> bool:
    if not (code or "").strip():
        return True
    return negotiate([candidate], decode_preferences(code)) is not None


def negotiate_surrogate(
    asset: KnowledgeAsset,
    code: str | None,
    default_representation: Representation,
) -> Optional[KnowledgeArtifact]:
    """Pick the surrogate form a client asked for.

    Returns ``None`` when the canonical surrogate itself should be served,
    or the alternate descriptor whose locator the client is redirected to.
    Only HTML and the canonical surrogate language are acceptable; a code
    that asks for neither, or only for an HTML form the asset does not
    have, raises :class:`NotAcceptable`.
    """

    if not (code or "").strip():
        return None
    canonical = default_representation.language
    acceptable = [
        p
        for p in decode_preferences(code, default_representation)
        if same_token(p.rep.language, HTML) or same_token(p.rep.language, canonical)
    ]
    # Ephemeral forms point back at this negotiation and are never redirect targets.
    stored = [s for s in asset.surrogates if not s.ephemeral]
    chosen = negotiate(stored, acceptable)
    if (
        chosen is not None
        and chosen.locator
        and not same_token(chosen.representation.language, canonical)
    ):
        return chosen
    if any(same_token(p.rep.language, canonical) for p in acceptable):
        return None
    raise NotAcceptable(
        f"No acceptable surrogate form for {asset.asset_id}", preferences=code
    )


__all__ = [
    "decode_preferences",
    "is_broader_or_equal",
    "best_candidate",
    "negotiate",
    "negotiate_or_default",
    "any_carrier",
    "is_acceptable",
    "negotiate_surrogate",
    "same_token",
]
