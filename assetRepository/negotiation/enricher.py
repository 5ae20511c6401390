from __future__ import annotations

"""Augments surrogates with locators, full link sets and ephemeral forms.

Enrichment happens on a copy right before a surrogate is handed to a
caller; nothing computed here is persisted.
"""

from copy import deepcopy
import logging
from typing import Callable, List, Optional, Sequence

from ..hrefs import HrefBuilder, HrefType
from ..index.base import Index
from ..model import (
    AssetPointer,
    KnowledgeArtifact,
    KnowledgeAsset,
    Link,
    Representation,
    TranscodingOperator,
    default_artifact_id,
    default_surrogate_id,
)
from ..transcoder import Transcoder
from ..vocab import IS_TRANSCREATION_OF, SURROGATE
from .mime import encode
from .negotiator import is_broader_or_equal, same_token

logger = logging.getLogger(__name__)

EPHEMERAL_DESCRIPTION = "(Ephemeral)"


def enrich_surrogate(
    asset: KnowledgeAsset,
    hrefs: Optional[HrefBuilder] = None,
    transcoder: Optional[Transcoder] = None,
    index: Optional[Index] = None,
    with_inverses: bool = False,
) -> KnowledgeAsset:
    enriched = deepcopy(asset)
    if hrefs is not None:
        _add_carrier_locators(enriched, hrefs)
        _add_surrogate_locators(enriched, hrefs)
    if index is not None and with_inverses:
        _rewrite_links(enriched, index)
    if hrefs is not None and transcoder is not None:
        _add_ephemeral(
            enriched, enriched.surrogates, transcoder, hrefs,
            default_surrogate_id, HrefType.EPHEMERAL_SURROGATE,
        )
        _add_ephemeral(
            enriched, enriched.carriers, transcoder, hrefs,
            default_artifact_id, HrefType.EPHEMERAL_CARRIER,
        )
    return enriched


def _add_carrier_locators(asset: KnowledgeAsset, hrefs: HrefBuilder) -> None:
    for carrier in asset.carriers:
        if carrier.locator is None:
            carrier.locator = hrefs.content_href(
                asset.asset_id,
                carrier.artifact_id,
                carrier.representation,
                HrefType.ASSET_CARRIER_VERSION_CONTENT,
            )


def _add_surrogate_locators(asset: KnowledgeAsset, hrefs: HrefBuilder) -> None:
    for surrogate in asset.surrogates:
        # Forms without an id have no content route to point at.
        if surrogate.locator is not None or surrogate.artifact_id is None:
            continue
        # The canonical form is served by the surrogate endpoint itself.
        if same_token(surrogate.representation.language, SURROGATE):
            continue
        surrogate.locator = hrefs.content_href(
            asset.asset_id,
            surrogate.artifact_id,
            surrogate.representation,
            HrefType.ASSET_SURROGATE_VERSION_CONTENT,
        )


def _rewrite_links(asset: KnowledgeAsset, index: Index) -> None:
    full = index.get_neighbour_links(asset.asset_id)
    known = {(link.rel, link.href) for link in full}
    assert all((link.rel, link.href) in known for link in asset.links if not link.inverse), (
        f"authored links of {asset.asset_id} are missing from the index"
    )
    asset.links = sorted(full, key=lambda link: (link.inverse, link.rel, str(link.href)))


def canonical_representation(operator: TranscodingOperator) -> Representation:
    """The most specific output representation of ``operator``."""

    into = operator.into
    for attr in ("encoding", "charset", "format", "language"):
        for rep in into:
            if getattr(rep, attr) is not None:
                return rep
    return into[0] if into else Representation()


def _matching_operators(
    descriptor: KnowledgeArtifact, transcoder: Transcoder
) -> List[TranscodingOperator]:
    operators = transcoder.list_operators(encode(descriptor.representation)) or []
    return [
        op
        for op in operators
        if not any(same_token(rep.language, SURROGATE) for rep in op.into)
        and any(is_broader_or_equal(src, descriptor.representation) for src in op.from_)
    ]


def _supersedes(concrete: KnowledgeArtifact, ephemeral: KnowledgeArtifact) -> bool:
    return concrete.locator == ephemeral.locator or is_broader_or_equal(
        concrete.representation, ephemeral.representation
    )


def _add_ephemeral(
    asset: KnowledgeAsset,
    descriptors: List[KnowledgeArtifact],
    transcoder: Transcoder,
    hrefs: HrefBuilder,
    make_id: Callable[[AssetPointer, Optional[str]], AssetPointer],
    kind: HrefType,
) -> None:
    concrete: Sequence[KnowledgeArtifact] = list(descriptors)
    mapped: List[KnowledgeArtifact] = []
    for descriptor in concrete:
        for operator in _matching_operators(descriptor, transcoder):
            target = canonical_representation(operator)
            ephemeral = KnowledgeArtifact(
                artifact_id=make_id(asset.asset_id, target.language),
                representation=target,
                locator=hrefs.content_href(asset.asset_id, descriptor.artifact_id, target, kind),
                name=descriptor.name,
                description=EPHEMERAL_DESCRIPTION,
                links=[Link(IS_TRANSCREATION_OF, descriptor.artifact_id)]
                if descriptor.artifact_id is not None
                else [],
                ephemeral=True,
            )
            if any(_supersedes(c, ephemeral) for c in concrete) or any(
                m.locator == ephemeral.locator for m in mapped
            ):
                logger.debug("Skipping superseded ephemeral %s form of %s", target, asset.asset_id)
                continue
            mapped.append(ephemeral)
    descriptors.extend(mapped)


__all__ = ["enrich_surrogate", "canonical_representation", "EPHEMERAL_DESCRIPTION"]
