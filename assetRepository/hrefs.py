from __future__ import annotations

"""URL construction for assets, carriers and surrogates served under ``/cat``."""

from enum import Enum
from typing import Optional
from urllib.parse import quote, urlencode

from .model import AssetPointer, Representation
from .negotiation.mime import encode


class HrefType(str, Enum):
    ASSET = "asset"
    ASSET_VERSION = "asset_version"
    ASSET_CARRIER = "asset_carrier"
    ASSET_CARRIER_VERSION = "asset_carrier_version"
    ASSET_CARRIER_VERSION_CONTENT = "asset_carrier_version_content"
    ASSET_SURROGATE_VERSION = "asset_surrogate_version"
    ASSET_SURROGATE_VERSION_CONTENT = "asset_surrogate_version_content"
    EPHEMERAL_CARRIER = "ephemeral_carrier"
    EPHEMERAL_SURROGATE = "ephemeral_surrogate"


def _segment(value: object) -> str:
    return quote(str(value), safe="-._~")


class HrefBuilder:
    """Builds absolute URLs rooted at ``base_url``."""

    def __init__(self, base_url: str) -> None:
        self.base_url = base_url.rstrip("/")

    def asset_href(self, asset_id: object) -> str:
        return f"{self.base_url}/cat/assets/{_segment(asset_id)}"

    def asset_version_href(self, asset: AssetPointer) -> str:
        return f"{self.asset_href(asset.tag)}/versions/{_segment(asset.version)}"

    def carrier_href(self, asset: AssetPointer, artifact: AssetPointer) -> str:
        return f"{self.asset_version_href(asset)}/carriers/{_segment(artifact.tag)}"

    def carrier_version_href(self, asset: AssetPointer, artifact: AssetPointer) -> str:
        return f"{self.carrier_href(asset, artifact)}/versions/{_segment(artifact.version)}"

    def surrogate_version_href(self, asset: AssetPointer, surrogate: AssetPointer) -> str:
        return (
            f"{self.asset_version_href(asset)}/surrogate/{_segment(surrogate.tag)}"
            f"/versions/{_segment(surrogate.version)}"
        )

    def href(
        self,
        asset: AssetPointer,
        artifact: Optional[AssetPointer],
        kind: HrefType,
    ) -> str:
        if kind is HrefType.ASSET:
            return self.asset_href(asset.tag)
        if kind is HrefType.ASSET_VERSION:
            return self.asset_version_href(asset)
        if artifact is None or artifact.id is None:
            raise ValueError(f"{kind.value} href requires an artifact pointer")
        if kind is HrefType.ASSET_CARRIER:
            return self.carrier_href(asset, artifact)
        if kind is HrefType.ASSET_CARRIER_VERSION:
            return self.carrier_version_href(asset, artifact)
        if kind is HrefType.ASSET_SURROGATE_VERSION:
            return self.surrogate_version_href(asset, artifact)
        raise ValueError(f"{kind.value} is a content href; use content_href")

    def content_href(
        self,
        asset: AssetPointer,
        artifact: Optional[AssetPointer],
        rep: Representation,
        kind: HrefType,
    ) -> str:
        """Locator of the content of ``artifact`` in representation ``rep``.

        Ephemeral kinds point at the negotiation endpoints of the asset
        version, with the target representation encoded as ``xAccept``.
        """

        if kind is HrefType.EPHEMERAL_CARRIER:
            return f"{self.asset_version_href(asset)}/carrier?{urlencode({'xAccept': encode(rep)})}"
        if kind is HrefType.EPHEMERAL_SURROGATE:
            return f"{self.asset_version_href(asset)}/surrogate?{urlencode({'xAccept': encode(rep)})}"
        if kind is HrefType.ASSET_CARRIER_VERSION_CONTENT:
            if artifact is None or not artifact.is_complete:
                return f"{self.asset_version_href(asset)}/carrier/content"
            return f"{self.carrier_version_href(asset, artifact)}/content"
        if kind is HrefType.ASSET_SURROGATE_VERSION_CONTENT:
            if artifact is None or not artifact.is_complete:
                return f"{self.asset_version_href(asset)}/surrogate"
            return f"{self.surrogate_version_href(asset, artifact)}/content"
        return self.href(asset, artifact, kind)


__all__ = ["HrefType", "HrefBuilder"]
