from .assets import (
    AssetSummaryView,
    BundleResponse,
    CarrierView,
    PointerView,
    RepresentationView,
)
from .errors import ProblemDetails

__all__ = [
    "AssetSummaryView",
    "BundleResponse",
    "CarrierView",
    "PointerView",
    "RepresentationView",
    "ProblemDetails",
]
