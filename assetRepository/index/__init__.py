"""Asset index backends."""

from .base import Index, annotation_keys
from .kv import KeyValueIndex
from .triples import TripleStoreIndex

__all__ = ["Index", "annotation_keys", "KeyValueIndex", "TripleStoreIndex"]
