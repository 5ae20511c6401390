from __future__ import annotations

"""Transcoder collaborator: lists translation operators for a source form."""

from typing import Iterable, List, Protocol

from .model import TranscodingOperator
from .negotiation.mime import decode_all
from .negotiation.negotiator import is_broader_or_equal


class Transcoder(Protocol):
    def list_operators(self, source_code: str) -> List[TranscodingOperator]:
        ...


class StaticTranscoder:
    """Serves a fixed operator table.

    ``list_operators`` returns the operators accepting at least one of the
    representations decoded from ``source_code``; an empty code lists every
    operator.
    """

    def __init__(self, operators: Iterable[TranscodingOperator] = ()) -> None:
        self.operators = list(operators)

    def list_operators(self, source_code: str) -> List[TranscodingOperator]:
        sources = [item.rep for item in decode_all(source_code)]
        if not sources:
            return list(self.operators)
        return [
            op
            for op in self.operators
            if any(is_broader_or_equal(src, rep) for src in op.from_ for rep in sources)
        ]


__all__ = ["Transcoder", "StaticTranscoder"]
