"""Route table and call sequencing."""

from .table import Response, RouteState, RouteTable
from .sequencer import EXHAUSTED, NOT_FOUND, Matched, ResponseSequencer, SequenceResult, Unmatched

__all__ = [
    "Response",
    "RouteState",
    "RouteTable",
    "ResponseSequencer",
    "SequenceResult",
    "Matched",
    "Unmatched",
    "NOT_FOUND",
    "EXHAUSTED",
]
