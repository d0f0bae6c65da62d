"""Error taxonomy for the scoring pipeline.

Every failure raised by the pipeline is one of these kinds so callers and
log processors can classify it.
"""

from __future__ import annotations


class OracleEdgeError(Exception):
    """Base class for all pipeline errors."""


class EvidenceFetchError(OracleEdgeError):
    """An evidence source failed to produce signals.

    Absorbed at the aggregator boundary: the source is skipped and the
    aggregation continues with whatever evidence the other sources returned.
    """

    def __init__(self, source: str, market_id: str, cause: BaseException | None = None) -> None:
        self.source = source
        self.market_id = market_id
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"{source} fetch failed for market {market_id}{detail}")


class ValidationError(OracleEdgeError, ValueError):
    """A numeric precondition was violated (e.g. price outside (0, 1))."""


class ExecutionError(OracleEdgeError):
    """An order could not be routed to or accepted by a venue."""
