from buffersearch.query.client import SpatialQueryClient
from buffersearch.query.outcome import Empty, Failure, QueryOutcome, Success

__all__ = ["Empty", "Failure", "QueryOutcome", "SpatialQueryClient", "Success"]
