from .client import FetchResult, SourceClient
from .errors import FetchFailure, NetworkFailure, ShapeFailure, StatusFailure, parse_fetch_failure

__all__ = [
    "FetchResult",
    "SourceClient",
    "FetchFailure",
    "NetworkFailure",
    "ShapeFailure",
    "StatusFailure",
    "parse_fetch_failure",
]
