# Utils module
from .observability import Logger, get_metrics, initialize_observability, CORRELATION_ID
from .clock import effective_now, utc_now, ensure_utc, to_iso, parse_iso

__all__ = [
    "Logger",
    "get_metrics",
    "initialize_observability",
    "CORRELATION_ID",
    "effective_now",
    "utc_now",
    "ensure_utc",
    "to_iso",
    "parse_iso",
]
