"""
Python client for streaming time-series query results over Arrow Flight SQL.
"""

from .client import QueryClient, create_client
from .config import ClientConfig
from .errors import ClientConnectionError, QueryError, StreamError, TSQueryError, WriteError
from .runner import run_query
from .stream import RecordStream
from .types import Record

__version__ = "0.1.0"
__all__ = [
    "QueryClient",
    "create_client",
    "ClientConfig",
    "Record",
    "RecordStream",
    "run_query",
    "TSQueryError",
    "ClientConnectionError",
    "QueryError",
    "StreamError",
    "WriteError",
]
