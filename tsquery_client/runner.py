"""
Query runner: one query, client-side filter and bound, one line per record.
"""

import logging
from typing import Any, Callable, Optional

from .client import create_client
from .config import ClientConfig
from .types import Record

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 20


def print_record(record: Record) -> None:
    print(f"Measurement: {record.measurement}, value: {record.value}")


def run_query(url: str, token: str, query: str, org: str, *,
              tag_key: str, tag_value: Any,
              limit: int = DEFAULT_LIMIT,
              action: Callable[[Record], None] = print_record,
              config: Optional[ClientConfig] = None) -> int:
    """
    Run ``query`` and apply ``action`` to the first ``limit`` records whose
    ``tag_key`` column equals ``tag_value``.

    The client and the result stream are released on every exit path; errors
    propagate to the caller afterwards.

    Returns:
        Number of records passed to ``action``
    """
    with create_client(url, token, org=org, config=config) as client:
        with client.query(query, org) as results:
            count = (results
                     .filter(lambda record: record.get_value_by_key(tag_key) == tag_value)
                     .take(limit)
                     .consume_each(action))
    logger.debug(f"Consumed {count} records")
    return count
