"""
Lazy, single-pass record streams.

A RecordStream wraps an iterator of records produced by the driver. Operators
such as filter/take/map return a new stream over the same source, so nothing is
read from the server until the stream is iterated, and iteration stops pulling
as soon as the downstream consumer loses interest.
"""

import itertools
import logging
from dataclasses import asdict, is_dataclass
from typing import Any, Callable, Iterable, Iterator, List, Optional

import pandas as pd

from .errors import StreamError
from .types import Record

logger = logging.getLogger(__name__)

Transform = Callable[[Iterator[Any]], Iterator[Any]]


class _Source:
    """The underlying record iterator shared by a stream and all streams derived from it."""

    def __init__(self, records: Iterable[Any], on_close: Optional[Callable[[], None]] = None):
        self.records = records
        self.on_close = on_close
        self.iterator: Optional[Iterator[Any]] = None
        self.closed = False

    def open(self) -> Iterator[Any]:
        if self.closed:
            raise StreamError("Result stream is closed")
        if self.iterator is not None:
            raise StreamError("Result stream can only be consumed once")
        self.iterator = iter(self.records)
        return self.iterator

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        close_iterator = getattr(self.iterator, "close", None)
        if close_iterator is not None:
            close_iterator()
        if self.on_close is not None:
            self.on_close()
        logger.debug("Result stream closed")


class RecordStream:
    """A lazy, finite, forward-only sequence of query results."""

    def __init__(self, records: Iterable[Any], on_close: Optional[Callable[[], None]] = None):
        self._source = _Source(records, on_close)
        self._transforms: List[Transform] = []

    def _derive(self, transform: Transform) -> "RecordStream":
        stream = RecordStream.__new__(RecordStream)
        stream._source = self._source
        stream._transforms = self._transforms + [transform]
        return stream

    def __iter__(self) -> Iterator[Any]:
        iterator = self._source.open()
        for transform in self._transforms:
            iterator = transform(iterator)
        return iterator

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    @property
    def closed(self) -> bool:
        return self._source.closed

    def close(self) -> None:
        """Release the underlying reader. Safe to call more than once."""
        self._source.close()

    def filter(self, predicate: Callable[[Any], bool]) -> "RecordStream":
        """Keep only the items for which ``predicate`` is true, in stream order."""
        return self._derive(lambda items: (item for item in items if predicate(item)))

    def take(self, n: int) -> "RecordStream":
        """Stop after the first ``n`` items. Items past the n-th are never read."""
        if n < 0:
            raise ValueError(f"take() needs a non-negative count, got {n}")
        return self._derive(lambda items: itertools.islice(items, n))

    def map(self, fn: Callable[[Any], Any]) -> "RecordStream":
        return self._derive(lambda items: (fn(item) for item in items))

    def consume_each(self, action: Callable[[Any], None]) -> int:
        """Call ``action`` once per item until the stream ends, then close it.

        Returns the number of items consumed.
        """
        count = 0
        try:
            for item in self:
                action(item)
                count += 1
        finally:
            self.close()
        return count

    def to_list(self) -> List[Any]:
        items: List[Any] = []
        self.consume_each(items.append)
        return items

    def to_pandas(self) -> pd.DataFrame:
        """Drain the stream into a DataFrame, one row per item."""
        rows = [_as_row(item) for item in self.to_list()]
        if not rows:
            return pd.DataFrame()
        return pd.DataFrame(rows)


def _as_row(item: Any) -> dict:
    if isinstance(item, Record):
        return dict(item.values)
    if is_dataclass(item):
        return asdict(item)
    return dict(item)
