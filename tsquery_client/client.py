import logging
from dataclasses import fields, is_dataclass
from typing import Any, Callable, Dict, Iterable, Iterator, Optional, Type, TypeVar, Union

import adbc_driver_flightsql
import adbc_driver_flightsql.dbapi
import adbc_driver_manager.dbapi
import pandas as pd
import pyarrow as pa
import requests

from .config import ClientConfig, http_base_url
from .errors import ClientConnectionError, QueryError, StreamError, WriteError
from .stream import RecordStream
from .types import Record

logger = logging.getLogger(__name__)

T = TypeVar("T")

# gRPC call header carrying the organization a query is scoped to
ORG_HEADER = "organization"

_DRIVER_ERRORS = (adbc_driver_manager.dbapi.Error, pa.ArrowException)


class QueryClient:
    def __init__(self, url: Optional[str] = None, token: Optional[str] = None,
                 org: Optional[str] = None, config: Optional[ClientConfig] = None):
        """Initialize the client. Arguments override the values in ``config``."""
        self.config = config or ClientConfig()
        self.url = url if url is not None else self.config.url
        self.token = token if token is not None else self.config.token
        self.org = org or self.config.org
        self.conn = None

    def connect(self):
        """Establish connection to the Flight SQL server."""
        if self.conn:
            return
        if not self.url:
            raise ClientConnectionError("Server URL must not be empty")
        if not self.token:
            raise ClientConnectionError("Token must not be empty")

        logger.info(f"Connecting to Flight SQL server at {self.url}")
        db_kwargs = {
            adbc_driver_flightsql.DatabaseOptions.AUTHORIZATION_HEADER.value: f"Bearer {self.token}",
            adbc_driver_flightsql.DatabaseOptions.TIMEOUT_QUERY.value: str(float(self.config.query_timeout)),
        }
        try:
            self.conn = adbc_driver_flightsql.dbapi.connect(self.url, db_kwargs=db_kwargs)
        except _DRIVER_ERRORS as e:
            logger.error(f"Connection to {self.url} failed: {e}")
            raise ClientConnectionError(f"Could not connect to {self.url}: {e}") from e

    def close(self):
        """Close the connection to the Flight SQL server."""
        conn, self.conn = self.conn, None
        if conn is not None:
            conn.close()
            logger.debug("Flight SQL connection closed")

    def __enter__(self):
        """Context manager entry."""
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()

    def _cursor(self, org: Optional[str]):
        """Open a cursor whose server calls are scoped to ``org``."""
        if not self.conn:
            raise ClientConnectionError("Not connected to server")
        org = org or self.org
        if not org:
            raise QueryError("No organization given for query")

        cursor = self.conn.cursor()
        header = adbc_driver_flightsql.DatabaseOptions.RPC_CALL_HEADER_PREFIX.value + ORG_HEADER
        try:
            cursor.adbc_statement.set_options(**{header: org})
        except _DRIVER_ERRORS as e:
            cursor.close()
            raise QueryError(f"Could not scope query to org {org}: {e}") from e
        return cursor

    def _execute(self, query: str, org: Optional[str]):
        """Open a scoped cursor and run ``query`` on it."""
        cursor = self._cursor(org)
        logger.debug(f"Executing query: {query[:100]}")
        try:
            cursor.execute(query)
        except _DRIVER_ERRORS as e:
            cursor.close()
            logger.error(f"Query failed: {e}")
            raise QueryError(f"Query failed: {e}") from e
        return cursor

    def _stream(self, query: str, org: Optional[str],
                read: Callable[[Any], Iterator[Any]]) -> RecordStream:
        cursor = self._execute(query, org)
        try:
            reader = cursor.fetch_record_batch()
        except _DRIVER_ERRORS as e:
            cursor.close()
            logger.error(f"Query failed: {e}")
            raise QueryError(f"Query failed: {e}") from e

        def release():
            try:
                reader.close()
            finally:
                cursor.close()

        return RecordStream(read(reader), on_close=release)

    def query(self, query: str, org: Optional[str] = None) -> RecordStream:
        """Run a query and return its results as a lazy stream of Record.

        The stream owns the server cursor; close it (or use it as a context
        manager) once done, even when it was not read to the end.
        """
        return self._stream(query, org, _read_records)

    def query_raw(self, query: str, org: Optional[str] = None) -> RecordStream:
        """Run a query and stream the server's pyarrow.RecordBatch objects as they arrive."""
        return self._stream(query, org, _read_batches)

    def query_as(self, query: str, model: Type[T], org: Optional[str] = None) -> RecordStream:
        """Run a query and map every record onto the dataclass ``model``.

        A field is filled from the column of the same name, or from the column
        named in its ``metadata={"column": ...}``.
        """
        to_model = record_mapper(model)
        return self.query(query, org).map(to_model)

    def query_dataframe(self, query: str, org: Optional[str] = None) -> pd.DataFrame:
        """Run a query and return the complete result as a DataFrame."""
        cursor = self._execute(query, org)
        try:
            results = cursor.fetch_arrow_table()
        except _DRIVER_ERRORS as e:
            logger.error(f"Fetching query results failed: {e}")
            raise StreamError(f"Fetching query results failed: {e}") from e
        finally:
            cursor.close()

        if results.num_rows > 0:
            return results.to_pandas()
        return pd.DataFrame()

    def write_records(self, table_name: str,
                      rows: Union[pa.Table, pd.DataFrame, Iterable[Dict[str, Any]]],
                      org: Optional[str] = None) -> int:
        """Append rows to ``table_name``, creating the table if needed.

        Returns:
            Number of rows written
        """
        if isinstance(rows, pd.DataFrame):
            data = pa.Table.from_pandas(rows, preserve_index=False)
        elif isinstance(rows, pa.Table):
            data = rows
        else:
            data = pa.Table.from_pylist(list(rows))
        if data.num_rows == 0:
            logger.debug(f"Nothing to write to {table_name}")
            return 0

        cursor = self._cursor(org)
        try:
            written = cursor.adbc_ingest(table_name, data, mode="create_append")
        except _DRIVER_ERRORS as e:
            logger.error(f"Write to {table_name} failed: {e}")
            raise WriteError(f"Write to {table_name} failed: {e}") from e
        finally:
            cursor.close()

        # drivers report -1 when they don't know the count
        if written is None or written < 0:
            written = data.num_rows
        logger.info(f"Wrote {written} rows to {table_name}")
        return written

    def ping(self) -> bool:
        """Check that the server answers its HTTP health endpoint."""
        base_url = self.config.health_url or http_base_url(self.url)
        url = f"{base_url.rstrip('/')}/health"
        headers = {"Authorization": f"Bearer {self.token}"} if self.token else {}
        try:
            response = requests.get(url, headers=headers, timeout=self.config.http_timeout)
        except requests.exceptions.RequestException as e:
            logger.error(f"Health check failed: {e}")
            return False

        if response.status_code == 200:
            logger.debug("Health check: OK")
            return True
        logger.error(f"Health check failed: HTTP {response.status_code}")
        return False


def _read_batches(reader) -> Iterator[pa.RecordBatch]:
    """Yield batches one at a time; the next batch is only read when needed."""
    try:
        for batch in reader:
            yield batch
    except _DRIVER_ERRORS as e:
        logger.error(f"Result stream failed: {e}")
        raise StreamError(f"Result stream failed: {e}") from e


def _read_records(reader) -> Iterator[Record]:
    for batch in _read_batches(reader):
        for row in batch.to_pylist():
            yield Record.from_row(row)


def record_mapper(model: Type[T]) -> Callable[[Record], T]:
    if not is_dataclass(model):
        raise TypeError(f"{model!r} is not a dataclass")
    columns: Dict[str, Any] = {f.name: f.metadata.get("column", f.name) for f in fields(model) if f.init}

    def to_model(record: Record) -> T:
        return model(**{name: record.get_value_by_key(column) for name, column in columns.items()})

    return to_model


def create_client(url: str, token: str, *, org: Optional[str] = None,
                  config: Optional[ClientConfig] = None) -> QueryClient:
    """Create a QueryClient and connect it. Close it (or use ``with``) when done."""
    client = QueryClient(url, token, org=org, config=config)
    client.connect()
    return client
