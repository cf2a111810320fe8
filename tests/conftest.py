# tests/conftest.py
from typing import Any, Dict, List, Optional

import adbc_driver_flightsql.dbapi
import pyarrow as pa
import pytest

import tsquery_client.config


class FakeStatement:
    def __init__(self):
        self.options: Dict[str, Any] = {}

    def set_options(self, **kwargs):
        self.options.update(kwargs)


class FakeReader:
    """Stands in for pyarrow.RecordBatchReader; batches are produced on demand."""

    def __init__(self, server: "FakeServer"):
        self.server = server
        self.close_count = 0
        self._batches = self._generate()

    def _generate(self):
        for index, rows in enumerate(self.server.batches):
            if self.server.stream_error_at == index:
                raise pa.ArrowInvalid("connection reset by peer")
            self.server.batches_read += 1
            yield pa.RecordBatch.from_pylist(rows)

    def __iter__(self):
        return self._batches

    def close(self):
        self.close_count += 1


class FakeCursor:
    def __init__(self, server: "FakeServer"):
        self.server = server
        self.adbc_statement = FakeStatement()
        self.query: Optional[str] = None
        self.reader: Optional[FakeReader] = None
        self.close_count = 0

    def execute(self, query):
        if self.server.execute_error is not None:
            raise self.server.execute_error
        self.query = query

    def fetch_record_batch(self):
        self.reader = FakeReader(self.server)
        return self.reader

    def adbc_ingest(self, table_name, data, mode="create"):
        if self.server.ingest_error is not None:
            raise self.server.ingest_error
        self.server.ingested.append({"table": table_name, "data": data, "mode": mode})
        return data.num_rows

    def fetch_arrow_table(self):
        rows = [row for batch in self.server.batches for row in batch]
        return pa.Table.from_pylist(rows)

    def close(self):
        self.close_count += 1


class FakeConnection:
    def __init__(self, server: "FakeServer"):
        self.server = server
        self.cursors: List[FakeCursor] = []
        self.close_count = 0

    def cursor(self):
        cursor = FakeCursor(self.server)
        self.cursors.append(cursor)
        return cursor

    def close(self):
        self.close_count += 1


class FakeServer:
    """Records what the client asks of the driver and serves canned rows."""

    def __init__(self):
        self.batches: List[List[Dict[str, Any]]] = []
        self.connect_calls: List[Dict[str, Any]] = []
        self.connections: List[FakeConnection] = []
        self.connect_error: Optional[Exception] = None
        self.execute_error: Optional[Exception] = None
        self.stream_error_at: Optional[int] = None
        self.ingest_error: Optional[Exception] = None
        self.ingested: List[Dict[str, Any]] = []
        self.batches_read = 0

    def serve(self, rows, batch_size=1):
        self.batches = [rows[i:i + batch_size] for i in range(0, len(rows), batch_size)]

    def connect(self, uri, db_kwargs=None, **kwargs):
        self.connect_calls.append({"uri": uri, "db_kwargs": db_kwargs or {}})
        if self.connect_error is not None:
            raise self.connect_error
        conn = FakeConnection(self)
        self.connections.append(conn)
        return conn

    @property
    def connection(self) -> FakeConnection:
        return self.connections[-1]

    @property
    def cursor(self) -> FakeCursor:
        return self.connection.cursors[-1]


@pytest.fixture
def server(monkeypatch):
    fake = FakeServer()
    monkeypatch.setattr(adbc_driver_flightsql.dbapi, "connect", fake.connect)
    return fake


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("TSQUERY_URL", "TSQUERY_TOKEN", "TSQUERY_ORG", "TSQUERY_HEALTH_URL",
                 "TSQUERY_QUERY_TIMEOUT", "TSQUERY_HTTP_TIMEOUT"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(tsquery_client.config, "load_dotenv", lambda *a, **kw: False)


def cpu_rows(*pairs):
    """Rows of the cpu measurement from (cpu, value) pairs."""
    return [{"_measurement": "cpu", "cpu": cpu, "_value": value} for cpu, value in pairs]
