"""Basic usage example for the tsquery client."""

from dataclasses import dataclass, field
from datetime import datetime

from tsquery_client import create_client

QUERY = """
SELECT 'cpu' AS _measurement, cpu, usage_system AS _value, time AS _time
FROM cpu
WHERE time >= now() - INTERVAL '1 day'
"""


@dataclass
class CpuUsage:
    cpu: str
    usage: float = field(metadata={"column": "_value"})
    time: datetime = field(metadata={"column": "_time"})


def main():
    """Example usage demonstrating the client's features."""
    with create_client("grpc://localhost:8181", "my-token") as client:
        # Example 1: Result is returned as a stream
        with client.query(QUERY, "my-org") as results:
            # filter on client side, take the first 20 records, print them
            (results
                .filter(lambda record: record.get_value_by_key("cpu") == "cpu0")
                .take(20)
                .consume_each(lambda record: print(f"Measurement: {record.measurement}, value: {record.value}")))

        # Example 2: Map records onto a dataclass
        print("\nBusiest CPUs:")
        with client.query_as(QUERY, CpuUsage, "my-org") as usages:
            for usage in usages.filter(lambda u: u.usage > 90.0).take(5):
                print(usage)

        # Example 3: Whole result as a DataFrame
        print("\nAll results:")
        df = client.query_dataframe(QUERY, "my-org")
        print(df)

        # Example 4: Raw Arrow batches as the server sends them
        with client.query_raw(QUERY, "my-org") as batches:
            for batch in batches.take(3):
                print(f"batch of {batch.num_rows} rows")

        # Example 5: Write rows
        written = client.write_records("cpu", [
            {"cpu": "cpu0", "host": "server01", "usage_system": 12.5, "time": datetime.now()},
            {"cpu": "cpu1", "host": "server01", "usage_system": 95.0, "time": datetime.now()},
        ], "my-org")
        print(f"\nWrote {written} rows")


if __name__ == "__main__":
    main()
