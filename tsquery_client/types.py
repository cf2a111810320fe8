from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

MEASUREMENT_KEYS = ("_measurement", "iox::measurement")
TIME_KEYS = ("_time", "time")


def _first(values: Mapping[str, Any], keys) -> Any:
    for key in keys:
        if key in values:
            return values[key]
    return None


@dataclass(frozen=True)
class Record:
    """One row of a query result."""
    values: Mapping[str, Any]

    def __post_init__(self):
        # read-only copy of the row
        object.__setattr__(self, "values", MappingProxyType(dict(self.values)))

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Record":
        return cls(values=row)

    @property
    def measurement(self) -> Optional[str]:
        return _first(self.values, MEASUREMENT_KEYS)

    @property
    def value(self) -> Any:
        return self.values.get("_value")

    @property
    def field(self) -> Optional[str]:
        return self.values.get("_field")

    @property
    def time(self) -> Any:
        return _first(self.values, TIME_KEYS)

    @property
    def table(self) -> int:
        return self.values.get("table", 0)

    def __hash__(self):
        # raises TypeError when a column holds an unhashable value
        return hash(tuple(sorted(self.values.items())))

    def get_value_by_key(self, key: str) -> Any:
        """Return the value of column ``key``, or None when the row has no such column."""
        return self.values.get(key)

    def __str__(self) -> str:
        return f"Measurement: {self.measurement}, value: {self.value}"
