import dataclasses

import pytest

from tsquery_client.types import Record


def test_record_exposes_columns():
    record = Record.from_row({"_measurement": "h2o_feet", "_field": "water_level",
                              "_value": 1.0, "_time": 1, "location": "south", "table": 2})
    assert record.measurement == "h2o_feet"
    assert record.field == "water_level"
    assert record.value == 1.0
    assert record.time == 1
    assert record.table == 2
    assert record.get_value_by_key("location") == "south"


def test_missing_columns_are_none():
    record = Record.from_row({"_value": 3})
    assert record.measurement is None
    assert record.field is None
    assert record.get_value_by_key("cpu") is None
    assert record.table == 0


def test_sql_style_column_names():
    record = Record.from_row({"iox::measurement": "cpu", "time": 42, "_value": 1})
    assert record.measurement == "cpu"
    assert record.time == 42


def test_record_is_immutable():
    row = {"_measurement": "cpu", "_value": 1}
    record = Record.from_row(row)
    row["_value"] = 2

    assert record.value == 1
    with pytest.raises(TypeError):
        record.values["_value"] = 3
    with pytest.raises(dataclasses.FrozenInstanceError):
        record.values = {}


def test_str_is_the_printed_line():
    record = Record.from_row({"_measurement": "cpu", "_value": 1})
    assert str(record) == "Measurement: cpu, value: 1"


def test_equal_records_hash_alike():
    first = Record.from_row({"_measurement": "cpu", "cpu": "cpu0", "_value": 1})
    second = Record.from_row({"_value": 1, "cpu": "cpu0", "_measurement": "cpu"})

    assert first == second
    assert hash(first) == hash(second)
    assert len({first, second}) == 1


def test_unhashable_column_value():
    record = Record.from_row({"_measurement": "cpu", "_value": [1, 2]})
    with pytest.raises(TypeError):
        hash(record)
