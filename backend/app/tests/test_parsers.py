import json

import pandas as pd
import pytest

from app.parsers import dataframe_to_rows, normalise_column, parse_file


def test_normalise_column_names():
    assert normalise_column("Electricity (kWh)") == "electricity_kwh"
    assert normalise_column("  Energy - kWh ") == "energy_kwh"


def test_csv_keeps_thousands_separated_text():
    df = parse_file(b'Site,Energy (kWh)\nA,"1,200"\nB,300\n', "data.csv")
    assert list(df.columns) == ["site", "energy_kwh"]
    assert df["energy_kwh"].tolist() == ["1,200", "300"]


def test_duplicate_columns_are_suffixed():
    df = parse_file(b"Energy,energy\n1,2\n", "dup.csv")
    assert list(df.columns) == ["energy", "energy_1"]


def test_json_wrapper_object():
    content = json.dumps({"rows": [{"Energy (kWh)": 10}, {"Energy (kWh)": 20}]}).encode()
    df = parse_file(content, "rows.json")
    assert df["energy_kwh"].tolist() == [10, 20]


def test_empty_file_rejected():
    with pytest.raises(ValueError):
        parse_file(b"a,b\n", "empty.csv")


def test_rows_are_json_safe():
    df = pd.DataFrame({
        "date": pd.to_datetime(["2024-01-31", None]),
        "energy_kwh": [1.5, float("nan")],
    })
    rows = dataframe_to_rows(df)
    assert rows == [
        {"date": "2024-01-31", "energy_kwh": 1.5},
        {"date": None, "energy_kwh": None},
    ]
