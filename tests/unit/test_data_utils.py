#!/usr/bin/env python
"""Tests for unit conversion and table cleaning."""

import numpy as np
import pandas as pd
import pytest

from climate_zonal.utils.data_utils import convert_units, drop_incomplete_rows, normalize_unit


class TestUnits:

    def test_fahrenheit_threshold_to_celsius(self):
        assert convert_units(80.0, "F", "C") == pytest.approx((80 - 32) * 5 / 9)
        assert convert_units(80.0, "F", "C") == pytest.approx(26.6667, abs=1e-4)

    def test_kelvin_to_celsius(self):
        assert convert_units(300.0, "K", "C") == pytest.approx(26.85)

    def test_celsius_to_fahrenheit(self):
        assert convert_units(100.0, "C", "F") == pytest.approx(212.0)

    def test_same_unit_is_identity(self):
        values = np.array([1.0, 2.0])
        assert convert_units(values, "degC", "C") is values

    def test_arrays(self):
        result = convert_units(np.array([32.0, 212.0]), "F", "C")
        np.testing.assert_allclose(result, [0.0, 100.0])

    @pytest.mark.parametrize("alias,expected", [
        ("degC", "C"), ("celsius", "C"), ("F", "F"), ("Fahrenheit", "F"), ("K", "K"),
    ])
    def test_normalize_unit(self, alias, expected):
        assert normalize_unit(alias) == expected

    def test_unknown_unit(self):
        with pytest.raises(ValueError, match="Unsupported temperature unit"):
            normalize_unit("rankine")


class TestDropIncompleteRows:

    def test_drops_rows_with_any_null(self):
        df = pd.DataFrame({
            "GEOID": ["a", "b", "c"],
            "ppt": [1.0, np.nan, 3.0],
            "tmax": [1.0, 2.0, None],
        })
        result = drop_incomplete_rows(df, ["ppt", "tmax"])
        assert list(result["GEOID"]) == ["a"]
        assert list(result.index) == [0]

    def test_only_listed_columns_count(self):
        df = pd.DataFrame({"GEOID": [None, "b"], "ppt": [1.0, 2.0]})
        assert len(drop_incomplete_rows(df, ["ppt"])) == 2

    def test_missing_column(self):
        df = pd.DataFrame({"ppt": [1.0]})
        with pytest.raises(KeyError):
            drop_incomplete_rows(df, ["tmax"])

    def test_empty_table(self):
        df = pd.DataFrame(columns=["GEOID", "ppt"])
        assert drop_incomplete_rows(df, ["ppt"]).empty
