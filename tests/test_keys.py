"""Tests for composite row keys."""

from __future__ import annotations

import numpy as np
import pandas as pd
import pytest
from numpy.testing import assert_array_equal

from entityframes.keys import STATIC_KEY, build_row_ids, is_static_key, split_row_ids


class TestBuildRowIds:
    def test_dynamic_rows(self):
        keys = build_row_ids(np.array([1.0, 6.0, 11.0]), ["A", "A", "A"])
        assert keys.tolist() == ["1-A", "6-A", "11-A"]

    def test_missing_time_or_id_is_static(self):
        keys = build_row_ids(np.array([1.0, np.nan, 3.0]), pd.Series(["A", "B", None]))
        assert keys.tolist() == ["1-A", STATIC_KEY, STATIC_KEY]

    def test_layer_without_id(self):
        keys = build_row_ids(np.array([1.0, 2.0]), None)
        assert keys.tolist() == ["", ""]

    def test_layer_without_time_uses_row_count(self):
        keys = build_row_ids(None, None, n_rows=3)
        assert keys.tolist() == ["", "", ""]

    def test_non_string_ids(self):
        keys = build_row_ids(np.array([2.0, 4.0]), [7, 8])
        assert keys.tolist() == ["2-7", "4-8"]

    def test_ignores_id_index(self):
        ids = pd.Series(["A", "B"], index=[10, 20])
        assert build_row_ids(np.array([1.0, 2.0]), ids).tolist() == ["1-A", "2-B"]

    def test_length_mismatch(self):
        with pytest.raises(ValueError, match="same length"):
            build_row_ids(np.array([1.0]), ["A", "B"])


class TestSplitRowIds:
    def test_round_trip(self):
        keys = build_row_ids(np.array([1.0, 6.0, np.nan]), ["A", "B", "C"])
        parts = split_row_ids(keys)
        assert_array_equal(parts["frame"].to_numpy()[:2], [1.0, 6.0])
        assert np.isnan(parts["frame"].iloc[2])
        assert parts["id"].tolist() == ["A", "B", None]
        assert parts["static"].tolist() == [False, False, True]

    def test_static_ids_are_none(self):
        parts = split_row_ids(pd.Series(["1-A", "", "garbage"]))
        assert parts["id"].dtype == object
        assert parts["id"].iloc[1] is None
        assert parts["id"].iloc[2] is None

    def test_multiline_ids(self):
        keys = build_row_ids(np.array([1.0, 11.0]), ["b\nc", "b\nc"])
        parts = split_row_ids(keys)
        assert parts["static"].tolist() == [False, False]
        assert parts["frame"].tolist() == [1.0, 11.0]
        assert parts["id"].tolist() == ["b\nc", "b\nc"]

    def test_ids_containing_separator(self):
        parts = split_row_ids(pd.Series(["3-New-York"]))
        assert parts["frame"].iloc[0] == 3.0
        assert parts["id"].iloc[0] == "New-York"

    def test_negative_frames(self):
        parts = split_row_ids(pd.Series(["-2-A"]))
        assert parts["frame"].iloc[0] == -2.0
        assert parts["id"].iloc[0] == "A"

    def test_unparseable_keys_are_static(self):
        parts = split_row_ids(pd.Series(["garbage", "x-A"]))
        assert parts["static"].tolist() == [True, True]

    def test_keeps_index(self):
        keys = pd.Series(["1-A", ""], index=[5, 9])
        assert split_row_ids(keys).index.tolist() == [5, 9]


def test_is_static_key():
    mask = is_static_key(pd.Series(["1-A", "", None], dtype=object))
    assert mask.tolist() == [False, True, True]
