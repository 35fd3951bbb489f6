"""Tests for error codes and messages.

Every error raised for a configuration problem carries an ``[E3xxx]`` code
and a WHAT/WHY/HOW message.
"""

from __future__ import annotations

import datetime as dt

import pandas as pd
import pytest

from entityframes import Layer, transition_components
from entityframes.errors import (
    IncompatibleUnitsError,
    InconsistentTimeClassError,
    MissingParameterError,
    UnsupportedLayerTypeError,
)


def assert_sections(message: str) -> None:
    assert "WHAT:" in message
    assert "WHY:" in message
    assert "HOW:" in message


class TestErrorCodeE3001MissingParameter:
    def test_code_and_sections(self):
        error = MissingParameterError("time")
        assert str(error).startswith("[E3001]")
        assert_sections(str(error))
        assert error.error_code == "E3001"

    def test_is_type_error(self):
        assert issubclass(MissingParameterError, TypeError)


class TestErrorCodeE3002IncompatibleUnits:
    def test_code_and_attributes(self):
        error = IncompatibleUnitsError("range", "numeric", "date")
        assert str(error).startswith("[E3002]")
        assert "range must be given in the same class as time" in str(error)
        assert (error.parameter, error.expected, error.actual) == (
            "range",
            "numeric",
            "date",
        )
        assert_sections(str(error))

    @pytest.mark.parametrize(
        ("parameter", "expected", "hint"),
        [
            ("range", "date", "pair of date values"),
            ("enter_length", "numeric", "plain number"),
            ("exit_length", "duration (date axis)", "pd.Timedelta"),
        ],
    )
    def test_hint(self, parameter, expected, hint):
        assert hint in str(IncompatibleUnitsError(parameter, expected, "x"))

    def test_raised_end_to_end(self):
        data = pd.DataFrame({"name": ["a", "a"], "year": [0, 1]})
        transition = transition_components(
            id="name", time="year", range=(dt.date(2020, 1, 1), dt.date(2020, 2, 1))
        )
        with pytest.raises(TypeError, match=r"\[E3002\]"):
            transition.setup([Layer(data)], nframes=10)


class TestErrorCodeE3003InconsistentTimeClass:
    def test_lists_sources(self):
        error = InconsistentTimeClassError(
            "time", {"layer 0": "numeric", "layer 1": "date"}
        )
        message = str(error)
        assert message.startswith("[E3003]")
        assert "layer 0: numeric, layer 1: date" in message
        assert error.classes == {"layer 0": "numeric", "layer 1": "date"}
        assert_sections(message)


class TestErrorCodeE3004UnsupportedLayerType:
    def test_code_and_supported(self):
        error = UnsupportedLayerTypeError("path", {"point", "area"})
        assert str(error).startswith("[E3004]")
        assert error.supported == ["area", "point"]
        assert "'area', 'point'" in str(error)
        assert isinstance(error, ValueError)
        assert_sections(str(error))

    def test_custom_code(self):
        error = UnsupportedLayerTypeError("path", ["point"], error_code="E9999")
        assert str(error).startswith("[E9999]")
