"""Tests for the per-entity components transition."""

from __future__ import annotations

import datetime as dt

import numpy as np
import pandas as pd
import pytest
from numpy.testing import assert_allclose

from entityframes import Layer, after_transform, transition_components
from entityframes.components import ComponentsTransition
from entityframes.errors import (
    IncompatibleUnitsError,
    InconsistentTimeClassError,
    MissingParameterError,
    UnsupportedLayerTypeError,
)
from entityframes.keys import ROW_ID_COLUMN
from entityframes.times import TimeClass
from entityframes.tweening import ComponentTweener

SMALL_NFRAMES = 11


def run_setup(transition, layers, nframes=SMALL_NFRAMES):
    """Both setup passes without an external transform."""
    params = transition.setup(layers, nframes)
    mapped = transition.map_data(layers, params)
    resolved = transition.setup_after_transform(mapped, params)
    return transition.map_data(mapped, resolved), resolved


class TestConstruction:
    def test_missing_id(self):
        with pytest.raises(MissingParameterError, match=r"\[E3001\].*'id'"):
            transition_components(time="year")

    def test_missing_time(self):
        with pytest.raises(MissingParameterError) as exc_info:
            transition_components(id="name")
        assert exc_info.value.parameter == "time"

    def test_missing_parameter_is_type_error(self):
        with pytest.raises(TypeError):
            transition_components()

    def test_factory_returns_transition(self):
        transition = transition_components(id="name", time="year", enter_length=2)
        assert isinstance(transition, ComponentsTransition)
        assert transition.supported_layer_types == frozenset({"point"})
        assert "enter_length=2" in repr(transition)


class TestSetup:
    def test_scenario_row_keys(self):
        data = pd.DataFrame({"name": ["A", "A", "A"], "year": [0, 5, 10]})
        params = transition_components(id="name", time="year").setup(
            [Layer(data)], nframes=11
        )
        assert params.row_ids[0].tolist() == ["1-A", "6-A", "11-A"]
        frame_range = params.time.frame_range
        assert (frame_range.start, frame_range.end) == (0.0, 10.0)
        assert frame_range.frame_length == pytest.approx(0.909, abs=1e-3)
        assert params.placeholders == []

    def test_range_padded_by_lengths(self, numeric_layer):
        transition = transition_components(
            id="name", time="year", enter_length=1, exit_length=2
        )
        params = transition.setup([numeric_layer], nframes=14)
        frame_range = params.time.frame_range
        assert (frame_range.start, frame_range.end) == (-1.0, 12.0)
        window = params.time.window
        assert (window.enter_length, window.exit_length) == (1, 2)

    def test_explicit_range(self, numeric_layer):
        transition = transition_components(id="name", time="year", range=(0, 20))
        params = transition.setup([numeric_layer], nframes=21)
        assert params.row_ids[0].tolist() == ["1-a", "11-a", "6-b"]

    def test_id_absent_from_layer_is_static(self, numeric_layer):
        labels = Layer(pd.DataFrame({"year": [2, 4], "text": ["x", "y"]}), name="labels")
        params = transition_components(id="name", time="year").setup(
            [numeric_layer, labels], nframes=SMALL_NFRAMES
        )
        assert params.row_ids[1].tolist() == ["", ""]
        # the layer's times still count towards the range
        assert params.time.frame_range.start == 0.0

    def test_missing_time_values_are_static(self, mixed_static_layer):
        params = transition_components(id="name", time="year").setup(
            [mixed_static_layer], nframes=SMALL_NFRAMES
        )
        assert params.row_ids[0].tolist() == ["1-a", "11-a", ""]

    def test_date_times(self, date_layer):
        params = transition_components(id="name", time="year").setup(
            [date_layer], nframes=3
        )
        assert params.time.frame_range.time_class is TimeClass.DATE
        assert params.row_ids[0].tolist() == ["1-a", "2-a", "3-a"]

    def test_date_lengths_are_durations(self, date_layer):
        transition = transition_components(
            id="name", time="year", enter_length=pd.Timedelta(days=1)
        )
        params = transition.setup([date_layer], nframes=4)
        assert params.time.frame_range.start == params.time.frame_range.end - 3
        assert params.time.window.enter_length == 1

    def test_date_range_with_numeric_time(self, numeric_layer):
        transition = transition_components(
            id="name", time="year", range=(dt.date(2020, 1, 1), dt.date(2020, 2, 1))
        )
        with pytest.raises(IncompatibleUnitsError, match=r"\[E3002\]"):
            transition.setup([numeric_layer], nframes=SMALL_NFRAMES)

    def test_numeric_length_with_date_time(self, date_layer):
        transition = transition_components(id="name", time="year", exit_length=2)
        with pytest.raises(IncompatibleUnitsError) as exc_info:
            transition.setup([date_layer], nframes=SMALL_NFRAMES)
        assert exc_info.value.parameter == "exit_length"

    def test_layers_disagree_on_time_class(self, numeric_layer, date_layer):
        transition = transition_components(id="name", time="year")
        with pytest.raises(InconsistentTimeClassError) as exc_info:
            transition.setup([numeric_layer, date_layer], nframes=SMALL_NFRAMES)
        assert exc_info.value.classes == {"points": "numeric", "dates": "date"}

    def test_no_time_anywhere_needs_range(self, background_layer):
        transition = transition_components(id="name", time="year")
        with pytest.raises(ValueError, match="pass range"):
            transition.setup([background_layer], nframes=SMALL_NFRAMES)

    def test_no_time_anywhere_uses_range_class(self, background_layer):
        transition = transition_components(id="name", time="year", range=(0, 10))
        params = transition.setup([background_layer], nframes=SMALL_NFRAMES)
        assert params.time.frame_range.time_class is TimeClass.NUMERIC
        assert params.row_ids[0].tolist() == ["", ""]

    def test_callable_selector(self, numeric_layer):
        transition = transition_components(
            id="name", time=lambda df: df["year"] * 2
        )
        params = transition.setup([numeric_layer], nframes=21)
        assert params.time.frame_range.end == 20.0


class TestTwoPhaseResolution:
    def test_keys_survive_transform(self, numeric_layer):
        transition = transition_components(id="name", time="year")
        params = transition.setup([numeric_layer], SMALL_NFRAMES)
        mapped = transition.map_data([numeric_layer], params)
        # drop a row, as a filtering transform would
        transformed = [layer.with_data(layer.data.iloc[[0, 2]]) for layer in mapped]
        resolved = transition.setup_after_transform(transformed, params)
        assert resolved.row_ids[0].tolist() == ["1-a", "6-b"]
        assert resolved.frame_range == params.time.frame_range

    def test_placeholder_resolved_after_transform(self, numeric_layer):
        transition = transition_components(id="name", time=after_transform("shifted"))
        params = transition.setup([numeric_layer], SMALL_NFRAMES)
        assert params.time is None
        assert params.placeholders == ["time"]
        assert params.row_ids[0].tolist() == ["", "", ""]

        mapped = transition.map_data([numeric_layer], params)
        transformed = [
            layer.with_data(layer.data.assign(shifted=layer.data["year"] + 100))
            for layer in mapped
        ]
        resolved = transition.setup_after_transform(transformed, params)
        assert (resolved.frame_range.start, resolved.frame_range.end) == (100.0, 110.0)
        assert resolved.row_ids[0].tolist() == ["1-a", "11-a", "6-b"]

    def test_lock_requires_resolution(self, numeric_layer):
        transition = transition_components(id=after_transform("name"), time="year")
        params = transition.setup([numeric_layer], SMALL_NFRAMES)
        with pytest.raises(RuntimeError, match="id still unresolved"):
            params.lock()

    def test_map_data_checks_lengths(self, numeric_layer):
        transition = transition_components(id="name", time="year")
        params = transition.setup([numeric_layer], SMALL_NFRAMES)
        short = numeric_layer.with_data(numeric_layer.data.iloc[:1])
        with pytest.raises(ValueError, match="rows but 3 row keys"):
            transition.map_data([short], params)
        with pytest.raises(ValueError, match="layer"):
            transition.map_data([numeric_layer, numeric_layer], params)


class TestExpandPanel:
    def expand(self, transition, layer, resolved, **kwargs):
        kwargs.setdefault("ease", "linear")
        return transition.expand_panel(
            layer.data,
            layer.geom,
            kwargs["ease"],
            kwargs.get("enter"),
            kwargs.get("exit"),
            resolved,
            ComponentTweener(),
        )

    def test_entities_follow_own_timeline(self, numeric_layer):
        transition = transition_components(id="name", time="year")
        (layer,), resolved = run_setup(transition, [numeric_layer])
        frames = self.expand(transition, layer, resolved)

        a = frames[frames["name"] == "a"]
        b = frames[frames["name"] == "b"]
        assert a["frame"].tolist() == list(range(1, 12))
        assert_allclose(a["x"], np.arange(11.0))
        assert b["frame"].tolist() == [6]
        assert ROW_ID_COLUMN not in frames.columns

    def test_sorted_by_frame(self, numeric_layer):
        transition = transition_components(id="name", time="year")
        (layer,), resolved = run_setup(transition, [numeric_layer])
        frames = self.expand(transition, layer, resolved)
        assert frames["frame"].is_monotonic_increasing
        assert frames.loc[frames["frame"] == 6, "name"].tolist() == ["a", "b"]

    def test_group_relabelled_per_frame(self, numeric_layer):
        transition = transition_components(id="name", time="year")
        (layer,), resolved = run_setup(transition, [numeric_layer])
        frames = self.expand(transition, layer, resolved)
        row = frames[(frames["name"] == "b")].iloc[0]
        assert row["group"] == "g2<6>"

    def test_missing_group_defaults(self):
        data = pd.DataFrame({"name": ["a", "a"], "year": [0, 1]})
        transition = transition_components(id="name", time="year")
        (layer,), resolved = run_setup(transition, [Layer(data)], nframes=2)
        frames = self.expand(transition, layer, resolved)
        assert frames["group"].tolist() == ["-1<1>", "-1<2>"]

    def test_frame_time_recast(self, date_layer):
        transition = transition_components(id="name", time="year")
        (layer,), resolved = run_setup(transition, [date_layer], nframes=3)
        frames = self.expand(transition, layer, resolved)
        assert frames["frame_time"].tolist() == [
            dt.date(2020, 1, 1),
            dt.date(2020, 1, 2),
            dt.date(2020, 1, 3),
        ]

    def test_static_rows_in_every_frame(self, mixed_static_layer):
        transition = transition_components(id="name", time="year")
        (layer,), resolved = run_setup(transition, [mixed_static_layer])
        frames = self.expand(transition, layer, resolved)
        static = frames[frames["name"] == "c"]
        assert static["frame"].tolist() == list(range(1, SMALL_NFRAMES + 1))
        assert set(static["phase"]) == {"static"}
        assert set(static["x"]) == {99.0}

    def test_static_layer(self, numeric_layer, background_layer):
        transition = transition_components(id="name", time="year")
        layers, resolved = run_setup(transition, [numeric_layer, background_layer])
        frames = self.expand(transition, layers[1], resolved)
        assert len(frames) == 2 * SMALL_NFRAMES
        assert frames.loc[frames["frame"] == 1, "label"].tolist() == ["p", "q"]

    def test_unsupported_layer_type(self, numeric_layer):
        transition = transition_components(id="name", time="year")
        (layer,), resolved = run_setup(transition, [numeric_layer])
        with pytest.raises(UnsupportedLayerTypeError) as exc_info:
            self.expand(transition, Layer(layer.data, geom="polygon"), resolved)
        assert exc_info.value.layer_type == "polygon"
        assert exc_info.value.supported == ["point"]
        assert "Unsupported layer type 'polygon'" in str(exc_info.value)

    def test_unsupported_static_layer_is_drawn(self, numeric_layer, background_layer):
        transition = transition_components(id="name", time="year")
        layers, resolved = run_setup(transition, [numeric_layer, background_layer])
        frames = self.expand(
            transition, Layer(layers[1].data, geom="polygon"), resolved
        )
        assert len(frames) == 2 * SMALL_NFRAMES

    def test_enter_and_exit(self):
        data = pd.DataFrame({"name": ["a"], "year": [5], "alpha": [1.0]})
        transition = transition_components(
            id="name", time="year", range=(0, 10), enter_length=2, exit_length=2
        )
        (layer,), resolved = run_setup(transition, [Layer(data)], nframes=10)
        assert resolved.window.enter_length == 2

        def fade(row):
            return row.assign(alpha=0.0)

        frames = self.expand(transition, layer, resolved, enter=fade, exit=fade)
        assert frames["phase"].iloc[0] == "enter"
        assert frames["phase"].iloc[-1] == "exit"
        assert frames["alpha"].iloc[0] == 0.0
        assert frames["alpha"].iloc[-1] == 0.0
