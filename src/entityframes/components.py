"""Transition where every entity follows its own timeline.

Unlike transitions that move the whole scene between shared states, here each
entity (identified by an id column) is placed on the frame axis at its own
times, and enters and exits independently of the others. The animation range
defaults to the range of all times, padded by the enter and exit lengths.

Label variables
---------------
``frame_time`` : the time the current frame corresponds to, in the class of
the time data.

Examples
--------
>>> import pandas as pd
>>> from entityframes import Layer, transition_components
>>> data = pd.DataFrame({"name": ["a", "a", "b"], "year": [0, 10, 5], "x": [0.0, 1.0, 2.0]})
>>> transition = transition_components(id="name", time="year")
>>> params = transition.setup([Layer(data)], nframes=11)
>>> params.row_ids[0].tolist()
['1-a', '11-a', '6-b']
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

import numpy as np
import pandas as pd

from entityframes import tweening
from entityframes.errors import MissingParameterError, UnsupportedLayerTypeError
from entityframes.frames import (
    RoundingMode,
    compute_lifecycle_window,
    map_to_frames,
    resolve_frame_range,
)
from entityframes.keys import ROW_ID_COLUMN, build_row_ids
from entityframes.selectors import ColumnSelector, SelectorLike, as_selector, safe_eval
from entityframes.times import (
    TimeClass,
    detect_time_class,
    normalize_length,
    normalize_range,
    standardise_times,
)
from entityframes.transition import (
    FRAME_COLUMN,
    Layer,
    ResolvedComponents,
    ResolvedTime,
    ResolvedValues,
    Transition,
    TransitionParams,
    layer_labels,
)
from entityframes.tweening import EaseSpec, EnterExitFunction, TweenerProtocol

logger = logging.getLogger(__name__)


class ComponentsTransition(Transition):
    """Transition individual entities through their own lifecycle.

    Parameters
    ----------
    id : str, callable or ColumnSelector
        Selector of the column linking rows of the same entity.
    time : str, callable or ColumnSelector
        Selector of the column holding each row's time.
    range : sequence of two values, optional
        Range the animation spans, in the class of the time data. Defaults to
        the range of the times plus enter and exit length.
    enter_length, exit_length : number or duration, optional
        Time spent on enter and exit transitions. Numbers for numeric times,
        durations for date, date-time and duration times. Default 0.

    Raises
    ------
    MissingParameterError
        If ``id`` or ``time`` is not given.

    Notes
    -----
    Layers lacking the id or the time column are static: their rows are
    shown in every frame. Rows with a missing id or time are static too.
    """

    supported_layer_types = frozenset({"point"})

    def __init__(
        self,
        id: SelectorLike | None = None,
        time: SelectorLike | None = None,
        range: Sequence[Any] | None = None,
        enter_length: Any = None,
        exit_length: Any = None,
    ) -> None:
        id_selector = as_selector(id)
        time_selector = as_selector(time)
        if id_selector is None:
            raise MissingParameterError("id")
        if time_selector is None:
            raise MissingParameterError("time")
        self.id_selector: ColumnSelector = id_selector
        self.time_selector: ColumnSelector = time_selector
        self.range = range
        self.enter_length = enter_length
        self.exit_length = exit_length

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(id={self.id_selector.label!r}, "
            f"time={self.time_selector.label!r}, range={self.range!r}, "
            f"enter_length={self.enter_length!r}, exit_length={self.exit_length!r})"
        )

    # ------------------------------------------------------------------
    # Setup passes
    # ------------------------------------------------------------------

    def setup(
        self,
        layers: Sequence[Layer],
        nframes: int,
        rounding: RoundingMode = "half_even",
    ) -> TransitionParams:
        """Resolve id, time and row keys from the raw layer data.

        Selectors flagged ``after_transform`` are left as placeholders.

        Parameters
        ----------
        layers : sequence of Layer
            Raw layers.
        nframes : int
            Number of frames in the animation.
        rounding : {"half_even", "half_away"}, default="half_even"
            Tie-breaking rule for frame positions.

        Returns
        -------
        TransitionParams
            Partially or fully resolved parameters.

        Raises
        ------
        IncompatibleUnitsError
            If range or lengths do not match the class of the times.
        InconsistentTimeClassError
            If layers disagree on the class of the times.
        """
        params = TransitionParams(
            id_selector=self.id_selector,
            time_selector=self.time_selector,
            nframes=nframes,
            rounding=rounding,
            range=self.range,
            enter_length=self.enter_length,
            exit_length=self.exit_length,
        )
        params.id = self._resolve_ids(layers, params.id_selector, after=False)
        params.time = self._resolve_time(layers, params, after=False)
        params.row_ids = self._build_row_ids(layers, params)

        if params.placeholders:
            logger.debug(
                "Deferred %s until after the layer transform",
                ", ".join(params.placeholders),
            )
        else:
            self._log_resolved(params.time)
        return params

    def setup_after_transform(
        self,
        layers: Sequence[Layer],
        params: TransitionParams,
    ) -> ResolvedComponents:
        """Resolve placeholders against transformed layers and lock the result.

        When both id and time were resolved in the first pass, their values
        are recovered from the ``row_id`` keys carried by the transformed
        rows, and the range found in the first pass is kept. Otherwise both
        are evaluated against the transformed data.

        Parameters
        ----------
        layers : sequence of Layer
            Layers after the external transform.
        params : TransitionParams
            Result of :meth:`setup`.

        Returns
        -------
        ResolvedComponents
            Immutable frame range, lifecycle window and row keys.
        """
        if params.id is not None and params.time is not None:
            row_vars = [self.get_row_vars(layer.data) for layer in layers]
            params.id = ResolvedValues(
                [None if rv is None else rv["id"] for rv in row_vars]
            )
            params.time = ResolvedTime(
                values=[None if rv is None else rv["frame"].to_numpy() for rv in row_vars],
                frame_range=params.time.frame_range,
                window=params.time.window,
            )
        else:
            params.id = self._resolve_ids(layers, params.id_selector, after=True)
            params.time = self._resolve_time(layers, params, after=True)
            self._log_resolved(params.time)

        params.row_ids = self._build_row_ids(layers, params)
        return params.lock()

    def _resolve_ids(
        self,
        layers: Sequence[Layer],
        selector: ColumnSelector,
        after: bool,
    ) -> ResolvedValues | None:
        if not after and selector.after_transform:
            return None
        return ResolvedValues([safe_eval(selector, layer.data) for layer in layers])

    def _resolve_time(
        self,
        layers: Sequence[Layer],
        params: TransitionParams,
        after: bool,
    ) -> ResolvedTime | None:
        selector = params.time_selector
        if not after and selector.after_transform:
            return None

        labels = layer_labels(layers)
        raw = [safe_eval(selector, layer.data) for layer in layers]
        standard = standardise_times(raw, "time", layer_names=labels)

        time_class = standard.time_class
        if time_class is None:
            if params.range is None:
                raise ValueError(
                    f"WHAT: No layer has values for time '{selector.label}'.\n\n"
                    f"WHY: The animation range is derived from the times when no "
                    f"range is given.\n\n"
                    f"HOW: Check the time column name, or pass range=(start, end)."
                )
            time_class = _range_class(params.range)

        enter_length = normalize_length(params.enter_length, time_class, "enter_length")
        exit_length = normalize_length(params.exit_length, time_class, "exit_length")
        range_ = (
            None
            if params.range is None
            else normalize_range(params.range, time_class, standard.tz)
        )

        frame_range = resolve_frame_range(
            standard.values,
            params.nframes,
            range_,
            enter_length,
            exit_length,
            time_class=time_class,
            tz=standard.tz,
        )
        frames = [
            None if x is None else map_to_frames(x, frame_range, params.rounding)
            for x in standard.values
        ]
        window = compute_lifecycle_window(
            enter_length, exit_length, frame_range, params.rounding
        )
        return ResolvedTime(values=frames, frame_range=frame_range, window=window)

    def _build_row_ids(
        self,
        layers: Sequence[Layer],
        params: TransitionParams,
    ) -> list[pd.Series]:
        row_ids = []
        for i, layer in enumerate(layers):
            frames = params.time.values[i] if params.time is not None else None
            ids = params.id.values[i] if params.id is not None else None
            row_ids.append(build_row_ids(frames, ids, n_rows=len(layer.data)))
        return row_ids

    @staticmethod
    def _log_resolved(time: ResolvedTime) -> None:
        frame_range = time.frame_range
        logger.info(
            "Resolved %s range [%s, %s] over %d frames "
            "(frame_length=%.6g, enter=%d, exit=%d frames)",
            frame_range.time_class.value,
            frame_range.start,
            frame_range.end,
            frame_range.nframes,
            frame_range.frame_length,
            time.window.enter_length,
            time.window.exit_length,
        )

    # ------------------------------------------------------------------
    # Expansion
    # ------------------------------------------------------------------

    def expand_panel(
        self,
        data: pd.DataFrame,
        layer_type: str,
        ease: EaseSpec,
        enter: EnterExitFunction | None,
        exit: EnterExitFunction | None,
        resolved: ResolvedComponents,
        tweener: TweenerProtocol,
    ) -> pd.DataFrame:
        """Expand one layer into one row per entity and visible frame.

        Each entity is tweened separately between its own keyframes. Static
        rows are repeated in every frame. Groups are relabelled with the
        frame index once all entities are expanded.

        Raises
        ------
        UnsupportedLayerTypeError
            If the layer has dynamic rows and ``layer_type`` cannot be
            expanded.
        """
        data = data.reset_index(drop=True)
        row_vars = self.get_row_vars(data)
        if row_vars is None:
            attributes = data.drop(columns=[ROW_ID_COLUMN], errors="ignore")
            static = self.static_frames(attributes, resolved)
            static["phase"] = "static"
            return self.finalize_frames(static, resolved)

        if layer_type not in self.supported_layer_types:
            raise UnsupportedLayerTypeError(layer_type, self.supported_layer_types)

        attributes = data.drop(columns=[ROW_ID_COLUMN])
        dynamic = ~row_vars["static"].to_numpy()
        nframes = resolved.nframes
        window = resolved.window

        pieces = []
        entity_ids = row_vars.loc[dynamic, "id"]
        for _, index in entity_ids.groupby(entity_ids, sort=False).groups.items():
            rows = np.asarray(index)
            tweened = tweener.tween_components(
                attributes.loc[rows],
                ease,
                nframes,
                row_vars.loc[rows, "frame"].to_numpy(dtype=np.float64),
                row_vars.loc[rows, "id"].to_numpy(dtype=object),
                (1, nframes),
                enter,
                exit,
                window.enter_length,
                window.exit_length,
            )
            pieces.append(_from_tweened(tweened))

        if (~dynamic).any():
            pieces.append(self.static_frames(attributes.loc[~dynamic], resolved))

        frames = pd.concat(pieces, ignore_index=True)
        if "phase" in frames.columns:
            frames["phase"] = frames["phase"].fillna("static")
        return self.finalize_frames(frames, resolved)


def _from_tweened(tweened: pd.DataFrame) -> pd.DataFrame:
    renamed = tweened.rename(
        columns={tweening.FRAME_COLUMN: FRAME_COLUMN, tweening.PHASE_COLUMN: "phase"}
    )
    return renamed.drop(columns=[tweening.ID_COLUMN], errors="ignore")


def _range_class(range_: Sequence[Any]) -> TimeClass:
    try:
        first = range_[0]
    except (TypeError, IndexError, KeyError):
        raise ValueError(
            f"range must be a sequence of two values (start, end), got {range_!r}."
        ) from None
    return detect_time_class(first, name="range")


def transition_components(
    id: SelectorLike | None = None,
    time: SelectorLike | None = None,
    range: Sequence[Any] | None = None,
    enter_length: Any = None,
    exit_length: Any = None,
) -> ComponentsTransition:
    """Transition individual entities through their own lifecycle.

    Each entity defines its own life cycle: the final animation has no
    shared state and transition phases, as any entity can be moving or
    static at any point in time.

    Parameters
    ----------
    id : str, callable or ColumnSelector
        Column holding the id that links entities across the data.
    time : str, callable or ColumnSelector
        Column holding the time of each state of the entities.
    range : sequence of two values, optional
        Range the animation should span. Defaults to the range of time plus
        enter and exit length.
    enter_length, exit_length : number or duration, optional
        How long to spend on enter and exit transitions. Defaults to 0.

    Returns
    -------
    ComponentsTransition

    Raises
    ------
    MissingParameterError
        If ``id`` or ``time`` is not given.

    See Also
    --------
    entityframes.pipeline.build_frames : Run the full pipeline.
    """
    return ComponentsTransition(
        id=id,
        time=time,
        range=range,
        enter_length=enter_length,
        exit_length=exit_length,
    )


__all__ = ["ComponentsTransition", "transition_components"]
