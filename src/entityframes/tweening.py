"""Per-entity keyframe tweening.

The frame expander hands each entity's rows to a tweener, which produces one
row per frame the entity is visible in. Any object implementing
:class:`TweenerProtocol` can be used; :class:`ComponentTweener` is the
default.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any, Protocol, runtime_checkable

import numpy as np
import pandas as pd
from numpy.typing import NDArray

from entityframes.easing import ease_progress, get_easing

EnterExitFunction = Callable[[pd.DataFrame], pd.DataFrame]
EaseSpec = str | Mapping[str, str]

FRAME_COLUMN = ".frame"
ID_COLUMN = ".id"
PHASE_COLUMN = ".phase"


@runtime_checkable
class TweenerProtocol(Protocol):
    """Interface of the interpolation engine used by the frame expander.

    Implementations receive the attribute rows of one or more entities,
    together with each row's frame position and id, and return the
    interpolated rows with a ``.frame`` column holding the integer frame
    each row belongs to. Rows outside ``range`` must not be returned.
    """

    def tween_components(
        self,
        data: pd.DataFrame,
        ease: EaseSpec,
        nframes: int,
        time: NDArray[np.float64],
        id: NDArray[Any],
        range: tuple[int, int],
        enter: EnterExitFunction | None,
        exit: EnterExitFunction | None,
        enter_length: int,
        exit_length: int,
    ) -> pd.DataFrame: ...


def _ease_for(ease: EaseSpec, column: str) -> str:
    if isinstance(ease, str):
        return ease
    return ease.get(column, "linear")


def _is_numeric(series: pd.Series) -> bool:
    return pd.api.types.is_numeric_dtype(series) and not pd.api.types.is_bool_dtype(
        series
    )


class ComponentTweener:
    """Default tweener: each entity is tweened between its own keyframes.

    For every entity, the rows are keyframes placed at their frame position.
    When ``enter`` is given and ``enter_length > 0`` an extra keyframe,
    ``enter(first_row)``, is placed ``enter_length`` frames before the first
    one; ``exit`` works the same way after the last keyframe. Every whole
    frame between the first and last keyframe gets one row: numeric columns
    are interpolated with the requested easing (integer columns are rounded
    back to integers) and other columns keep the value of the preceding
    keyframe until the next keyframe is reached.

    Keyframes sharing a frame keep the last row given for that frame.

    Examples
    --------
    >>> data = pd.DataFrame({"x": [0.0, 10.0]})
    >>> out = ComponentTweener().tween_components(
    ...     data, "linear", 5, np.array([1.0, 3.0]), np.array(["a", "a"]),
    ...     (1, 5), None, None, 0, 0,
    ... )
    >>> out["x"].tolist(), out[".frame"].tolist()
    ([0.0, 5.0, 10.0], [1, 2, 3])
    """

    def tween_components(
        self,
        data: pd.DataFrame,
        ease: EaseSpec,
        nframes: int,
        time: NDArray[np.float64],
        id: NDArray[Any],
        range: tuple[int, int],
        enter: EnterExitFunction | None,
        exit: EnterExitFunction | None,
        enter_length: int,
        exit_length: int,
    ) -> pd.DataFrame:
        """Tween every entity of ``data`` across its visible frames.

        Parameters
        ----------
        data : pd.DataFrame
            Attribute rows.
        ease : str or Mapping[str, str]
            Easing name for all numeric columns, or per column (columns not
            listed use ``"linear"``).
        nframes : int
            Number of frames in the animation.
        time : NDArray[np.float64], shape (n_rows,)
            Frame position of each row.
        id : NDArray, shape (n_rows,)
            Entity id of each row.
        range : tuple of int
            First and last frame to keep, inclusive.
        enter, exit : callable or None
            Functions turning a one-row DataFrame into the entering/exiting
            state of the entity.
        enter_length, exit_length : int
            Frames spent entering and exiting.

        Returns
        -------
        pd.DataFrame
            Interpolated rows with the columns of ``data`` plus ``.id``,
            ``.frame`` (int) and ``.phase``.
        """
        if len(data) != len(time) or len(data) != len(id):
            raise ValueError(
                f"data, time and id must have the same length "
                f"(got {len(data)}, {len(time)}, {len(id)})."
            )
        # validate easing names before doing any work
        for name in [ease] if isinstance(ease, str) else ease.values():
            get_easing(name)

        data = data.reset_index(drop=True)
        time = np.asarray(time, dtype=np.float64)
        ids = pd.Series(np.asarray(id, dtype=object))

        pieces = []
        for _, index in ids.groupby(ids, sort=False).groups.items():
            rows = np.asarray(index)
            pieces.append(
                self._tween_entity(
                    data.iloc[rows],
                    time[rows],
                    ids.iloc[rows[0]],
                    ease,
                    enter,
                    exit,
                    enter_length,
                    exit_length,
                )
            )

        columns = [*data.columns, ID_COLUMN, FRAME_COLUMN, PHASE_COLUMN]
        if not pieces:
            return pd.DataFrame(columns=columns)
        out = pd.concat(pieces, ignore_index=True)
        keep = (out[FRAME_COLUMN] >= range[0]) & (out[FRAME_COLUMN] <= range[1])
        return out.loc[keep, columns].reset_index(drop=True)

    def _tween_entity(
        self,
        rows: pd.DataFrame,
        time: NDArray[np.float64],
        entity: Any,
        ease: EaseSpec,
        enter: EnterExitFunction | None,
        exit: EnterExitFunction | None,
        enter_length: int,
        exit_length: int,
    ) -> pd.DataFrame:
        order = np.argsort(time, kind="stable")
        keyframes = rows.iloc[order].reset_index(drop=True)
        times = time[order]

        # duplicate frame positions: last row wins
        last = ~pd.Series(times).duplicated(keep="last").to_numpy()
        keyframes = keyframes.loc[last].reset_index(drop=True)
        times = times[last]
        phases = ["raw"] * len(times)

        if enter is not None and enter_length > 0:
            entering = _apply_state(enter, keyframes.iloc[[0]], keyframes.columns)
            keyframes = pd.concat([entering, keyframes], ignore_index=True)
            times = np.concatenate([[times[0] - enter_length], times])
            phases = ["enter", *phases]
        if exit is not None and exit_length > 0:
            exiting = _apply_state(exit, keyframes.iloc[[-1]], keyframes.columns)
            keyframes = pd.concat([keyframes, exiting], ignore_index=True)
            times = np.concatenate([times, [times[-1] + exit_length]])
            phases = [*phases, "exit"]

        frames = np.arange(np.ceil(times[0]), np.floor(times[-1]) + 1)
        n_keys = len(times)

        if n_keys == 1:
            seg = np.zeros(len(frames), dtype=int)
            nxt = seg
            progress = np.zeros(len(frames))
        else:
            seg = np.clip(np.searchsorted(times, frames, side="right") - 1, 0, n_keys - 2)
            nxt = seg + 1
            progress = (frames - times[seg]) / (times[nxt] - times[seg])

        out = {}
        for column in keyframes.columns:
            values = keyframes[column]
            if _is_numeric(values):
                v0 = values.to_numpy(dtype=np.float64, na_value=np.nan)[seg]
                v1 = values.to_numpy(dtype=np.float64, na_value=np.nan)[nxt]
                eased = ease_progress(progress, _ease_for(ease, column))
                tweened = v0 + (v1 - v0) * eased
                if pd.api.types.is_integer_dtype(values) and not np.isnan(tweened).any():
                    tweened = np.round(tweened).astype(np.int64)
                out[column] = tweened
            else:
                held = values.to_numpy(dtype=object)
                out[column] = np.where(progress >= 1, held[nxt], held[seg])

        result = pd.DataFrame(out)
        result[ID_COLUMN] = entity
        result[FRAME_COLUMN] = frames.astype(int)
        result[PHASE_COLUMN] = _phases(frames, times, seg, nxt, phases)
        return result


def _apply_state(
    fn: EnterExitFunction,
    row: pd.DataFrame,
    columns: pd.Index,
) -> pd.DataFrame:
    state = fn(row.copy())
    if not isinstance(state, pd.DataFrame) or len(state) != 1:
        raise ValueError(
            "enter/exit functions must return a one-row DataFrame "
            f"(got {type(state).__name__})."
        )
    return state.reindex(columns=columns).reset_index(drop=True)


def _phases(
    frames: NDArray[np.float64],
    times: NDArray[np.float64],
    seg: NDArray[np.int_],
    nxt: NDArray[np.int_],
    keyframe_phases: list[str],
) -> list[str]:
    phases = []
    for frame, i, j in zip(frames, seg, nxt):
        if frame == times[i]:
            phases.append(keyframe_phases[i])
        elif frame == times[j]:
            phases.append(keyframe_phases[j])
        elif keyframe_phases[i] == "enter":
            phases.append("enter")
        elif keyframe_phases[j] == "exit":
            phases.append("exit")
        else:
            phases.append("transition")
    return phases


__all__ = [
    "FRAME_COLUMN",
    "ID_COLUMN",
    "PHASE_COLUMN",
    "ComponentTweener",
    "EaseSpec",
    "EnterExitFunction",
    "TweenerProtocol",
]
