"""End-to-end construction of per-frame datasets.

:func:`build_frames` chains the two setup passes of a transition around an
optional per-layer transform and expands every layer into per-frame rows.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

import pandas as pd

from entityframes._timing import timed, timing
from entityframes.config import AnimationConfig
from entityframes.transition import (
    FRAME_COLUMN,
    FRAME_TIME_COLUMN,
    Layer,
    ResolvedComponents,
    Transition,
)
from entityframes.tweening import (
    ComponentTweener,
    EaseSpec,
    EnterExitFunction,
    TweenerProtocol,
)

logger = logging.getLogger(__name__)

LayerTransform = Callable[[Layer], Layer]


@dataclass(frozen=True, eq=False)
class FrameSet:
    """Per-frame data of every layer.

    Attributes
    ----------
    layers : tuple of pd.DataFrame
        Expanded data per layer, in input order. Every row has ``frame``,
        ``frame_time`` and a ``group`` unique per frame.
    resolved : ResolvedComponents
        Frame range, lifecycle window and row keys used for the expansion.
    """

    layers: tuple[pd.DataFrame, ...]
    resolved: ResolvedComponents

    @property
    def nframes(self) -> int:
        return self.resolved.nframes

    @property
    def frame_vars(self) -> pd.DataFrame:
        """``frame``, ``nframes``, ``progress`` and ``frame_time`` per frame."""
        return self.resolved.frame_vars

    def frame(self, index: int) -> list[pd.DataFrame]:
        """Rows of every layer belonging to frame ``index`` (1-based)."""
        self._check_frame(index)
        return [
            data.loc[data[FRAME_COLUMN] == index].reset_index(drop=True)
            for data in self.layers
        ]

    def label(self, template: str, index: int) -> str:
        """Substitute frame variables into a label template.

        Parameters
        ----------
        template : str
            Format string using ``{frame_time}``, ``{frame}``, ``{nframes}``
            or ``{progress}``.
        index : int
            Frame number, 1-based.

        Examples
        --------
        >>> frames.label("Year: {frame_time:.0f}", 1)  # doctest: +SKIP
        'Year: 1952'
        """
        self._check_frame(index)
        row = self.frame_vars.iloc[index - 1]
        variables: dict[str, Any] = {
            FRAME_COLUMN: int(row[FRAME_COLUMN]),
            "nframes": int(row["nframes"]),
            "progress": float(row["progress"]),
            FRAME_TIME_COLUMN: row[FRAME_TIME_COLUMN],
        }
        return template.format_map(variables)

    def _check_frame(self, index: int) -> None:
        if not 1 <= index <= self.nframes:
            raise IndexError(
                f"Frame {index} out of range; frames are numbered 1 to {self.nframes}."
            )


@timed
def build_frames(
    layers: Sequence[Layer],
    transition: Transition,
    *,
    config: AnimationConfig | None = None,
    stat_transform: LayerTransform | None = None,
    ease: EaseSpec = "linear",
    enter: EnterExitFunction | None = None,
    exit: EnterExitFunction | None = None,
    tweener: TweenerProtocol | None = None,
) -> FrameSet:
    """Build the per-frame data of an animation.

    Parameters
    ----------
    layers : sequence of Layer
        Raw layers.
    transition : Transition
        Transition deciding where rows land on the frame axis, e.g. from
        :func:`~entityframes.transition_components`.
    config : AnimationConfig, optional
        Frame count, rounding and parallelism. Defaults to
        ``AnimationConfig()``.
    stat_transform : callable, optional
        Per-layer transform run between the two setup passes. It receives
        layers whose data has a ``row_id`` column and must keep that column
        on every row it returns. Defaults to no transform.
    ease : str or Mapping[str, str], default="linear"
        Easing for numeric columns, see :mod:`entityframes.easing`.
    enter, exit : callable, optional
        Functions turning a one-row DataFrame into the entering/exiting
        state of an entity.
    tweener : TweenerProtocol, optional
        Interpolation engine. Defaults to :class:`ComponentTweener`.

    Returns
    -------
    FrameSet
        Expanded data of every layer.

    Raises
    ------
    IncompatibleUnitsError, InconsistentTimeClassError, UnsupportedLayerTypeError
        See :mod:`entityframes.errors`. Any error aborts the whole build.

    Examples
    --------
    >>> import pandas as pd
    >>> from entityframes import AnimationConfig, Layer, transition_components
    >>> data = pd.DataFrame({"id": ["a", "a"], "t": [0, 4], "x": [0.0, 4.0]})
    >>> frames = build_frames(
    ...     [Layer(data)],
    ...     transition_components(id="id", time="t"),
    ...     config=AnimationConfig(nframes=5),
    ... )
    >>> frames.layers[0]["x"].tolist()
    [0.0, 1.0, 2.0, 3.0, 4.0]
    """
    if config is None:
        config = AnimationConfig()
    if tweener is None:
        tweener = ComponentTweener()
    logger.debug("Building %d layer(s) with %r and %r", len(layers), transition, config)

    with timing("setup"):
        params = transition.setup(layers, config.nframes, config.rounding)
    mapped = transition.map_data(layers, params)

    if stat_transform is not None:
        with timing("stat_transform"):
            mapped = [stat_transform(layer) for layer in mapped]

    with timing("setup_after_transform"):
        resolved = transition.setup_after_transform(mapped, params)
    mapped = transition.map_data(mapped, resolved)

    expanded = transition.expand_data(
        mapped,
        resolved,
        tweener,
        ease=ease,
        enter=enter,
        exit=exit,
        n_workers=config.n_workers,
        show_progress=config.show_progress,
    )
    return FrameSet(layers=tuple(expanded), resolved=resolved)


__all__ = ["FrameSet", "LayerTransform", "build_frames"]
