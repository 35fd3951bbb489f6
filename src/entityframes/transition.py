"""Transition base class and the state carried through the two setup passes.

Building an animation runs in two passes around an external per-layer
transform (smoothing, binning, ...):

1. :meth:`Transition.setup` resolves what it can from the raw layer data.
   Parameters whose selectors need transformed data stay ``None``
   (placeholders) in :class:`TransitionParams`.
2. :meth:`Transition.map_data` attaches a ``row_id`` key to every row, which
   the transform carries through.
3. :meth:`Transition.setup_after_transform` fills the placeholders from the
   transformed data and locks the result into an immutable
   :class:`ResolvedComponents`.
4. :meth:`Transition.expand_data` expands every layer into per-frame rows.

Concrete transitions override ``setup``, ``setup_after_transform`` and
``expand_panel``; the remaining behaviour is shared.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from functools import cached_property
from typing import Any

import numpy as np
import pandas as pd
from numpy.typing import NDArray
from tqdm import tqdm

from entityframes._timing import timing
from entityframes.frames import FrameRange, LifecycleWindow, RoundingMode
from entityframes.keys import ROW_ID_COLUMN, split_row_ids
from entityframes.selectors import ColumnSelector
from entityframes.tweening import EaseSpec, EnterExitFunction, TweenerProtocol

logger = logging.getLogger(__name__)

FRAME_COLUMN = "frame"
FRAME_TIME_COLUMN = "frame_time"
GROUP_COLUMN = "group"
DEFAULT_GROUP = "-1"


@dataclass(frozen=True)
class Layer:
    """One layer of the animation: a table of rows and its layer type.

    Attributes
    ----------
    data : pd.DataFrame
        Rows of the layer. Attribute columns are opaque and passed through.
    geom : str, default="point"
        Layer type, deciding how rows are expanded into frames.
    name : str, optional
        Label used in logs and error messages.
    """

    data: pd.DataFrame
    geom: str = "point"
    name: str | None = None

    def with_data(self, data: pd.DataFrame) -> Layer:
        """Copy of the layer with new data."""
        return replace(self, data=data)


def layer_labels(layers: Sequence[Layer]) -> list[str]:
    """Label of every layer, falling back to its position."""
    return [layer.name or f"layer {i}" for i, layer in enumerate(layers)]


@dataclass(frozen=True)
class ResolvedValues:
    """Values of a selector per layer, ``None`` for layers lacking them."""

    values: list[pd.Series | None]


@dataclass(frozen=True)
class ResolvedTime:
    """Frame index of every row per layer, with the range they were mapped on."""

    values: list[NDArray[np.float64] | None]
    frame_range: FrameRange
    window: LifecycleWindow


@dataclass
class TransitionParams:
    """Parameters of a transition while the setup passes run.

    ``id`` and ``time`` are ``None`` while they are placeholders waiting for
    transformed data.
    """

    id_selector: ColumnSelector
    time_selector: ColumnSelector
    nframes: int
    rounding: RoundingMode = "half_even"
    range: Any = None
    enter_length: Any = None
    exit_length: Any = None
    id: ResolvedValues | None = None
    time: ResolvedTime | None = None
    row_ids: list[pd.Series] = field(default_factory=list)

    @property
    def placeholders(self) -> list[str]:
        """Names of parameters still waiting for transformed data."""
        return [name for name in ("id", "time") if getattr(self, name) is None]

    def lock(self) -> ResolvedComponents:
        """Freeze the fully resolved parameters.

        Raises
        ------
        RuntimeError
            If a parameter is still a placeholder.
        """
        if self.time is None or self.id is None:
            raise RuntimeError(
                f"Cannot lock transition parameters: {', '.join(self.placeholders)} "
                f"still unresolved. Run setup_after_transform() on the "
                f"transformed layers first."
            )
        return ResolvedComponents(
            frame_range=self.time.frame_range,
            window=self.time.window,
            row_ids=tuple(self.row_ids),
        )


@dataclass(frozen=True, eq=False)
class ResolvedComponents:
    """Immutable result of both setup passes.

    Attributes
    ----------
    frame_range : FrameRange
        Animation range, frame count and frame axis.
    window : LifecycleWindow
        Enter and exit lengths in frames.
    row_ids : tuple of pd.Series
        Composite key of every transformed row, per layer.
    """

    frame_range: FrameRange
    window: LifecycleWindow
    row_ids: tuple[pd.Series, ...]

    @property
    def nframes(self) -> int:
        return self.frame_range.nframes

    @cached_property
    def frame_time(self) -> pd.Series:
        """Frame times in the class of the time data, indexed by frame."""
        return pd.Series(
            self.frame_range.recast_frame_time(),
            index=pd.RangeIndex(1, self.nframes + 1, name=FRAME_COLUMN),
            name=FRAME_TIME_COLUMN,
        )

    @cached_property
    def frame_vars(self) -> pd.DataFrame:
        """Per-frame variables available for label substitution."""
        frames = np.arange(1, self.nframes + 1)
        return pd.DataFrame(
            {
                FRAME_COLUMN: frames,
                "nframes": self.nframes,
                "progress": frames / self.nframes,
                FRAME_TIME_COLUMN: self.frame_time.reset_index(drop=True),
            }
        )


class Transition:
    """Base class of transitions between animation states.

    Subclasses implement :meth:`setup`, :meth:`setup_after_transform` and
    :meth:`expand_panel`. The base class attaches row keys, recovers them
    after the transform, expands every layer and relabels groups per frame.
    """

    supported_layer_types: frozenset[str] = frozenset()

    def setup(
        self,
        layers: Sequence[Layer],
        nframes: int,
        rounding: RoundingMode = "half_even",
    ) -> TransitionParams:
        """First pass: resolve parameters from the raw layer data."""
        raise NotImplementedError

    def setup_after_transform(
        self,
        layers: Sequence[Layer],
        params: TransitionParams,
    ) -> ResolvedComponents:
        """Second pass: resolve placeholders from transformed data and lock."""
        raise NotImplementedError

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
        """Expand the rows of one layer into per-frame rows."""
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Shared behaviour
    # ------------------------------------------------------------------

    def map_data(
        self,
        layers: Sequence[Layer],
        params: TransitionParams | ResolvedComponents,
    ) -> list[Layer]:
        """Attach the ``row_id`` key of every row to each layer's data."""
        if len(params.row_ids) != len(layers):
            raise ValueError(
                f"Row keys were resolved for {len(params.row_ids)} layer(s) but "
                f"{len(layers)} layer(s) were given."
            )
        mapped = []
        for layer, row_ids in zip(layers, params.row_ids):
            if len(row_ids) != len(layer.data):
                raise ValueError(
                    f"Layer '{layer.name}' has {len(layer.data)} rows but "
                    f"{len(row_ids)} row keys."
                )
            data = layer.data.assign(**{ROW_ID_COLUMN: row_ids.to_numpy()})
            mapped.append(layer.with_data(data))
        return mapped

    def get_row_vars(self, data: pd.DataFrame) -> pd.DataFrame | None:
        """Frame and id of every row recovered from its key.

        Returns
        -------
        pd.DataFrame or None
            Columns ``frame``, ``id`` and ``static`` indexed like ``data``, or
            None if the layer has no keys or every row is static.
        """
        if ROW_ID_COLUMN not in data.columns:
            return None
        row_vars = split_row_ids(data[ROW_ID_COLUMN])
        if row_vars["static"].all():
            return None
        return row_vars

    def expand_data(
        self,
        layers: Sequence[Layer],
        resolved: ResolvedComponents,
        tweener: TweenerProtocol,
        *,
        ease: EaseSpec = "linear",
        enter: EnterExitFunction | None = None,
        exit: EnterExitFunction | None = None,
        n_workers: int = 1,
        show_progress: bool = False,
    ) -> list[pd.DataFrame]:
        """Expand every layer, returning the per-frame data in layer order.

        Layers are independent; with ``n_workers > 1`` they are expanded in a
        thread pool. Any failure aborts the whole expansion.
        """
        labels = layer_labels(layers)

        def expand(index: int) -> pd.DataFrame:
            layer = layers[index]
            with timing(f"expand {labels[index]}"):
                frames = self.expand_panel(
                    layer.data,
                    layer.geom,
                    ease,
                    enter,
                    exit,
                    resolved,
                    tweener,
                )
            logger.debug(
                "Expanded %s (%s): %d rows -> %d frame rows",
                labels[index],
                layer.geom,
                len(layer.data),
                len(frames),
            )
            return frames

        indices = range(len(layers))
        if n_workers == 1:
            results = [
                expand(i)
                for i in tqdm(indices, desc="Layers", disable=not show_progress)
            ]
        else:
            with ThreadPoolExecutor(max_workers=n_workers) as executor:
                results = list(
                    tqdm(
                        executor.map(expand, indices),
                        total=len(layers),
                        desc="Layers",
                        disable=not show_progress,
                    )
                )

        logger.info(
            "Expanded %d layer(s) over %d frames (%d rows)",
            len(layers),
            resolved.nframes,
            sum(len(r) for r in results),
        )
        return results

    def static_frames(
        self,
        data: pd.DataFrame,
        resolved: ResolvedComponents,
    ) -> pd.DataFrame:
        """Repeat static rows once per frame."""
        nframes = resolved.nframes
        positions = np.tile(np.arange(len(data)), nframes)
        out = data.iloc[positions].reset_index(drop=True)
        out[FRAME_COLUMN] = np.repeat(np.arange(1, nframes + 1), len(data))
        return out

    def finalize_frames(
        self,
        frames: pd.DataFrame,
        resolved: ResolvedComponents,
    ) -> pd.DataFrame:
        """Order by frame, add frame times and make groups unique per frame."""
        frames = frames.drop(columns=[ROW_ID_COLUMN], errors="ignore")
        frames = frames.sort_values(FRAME_COLUMN, kind="mergesort").reset_index(
            drop=True
        )
        frames[FRAME_COLUMN] = frames[FRAME_COLUMN].astype(int)

        frame_time = resolved.frame_time
        frames[FRAME_TIME_COLUMN] = frame_time.iloc[
            frames[FRAME_COLUMN].to_numpy() - 1
        ].set_axis(frames.index)

        group = (
            frames[GROUP_COLUMN].astype(str)
            if GROUP_COLUMN in frames.columns
            else pd.Series(DEFAULT_GROUP, index=frames.index)
        )
        frames[GROUP_COLUMN] = group + "<" + frames[FRAME_COLUMN].astype(str) + ">"
        return frames


__all__ = [
    "DEFAULT_GROUP",
    "FRAME_COLUMN",
    "FRAME_TIME_COLUMN",
    "GROUP_COLUMN",
    "Layer",
    "ResolvedComponents",
    "ResolvedTime",
    "ResolvedValues",
    "Transition",
    "TransitionParams",
    "layer_labels",
]
