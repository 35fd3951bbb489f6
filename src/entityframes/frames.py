"""Frame range resolution, row-to-frame mapping and lifecycle windows.

All functions here work on the normalized time axis produced by
:mod:`entityframes.times`. The frame axis has ``nframes`` evenly spaced
points spanning the animation range, both ends included, and frames are
numbered from 1.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Literal

import numpy as np
from numpy.typing import NDArray

from entityframes.times import TimeClass, recast_times

logger = logging.getLogger(__name__)

RoundingMode = Literal["half_even", "half_away"]
ROUNDING_MODES: tuple[str, ...] = ("half_even", "half_away")


@dataclass(frozen=True, eq=False)
class FrameRange:
    """Resolved time range and frame axis of an animation.

    Attributes
    ----------
    start, end : float
        Animation range on the normalized axis.
    nframes : int
        Number of frames, at least 1.
    frame_time : NDArray[np.float64], shape (nframes,)
        Normalized time of each frame; ``frame_time[0] == start`` and, for
        more than one frame, ``frame_time[-1] == end``.
    time_class : TimeClass
        Class of the original time data.
    tz : str or None
        Time zone of tz-aware datetimes.

    Notes
    -----
    ``frame_length`` is ``(end - start) / nframes``, which is slightly shorter
    than the spacing of ``frame_time`` (``(end - start) / (nframes - 1)``).
    It is the unit used to express enter and exit lengths in frames.
    """

    start: float
    end: float
    nframes: int
    frame_time: NDArray[np.float64]
    time_class: TimeClass = TimeClass.NUMERIC
    tz: str | None = None

    @property
    def frame_length(self) -> float:
        """Duration of one frame on the normalized axis."""
        return (self.end - self.start) / self.nframes

    @property
    def full_length(self) -> float:
        """Length of the range on the normalized axis."""
        return self.end - self.start

    def recast_frame_time(self) -> Any:
        """Frame times cast back to the class of the time data."""
        return recast_times(self.frame_time, self.time_class, self.tz)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FrameRange):
            return NotImplemented
        return (
            self.start == other.start
            and self.end == other.end
            and self.nframes == other.nframes
            and self.time_class is other.time_class
            and self.tz == other.tz
            and np.array_equal(self.frame_time, other.frame_time)
        )


@dataclass(frozen=True)
class LifecycleWindow:
    """Enter and exit padding of each entity, in frames."""

    enter_length: int = 0
    exit_length: int = 0


# =============================================================================
# Range resolution
# =============================================================================


def resolve_frame_range(
    times: NDArray[np.float64] | Sequence[NDArray[np.float64] | None],
    nframes: int,
    range: tuple[float, float] | None = None,
    enter_length: float = 0.0,
    exit_length: float = 0.0,
    *,
    time_class: TimeClass = TimeClass.NUMERIC,
    tz: str | None = None,
) -> FrameRange:
    """Compute the animation range and its frame axis.

    Parameters
    ----------
    times : NDArray[np.float64] or sequence of (NDArray or None)
        Normalized times, either one array or one array per layer. Layers
        given as ``None`` are ignored; NaN values are ignored.
    nframes : int
        Number of frames in the animation.
    range : tuple of float, optional
        Explicit ``(start, end)`` on the normalized axis. Overrides the range
        derived from the data.
    enter_length, exit_length : float, default=0.0
        Padding added before the earliest and after the latest time when the
        range is derived from the data.
    time_class : TimeClass, default=TimeClass.NUMERIC
        Class of the original time data, kept for recasting.
    tz : str, optional
        Time zone of the original time data.

    Returns
    -------
    FrameRange
        The resolved range.

    Raises
    ------
    ValueError
        If ``nframes < 1``, if there is no finite time and no explicit range,
        or if the range is empty (``end <= start``).

    Examples
    --------
    >>> fr = resolve_frame_range(np.array([0.0, 5.0, 10.0]), nframes=11)
    >>> fr.start, fr.end, round(fr.frame_length, 3)
    (0.0, 10.0, 0.909)
    >>> fr.frame_time[:3]
    array([0., 1., 2.])
    """
    if isinstance(nframes, bool) or int(nframes) != nframes or nframes < 1:
        raise ValueError(f"nframes must be a positive integer (got {nframes!r}).")
    nframes = int(nframes)

    if range is None:
        if isinstance(times, np.ndarray):
            all_times = times.astype(np.float64, copy=False).ravel()
        else:
            present = [np.asarray(t, dtype=np.float64) for t in times if t is not None]
            all_times = (
                np.concatenate(present) if present else np.array([], dtype=np.float64)
            )
        finite = all_times[np.isfinite(all_times)]
        if finite.size == 0:
            raise ValueError(
                "WHAT: Cannot derive the animation range: no finite time values.\n\n"
                "WHY: Without times or an explicit range there is nothing to span "
                "the frames over.\n\n"
                "HOW: Provide a time column with values, or pass range=(start, end)."
            )
        start = float(finite.min()) - enter_length
        end = float(finite.max()) + exit_length
    else:
        start, end = float(range[0]), float(range[1])

    if not end > start:
        raise ValueError(
            f"WHAT: Animation range is empty (start={start}, end={end}).\n\n"
            f"WHY: Frames need a range of positive length; this happens when all "
            f"entities share a single time and no enter/exit length is given.\n\n"
            f"HOW: Pass an explicit range, or set enter_length/exit_length."
        )

    frame_time = np.linspace(start, end, nframes)
    logger.debug(
        "Resolved frame range [%s, %s] with %d frames (frame_length=%s)",
        start,
        end,
        nframes,
        (end - start) / nframes,
    )
    return FrameRange(
        start=start,
        end=end,
        nframes=nframes,
        frame_time=frame_time,
        time_class=time_class,
        tz=tz,
    )


# =============================================================================
# Row mapping
# =============================================================================


def round_frames(
    x: NDArray[np.float64] | float,
    rounding: RoundingMode = "half_even",
) -> NDArray[np.float64]:
    """Round frame positions to whole frames.

    Parameters
    ----------
    x : array-like of float
        Fractional frame positions.
    rounding : {"half_even", "half_away"}, default="half_even"
        Tie-breaking rule. ``"half_even"`` rounds ties to the nearest even
        integer (``2.5 -> 2``); ``"half_away"`` rounds ties away from zero
        (``2.5 -> 3``).

    Returns
    -------
    NDArray[np.float64]
        Rounded values; NaN stays NaN.
    """
    x = np.asarray(x, dtype=np.float64)
    if rounding == "half_even":
        return np.round(x)
    if rounding == "half_away":
        truncated = np.trunc(x)
        ties = np.abs(x - truncated) == 0.5
        return np.where(ties, truncated + np.sign(x), np.round(x))
    raise ValueError(
        f"Unknown rounding convention {rounding!r}. "
        f"Valid options: {', '.join(ROUNDING_MODES)}."
    )


def map_to_frames(
    x: NDArray[np.float64],
    frame_range: FrameRange,
    rounding: RoundingMode = "half_even",
) -> NDArray[np.float64]:
    """Map normalized times to frame indices.

    Computes ``round((nframes - 1) * (x - start) / (end - start)) + 1``.

    Parameters
    ----------
    x : NDArray[np.float64]
        Normalized times.
    frame_range : FrameRange
        Resolved animation range.
    rounding : {"half_even", "half_away"}, default="half_even"
        Tie-breaking rule, see :func:`round_frames`.

    Returns
    -------
    NDArray[np.float64]
        Frame index per value, NaN where the time is missing. Times outside
        the range give indices outside ``[1, nframes]``.

    Examples
    --------
    >>> fr = resolve_frame_range(np.array([0.0, 10.0]), nframes=11)
    >>> map_to_frames(np.array([0.0, 5.0, 10.0]), fr)
    array([ 1.,  6., 11.])
    """
    x = np.asarray(x, dtype=np.float64)
    position = (frame_range.nframes - 1) * (x - frame_range.start) / frame_range.full_length
    return round_frames(position, rounding) + 1


# =============================================================================
# Lifecycle window
# =============================================================================


def compute_lifecycle_window(
    enter_length: float,
    exit_length: float,
    frame_range: FrameRange,
    rounding: RoundingMode = "half_even",
) -> LifecycleWindow:
    """Express enter and exit lengths in frames.

    Parameters
    ----------
    enter_length, exit_length : float
        Lengths on the normalized axis.
    frame_range : FrameRange
        Resolved animation range providing ``frame_length``.
    rounding : {"half_even", "half_away"}, default="half_even"
        Tie-breaking rule, see :func:`round_frames`.

    Returns
    -------
    LifecycleWindow
        ``round(length / frame_length)`` for enter and exit.

    Examples
    --------
    >>> fr = resolve_frame_range(np.array([0.0, 10.0]), nframes=10)
    >>> compute_lifecycle_window(2.0, 0.0, fr)
    LifecycleWindow(enter_length=2, exit_length=0)
    """
    frame_length = frame_range.frame_length
    enter_frames, exit_frames = round_frames(
        np.array([enter_length, exit_length]) / frame_length, rounding
    )
    return LifecycleWindow(
        enter_length=max(int(enter_frames), 0),
        exit_length=max(int(exit_frames), 0),
    )


__all__ = [
    "ROUNDING_MODES",
    "FrameRange",
    "LifecycleWindow",
    "RoundingMode",
    "compute_lifecycle_window",
    "map_to_frames",
    "resolve_frame_range",
    "round_frames",
]
