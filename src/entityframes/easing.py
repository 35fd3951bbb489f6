"""Easing functions for interpolation between keyframes.

Every function maps progress ``p`` in [0, 1] to eased progress, with
``f(0) == 0`` and ``f(1) == 1``. Names follow the ``<family>-<in|out|in-out>``
convention, e.g. ``"cubic-in-out"``.
"""

from __future__ import annotations

from collections.abc import Callable

import numpy as np
from numpy.typing import NDArray

EasingFunction = Callable[[NDArray[np.float64]], NDArray[np.float64]]


def _linear(p: NDArray[np.float64]) -> NDArray[np.float64]:
    return p


def _power_in(power: int) -> EasingFunction:
    def ease(p: NDArray[np.float64]) -> NDArray[np.float64]:
        return p**power

    return ease


def _sine_in(p: NDArray[np.float64]) -> NDArray[np.float64]:
    return 1 - np.cos(p * np.pi / 2)


def _circular_in(p: NDArray[np.float64]) -> NDArray[np.float64]:
    return 1 - np.sqrt(1 - p * p)


def _exponential_in(p: NDArray[np.float64]) -> NDArray[np.float64]:
    return np.where(p == 0, 0.0, 2 ** (10 * (p - 1)))


def _back_in(p: NDArray[np.float64]) -> NDArray[np.float64]:
    s = 1.70158
    return p * p * ((s + 1) * p - s)


def _elastic_in(p: NDArray[np.float64]) -> NDArray[np.float64]:
    out = np.sin(13 * np.pi / 2 * p) * 2 ** (10 * (p - 1))
    return np.where((p == 0) | (p == 1), p, out)


def _bounce_out(p: NDArray[np.float64]) -> NDArray[np.float64]:
    return np.select(
        [p < 4 / 11, p < 8 / 11, p < 9 / 10],
        [
            121 * p * p / 16,
            363 / 40 * p * p - 99 / 10 * p + 17 / 5,
            4356 / 361 * p * p - 35442 / 1805 * p + 16061 / 1805,
        ],
        54 / 5 * p * p - 513 / 25 * p + 268 / 25,
    )


def _out_from_in(ease_in: EasingFunction) -> EasingFunction:
    def ease(p: NDArray[np.float64]) -> NDArray[np.float64]:
        return 1 - ease_in(1 - p)

    return ease


def _in_from_out(ease_out: EasingFunction) -> EasingFunction:
    def ease(p: NDArray[np.float64]) -> NDArray[np.float64]:
        return 1 - ease_out(1 - p)

    return ease


def _in_out_from_in(ease_in: EasingFunction) -> EasingFunction:
    def ease(p: NDArray[np.float64]) -> NDArray[np.float64]:
        return np.where(
            p < 0.5,
            ease_in(np.minimum(2 * p, 1.0)) / 2,
            1 - ease_in(np.minimum(2 - 2 * p, 1.0)) / 2,
        )

    return ease


def _family(ease_in: EasingFunction) -> dict[str, EasingFunction]:
    return {
        "in": ease_in,
        "out": _out_from_in(ease_in),
        "in-out": _in_out_from_in(ease_in),
    }


_FAMILIES: dict[str, dict[str, EasingFunction]] = {
    "quadratic": _family(_power_in(2)),
    "cubic": _family(_power_in(3)),
    "quartic": _family(_power_in(4)),
    "quintic": _family(_power_in(5)),
    "sine": _family(_sine_in),
    "circular": _family(_circular_in),
    "exponential": _family(_exponential_in),
    "back": _family(_back_in),
    "elastic": _family(_elastic_in),
    "bounce": _family(_in_from_out(_bounce_out)),
}

EASINGS: dict[str, EasingFunction] = {"linear": _linear}
for _name, _variants in _FAMILIES.items():
    for _mode, _fn in _variants.items():
        EASINGS[f"{_name}-{_mode}"] = _fn


def get_easing(name: str) -> EasingFunction:
    """Look up an easing function by name.

    Parameters
    ----------
    name : str
        Easing name, e.g. ``"linear"`` or ``"cubic-in-out"``.

    Returns
    -------
    EasingFunction
        Vectorized easing function.

    Raises
    ------
    ValueError
        If the name is unknown.

    Examples
    --------
    >>> ease = get_easing("quadratic-in")
    >>> ease(np.array([0.0, 0.5, 1.0]))
    array([0.  , 0.25, 1.  ])
    """
    try:
        return EASINGS[name]
    except KeyError:
        raise ValueError(
            f"Unknown easing {name!r}. Valid options: {', '.join(sorted(EASINGS))}."
        ) from None


def ease_progress(p: NDArray[np.float64], name: str) -> NDArray[np.float64]:
    """Apply the named easing to progress values ``p`` in [0, 1]."""
    p = np.clip(np.asarray(p, dtype=np.float64), 0.0, 1.0)
    return get_easing(name)(p)


__all__ = ["EASINGS", "EasingFunction", "ease_progress", "get_easing"]
