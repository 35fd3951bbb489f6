"""Normalization of time-like values onto a single numeric axis.

Times may be given as plain numbers, dates, date-times or durations. They are
converted to floats with a class-specific linear transform so that frame
positions can be computed arithmetically, and the detected class is kept so
that derived values (the frame-time axis) can be recast for labels.

=========  ==============================  ================================
Class      Accepted values                 Numeric representation
=========  ==============================  ================================
numeric    int/float dtypes, numbers       identity
date       ``datetime.date`` objects       days since 1970-01-01
datetime   datetime64, Timestamp           seconds since the Unix epoch
duration   timedelta64, Timedelta          seconds
=========  ==============================  ================================

Lengths (``enter_length``, ``exit_length``) for the date and datetime classes
are durations, expressed on the same axis (days and seconds respectively).
"""

from __future__ import annotations

import datetime as dt
import logging
import numbers
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

import numpy as np
import pandas as pd
from numpy.typing import NDArray

from entityframes.errors import IncompatibleUnitsError, InconsistentTimeClassError

logger = logging.getLogger(__name__)

_EPOCH = pd.Timestamp("1970-01-01")
_ONE_DAY = pd.Timedelta(days=1)
_ONE_SECOND = pd.Timedelta(seconds=1)


class TimeClass(Enum):
    """Class of a time column."""

    NUMERIC = "numeric"
    DATE = "date"
    DATETIME = "datetime"
    DURATION = "duration"


@dataclass(frozen=True)
class NormalizedTimes:
    """Normalized time values for every layer.

    Attributes
    ----------
    values : list of NDArray[np.float64] or None
        One float array per layer, ``None`` for layers without a time.
    time_class : TimeClass or None
        Shared class of all layers. ``None`` if no layer has a time.
    tz : str or None
        Time zone of tz-aware datetimes, else None.
    """

    values: list[NDArray[np.float64] | None]
    time_class: TimeClass | None
    tz: str | None = None

    def all_values(self) -> NDArray[np.float64]:
        """Concatenate the values of every layer that has a time."""
        present = [v for v in self.values if v is not None]
        if not present:
            return np.array([], dtype=np.float64)
        return np.concatenate(present)


# =============================================================================
# Class detection
# =============================================================================


def _scalar_class(value: Any) -> TimeClass | None:
    """Time class of a single non-missing value, or None if unsupported."""
    # datetime must be checked before date (datetime subclasses date)
    if isinstance(value, (pd.Timestamp, dt.datetime, np.datetime64)):
        return TimeClass.DATETIME
    if isinstance(value, dt.date):
        return TimeClass.DATE
    if isinstance(value, (pd.Timedelta, dt.timedelta, np.timedelta64)):
        return TimeClass.DURATION
    if isinstance(value, (bool, np.bool_)):
        return None
    if isinstance(value, numbers.Real):
        return TimeClass.NUMERIC
    return None


def detect_time_class(values: Any, *, name: str = "time") -> TimeClass:
    """Detect the time class of a column or scalar.

    Parameters
    ----------
    values : pd.Series, array-like or scalar
        Time values to inspect.
    name : str, default="time"
        Name used in error messages.

    Returns
    -------
    TimeClass
        Detected class.

    Raises
    ------
    InconsistentTimeClassError
        If an object column mixes several classes.
    TypeError
        If the values are not time-like.

    Examples
    --------
    >>> detect_time_class(pd.Series([1, 2, 3]))
    <TimeClass.NUMERIC: 'numeric'>
    >>> detect_time_class(pd.Series(pd.to_datetime(["2020-01-01"])))
    <TimeClass.DATETIME: 'datetime'>
    >>> detect_time_class(datetime.date(2020, 1, 1))  # doctest: +SKIP
    <TimeClass.DATE: 'date'>
    """
    if np.ndim(values) == 0 and not isinstance(values, (pd.Series, pd.Index)):
        cls = _scalar_class(values)
        if cls is None:
            raise TypeError(
                f"WHAT: Unsupported {name} value {values!r} "
                f"(type {type(values).__name__}).\n\n"
                f"WHY: Times must be numbers, dates, date-times or durations.\n\n"
                f"HOW: Convert the value, e.g. with pd.to_datetime() or float()."
            )
        return cls

    series = values if isinstance(values, pd.Series) else pd.Series(values)
    dtype = series.dtype
    if pd.api.types.is_bool_dtype(dtype):
        raise TypeError(
            f"WHAT: {name} column has boolean dtype.\n\n"
            f"WHY: Booleans do not describe a position in time.\n\n"
            f"HOW: Use a numeric, date, date-time or duration column."
        )
    if pd.api.types.is_datetime64_any_dtype(dtype):
        return TimeClass.DATETIME
    if pd.api.types.is_timedelta64_dtype(dtype):
        return TimeClass.DURATION
    if pd.api.types.is_numeric_dtype(dtype):
        return TimeClass.NUMERIC

    found: dict[str, str] = {}
    for value in series.dropna():
        cls = _scalar_class(value)
        if cls is None:
            raise TypeError(
                f"WHAT: Unsupported {name} value {value!r} "
                f"(type {type(value).__name__}).\n\n"
                f"WHY: Times must be numbers, dates, date-times or durations.\n\n"
                f"HOW: Convert the column, e.g. with pd.to_datetime() or "
                f"pd.to_numeric()."
            )
        found.setdefault(cls.value, type(value).__name__)
    if not found:
        # all missing: nothing to place on the axis, treat as numeric
        return TimeClass.NUMERIC
    if len(found) > 1:
        raise InconsistentTimeClassError(
            name, {f"values of type {t}": c for c, t in found.items()}
        )
    return TimeClass(next(iter(found)))


def _datetime_tz(values: pd.Series) -> str | None:
    tz = getattr(values.dt, "tz", None)
    return str(tz) if tz is not None else None


# =============================================================================
# Normalize / recast
# =============================================================================


def normalize_times(
    values: Any,
    time_class: TimeClass | None = None,
    *,
    name: str = "time",
) -> tuple[NDArray[np.float64], TimeClass, str | None]:
    """Convert time values to floats.

    Parameters
    ----------
    values : pd.Series or array-like
        Time values of one layer.
    time_class : TimeClass, optional
        Class of the values. Detected if not given.
    name : str, default="time"
        Name used in error messages.

    Returns
    -------
    normalized : NDArray[np.float64]
        Float representation, NaN where values are missing.
    time_class : TimeClass
        The class the values were normalized from.
    tz : str or None
        Time zone for tz-aware datetimes.

    Examples
    --------
    >>> x, cls, tz = normalize_times(pd.Series([0, 5, 10]))
    >>> x
    array([ 0.,  5., 10.])
    """
    series = values if isinstance(values, pd.Series) else pd.Series(values)
    if time_class is None:
        time_class = detect_time_class(series, name=name)

    tz = None
    if time_class is TimeClass.NUMERIC:
        normalized = pd.to_numeric(series, errors="coerce").to_numpy(
            dtype=np.float64, na_value=np.nan
        )
    elif time_class is TimeClass.DATE:
        stamps = pd.to_datetime(series)
        normalized = ((stamps - _EPOCH) / _ONE_DAY).to_numpy(
            dtype=np.float64, na_value=np.nan
        )
    elif time_class is TimeClass.DATETIME:
        stamps = pd.to_datetime(series)
        tz = _datetime_tz(stamps)
        if tz is not None:
            stamps = stamps.dt.tz_convert("UTC").dt.tz_localize(None)
        # integer microseconds first so the float division is exact-rounded
        micros = (stamps - _EPOCH) // pd.Timedelta(microseconds=1)
        normalized = micros.to_numpy(dtype=np.float64, na_value=np.nan) / 1e6
    else:
        deltas = pd.to_timedelta(series)
        micros = deltas // pd.Timedelta(microseconds=1)
        normalized = micros.to_numpy(dtype=np.float64, na_value=np.nan) / 1e6

    return normalized, time_class, tz


def recast_times(
    x: NDArray[np.float64] | Sequence[float],
    time_class: TimeClass,
    tz: str | None = None,
) -> Any:
    """Cast normalized values back to their original class.

    Parameters
    ----------
    x : array-like of float
        Normalized values.
    time_class : TimeClass
        Class to cast back into.
    tz : str, optional
        Time zone to localize datetimes into.

    Returns
    -------
    NDArray[np.float64] or list of datetime.date or pd.DatetimeIndex or pd.TimedeltaIndex
        Values in the original class. Datetimes and durations are rounded to
        microseconds; fractional days are floored for dates.
    """
    x = np.asarray(x, dtype=np.float64)
    if time_class is TimeClass.NUMERIC:
        return x
    if time_class is TimeClass.DATE:
        return [
            None if np.isnan(v) else (_EPOCH + _ONE_DAY * int(np.floor(v))).date()
            for v in x
        ]
    micros = pd.to_timedelta(np.rint(x * 1e6), unit="us")
    if time_class is TimeClass.DATETIME:
        stamps = pd.DatetimeIndex(_EPOCH + micros)
        if tz is not None:
            stamps = stamps.tz_localize("UTC").tz_convert(tz)
        return stamps
    return pd.TimedeltaIndex(micros)


def standardise_times(
    layers: Sequence[Any | None],
    name: str = "time",
    *,
    layer_names: Sequence[str] | None = None,
) -> NormalizedTimes:
    """Normalize one optional time column per layer to a shared class.

    Parameters
    ----------
    layers : sequence of (pd.Series or None)
        Time values of each layer, ``None`` where a layer has no time.
    name : str, default="time"
        Parameter name used in error messages.
    layer_names : sequence of str, optional
        Labels for the layers in error messages. Defaults to
        ``"layer 0"``, ``"layer 1"``, ...

    Returns
    -------
    NormalizedTimes
        Per-layer float arrays and the shared class.

    Raises
    ------
    InconsistentTimeClassError
        If layers disagree on the time class.
    """
    if layer_names is None:
        layer_names = [f"layer {i}" for i in range(len(layers))]

    classes: dict[str, TimeClass] = {}
    for label, values in zip(layer_names, layers):
        if values is None:
            continue
        classes[label] = detect_time_class(values, name=name)

    distinct = set(classes.values())
    if len(distinct) > 1:
        raise InconsistentTimeClassError(
            name, {label: cls.value for label, cls in classes.items()}
        )
    time_class = distinct.pop() if distinct else None

    normalized: list[NDArray[np.float64] | None] = []
    tzs: list[str | None] = []
    for values in layers:
        if values is None:
            normalized.append(None)
            continue
        x, _, tz = normalize_times(values, time_class, name=name)
        normalized.append(x)
        tzs.append(tz)

    # the first zone in layer order labels the frames
    tz = next((t for t in tzs if t is not None), None)
    logger.debug(
        "Standardised %s over %d layer(s): class=%s, tz=%s",
        name,
        len(layers),
        time_class.value if time_class else None,
        tz,
    )
    return NormalizedTimes(values=normalized, time_class=time_class, tz=tz)


# =============================================================================
# Parameters expressed in the time class
# =============================================================================


def _class_name(value: Any) -> str:
    cls = _scalar_class(value)
    return cls.value if cls is not None else type(value).__name__


def normalize_length(
    value: Any,
    time_class: TimeClass,
    name: str,
) -> float:
    """Normalize an enter/exit length to the axis of ``time_class``.

    Parameters
    ----------
    value : number or duration or None
        The length. ``None`` means no padding.
    time_class : TimeClass
        Detected class of the time data.
    name : str
        Parameter name for error messages.

    Returns
    -------
    float
        Length on the normalized axis (time units, days or seconds).

    Raises
    ------
    IncompatibleUnitsError
        If the value does not match the time class.
    ValueError
        If the length is negative.

    Examples
    --------
    >>> normalize_length(2, TimeClass.NUMERIC, "enter_length")
    2.0
    >>> normalize_length(pd.Timedelta(days=3), TimeClass.DATE, "enter_length")
    3.0
    """
    if value is None:
        return 0.0

    value_class = _scalar_class(value) if np.ndim(value) == 0 else None
    if time_class is TimeClass.NUMERIC:
        if value_class is not TimeClass.NUMERIC:
            raise IncompatibleUnitsError(name, time_class.value, _class_name(value))
        length = float(value)
    else:
        if value_class is not TimeClass.DURATION:
            expected = (
                time_class.value
                if time_class is TimeClass.DURATION
                else f"duration ({time_class.value} axis)"
            )
            raise IncompatibleUnitsError(name, expected, _class_name(value))
        unit = _ONE_DAY if time_class is TimeClass.DATE else _ONE_SECOND
        length = pd.Timedelta(value) / unit

    if not np.isfinite(length) or length < 0:
        raise ValueError(
            f"{name} must be a finite, non-negative length (got {value!r})."
        )
    return length


def normalize_range(
    value: Any,
    time_class: TimeClass,
    tz: str | None = None,
    name: str = "range",
) -> tuple[float, float]:
    """Normalize a user supplied animation range.

    Parameters
    ----------
    value : sequence of two values
        Start and end of the range, in the class of the time data.
    time_class : TimeClass
        Detected class of the time data.
    tz : str, optional
        Time zone of the time data. Naive range bounds are taken to be in
        this zone.
    name : str, default="range"
        Parameter name for error messages.

    Returns
    -------
    tuple of float
        ``(start, end)`` on the normalized axis.

    Raises
    ------
    IncompatibleUnitsError
        If either bound does not match the time class.
    ValueError
        If the range does not have two elements or start is not before end.
    """
    if isinstance(value, (str, bytes)) or np.ndim(value) != 1 or len(value) != 2:
        raise ValueError(
            f"{name} must be a sequence of two values (start, end), got {value!r}."
        )

    bounds = []
    for bound in value:
        bound_class = _scalar_class(bound)
        if bound_class is not time_class:
            raise IncompatibleUnitsError(name, time_class.value, _class_name(bound))
        if time_class is TimeClass.DATETIME and tz is not None:
            stamp = pd.Timestamp(bound)
            if stamp.tzinfo is None:
                stamp = stamp.tz_localize(tz)
            bound = stamp
        x, _, _ = normalize_times(pd.Series([bound]), time_class, name=name)
        bounds.append(float(x[0]))

    start, end = bounds
    if not start < end:
        raise ValueError(
            f"{name} start must be before its end (got {value[0]!r}, {value[1]!r})."
        )
    return start, end


__all__ = [
    "NormalizedTimes",
    "TimeClass",
    "detect_time_class",
    "normalize_length",
    "normalize_range",
    "normalize_times",
    "recast_times",
    "standardise_times",
]
