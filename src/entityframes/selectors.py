"""Column selectors for the id and time of each entity.

A selector describes how to pull a column out of a layer's data. It is
evaluated only when a concrete DataFrame is available; selectors flagged with
``after_transform=True`` refer to columns that only exist once the external
per-layer transform has run and are left unresolved during the first pass.

Examples
--------
>>> col("year")
ColumnSelector(column='year', func=None, after_transform=False, label='year')
>>> after_transform("smoothed_year").after_transform
True
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Union

import pandas as pd


@dataclass(frozen=True)
class ColumnSelector:
    """Reference to a column, or a function computing one, of a layer.

    Attributes
    ----------
    column : str or None
        Name of the column to select.
    func : callable or None
        Function ``DataFrame -> Series | array`` computing the values.
        Exactly one of ``column`` and ``func`` is set.
    after_transform : bool
        Whether the values only exist after the per-layer transform.
    label : str
        Name used in logging and error messages.
    """

    column: str | None = None
    func: Callable[[pd.DataFrame], Any] | None = None
    after_transform: bool = False
    label: str = ""

    def __post_init__(self) -> None:
        if (self.column is None) == (self.func is None):
            raise ValueError(
                "ColumnSelector needs exactly one of 'column' or 'func' "
                f"(got column={self.column!r}, func={self.func!r})."
            )
        if not self.label:
            label = self.column if self.column is not None else _func_label(self.func)
            object.__setattr__(self, "label", label)

    def evaluate(self, data: pd.DataFrame) -> pd.Series:
        """Evaluate the selector against ``data``.

        Raises
        ------
        KeyError
            If the column does not exist in ``data``.
        """
        if self.column is not None:
            return data[self.column]
        values = self.func(data)  # type: ignore[misc]
        if isinstance(values, pd.Series):
            return values
        series = pd.Series(values, index=data.index if _same_length(values, data) else None)
        return series


def _func_label(func: Callable[..., Any] | None) -> str:
    return getattr(func, "__name__", "<selector>")


def _same_length(values: Any, data: pd.DataFrame) -> bool:
    try:
        return len(values) == len(data)
    except TypeError:
        return False


SelectorLike = Union[str, Callable[[pd.DataFrame], Any], ColumnSelector]


def col(column: str) -> ColumnSelector:
    """Select a column of the raw layer data."""
    return ColumnSelector(column=column)


def after_transform(
    selector: str | Callable[[pd.DataFrame], Any],
) -> ColumnSelector:
    """Select a column that only exists after the per-layer transform.

    Parameters
    ----------
    selector : str or callable
        Column name, or function evaluated against the transformed data.
    """
    if isinstance(selector, str):
        return ColumnSelector(column=selector, after_transform=True)
    return ColumnSelector(func=selector, after_transform=True)


def as_selector(selector: SelectorLike | None) -> ColumnSelector | None:
    """Coerce a column name, function or selector into a ColumnSelector.

    ``None`` is passed through so callers can detect missing parameters.
    """
    if selector is None or isinstance(selector, ColumnSelector):
        return selector
    if isinstance(selector, str):
        return ColumnSelector(column=selector)
    if callable(selector):
        return ColumnSelector(func=selector)
    raise TypeError(
        f"Selector must be a column name, a callable or a ColumnSelector "
        f"(got {type(selector).__name__})."
    )


def safe_eval(selector: ColumnSelector, data: pd.DataFrame) -> pd.Series | None:
    """Evaluate ``selector`` against ``data``, returning None if it does not apply.

    A layer that lacks the selected column (or whose data the selector
    function cannot be applied to) has no values for it, which marks the
    layer as static. An empty result is treated the same way.
    """
    try:
        values = selector.evaluate(data)
    except (KeyError, AttributeError):
        return None
    if len(values) == 0:
        return None
    return values


__all__ = [
    "ColumnSelector",
    "SelectorLike",
    "after_transform",
    "as_selector",
    "col",
    "safe_eval",
]
