"""Composite row keys linking rows across the two resolution passes.

Each dynamic row is keyed ``"{frame}-{id}"`` where ``frame`` is the row's
frame index and ``id`` its entity id. Rows without a time or an id are static
and carry the empty key. The key travels with the data through the external
per-layer transform, after which :func:`split_row_ids` recovers the frame
and id of every row that survived it.
"""

from __future__ import annotations

from typing import Any

import numpy as np
import pandas as pd
from numpy.typing import NDArray

STATIC_KEY = ""
ROW_ID_COLUMN = "row_id"

# Lazy first group so ids may themselves contain "-"; negative frames parse
# because the first group needs at least one character. Ids may span lines.
_ROW_ID_PATTERN = r"(?s)^(?P<frame>.+?)-(?P<id>.+)$"


def _format_frame(frame: float) -> str:
    return str(int(frame))


def build_row_ids(
    frames: Any | None,
    ids: Any | None,
    n_rows: int | None = None,
) -> pd.Series:
    """Build the composite key of every row of one layer.

    Parameters
    ----------
    frames : array-like of float or None
        Frame index per row, NaN where the time is missing. ``None`` when
        the layer has no time.
    ids : array-like or None
        Entity id per row. ``None`` when the layer has no id.
    n_rows : int, optional
        Number of rows, needed when both ``frames`` and ``ids`` are None.

    Returns
    -------
    pd.Series of str
        ``"{frame}-{id}"`` for dynamic rows and ``STATIC_KEY`` for static
        rows (missing frame or id, or a layer without time or id).

    Examples
    --------
    >>> build_row_ids(np.array([1.0, 6.0, np.nan]), ["A", "A", "B"]).tolist()
    ['1-A', '6-A', '']
    >>> build_row_ids(None, ["A", "B"]).tolist()
    ['', '']
    """
    if frames is None or ids is None:
        if n_rows is None:
            present = frames if frames is not None else ids
            n_rows = 0 if present is None else len(present)
        return pd.Series([STATIC_KEY] * n_rows, dtype=object)

    frames = np.asarray(frames, dtype=np.float64)
    ids = pd.Series(ids).reset_index(drop=True)
    if len(frames) != len(ids):
        raise ValueError(
            f"frames and ids must have the same length "
            f"(got {len(frames)} and {len(ids)})."
        )

    static = np.isnan(frames) | ids.isna().to_numpy()
    keys = [
        STATIC_KEY if is_static else f"{_format_frame(frame)}-{entity}"
        for frame, entity, is_static in zip(frames, ids, static)
    ]
    return pd.Series(keys, dtype=object)


def is_static_key(row_ids: pd.Series) -> NDArray[np.bool_]:
    """Boolean mask of rows carrying the static key."""
    return (row_ids.isna() | (row_ids.astype(str) == STATIC_KEY)).to_numpy()


def split_row_ids(row_ids: pd.Series) -> pd.DataFrame:
    """Recover frame index and id from composite keys.

    Parameters
    ----------
    row_ids : pd.Series of str
        Keys built by :func:`build_row_ids`.

    Returns
    -------
    pd.DataFrame
        Indexed like ``row_ids`` with columns ``frame`` (float, NaN for static
        rows), ``id`` (str, None for static rows) and ``static`` (bool).

    Examples
    --------
    >>> split_row_ids(pd.Series(["1-A", "-2-B-1", ""])).to_dict("list")
    {'frame': [1.0, -2.0, nan], 'id': ['A', 'B-1', None], 'static': [False, False, True]}
    """
    static = is_static_key(row_ids)
    parts = row_ids.astype(str).str.extract(_ROW_ID_PATTERN)
    frame = pd.to_numeric(parts["frame"], errors="coerce").to_numpy(dtype=np.float64)
    # keys that do not parse are treated as static
    static = static | np.isnan(frame)
    entity = parts["id"].to_numpy(dtype=object)
    return pd.DataFrame(
        {
            "frame": np.where(static, np.nan, frame),
            "id": pd.Series(
                np.where(static, None, entity), dtype=object, index=row_ids.index
            ),
            "static": static,
        },
        index=row_ids.index,
    )


__all__ = [
    "ROW_ID_COLUMN",
    "STATIC_KEY",
    "build_row_ids",
    "is_static_key",
    "split_row_ids",
]
