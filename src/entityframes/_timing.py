"""Timing instrumentation for frame resolution and expansion.

Set ``ENTITYFRAMES_TIMING`` to report how long each resolution pass and each
layer expansion takes:

    ENTITYFRAMES_TIMING=1 python build_animation.py

Reports go to stderr as ``[TIMING] <name>: <ms> ms``. When the variable is
unset the helpers add no overhead beyond a flag check.
"""

from __future__ import annotations

import contextlib
import functools
import os
import sys
import time
from collections.abc import Callable, Generator
from typing import ParamSpec, TypeVar

_TIMING_ENABLED = bool(os.environ.get("ENTITYFRAMES_TIMING"))

P = ParamSpec("P")
T = TypeVar("T")


def _report(name: str, start: float) -> None:
    elapsed_ms = (time.perf_counter() - start) * 1000
    print(f"[TIMING] {name}: {elapsed_ms:.2f} ms", file=sys.stderr)


@contextlib.contextmanager
def timing(name: str) -> Generator[None, None, None]:
    """Time the enclosed block.

    Parameters
    ----------
    name : str
        Label printed with the elapsed time.

    Examples
    --------
    >>> with timing("expand layer 0"):
    ...     frames = transition.expand_panel(...)  # doctest: +SKIP
    """
    if not _TIMING_ENABLED:
        yield
        return

    start = time.perf_counter()
    try:
        yield
    finally:
        _report(name, start)


def timed(func: Callable[P, T]) -> Callable[P, T]:
    """Decorator timing every call of ``func``.

    The function is returned unchanged when timing is disabled.
    """
    if not _TIMING_ENABLED:
        return func

    @functools.wraps(func)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
        start = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            _report(func.__qualname__, start)

    return wrapper


def is_timing_enabled() -> bool:
    """Whether ``ENTITYFRAMES_TIMING`` was set when the package was imported."""
    return _TIMING_ENABLED
