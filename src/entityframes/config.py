"""Animation-level configuration.

The frame count and rounding convention are inputs to the resolution core;
their defaults live here, not in the core functions. Settings can also be
read from the environment:

==========================  ==========================================
Variable                    Field
==========================  ==========================================
``ENTITYFRAMES_NFRAMES``    ``nframes``
``ENTITYFRAMES_ROUNDING``   ``rounding`` (``half_even`` | ``half_away``)
``ENTITYFRAMES_N_WORKERS``  ``n_workers``
==========================  ==========================================
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

from entityframes.frames import ROUNDING_MODES, RoundingMode

DEFAULT_NFRAMES: int = 100


@dataclass(frozen=True)
class AnimationConfig:
    """Settings consumed when building an animation.

    Attributes
    ----------
    nframes : int, default=100
        Number of frames in the animation.
    rounding : {"half_even", "half_away"}, default="half_even"
        Tie-breaking rule when mapping times to frames and lengths to frame
        counts. ``"half_even"`` matches the rounding of most numerical
        environments (numpy, R).
    n_workers : int, default=1
        Number of threads used to expand layers. 1 expands serially.
    show_progress : bool, default=False
        Show a progress bar while expanding layers.

    Raises
    ------
    ValueError
        If any field is out of range.

    Examples
    --------
    >>> AnimationConfig(nframes=50).nframes
    50
    >>> AnimationConfig(nframes=0)  # doctest: +SKIP
    ValueError: nframes must be a positive integer (got 0).
    """

    nframes: int = DEFAULT_NFRAMES
    rounding: RoundingMode = "half_even"
    n_workers: int = 1
    show_progress: bool = False

    def __post_init__(self) -> None:
        if isinstance(self.nframes, bool) or not isinstance(self.nframes, int) or self.nframes < 1:
            raise ValueError(f"nframes must be a positive integer (got {self.nframes!r}).")
        if self.rounding not in ROUNDING_MODES:
            raise ValueError(
                f"rounding must be one of {', '.join(ROUNDING_MODES)} "
                f"(got {self.rounding!r})."
            )
        if isinstance(self.n_workers, bool) or not isinstance(self.n_workers, int) or self.n_workers < 1:
            raise ValueError(
                f"n_workers must be a positive integer (got {self.n_workers!r})."
            )

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> AnimationConfig:
        """Build a config from ``ENTITYFRAMES_*`` environment variables.

        Parameters
        ----------
        environ : Mapping[str, str], optional
            Environment to read. Defaults to ``os.environ``.

        Raises
        ------
        ValueError
            If a variable holds an invalid value.
        """
        if environ is None:
            environ = os.environ

        kwargs: dict[str, object] = {}
        for field_name, variable in (
            ("nframes", "ENTITYFRAMES_NFRAMES"),
            ("n_workers", "ENTITYFRAMES_N_WORKERS"),
        ):
            raw = environ.get(variable)
            if raw is None:
                continue
            try:
                kwargs[field_name] = int(raw)
            except ValueError:
                raise ValueError(
                    f"{variable} must be an integer (got {raw!r})."
                ) from None
        rounding = environ.get("ENTITYFRAMES_ROUNDING")
        if rounding is not None:
            kwargs["rounding"] = rounding
        return cls(**kwargs)  # type: ignore[arg-type]


__all__ = ["DEFAULT_NFRAMES", "AnimationConfig"]
