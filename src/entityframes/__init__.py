"""Per-entity frame resolution for data animations.

**entityframes** turns a table of entity states observed at arbitrary times
into per-frame data: every entity is placed on a shared frame axis at its own
times, enters and exits on its own schedule, and is interpolated between its
keyframes.

Core Objects (Top-Level Exports)
--------------------------------
transition_components : Factory of the per-entity transition
    Takes the id and time selectors, an optional range and enter/exit
    lengths.
build_frames : Full pipeline
    Two setup passes around an optional per-layer transform, then expansion.
Layer : One table of rows and its layer type
AnimationConfig : Frame count, rounding and parallelism
FrameSet : Per-frame data of every layer

Submodule Organization
----------------------
times : Time classes, normalisation and recasting
frames : Frame range, frame mapping and lifecycle window
keys : Composite row keys (``"<frame>-<id>"``)
selectors : Column selectors, including deferred ones
easing : Easing functions
tweening : Interpolation of entity keyframes
errors : Exceptions raised while resolving frames

Examples
--------
>>> import pandas as pd
>>> from entityframes import AnimationConfig, Layer, build_frames, transition_components
>>> data = pd.DataFrame(
...     {"name": ["a", "a", "b"], "year": [2000, 2010, 2005], "x": [0.0, 10.0, 5.0]}
... )
>>> frames = build_frames(
...     [Layer(data)],
...     transition_components(id="name", time="year"),
...     config=AnimationConfig(nframes=11),
... )
>>> frames.label("Year {frame_time:.0f}", 6)
'Year 2005'

Set ``ENTITYFRAMES_TIMING=1`` to print how long each pass takes.
"""

import logging

from entityframes.components import ComponentsTransition, transition_components
from entityframes.config import AnimationConfig
from entityframes.errors import (
    IncompatibleUnitsError,
    InconsistentTimeClassError,
    MissingParameterError,
    UnsupportedLayerTypeError,
)
from entityframes.pipeline import FrameSet, build_frames
from entityframes.selectors import after_transform, col
from entityframes.times import TimeClass
from entityframes.transition import Layer

# Add NullHandler to prevent "No handler found" warnings if user doesn't configure logging
logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"

__all__ = [
    "AnimationConfig",
    "ComponentsTransition",
    "FrameSet",
    "IncompatibleUnitsError",
    "InconsistentTimeClassError",
    "Layer",
    "MissingParameterError",
    "TimeClass",
    "UnsupportedLayerTypeError",
    "after_transform",
    "build_frames",
    "col",
    "transition_components",
]
