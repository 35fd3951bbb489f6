"""Shared test fixtures for the entityframes test suite.

Fixture Naming Convention
=========================

**Layer fixtures** follow the pattern ``{time_class}_layer``: a single
``Layer`` whose ``name``/``year`` columns hold the entity id and time.

**Data fixtures** use descriptive names (``gapminder_like``,
``mixed_static_layer``).
"""

import datetime as dt
import os

import numpy as np
import pandas as pd
import pytest
from hypothesis import Phase, Verbosity, settings

from entityframes import Layer

# =============================================================================
# Hypothesis Configuration
# =============================================================================
# - "ci": Fast profile for CI pipelines (fewer examples, no deadline)
# - "dev": Standard development profile (moderate examples)
# - "thorough": Full property testing (many examples, for pre-release)

settings.register_profile(
    "ci",
    max_examples=10,
    deadline=None,
    phases=[Phase.explicit, Phase.reuse, Phase.generate],
    verbosity=Verbosity.quiet,
)

settings.register_profile(
    "dev",
    max_examples=25,
    deadline=5000,
    verbosity=Verbosity.normal,
)

settings.register_profile(
    "thorough",
    max_examples=100,
    deadline=None,
    verbosity=Verbosity.verbose,
)

# Set HYPOTHESIS_PROFILE=ci in CI environments for faster tests
_profile = os.environ.get("HYPOTHESIS_PROFILE", "dev")
settings.load_profile(_profile)

# =============================================================================
# Test Configuration Constants
# =============================================================================

DEFAULT_SEED = 42


# =============================================================================
# --- Fixtures ---
# =============================================================================


@pytest.fixture
def numeric_data() -> pd.DataFrame:
    """Two entities: ``a`` at times 0 and 10, ``b`` at time 5."""
    return pd.DataFrame(
        {
            "name": ["a", "a", "b"],
            "year": [0, 10, 5],
            "x": [0.0, 10.0, 5.0],
            "group": ["g1", "g1", "g2"],
        }
    )


@pytest.fixture
def numeric_layer(numeric_data: pd.DataFrame) -> Layer:
    return Layer(numeric_data, name="points")


@pytest.fixture
def date_layer() -> Layer:
    """One entity observed on three consecutive days."""
    data = pd.DataFrame(
        {
            "name": ["a", "a", "a"],
            "year": [dt.date(2020, 1, 1), dt.date(2020, 1, 2), dt.date(2020, 1, 3)],
            "x": [0.0, 1.0, 2.0],
        }
    )
    return Layer(data, name="dates")


@pytest.fixture
def datetime_layer() -> Layer:
    data = pd.DataFrame(
        {
            "name": ["a", "a"],
            "year": pd.to_datetime(["2021-03-01 00:00", "2021-03-01 00:10"]),
            "x": [0.0, 10.0],
        }
    )
    return Layer(data, name="datetimes")


@pytest.fixture
def mixed_static_layer() -> Layer:
    """Dynamic rows plus one row with a missing time."""
    data = pd.DataFrame(
        {
            "name": ["a", "a", "c"],
            "year": [0.0, 10.0, np.nan],
            "x": [0.0, 10.0, 99.0],
        }
    )
    return Layer(data, name="mixed")


@pytest.fixture
def background_layer() -> Layer:
    """Layer without id or time columns, drawn in every frame."""
    return Layer(pd.DataFrame({"x": [1.0, 2.0], "label": ["p", "q"]}), name="bg")


@pytest.fixture
def gapminder_like() -> pd.DataFrame:
    """Several countries observed over a handful of years."""
    rng = np.random.default_rng(DEFAULT_SEED)
    countries = ["Norway", "Chile", "Kenya"]
    years = [1952, 1957, 1962, 1967]
    rows = [
        {
            "country": country,
            "year": year,
            "gdp": float(rng.uniform(1_000, 30_000)),
            "group": continent,
        }
        for country, continent in zip(countries, ["Europe", "Americas", "Africa"])
        for year in years
    ]
    return pd.DataFrame(rows)
