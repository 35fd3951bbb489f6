"""Exceptions raised while resolving and expanding component animations.

Every error carries an error code (``[E3xxx]``) and a WHAT/WHY/HOW message so
that configuration problems can be diagnosed without inspecting internals.
The classes inherit from the built-in exception that best describes the
failure, so callers can catch either the specific error or the generic one.

Error codes
-----------
E3001 : MissingParameterError
E3002 : IncompatibleUnitsError
E3003 : InconsistentTimeClassError
E3004 : UnsupportedLayerTypeError
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping


class MissingParameterError(TypeError):
    """Raised when a required selector is not supplied at construction.

    Parameters
    ----------
    parameter : str
        Name of the missing parameter (``"id"`` or ``"time"``).
    error_code : str, optional
        Error code for documentation reference. Default is "E3001".

    Examples
    --------
    >>> raise MissingParameterError("id")
    Traceback (most recent call last):
        ...
    entityframes.errors.MissingParameterError: [E3001] WHAT: 'id' must be provided...
    """

    def __init__(self, parameter: str, error_code: str = "E3001") -> None:
        message = (
            f"[{error_code}] WHAT: '{parameter}' must be provided.\n\n"
            f"WHY: Component transitions need both an id and a time column to "
            f"place each entity on its own timeline.\n\n"
            f"HOW: Pass a column name, a callable or a selector, e.g.\n"
            f"  transition_components(id='name', time='year')"
        )
        super().__init__(message)
        self.parameter = parameter
        self.error_code = error_code


class IncompatibleUnitsError(TypeError):
    """Raised when range or lengths are not given in the class of the time.

    Parameters
    ----------
    parameter : str
        Offending parameter (``"range"``, ``"enter_length"``, ``"exit_length"``).
    expected : str
        Time class detected from the data.
    actual : str
        Class (or type name) of the value that was supplied.
    error_code : str, optional
        Default is "E3002".
    """

    def __init__(
        self,
        parameter: str,
        expected: str,
        actual: str,
        error_code: str = "E3002",
    ) -> None:
        message = (
            f"[{error_code}] WHAT: {parameter} must be given in the same class "
            f"as time (expected {expected}, got {actual}).\n\n"
            f"WHY: Frame positions are computed on a single numeric axis; mixing "
            f"classes would silently change the unit of {parameter}.\n\n"
            f"HOW: {_units_hint(parameter, expected)}"
        )
        super().__init__(message)
        self.parameter = parameter
        self.expected = expected
        self.actual = actual
        self.error_code = error_code


def _units_hint(parameter: str, expected: str) -> str:
    if parameter == "range":
        return (
            f"Give range as a pair of {expected} values, matching the time "
            f"column."
        )
    if expected == "numeric":
        return f"Give {parameter} as a plain number in the units of time."
    return (
        f"Give {parameter} as a duration, e.g. "
        f"pd.Timedelta(days=2) or datetime.timedelta(days=2)."
    )


class InconsistentTimeClassError(TypeError):
    """Raised when time values do not share one class.

    Applies both across layers (one layer with dates, another with numbers)
    and within a single object column holding a mix of classes.

    Parameters
    ----------
    name : str
        Name of the time parameter being standardised.
    classes : Mapping[str, str]
        Source label (layer name or position) to detected class.
    error_code : str, optional
        Default is "E3003".
    """

    def __init__(
        self,
        name: str,
        classes: Mapping[str, str],
        error_code: str = "E3003",
    ) -> None:
        found = ", ".join(f"{source}: {cls}" for source, cls in classes.items())
        message = (
            f"[{error_code}] WHAT: {name} data must be the same class in all "
            f"layers. Found {found}.\n\n"
            f"WHY: All layers are placed on one shared frame axis.\n\n"
            f"HOW: Convert the {name} columns to a common class before "
            f"building the animation (e.g. pd.to_datetime for dates)."
        )
        super().__init__(message)
        self.name = name
        self.classes = dict(classes)
        self.error_code = error_code


class UnsupportedLayerTypeError(ValueError):
    """Raised when a layer type has no frame expansion routine.

    Parameters
    ----------
    layer_type : str
        The unsupported layer type.
    supported : Iterable[str]
        Layer types that can be expanded.
    error_code : str, optional
        Default is "E3004".
    """

    def __init__(
        self,
        layer_type: str,
        supported: Iterable[str],
        error_code: str = "E3004",
    ) -> None:
        supported = sorted(supported)
        message = (
            f"[{error_code}] WHAT: Unsupported layer type '{layer_type}'.\n\n"
            f"WHY: Component transitions only know how to expand "
            f"{', '.join(repr(s) for s in supported)} layers.\n\n"
            f"HOW: Use one of the supported layer types, or drop the id/time "
            f"columns from this layer so it is drawn statically."
        )
        super().__init__(message)
        self.layer_type = layer_type
        self.supported = supported
        self.error_code = error_code


__all__ = [
    "IncompatibleUnitsError",
    "InconsistentTimeClassError",
    "MissingParameterError",
    "UnsupportedLayerTypeError",
]
