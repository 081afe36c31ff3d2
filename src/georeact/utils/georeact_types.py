"""
Defines types commonly used in GeoReact.
"""

from typing import Callable, Mapping, Union

import numpy as np

__all__ = [
    "number",
    "FormulaType",
    "ThermoFunction",
    "ActivityFunction",
    "ReactionRateFunction",
]

number = Union[float, int]
"""Type for numbers."""

FormulaType = Mapping[str, float]
"""Type for chemical formulas, mapping element symbols to their coefficients."""

ThermoFunction = Callable[[float, float], "ThermoScalar"]  # noqa: F821
"""Type for functions of temperature and pressure returning a
:class:`~georeact.chemistry.states.ThermoScalar`, such as standard chemical
potentials and equilibrium constants."""

ActivityFunction = Callable[..., "ChemicalVector"]  # noqa: F821
"""Type for activity models, returning the natural logarithm of activities of the
species in a phase as a :class:`~georeact.chemistry.states.ChemicalVector`."""

ReactionRateFunction = Callable[
    [float, float, np.ndarray, "ChemicalVector"], "ChemicalScalar"  # noqa: F821
]
"""Type for reaction rates ``r(T, P, n, a)`` in mol/s, with ``a`` the activities of
all species in the system."""
