"""This private module contains central assumptions and data for the entire
chemistry subpackage.

Changes here should be done with much care.

"""

from __future__ import annotations

from enum import Enum

from ..utils.common_constants import BAR, CELSIUS_to_KELVIN

__all__ = [
    "R_IDEAL_MOL",
    "P_REF",
    "T_REF",
    "WATER_MOLAR_MASS",
    "LN10",
    "PhysicalState",
]


NUMBA_CACHE: bool = True
"""Flag to instruct the numba compiler to cache (!and use cached!) functions.

This might cause some confusion in the developing process due to some lack in numba's
caching functionality.
(Does not recognize changes in nested functions and hence does not trigger
re-compilation).

Use with care.

See Also:
    https://numba.readthedocs.io/en/stable/user/jit.html#cache

"""

NUMBA_FAST_MATH: bool = False
"""Flag to instruct the numba compiler to use it's ``fastmath`` functions.

To be used with care, due to loss in precision. The water equation of state relies on
derivatives of logarithms close to singularities, hence it is off by default.

See Also:
    https://numba.readthedocs.io/en/stable/reference/jit-compilation.html#numba.jit

"""

R_IDEAL_MOL: float = 8.31446261815324
"""Universal gas constant in ``[J / K mol]``."""

T_REF: float = CELSIUS_to_KELVIN(25.0)
"""The reference temperature of standard thermodynamic data in ``[K]``.

Standard Gibbs energies of formation, entropies and heat capacities of the species
are tabulated at this temperature.

"""

P_REF: float = 1.0 * BAR
"""The reference (standard state) pressure in ``[Pa]``.

It is the standard state pressure of gaseous species, hence ideal gas activities are
``x P / P_REF``.

"""

WATER_MOLAR_MASS: float = 0.018015268
"""Molar mass of water in ``[kg / mol]``, as used by IAPWS-95.

Molalities of aqueous solutes are computed with respect to this value.

"""

_heat_capacity_ratio: float = 8.0 / 6.0
"""Heat capacity ratio for ideal, triatomic gases like water.
Set to :math:`\\frac{8}{6}`"""

CV_WATER_VAPOUR: float = 1.0 / (_heat_capacity_ratio - 1) * R_IDEAL_MOL
"""The molar heat capacity at constant volume for ideal water vapor in
``[J / K mol]``.

It holds :math:`c_v = \\frac{1}{\\gamma - 1} R_{ideal}`, with
:math:`\\gamma = \\frac{8}{6}`.

"""

LN10: float = 2.302585092994046
"""Natural logarithm of 10, converting between ``log10`` and ``ln``."""


class PhysicalState(Enum):
    """Enum object for characterizing the physical states of a phase.

    - :attr:`aqueous`: aqueous solution with water as solvent (value 0)
    - :attr:`gaseous`: gas-like state (value 1)
    - :attr:`mineral`: solid state, pure minerals or solid solutions (value 2)
    - values above 2 are reserved for further development

    """

    aqueous: int = 0
    gaseous: int = 1
    mineral: int = 2

    @property
    def is_fluid(self) -> bool:
        """True for aqueous and gaseous phases."""
        return self is not PhysicalState.mineral
