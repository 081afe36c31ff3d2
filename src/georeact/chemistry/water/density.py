"""Density of water as a function of temperature and pressure.

Both equations of state are formulated in terms of ``(T, D)``, hence the density at a
given pressure is the root of ``P(T, D) = D^2 a_D(T, D) = P``. The roots returned here
are polished with a few Newton steps on the pressure of the respective Helmholtz
free energy, which makes them consistent with the derivatives computed in
:func:`~georeact.chemistry.water.thermo_state.water_thermo_state`.

"""

from __future__ import annotations

import logging
from typing import Callable

import numpy as np
from chemicals import iapws

from .._core import R_IDEAL_MOL, WATER_MOLAR_MASS
from .helmholtz import (
    WATER_ACENTRIC_FACTOR,
    WATER_CRITICAL_PRESSURE,
    WATER_CRITICAL_TEMPERATURE,
    WaterHelmholtzState,
    water_helmholtz_state_peng_robinson,
    water_helmholtz_state_wagner_pruss,
)

__all__ = [
    "water_density_wagner_pruss",
    "water_density_peng_robinson",
]

logger = logging.getLogger(__name__)


def _polish_density(
    T: float,
    P: float,
    D: float,
    helmholtz: Callable[[float, float], WaterHelmholtzState],
    max_iterations: int = 5,
    tol: float = 1e-14,
) -> float:
    """Newton iterations on ``D^2 a_D(T, D) - P = 0``, starting from ``D``."""
    for _ in range(max_iterations):
        whs = helmholtz(T, D)
        pressure = D**2 * whs.helmholtzD
        pressure_D = 2.0 * D * whs.helmholtzD + D**2 * whs.helmholtzDD
        if not pressure_D > 0.0:
            # mechanically unstable branch, leave the root as it is
            break
        dD = (P - pressure) / pressure_D
        D += dD
        if abs(dD) <= tol * D:
            break
    return D


def water_density_wagner_pruss(T: float, P: float) -> float:
    """Density of water in ``[kg / m^3]`` according to IAPWS-95.

    The initial root is computed by :func:`chemicals.iapws.iapws95_rho`, which selects
    the stable phase (liquid or vapour) at ``(T, P)``.

    """
    D = float(iapws.iapws95_rho(T, P))
    return _polish_density(T, P, D, water_helmholtz_state_wagner_pruss)


def water_density_peng_robinson(T: float, P: float) -> float:
    """Density of water in ``[kg / m^3]`` according to the Peng-Robinson equation of
    state.

    The cubic equation in the compressibility factor ``Z`` is solved and, if it has
    multiple physical roots (``Z > B``), the root with the lowest fugacity coefficient
    (i.e. the lowest Gibbs energy) is selected.

    """
    R = R_IDEAL_MOL
    Tc = WATER_CRITICAL_TEMPERATURE
    Pc = WATER_CRITICAL_PRESSURE
    w = WATER_ACENTRIC_FACTOR

    ac = 0.45724 * R**2 * Tc**2 / Pc
    b = 0.07780 * R * Tc / Pc
    kappa = 0.37464 + 1.54226 * w - 0.26992 * w**2
    a = ac * (1.0 + kappa * (1.0 - np.sqrt(T / Tc))) ** 2

    A = a * P / (R * T) ** 2
    B = b * P / (R * T)

    coefficients = [1.0, -(1.0 - B), A - 3.0 * B**2 - 2.0 * B, -(A * B - B**2 - B**3)]
    roots = np.roots(coefficients)
    Z = np.real(roots[np.abs(np.imag(roots)) <= 1e-10 * np.abs(roots)])
    Z = Z[Z > B]
    if Z.size == 0:
        raise ValueError(f"No physical Peng-Robinson root for water at T={T}, P={P}.")

    sq2 = np.sqrt(2.0)
    ln_phi = (
        Z
        - 1.0
        - np.log(Z - B)
        - A / (2.0 * sq2 * B) * np.log((Z + (1.0 + sq2) * B) / (Z + (1.0 - sq2) * B))
    )
    Z_stable = float(Z[np.argmin(ln_phi)])
    D = P * WATER_MOLAR_MASS / (Z_stable * R * T)
    return _polish_density(T, P, D, water_helmholtz_state_peng_robinson)
