"""Specific Helmholtz free energy of water and its partial derivatives with respect to
temperature ``T`` and density ``D``.

Two equations of state are available:

1. Wagner & Pruss (IAPWS-95), evaluated with the reduced Helmholtz energy
   :math:`\\phi(\\tau, \\delta) = a / (R T)` and its derivatives from
   :mod:`chemicals.iapws`, with :math:`\\tau = T_c / T` and :math:`\\delta = D / D_c`.
   The derivatives are transformed into derivatives with respect to ``(T, D)`` here.
2. A Peng-Robinson cubic equation of state with the critical constants of water and an
   ideal gas part with constant heat capacity. The kernel is compiled with numba.
   It is not as accurate as IAPWS-95, especially for the liquid density, but cheap.

References:
    Wagner, W., Pruss, A. (2002). The IAPWS formulation 1995 for the thermodynamic
    properties of ordinary water substance for general and scientific use.
    J. Phys. Chem. Ref. Data 31, 387-535.

"""

from __future__ import annotations

from dataclasses import dataclass

import numba
import numpy as np
from chemicals import iapws

from .._core import CV_WATER_VAPOUR, NUMBA_CACHE, NUMBA_FAST_MATH, R_IDEAL_MOL
from .._core import WATER_MOLAR_MASS

__all__ = [
    "WATER_CRITICAL_TEMPERATURE",
    "WATER_CRITICAL_DENSITY",
    "WATER_CRITICAL_PRESSURE",
    "WATER_SPECIFIC_GAS_CONSTANT",
    "WaterHelmholtzState",
    "water_helmholtz_state_wagner_pruss",
    "water_helmholtz_state_peng_robinson",
]


WATER_CRITICAL_TEMPERATURE: float = 647.096
"""Critical temperature of water in ``[K]``."""

WATER_CRITICAL_DENSITY: float = 322.0
"""Critical density of water in ``[kg / m^3]``."""

WATER_CRITICAL_PRESSURE: float = 22.064e6
"""Critical pressure of water in ``[Pa]``."""

WATER_SPECIFIC_GAS_CONSTANT: float = 461.51805
"""Specific gas constant of water in ``[J / kg K]``, as used by IAPWS-95."""

WATER_ACENTRIC_FACTOR: float = 0.3443
"""Acentric factor of water, used by the Peng-Robinson equation of state."""


@dataclass
class WaterHelmholtzState:
    """Specific Helmholtz free energy of water ``[J / kg]`` and its partial
    derivatives with respect to temperature ``T [K]`` and density ``D [kg / m^3]``.

    The letters in the attribute names indicate the variables of differentiation,
    e.g. :attr:`helmholtzTD` is the mixed second derivative.

    """

    helmholtz: float = 0.0
    helmholtzT: float = 0.0
    helmholtzD: float = 0.0
    helmholtzTT: float = 0.0
    helmholtzTD: float = 0.0
    helmholtzDD: float = 0.0
    helmholtzTTD: float = 0.0
    helmholtzTDD: float = 0.0
    helmholtzDDD: float = 0.0


def water_helmholtz_state_wagner_pruss(T: float, D: float) -> WaterHelmholtzState:
    """Evaluates the IAPWS-95 Helmholtz free energy and its derivatives at
    temperature ``T`` and density ``D``.

    The reduced Helmholtz energy is the sum of an ideal part :math:`\\phi^0` and a
    residual part :math:`\\phi^r`. The ideal part depends on :math:`\\delta` only
    through :math:`\\ln\\delta`, hence its mixed derivatives vanish.

    """
    Tc = WATER_CRITICAL_TEMPERATURE
    Dc = WATER_CRITICAL_DENSITY
    R = WATER_SPECIFIC_GAS_CONSTANT

    tau = Tc / T
    delta = D / Dc

    # ideal part
    phi0 = iapws.iapws95_A0(tau, delta)
    phi0_t = iapws.iapws95_dA0_dtau(tau, delta)
    phi0_tt = iapws.iapws95_d2A0_dtau2(tau, delta)
    phi0_d = 1.0 / delta
    phi0_dd = -1.0 / delta**2
    phi0_ddd = 2.0 / delta**3

    # residual part
    phir = iapws.iapws95_Ar(tau, delta)
    phir_t = iapws.iapws95_dAr_dtau(tau, delta)
    phir_tt = iapws.iapws95_d2Ar_dtau2(tau, delta)
    phir_d = iapws.iapws95_dAr_ddelta(tau, delta)
    phir_dd = iapws.iapws95_d2Ar_ddelta2(tau, delta)
    phir_ddd = iapws.iapws95_d3Ar_ddelta3(tau, delta)
    phir_td = iapws.iapws95_d2Ar_ddeltadtau(tau, delta)
    phir_ttd = iapws.iapws95_d3Ar_ddeltadtau2(tau, delta)
    phir_tdd = iapws.iapws95_d3Ar_ddelta2dtau(tau, delta)

    phi = phi0 + phir
    phi_t = phi0_t + phir_t
    phi_tt = phi0_tt + phir_tt
    phi_d = phi0_d + phir_d
    phi_dd = phi0_dd + phir_dd
    phi_ddd = phi0_ddd + phir_ddd
    phi_td = phir_td
    phi_ttd = phir_ttd
    phi_tdd = phir_tdd

    # a = R T phi(Tc / T, D / Dc)
    return WaterHelmholtzState(
        helmholtz=R * T * phi,
        helmholtzT=R * (phi - tau * phi_t),
        helmholtzD=R * T * phi_d / Dc,
        helmholtzTT=R * tau**2 * phi_tt / T,
        helmholtzTD=R * (phi_d - tau * phi_td) / Dc,
        helmholtzDD=R * T * phi_dd / Dc**2,
        helmholtzTTD=R * tau**2 * phi_ttd / (T * Dc),
        helmholtzTDD=R * (phi_dd - tau * phi_tdd) / Dc**2,
        helmholtzDDD=R * T * phi_ddd / Dc**3,
    )


@numba.njit(
    "UniTuple(float64, 9)(float64, float64)",
    fastmath=NUMBA_FAST_MATH,
    cache=NUMBA_CACHE,
)
def _peng_robinson_helmholtz(T: float, D: float) -> tuple:
    """Compiled Peng-Robinson kernel returning the specific Helmholtz energy and its
    derivatives in the order of the fields of :class:`WaterHelmholtzState`."""
    R = R_IDEAL_MOL
    M = WATER_MOLAR_MASS
    Tc = WATER_CRITICAL_TEMPERATURE
    Pc = WATER_CRITICAL_PRESSURE
    w = WATER_ACENTRIC_FACTOR
    cv = CV_WATER_VAPOUR

    ac = 0.45724 * R**2 * Tc**2 / Pc
    b = 0.07780 * R * Tc / Pc
    kappa = 0.37464 + 1.54226 * w - 0.26992 * w**2

    # cohesion a(T) = ac alpha(T) and its temperature derivatives
    s = np.sqrt(T / Tc)
    u = 1.0 + kappa * (1.0 - s)
    a = ac * u**2
    a_t = -ac * kappa * u / (Tc * s)
    a_tt = ac * kappa * (1.0 + kappa) / (2.0 * Tc**2 * s**3)

    # molar density
    rho = D / M

    # F = -ln(1 - b rho)
    e = 1.0 - b * rho
    F = -np.log(e)
    F1 = b / e
    F2 = b**2 / e**2
    F3 = 2.0 * b**3 / e**3

    # G = L / (2 sqrt(2) b), L = ln((1 + c1 rho) / (1 + c2 rho))
    sq2 = np.sqrt(2.0)
    c1 = (1.0 + sq2) * b
    c2 = (1.0 - sq2) * b
    q1 = 1.0 + c1 * rho
    q2 = 1.0 + c2 * rho
    scale = 1.0 / (2.0 * sq2 * b)
    G = np.log(q1 / q2) * scale
    G1 = (c1 / q1 - c2 / q2) * scale
    G2 = (-(c1**2) / q1**2 + c2**2 / q2**2) * scale
    G3 = (2.0 * c1**3 / q1**3 - 2.0 * c2**3 / q2**3) * scale

    # molar Helmholtz energy: ideal gas plus residual part
    A = R * T * np.log(rho) + cv * (T - T * np.log(T)) + R * T * F - a * G
    A_t = R * np.log(rho) - cv * np.log(T) + R * F - a_t * G
    A_tt = -cv / T - a_tt * G
    A_r = R * T / rho + R * T * F1 - a * G1
    A_rr = -R * T / rho**2 + R * T * F2 - a * G2
    A_rrr = 2.0 * R * T / rho**3 + R * T * F3 - a * G3
    A_tr = R / rho + R * F1 - a_t * G1
    A_trr = -R / rho**2 + R * F2 - a_t * G2
    A_ttr = -a_tt * G1

    # specific quantities, d/dD = 1/M d/drho
    return (
        A / M,
        A_t / M,
        A_r / M**2,
        A_tt / M,
        A_tr / M**2,
        A_rr / M**3,
        A_ttr / M**2,
        A_trr / M**3,
        A_rrr / M**4,
    )


def water_helmholtz_state_peng_robinson(T: float, D: float) -> WaterHelmholtzState:
    """Evaluates the Peng-Robinson Helmholtz free energy of water and its derivatives
    at temperature ``T`` and density ``D``."""
    return WaterHelmholtzState(*_peng_robinson_helmholtz(float(T), float(D)))
