"""Thermodynamic state of water derived from its Helmholtz free energy.

Given temperature, pressure, the density at that pressure and the Helmholtz free
energy with its partial derivatives, all other properties follow by thermodynamic
identities: pressure derivatives, density derivatives (by implicit differentiation of
``P(T, D(T, P)) = P``), entropy, energies and heat capacities.

Note:
    No guard is applied against ``pressureD -> 0``, which happens at the critical
    point and at the limits of mechanical stability. Density derivatives are infinite
    there.

"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from ...utils.logging import time_logger
from .density import water_density_peng_robinson, water_density_wagner_pruss
from .helmholtz import (
    WaterHelmholtzState,
    water_helmholtz_state_peng_robinson,
    water_helmholtz_state_wagner_pruss,
)

__all__ = [
    "WaterModel",
    "WaterThermoState",
    "water_thermo_state",
    "water_thermo_state_wagner_pruss",
    "water_thermo_state_peng_robinson",
    "compute_water_thermo_state",
    "water_density",
]


class WaterModel(str, Enum):
    """Available equations of state of water."""

    WAGNER_PRUSS = "wagner-pruss"
    """IAPWS-95 formulation of Wagner & Pruss (2002)."""

    PENG_ROBINSON = "peng-robinson"
    """Peng-Robinson cubic equation of state."""


@dataclass
class WaterThermoState:
    """Thermodynamic properties of water at a given temperature and pressure.

    Specific quantities are per unit mass (``J / kg``, ``J / kg K``, ``m^3 / kg``),
    density in ``kg / m^3``. The suffixes ``_T``, ``_P`` and ``_D`` denote partial
    derivatives with respect to temperature, pressure and density.

    """

    temperature: float = 0.0
    volume: float = 0.0
    entropy: float = 0.0
    helmholtz: float = 0.0
    internal_energy: float = 0.0
    enthalpy: float = 0.0
    gibbs: float = 0.0
    cv: float = 0.0
    cp: float = 0.0

    density: float = 0.0
    density_T: float = 0.0
    density_P: float = 0.0
    density_TT: float = 0.0
    density_TP: float = 0.0
    density_PP: float = 0.0

    pressure: float = 0.0
    pressure_T: float = 0.0
    pressure_D: float = 0.0
    pressure_TT: float = 0.0
    pressure_TD: float = 0.0
    pressure_DD: float = 0.0


def water_thermo_state(
    T: float, P: float, D: float, whs: WaterHelmholtzState
) -> WaterThermoState:
    """Computes the thermodynamic state of water from its Helmholtz free energy state
    ``whs`` evaluated at ``(T, D)``, where ``D`` is the density at pressure ``P``."""
    aT = whs.helmholtzT
    aD = whs.helmholtzD
    aTT = whs.helmholtzTT
    aTD = whs.helmholtzTD
    aDD = whs.helmholtzDD
    aTTD = whs.helmholtzTTD
    aTDD = whs.helmholtzTDD
    aDDD = whs.helmholtzDDD

    pressureD = 2 * D * aD + D * D * aDD
    pressureT = D * D * aTD
    pressureDD = 2 * aD + 4 * D * aDD + D * D * aDDD
    pressureTD = 2 * D * aTD + D * D * aTDD
    pressureTT = D * D * aTTD

    densityT = -pressureT / pressureD
    densityP = 1.0 / pressureD
    densityTT = (
        -densityT
        * densityP
        * (densityT * pressureDD + 2 * pressureTD + pressureTT / densityT)
    )
    densityTP = -densityP * densityP * (densityT * pressureDD + pressureTD)
    densityPP = -densityP * densityP * densityP * pressureDD

    entropy = -aT
    helmholtz = whs.helmholtz
    internal_energy = helmholtz + T * entropy
    enthalpy = internal_energy + P / D
    gibbs = enthalpy - T * entropy
    cv = -T * aTT
    cp = cv + T / (D * D) * pressureT * pressureT / pressureD

    return WaterThermoState(
        temperature=T,
        volume=1.0 / D,
        entropy=entropy,
        helmholtz=helmholtz,
        internal_energy=internal_energy,
        enthalpy=enthalpy,
        gibbs=gibbs,
        cv=cv,
        cp=cp,
        density=D,
        density_T=densityT,
        density_P=densityP,
        density_TT=densityTT,
        density_TP=densityTP,
        density_PP=densityPP,
        pressure=P,
        pressure_T=pressureT,
        pressure_D=pressureD,
        pressure_TT=pressureTT,
        pressure_TD=pressureTD,
        pressure_DD=pressureDD,
    )


def water_density(T: float, P: float, model: WaterModel | str) -> float:
    """Density of water in ``[kg / m^3]`` at ``(T, P)`` with the given model."""
    model = WaterModel(model)
    if model is WaterModel.WAGNER_PRUSS:
        return water_density_wagner_pruss(T, P)
    return water_density_peng_robinson(T, P)


@time_logger(sections=["chemistry"])
def water_thermo_state_wagner_pruss(T: float, P: float) -> WaterThermoState:
    """Thermodynamic state of water at ``(T, P)`` according to IAPWS-95."""
    D = water_density_wagner_pruss(T, P)
    return water_thermo_state(T, P, D, water_helmholtz_state_wagner_pruss(T, D))


@time_logger(sections=["chemistry"])
def water_thermo_state_peng_robinson(T: float, P: float) -> WaterThermoState:
    """Thermodynamic state of water at ``(T, P)`` according to the Peng-Robinson
    equation of state."""
    D = water_density_peng_robinson(T, P)
    return water_thermo_state(T, P, D, water_helmholtz_state_peng_robinson(T, D))


def compute_water_thermo_state(
    T: float, P: float, model: WaterModel | str = WaterModel.WAGNER_PRUSS
) -> WaterThermoState:
    """Dispatches to the thermodynamic state of the given water model."""
    if WaterModel(model) is WaterModel.WAGNER_PRUSS:
        return water_thermo_state_wagner_pruss(T, P)
    return water_thermo_state_peng_robinson(T, P)
