"""Standard thermodynamic models of species.

A standard thermodynamic model evaluates the standard molar Gibbs energy (standard
chemical potential) ``mu0(T, P)`` in ``[J / mol]`` and the standard molar volume
``V0(T, P)`` in ``[m^3 / mol]`` of a species, each as a
:class:`~georeact.chemistry.states.ThermoScalar` carrying the partial derivatives with
respect to temperature and pressure.

Models are interchangeable strategies attached to :class:`~georeact.chemistry.system.
Species`. Concrete models:

- :class:`ConstantHeatCapacityModel`: condensed species (aqueous solutes, minerals,
  liquid water) from standard data at the reference state.
- :class:`IdealGasModel`: gaseous species, whose volume follows the ideal gas law.
- :class:`WaterEosModel`: liquid water, with the temperature and pressure dependence
  taken from a water equation of state.

"""

from __future__ import annotations

import abc
import functools
from dataclasses import dataclass

import numpy as np

from ._core import P_REF, R_IDEAL_MOL, T_REF, WATER_MOLAR_MASS
from .states import ThermoScalar

__all__ = [
    "StandardThermoModel",
    "ConstantHeatCapacityModel",
    "IdealGasModel",
    "WaterEosModel",
]


class StandardThermoModel(abc.ABC):
    """Abstract base of standard thermodynamic models of a species."""

    @abc.abstractmethod
    def gibbs_energy(self, T: float, P: float) -> ThermoScalar:
        """Standard molar Gibbs energy ``mu0(T, P)`` in ``[J / mol]``."""
        ...

    @abc.abstractmethod
    def volume(self, T: float, P: float) -> ThermoScalar:
        """Standard molar volume ``V0(T, P)`` in ``[m^3 / mol]``."""
        ...

    def __call__(self, T: float, P: float) -> ThermoScalar:
        return self.gibbs_energy(T, P)


@dataclass(frozen=True)
class ConstantHeatCapacityModel(StandardThermoModel):
    r"""Standard Gibbs energy from data at the reference state, assuming a constant
    heat capacity and an incompressible standard volume:

    .. math::

        \mu^0(T, P) = G_0 - S_0 (T - T_r) + C_p \left(T - T_r - T \ln\frac{T}{T_r}
        \right) + V_0 (P - P_r).

    """

    G0: float
    """Standard Gibbs energy of formation at the reference state ``[J / mol]``."""

    S0: float = 0.0
    """Standard molar entropy at the reference state ``[J / mol K]``."""

    Cp: float = 0.0
    """Standard molar isobaric heat capacity ``[J / mol K]``."""

    V0: float = 0.0
    """Standard molar volume ``[m^3 / mol]``."""

    T_ref: float = T_REF
    P_ref: float = P_REF

    def gibbs_energy(self, T: float, P: float) -> ThermoScalar:
        dT = T - self.T_ref
        lnT = np.log(T / self.T_ref)
        val = (
            self.G0
            - self.S0 * dT
            + self.Cp * (dT - T * lnT)
            + self.V0 * (P - self.P_ref)
        )
        return ThermoScalar(float(val), float(-self.S0 - self.Cp * lnT), self.V0)

    def volume(self, T: float, P: float) -> ThermoScalar:
        return ThermoScalar(self.V0, 0.0, 0.0)


@dataclass(frozen=True)
class IdealGasModel(ConstantHeatCapacityModel):
    """Standard model of a gaseous species.

    The standard state is the pure ideal gas at :data:`~georeact.chemistry._core.P_REF`,
    hence the standard Gibbs energy does not depend on pressure. The pressure
    dependence enters through the activity ``x P / P_REF``.

    """

    def gibbs_energy(self, T: float, P: float) -> ThermoScalar:
        g = super().gibbs_energy(T, self.P_ref)
        return ThermoScalar(g.val, g.ddT, 0.0)

    def volume(self, T: float, P: float) -> ThermoScalar:
        v = R_IDEAL_MOL * T / P
        return ThermoScalar(v, R_IDEAL_MOL / P, -v / P)


@functools.lru_cache(maxsize=64)
def _water_state(T: float, P: float, model: str):
    # deferred import, the water package depends on this package
    from .water import compute_water_thermo_state

    return compute_water_thermo_state(T, P, model)


@dataclass(frozen=True)
class WaterEosModel(StandardThermoModel):
    """Standard model of liquid water based on a water equation of state.

    The Gibbs energy of formation ``G0`` at the reference state is shifted by the
    difference of the specific Gibbs energy of the equation of state between
    ``(T, P)`` and the reference state. The entropy of the equation of state is
    relative to its own reference, hence it is offset to the third-law entropy ``S0``:

    - ``d mu0 / dT = -S0 - M (s(T, P) - s(T_r, P_r))``,
    - ``d mu0 / dP = M / D(T, P)`` (molar volume).

    """

    G0: float = -237129.0
    """Standard Gibbs energy of formation of liquid water ``[J / mol]``."""

    S0: float = 69.95
    """Standard molar entropy of liquid water ``[J / mol K]``."""

    model: str = "wagner-pruss"
    """Name of the water equation of state, see
    :class:`~georeact.chemistry.water.WaterModel`."""

    def _state(self, T: float, P: float):
        return _water_state(float(T), float(P), self.model)

    def gibbs_energy(self, T: float, P: float) -> ThermoScalar:
        ws = self._state(T, P)
        ws_ref = self._state(T_REF, P_REF)
        M = WATER_MOLAR_MASS
        ds = self.S0 - M * ws_ref.entropy
        return ThermoScalar(
            self.G0 + M * (ws.gibbs - ws_ref.gibbs) - ds * (T - T_REF),
            -M * ws.entropy - ds,
            M / ws.density,
        )

    def volume(self, T: float, P: float) -> ThermoScalar:
        ws = self._state(T, P)
        M = WATER_MOLAR_MASS
        D = ws.density
        return ThermoScalar(
            M / D, -M * ws.density_T / D**2, -M * ws.density_P / D**2
        )
