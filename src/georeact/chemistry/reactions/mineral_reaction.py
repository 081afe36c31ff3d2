r"""Kinetic dissolution and precipitation of minerals.

The rate of a mineral reaction with saturation ratio ``Omega = Q / K`` is

.. math::

    r = \operatorname{sign}(1 - \Omega) A_s \sum_m k_m(T)
    \left|1 - \Omega^{p_m}\right|^{q_m} \prod_c c^{\beta_c},

positive for dissolution, summing over the mechanisms ``m`` of the mineral. The
surface area ``A_s`` is either fixed, or the specific surface area times the mass of
the mineral.

"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Sequence

import numpy as np

from .._core import R_IDEAL_MOL, T_REF
from ..states import ChemicalScalar, ChemicalVector, ThermoScalar, exp, power
from ..system import ChemicalSystem
from ..utils import ChemicalModellingError, SpeciesNotFoundError
from .mechanism import MineralCatalyst, MineralMechanism
from .reaction import Reaction
from .reaction_utils import reaction_quotient

__all__ = ["MineralReaction", "mineral_rate"]

logger = logging.getLogger(__name__)


@dataclass
class MineralReaction:
    """Kinetic reaction of a mineral.

    Example:

        .. code-block:: python

            calcite = MineralReaction("Calcite", "Calcite = Ca+2 + CO3-2")
            calcite.add_mechanism("logk=-5.81 mol/(m2*s), Ea=23.5 kJ/mol")
            calcite.specific_surface_area = 10.0  # m2/kg
            reaction = calcite.reaction(system)

    """

    mineral: str
    """Name of the mineral species."""

    equation: str | dict[str, float] = ""
    """Reaction equation, e.g. ``"Calcite = Ca+2 + CO3-2"``. Positive rates consume
    the reactants."""

    mechanisms: list[MineralMechanism] = field(default_factory=list)

    specific_surface_area: float = 0.0
    """Specific surface area in ``[m^2 / kg]``."""

    surface_area: float = 0.0
    """Fixed surface area in ``[m^2]``. Used if positive, otherwise the surface area is
    the specific surface area times the mass of the mineral."""

    def add_mechanism(self, mechanism: str | MineralMechanism) -> MineralReaction:
        if isinstance(mechanism, str):
            mechanism = MineralMechanism.from_string(mechanism)
        self.mechanisms.append(mechanism)
        return self

    def set_mechanisms(
        self, mechanisms: Sequence[str | MineralMechanism]
    ) -> MineralReaction:
        self.mechanisms = []
        for m in mechanisms:
            self.add_mechanism(m)
        return self

    def reaction(self, system: ChemicalSystem) -> Reaction:
        """Creates the kinetic reaction with the mineral rate law in ``system``.

        Raises:
            ChemicalModellingError: If the equation is missing or the mineral does not
                react in it.
            SpeciesNotFoundError: If a species of the equation or a catalyst is not in
                the system.

        """
        if not self.equation:
            raise ChemicalModellingError(
                f"No reaction equation given for mineral '{self.mineral}'."
            )
        reaction = Reaction.from_equation(system, self.equation)
        if not reaction.contains_species(self.mineral):
            raise ChemicalModellingError(
                f"Mineral '{self.mineral}' does not react in '{reaction.name}'."
            )
        data = _MineralRateData.create(system, self, reaction)

        def rate(T: float, P: float, n: np.ndarray, a: ChemicalVector):
            return mineral_rate(data, reaction, T, P, n, a)

        return reaction.with_rate(rate)


@dataclass(frozen=True)
class _MineralRateData:
    """Data of a mineral reaction resolved against a chemical system."""

    mineral_index: int
    molar_mass: float
    specific_surface_area: float
    surface_area: float
    mechanisms: tuple[MineralMechanism, ...]
    catalyst_indices: tuple[tuple[int, ...], ...]

    @staticmethod
    def create(
        system: ChemicalSystem, mineral: MineralReaction, reaction: Reaction
    ) -> _MineralRateData:
        imineral = system.index_species_or_raise(mineral.mineral)
        return _MineralRateData(
            imineral,
            system.species[imineral].molar_mass,
            mineral.specific_surface_area,
            mineral.surface_area,
            tuple(mineral.mechanisms),
            tuple(
                tuple(_catalyst_index(system, c) for c in m.catalysts)
                for m in mineral.mechanisms
            ),
        )


def _catalyst_index(system: ChemicalSystem, catalyst: MineralCatalyst) -> int:
    i = system.index_species(catalyst.species)
    if i == system.num_species and catalyst.quantity == "pressure":
        i = system.index_species(catalyst.species + "(g)")
    if i == system.num_species:
        raise SpeciesNotFoundError(
            f"Catalyst species '{catalyst.species}' not found in system."
        )
    return i


def mineral_rate(
    data: _MineralRateData,
    reaction: Reaction,
    T: float,
    P: float,
    n: np.ndarray,
    a: ChemicalVector,
) -> ChemicalScalar:
    """Rate of a mineral reaction in ``[mol / s]``, with exact derivatives with
    respect to temperature, pressure and species amounts.

    Partial pressures of catalysing gases are the activities of ideal gases, which
    equal the partial pressures in bar.

    """
    n = np.asarray(n, dtype=float)
    N = n.size
    Omega = reaction_quotient(reaction, a) / reaction.equilibrium_constant(T, P)

    if data.surface_area > 0.0:
        area = ChemicalScalar(data.surface_area, 0.0, 0.0, np.zeros(N))
    else:
        ddn = np.zeros(N)
        ddn[data.mineral_index] = data.specific_surface_area * data.molar_mass
        area = ChemicalScalar(
            n[data.mineral_index] * ddn[data.mineral_index], 0.0, 0.0, ddn
        )

    Tvar = ThermoScalar.temperature(T)
    total = ChemicalScalar.zero(N)
    for mechanism, catalysts in zip(data.mechanisms, data.catalyst_indices):
        affinity = 1.0 - power(Omega, mechanism.p)
        if affinity.val == 0.0:
            continue
        # sign(1 - Omega) |1 - Omega^p|^q
        sign = float(np.sign(affinity.val))
        term = sign * power(sign * affinity, mechanism.q)
        k = mechanism.kappa * exp(
            -mechanism.Ea * 1e3 / R_IDEAL_MOL * (1.0 / Tvar - 1.0 / T_REF)
        )
        term = k * term
        for index, catalyst in zip(catalysts, mechanism.catalysts):
            term = term * power(a[index], catalyst.power)
        total = total + term

    r = area * total
    logger.debug(f"Rate of '{reaction.name}': {r.val:.6e} mol/s, Omega={Omega.val:.6e}")
    return r
