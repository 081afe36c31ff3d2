"""Thermodynamic properties of a chemical system at a given state.

All properties are evaluated lazily and cached, since solvers usually require only a
subset of them (e.g. the Gibbs minimization requires chemical potentials only).

"""

from __future__ import annotations

from functools import cached_property
from typing import TYPE_CHECKING

import numpy as np

from ._core import LN10, R_IDEAL_MOL
from .states import ChemicalVector, ThermoScalar, ThermoVector, exp

if TYPE_CHECKING:
    from .system import ChemicalSystem

__all__ = ["ChemicalProperties"]


class ChemicalProperties:
    """Properties of a :class:`~georeact.chemistry.system.ChemicalSystem` at
    temperature ``T``, pressure ``P`` and species amounts ``n``.

    Vector quantities of species are ordered as the species of the system, vector
    quantities of phases as the phases. Derivatives ``ddn`` are with respect to the
    amounts of all species.

    """

    def __init__(self, system: ChemicalSystem, T: float, P: float, n: np.ndarray):
        n = np.asarray(n, dtype=float)
        if n.shape != (system.num_species,):
            raise ValueError(
                f"Expecting {system.num_species} species amounts, got shape {n.shape}."
            )
        self.system: ChemicalSystem = system
        self.T: float = float(T)
        self.P: float = float(P)
        self.n: np.ndarray = n.copy()

    @cached_property
    def standard_gibbs_energies(self) -> ThermoVector:
        """Standard chemical potentials ``mu0`` in ``[J / mol]``."""
        return self.system.standard_gibbs_energies(self.T, self.P)

    @cached_property
    def standard_volumes(self) -> ThermoVector:
        """Standard molar volumes in ``[m^3 / mol]``."""
        return self.system.standard_volumes(self.T, self.P)

    @cached_property
    def ln_activities(self) -> ChemicalVector:
        return self.system.ln_activities(self.T, self.P, self.n)

    @cached_property
    def activities(self) -> ChemicalVector:
        return exp(self.ln_activities)

    @cached_property
    def chemical_potentials(self) -> ChemicalVector:
        """Chemical potentials ``mu = mu0 + R T ln a`` in ``[J / mol]``."""
        RT = R_IDEAL_MOL * ThermoScalar.temperature(self.T)
        return self.standard_gibbs_energies + RT * self.ln_activities

    @cached_property
    def phase_amounts(self) -> ChemicalVector:
        """Total amounts of species in each phase ``[mol]``."""
        return self._phase_sums(np.ones(self.system.num_species))

    @cached_property
    def phase_masses(self) -> ChemicalVector:
        """Masses of the phases ``[kg]``."""
        return self._phase_sums(self.system.molar_masses)

    @cached_property
    def phase_volumes(self) -> ChemicalVector:
        """Volumes of the phases ``V_p = sum_i n_i V0_i(T, P)`` in ``[m^3]``."""
        v = self.standard_volumes
        N = self.system.num_species
        slices = self.system.phase_slices
        val = np.array([self.n[s] @ v.val[s] for s in slices])
        ddT = np.array([self.n[s] @ v.ddT[s] for s in slices])
        ddP = np.array([self.n[s] @ v.ddP[s] for s in slices])
        ddn = np.zeros((len(slices), N))
        for k, s in enumerate(slices):
            ddn[k, s] = v.val[s]
        return ChemicalVector(val, ddT, ddP, ddn)

    @cached_property
    def phase_densities(self) -> ChemicalVector:
        """Mass densities of the phases ``[kg / m^3]``."""
        return self.phase_masses / self.phase_volumes

    def ph(self) -> float:
        """The pH ``-log10 a(H+)``, or ``nan`` if ``H+`` is not in the system."""
        i = self.system.index_species("H+")
        if i == self.system.num_species:
            return float("nan")
        return float(-self.ln_activities.val[i] / LN10)

    def _phase_sums(self, weights: np.ndarray) -> ChemicalVector:
        N = self.system.num_species
        slices = self.system.phase_slices
        val = np.array([self.n[s] @ weights[s] for s in slices])
        ddn = np.zeros((len(slices), N))
        for k, s in enumerate(slices):
            ddn[k, s] = weights[s]
        zeros = np.zeros(len(slices))
        return ChemicalVector(val, zeros, zeros.copy(), ddn)
