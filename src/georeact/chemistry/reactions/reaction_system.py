"""A collection of reactions in a chemical system, e.g. the kinetic reactions of a
kinetic problem."""

from __future__ import annotations

from typing import Sequence

import numpy as np

from ..states import ChemicalVector, ThermoVector
from ..system import ChemicalSystem
from .reaction import Reaction

__all__ = ["ReactionSystem"]


class ReactionSystem:
    """Reactions among the species of a chemical system.

    Parameters:
        system: The chemical system.
        reactions: The reactions.

    """

    def __init__(self, system: ChemicalSystem, reactions: Sequence[Reaction]) -> None:
        self.system: ChemicalSystem = system
        self.reactions: tuple[Reaction, ...] = tuple(reactions)

        nu = np.zeros((len(self.reactions), system.num_species))
        for j, reaction in enumerate(self.reactions):
            nu[j, reaction.indices] = reaction.stoichiometries
        nu.setflags(write=False)
        self._stoichiometric_matrix = nu

    @property
    def num_reactions(self) -> int:
        return len(self.reactions)

    @property
    def stoichiometric_matrix(self) -> np.ndarray:
        """Matrix ``nu`` with ``shape=(num_reactions, num_species)``, such that
        ``dn/dt = nu^T r``."""
        return self._stoichiometric_matrix

    def equilibrium_constants(self, T: float, P: float) -> ThermoVector:
        return ThermoVector.from_scalars(
            [r.equilibrium_constant(T, P) for r in self.reactions]
        )

    def rates(
        self, T: float, P: float, n: np.ndarray, a: ChemicalVector
    ) -> ChemicalVector:
        """Rates of all reactions in ``[mol / s]``, with derivatives with respect to
        ``T``, ``P`` and all species amounts."""
        N = self.system.num_species
        r = ChemicalVector.zeros(self.num_reactions, N)
        for j, reaction in enumerate(self.reactions):
            r.set_row(j, reaction.rate(T, P, n, a))
        return r
