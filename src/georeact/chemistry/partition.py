"""Partition of the species of a chemical system into equilibrium, kinetic and inert
species.

Equilibrium species are governed by the Gibbs energy minimization, kinetic species by
rate laws, inert species keep their amounts.

"""

from __future__ import annotations

from typing import Optional, Sequence

import numpy as np

from .system import ChemicalSystem
from .utils import ChemicalModellingError

__all__ = ["Partition"]


class Partition:
    """Partition of the species of a system.

    Species can be given by name or index. Species not assigned to the kinetic or
    inert set are equilibrium species, unless ``equilibrium`` is given explicitly.

    Parameters:
        system: The chemical system.
        equilibrium: Equilibrium species.
        kinetic: Kinetic species.
        inert: Inert species.

    Raises:
        ChemicalModellingError: If the sets overlap or do not cover all species.

    """

    def __init__(
        self,
        system: ChemicalSystem,
        equilibrium: Optional[Sequence[str | int]] = None,
        kinetic: Optional[Sequence[str | int]] = None,
        inert: Optional[Sequence[str | int]] = None,
    ) -> None:
        self.system: ChemicalSystem = system
        N = system.num_species

        ik = self._to_indices(kinetic)
        ii = self._to_indices(inert)
        if equilibrium is None:
            ie = np.setdiff1d(np.arange(N), np.union1d(ik, ii))
        else:
            ie = self._to_indices(equilibrium)

        all_indices = np.concatenate([ie, ik, ii])
        if np.unique(all_indices).size != all_indices.size:
            raise ChemicalModellingError(
                "Equilibrium, kinetic and inert species must be disjoint."
            )
        if all_indices.size != N:
            raise ChemicalModellingError(
                "The partition does not cover all species of the system."
            )

        self._ie = ie
        self._ik = ik
        self._ii = ii
        for arr in (self._ie, self._ik, self._ii):
            arr.setflags(write=False)

    def _to_indices(self, species: Optional[Sequence[str | int]]) -> np.ndarray:
        if species is None:
            return np.zeros(0, dtype=int)
        idx = [
            self.system.index_species_or_raise(s) if isinstance(s, str) else int(s)
            for s in species
        ]
        return np.sort(np.array(idx, dtype=int))

    # --- index sets -----------------------------------------------------------------

    @property
    def indices_equilibrium_species(self) -> np.ndarray:
        return self._ie

    @property
    def indices_kinetic_species(self) -> np.ndarray:
        return self._ik

    @property
    def indices_inert_species(self) -> np.ndarray:
        return self._ii

    @property
    def indices_equilibrium_elements(self) -> np.ndarray:
        """Elements present in the equilibrium species."""
        return self.system.indices_elements_in_species(self._ie)

    @property
    def indices_kinetic_elements(self) -> np.ndarray:
        return self.system.indices_elements_in_species(self._ik)

    @property
    def indices_inert_elements(self) -> np.ndarray:
        return self.system.indices_elements_in_species(self._ii)

    @property
    def num_species(self) -> int:
        return self._ie.size + self._ik.size + self._ii.size

    @property
    def num_equilibrium_species(self) -> int:
        return self._ie.size

    @property
    def num_kinetic_species(self) -> int:
        return self._ik.size

    @property
    def num_inert_species(self) -> int:
        return self._ii.size

    @property
    def num_equilibrium_elements(self) -> int:
        return self.indices_equilibrium_elements.size

    def indices_phases_with_equilibrium_species(self) -> np.ndarray:
        return self.system.indices_phases_with_species(self._ie)

    def indices_phases_with_kinetic_species(self) -> np.ndarray:
        return self.system.indices_phases_with_species(self._ik)

    def indices_phases_with_inert_species(self) -> np.ndarray:
        return self.system.indices_phases_with_species(self._ii)

    # --- slicing --------------------------------------------------------------------

    def equilibrium_rows(self, vec: np.ndarray) -> np.ndarray:
        return np.asarray(vec)[self._ie]

    def kinetic_rows(self, vec: np.ndarray) -> np.ndarray:
        return np.asarray(vec)[self._ik]

    def inert_rows(self, vec: np.ndarray) -> np.ndarray:
        return np.asarray(vec)[self._ii]

    def equilibrium_cols(self, mat: np.ndarray) -> np.ndarray:
        return np.asarray(mat)[:, self._ie]

    def kinetic_cols(self, mat: np.ndarray) -> np.ndarray:
        return np.asarray(mat)[:, self._ik]

    def inert_cols(self, mat: np.ndarray) -> np.ndarray:
        return np.asarray(mat)[:, self._ii]

    def equilibrium_rows_cols(self, mat: np.ndarray) -> np.ndarray:
        return np.asarray(mat)[np.ix_(self._ie, self._ie)]

    def kinetic_rows_cols(self, mat: np.ndarray) -> np.ndarray:
        return np.asarray(mat)[np.ix_(self._ik, self._ik)]

    def inert_rows_cols(self, mat: np.ndarray) -> np.ndarray:
        return np.asarray(mat)[np.ix_(self._ii, self._ii)]

    def equilibrium_formula_matrix(self, W: Optional[np.ndarray] = None) -> np.ndarray:
        """Rows of the equilibrium elements and columns of the equilibrium species of
        the formula matrix (of the system by default)."""
        W = self.system.formula_matrix if W is None else np.asarray(W)
        return W[np.ix_(self.indices_equilibrium_elements, self._ie)]

    def kinetic_formula_matrix(self, W: Optional[np.ndarray] = None) -> np.ndarray:
        W = self.system.formula_matrix if W is None else np.asarray(W)
        return W[np.ix_(self.indices_kinetic_elements, self._ik)]

    def inert_formula_matrix(self, W: Optional[np.ndarray] = None) -> np.ndarray:
        W = self.system.formula_matrix if W is None else np.asarray(W)
        return W[np.ix_(self.indices_inert_elements, self._ii)]

    def __repr__(self) -> str:
        names = self.system.species_names
        return (
            f"Partition(equilibrium={[names[i] for i in self._ie]},"
            + f" kinetic={[names[i] for i in self._ik]},"
            + f" inert={[names[i] for i in self._ii]})"
        )
