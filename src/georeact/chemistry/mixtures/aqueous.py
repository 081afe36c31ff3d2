"""Aqueous mixtures: water as solvent with neutral and charged solutes.

Concentrations of solutes are expressed as molalities ``m_i = n_i / (M_w n_w)``
(``mol / kg`` of water). Neutral species are further considered aqueous complexes,
which dissociate into ions. This gives the stoichiometric molalities of ions

.. math::

    m^s_j = m_j + \\sum_i \\nu_{ij} m_i,

where :math:`\\nu_{ij}` is the number of ions ``j`` produced by the dissociation of
complex ``i`` (the dissociation matrix). The effective ionic strength is based on the
molalities of the ions, the stoichiometric ionic strength on their stoichiometric
molalities.

"""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from typing import Sequence

import numpy as np

from .._core import WATER_MOLAR_MASS
from ..species import Species
from ..states import ChemicalScalar, ChemicalVector
from ..utils import ChemicalModellingError, index_of
from .general import GeneralMixture, MixtureState

__all__ = ["AqueousMixture", "AqueousMixtureState", "WATER_NAMES"]


WATER_NAMES: tuple[str, ...] = ("H2O(l)", "H2O", "H2O(aq)")
"""Names under which the solvent water is recognized in an aqueous mixture."""

_MAX_DISSOCIATION_COEFFICIENT = 4


@dataclass(eq=False)
class AqueousMixtureState(MixtureState):
    """State of an aqueous mixture, extending the molar fractions by molalities and
    ionic strengths."""

    Ie: ChemicalScalar = field(default_factory=ChemicalScalar)
    """Effective ionic strength ``[mol / kg]``."""

    Is: ChemicalScalar = field(default_factory=ChemicalScalar)
    """Stoichiometric ionic strength ``[mol / kg]``."""

    m: ChemicalVector = field(default_factory=ChemicalVector)
    """Molalities of all species ``[mol / kg]``. The entry of water is ``1 / M_w``."""

    ms: ChemicalVector = field(default_factory=ChemicalVector)
    """Stoichiometric molalities of the charged species ``[mol / kg]``."""


class AqueousMixture(GeneralMixture):
    """A mixture of aqueous species, one of which is water.

    Species are classified once at construction into neutral species (charge zero,
    including water), charged species, cations and anions. All index lookups of a
    category return the number of species of the category if the name is not found.

    Raises:
        ChemicalModellingError: If no species is recognized as water
            (see :data:`WATER_NAMES`).

    """

    def __init__(self, species: Sequence[Species]) -> None:
        super().__init__(species)

        self._idx_water = len(self._names)
        for name in WATER_NAMES:
            self._idx_water = index_of(self._names, name)
            if self._idx_water < len(self._names):
                break
        if self._idx_water == len(self._names):
            raise ChemicalModellingError(
                f"Aqueous mixture requires water (one of {WATER_NAMES})."
            )

        z = self._charges
        self._idx_neutral = np.flatnonzero(z == 0.0)
        self._idx_charged = np.flatnonzero(z != 0.0)
        self._idx_cations = np.flatnonzero(z > 0.0)
        self._idx_anions = np.flatnonzero(z < 0.0)

        self._dissociation_matrix = self._compute_dissociation_matrix()

    # --- classification -------------------------------------------------------------

    def index_water(self) -> int:
        """Index of water in the mixture."""
        return self._idx_water

    @property
    def num_neutral_species(self) -> int:
        return self._idx_neutral.size

    @property
    def num_charged_species(self) -> int:
        return self._idx_charged.size

    @property
    def num_cations(self) -> int:
        return self._idx_cations.size

    @property
    def num_anions(self) -> int:
        return self._idx_anions.size

    @property
    def indices_neutral_species(self) -> np.ndarray:
        """Indices of neutral species in the mixture."""
        return self._idx_neutral.copy()

    @property
    def indices_charged_species(self) -> np.ndarray:
        """Indices of charged species in the mixture."""
        return self._idx_charged.copy()

    @property
    def indices_cations(self) -> np.ndarray:
        return self._idx_cations.copy()

    @property
    def indices_anions(self) -> np.ndarray:
        return self._idx_anions.copy()

    def _names_of(self, idx: np.ndarray) -> list[str]:
        return [self._names[i] for i in idx]

    def names_neutral_species(self) -> list[str]:
        return self._names_of(self._idx_neutral)

    def names_charged_species(self) -> list[str]:
        return self._names_of(self._idx_charged)

    def names_cations(self) -> list[str]:
        return self._names_of(self._idx_cations)

    def names_anions(self) -> list[str]:
        return self._names_of(self._idx_anions)

    def charges_charged_species(self) -> np.ndarray:
        return self._charges[self._idx_charged]

    def charges_cations(self) -> np.ndarray:
        return self._charges[self._idx_cations]

    def charges_anions(self) -> np.ndarray:
        return self._charges[self._idx_anions]

    def index_neutral_species(self, name: str) -> int:
        """Index of a neutral species among the neutral species, or
        :attr:`num_neutral_species` if not found."""
        return index_of(self.names_neutral_species(), name)

    def index_neutral_species_any(self, names: Sequence[str]) -> int:
        """Index of the first of ``names`` found among the neutral species, or
        :attr:`num_neutral_species` if none is found."""
        return _index_any(self.names_neutral_species(), names)

    def index_charged_species(self, name: str) -> int:
        return index_of(self.names_charged_species(), name)

    def index_charged_species_any(self, names: Sequence[str]) -> int:
        return _index_any(self.names_charged_species(), names)

    def index_cation(self, name: str) -> int:
        return index_of(self.names_cations(), name)

    def index_anion(self, name: str) -> int:
        return index_of(self.names_anions(), name)

    def dissociation_matrix(self) -> np.ndarray:
        """Dissociation matrix with ``shape=(num_neutral_species,
        num_charged_species)``.

        Entry ``(i, j)`` is the number of ions ``j`` produced by dissociating one unit
        of the neutral complex ``i``. Rows of neutral species which do not dissociate
        (e.g. water) are zero.

        """
        return self._dissociation_matrix.copy()

    def _compute_dissociation_matrix(self) -> np.ndarray:
        D = np.zeros((self.num_neutral_species, self.num_charged_species))
        charged_names = self.names_charged_species()
        for row, i in enumerate(self._idx_neutral):
            if i == self._idx_water:
                continue
            complex_ = self._species[i]
            if complex_.dissociation:
                for ion, coeff in complex_.dissociation.items():
                    col = index_of(charged_names, ion)
                    if col < len(charged_names):
                        D[row, col] = coeff
            else:
                pair = self._infer_dissociation(complex_)
                if pair is not None:
                    for col, coeff in pair:
                        D[row, col] = coeff
        return D

    def _infer_dissociation(self, complex_: Species):
        """Searches a cation-anion pair with small integer coefficients whose
        formulas and charges add up to the complex."""
        elements = set(complex_.formula)
        for ic, ia in itertools.product(self._idx_cations, self._idx_anions):
            cation = self._species[ic]
            anion = self._species[ia]
            if not (set(cation.formula) | set(anion.formula)) == elements:
                continue
            for nc, na in itertools.product(
                range(1, _MAX_DISSOCIATION_COEFFICIENT + 1), repeat=2
            ):
                if nc * cation.charge + na * anion.charge != complex_.charge:
                    continue
                balanced = all(
                    abs(
                        nc * cation.formula.get(e, 0.0)
                        + na * anion.formula.get(e, 0.0)
                        - complex_.formula.get(e, 0.0)
                    )
                    < 1e-12
                    for e in elements
                )
                if balanced:
                    col_c = int(np.flatnonzero(self._idx_charged == ic)[0])
                    col_a = int(np.flatnonzero(self._idx_charged == ia)[0])
                    return [(col_c, float(nc)), (col_a, float(na))]
        return None

    # --- concentrations -------------------------------------------------------------

    def molalities(self, n: np.ndarray) -> ChemicalVector:
        """Molalities ``m_i = n_i / (M_w n_w)`` of all species and their derivatives
        with respect to the amounts in the mixture.

        If the amount of water is zero, all molalities are zero.

        """
        self._check_amounts(n)
        n = np.asarray(n, dtype=float)
        k = self.num_species
        iw = self._idx_water
        nw = n[iw]
        if nw == 0.0:
            return ChemicalVector.zeros(k, k)
        kgw = WATER_MOLAR_MASS * nw
        m = n / kgw
        ddn = np.eye(k) / kgw
        ddn[:, iw] -= m / nw
        return ChemicalVector(m, np.zeros(k), np.zeros(k), ddn)

    def stoichiometric_molalities(self, m: ChemicalVector) -> ChemicalVector:
        """Stoichiometric molalities of the charged species, accounting for the ions
        bound in neutral complexes."""
        D = self._dissociation_matrix
        return m[self._idx_charged] + D.T @ m[self._idx_neutral]

    def effective_ionic_strength(self, m: ChemicalVector) -> ChemicalScalar:
        """``I = 1/2 sum_j z_j^2 m_j`` over the charged species."""
        z = self.charges_charged_species()
        return 0.5 * ((z**2) @ m[self._idx_charged])

    def stoichiometric_ionic_strength(self, ms: ChemicalVector) -> ChemicalScalar:
        """``I_s = 1/2 sum_j z_j^2 m^s_j`` with the stoichiometric molalities."""
        z = self.charges_charged_species()
        return 0.5 * ((z**2) @ ms)

    def state(self, T: float, P: float, n: np.ndarray) -> AqueousMixtureState:
        """State of the aqueous mixture at ``(T, P, n)``.

        The result depends only on the inputs, repeated calls give identical results.

        """
        x = self.molar_fractions(n)
        m = self.molalities(n)
        ms = self.stoichiometric_molalities(m)
        return AqueousMixtureState(
            T=T,
            P=P,
            x=x,
            Ie=self.effective_ionic_strength(m),
            Is=self.stoichiometric_ionic_strength(ms),
            m=m,
            ms=ms,
        )


def _index_any(names: list[str], candidates: Sequence[str]) -> int:
    for name in candidates:
        i = index_of(names, name)
        if i < len(names):
            return i
    return len(names)
