"""Phases and chemical systems.

A :class:`ChemicalSystem` is the read-only topology of a chemical problem: the ordered
phases, the flat list of their species, the elements and the formula matrix. It is
shared by all states, solvers and problems built on it.

Species are ordered phase by phase, in the order the phases are given. Elements are
sorted alphabetically, followed by the charge pseudo element ``Z`` if any species is
charged.

"""

from __future__ import annotations

import logging
from typing import Callable, Sequence

import numpy as np

from ._core import PhysicalState
from .elements import CHARGE_ELEMENT
from .mixtures import (
    ACTIVITY_MODELS,
    AqueousMixture,
    GaseousMixture,
    GeneralMixture,
    MineralMixture,
    gaseous_activity_ideal,
    mineral_activity_ideal,
)
from .properties import ChemicalProperties
from .species import Species
from .states import ChemicalVector, ThermoVector
from .utils import ChemicalModellingError, SpeciesNotFoundError, index_of

__all__ = ["Phase", "ChemicalSystem"]

logger = logging.getLogger(__name__)


class Phase:
    """A phase: a mixture of species in a physical state, with an activity model.

    Use the factory methods :meth:`aqueous`, :meth:`gaseous` and :meth:`mineral` to
    create phases with the default models.

    Parameters:
        name: Unique name of the phase in a system.
        mixture: The mixture of species of the phase.
        state: The physical state.
        activity_model: A callable mapping the state of ``mixture`` to the logarithm
            of activities of its species.

    """

    def __init__(
        self,
        name: str,
        mixture: GeneralMixture,
        state: PhysicalState,
        activity_model: Callable[..., ChemicalVector],
    ) -> None:
        self.name: str = str(name)
        self.mixture: GeneralMixture = mixture
        self.state: PhysicalState = state
        self._activity_model = activity_model

    @classmethod
    def aqueous(
        cls,
        species: Sequence[Species],
        activity_model: str = "debye-huckel",
        name: str = "Aqueous",
    ) -> Phase:
        """Aqueous phase with an ``"ideal"`` or ``"debye-huckel"`` activity model."""
        mixture = AqueousMixture(species)
        if activity_model not in ACTIVITY_MODELS:
            raise ChemicalModellingError(
                f"Unknown aqueous activity model '{activity_model}'."
            )
        model = ACTIVITY_MODELS[activity_model](mixture)
        return cls(name, mixture, PhysicalState.aqueous, model)

    @classmethod
    def gaseous(cls, species: Sequence[Species], name: str = "Gaseous") -> Phase:
        """Ideal gas phase."""
        mixture = GaseousMixture(species)
        activity = gaseous_activity_ideal(mixture)
        return cls(name, mixture, PhysicalState.gaseous, activity)

    @classmethod
    def mineral(cls, species: Sequence[Species] | Species, name: str = "") -> Phase:
        """Mineral phase, a pure mineral if a single species is given. The name
        defaults to the name of the (first) species."""
        if isinstance(species, Species):
            species = [species]
        mixture = MineralMixture(species)
        return cls(
            name or species[0].name,
            mixture,
            PhysicalState.mineral,
            mineral_activity_ideal(mixture),
        )

    @property
    def species(self) -> tuple[Species, ...]:
        return self.mixture.species

    @property
    def num_species(self) -> int:
        return self.mixture.num_species

    @property
    def species_names(self) -> list[str]:
        return self.mixture.names

    def ln_activities(self, T: float, P: float, n: np.ndarray) -> ChemicalVector:
        """Logarithm of activities of the species in this phase, with derivatives
        with respect to the amounts ``n`` of the species in this phase."""
        return self._activity_model(self.mixture.state(T, P, n))

    def __repr__(self) -> str:
        return f"Phase({self.name!r}, {self.state.name}, {self.species_names})"


class ChemicalSystem:
    """A chemical system composed of phases.

    Parameters:
        phases: The phases. Phase names and species names must be unique.

    Raises:
        ChemicalModellingError: If names are not unique or no phase is given.

    """

    def __init__(self, phases: Sequence[Phase]) -> None:
        if len(phases) == 0:
            raise ChemicalModellingError("A chemical system requires at least a phase.")

        self._phases: tuple[Phase, ...] = tuple(phases)
        self._species: tuple[Species, ...] = tuple(
            s for phase in self._phases for s in phase.species
        )

        phase_names = [p.name for p in self._phases]
        if len(set(phase_names)) != len(phase_names):
            raise ChemicalModellingError(f"Phase names are not unique: {phase_names}")
        species_names = [s.name for s in self._species]
        if len(set(species_names)) != len(species_names):
            raise ChemicalModellingError(
                f"Species names are not unique: {species_names}"
            )
        self._phase_names = phase_names
        self._species_names = species_names

        elements = sorted({e for s in self._species for e in s.elements})
        if any(s.charge != 0.0 for s in self._species):
            elements.append(CHARGE_ELEMENT)
        self._element_names: list[str] = elements

        W = np.zeros((len(elements), len(self._species)))
        for j, s in enumerate(self._species):
            for e, coeff in s.formula.items():
                if coeff != 0.0:
                    W[elements.index(e), j] = coeff
            if CHARGE_ELEMENT in elements:
                W[-1, j] = s.charge
        self._formula_matrix = W
        self._formula_matrix.setflags(write=False)

        self._phase_slices: list[slice] = []
        offset = 0
        for phase in self._phases:
            self._phase_slices.append(slice(offset, offset + phase.num_species))
            offset += phase.num_species

        self._species_phase = np.concatenate(
            [np.full(p.num_species, k, dtype=int) for k, p in enumerate(self._phases)]
        )
        self._molar_masses = np.array([s.molar_mass for s in self._species])

        logger.debug(
            f"Created chemical system with {self.num_phases} phases,"
            + f" {self.num_species} species and elements {self._element_names}."
        )

    # --- topology -------------------------------------------------------------------

    @property
    def phases(self) -> tuple[Phase, ...]:
        return self._phases

    @property
    def species(self) -> tuple[Species, ...]:
        return self._species

    @property
    def num_phases(self) -> int:
        return len(self._phases)

    @property
    def num_species(self) -> int:
        return len(self._species)

    @property
    def num_elements(self) -> int:
        return len(self._element_names)

    @property
    def species_names(self) -> list[str]:
        return list(self._species_names)

    @property
    def phase_names(self) -> list[str]:
        return list(self._phase_names)

    @property
    def element_names(self) -> list[str]:
        return list(self._element_names)

    @property
    def formula_matrix(self) -> np.ndarray:
        """Formula matrix ``W`` with ``shape=(num_elements, num_species)``. Entry
        ``(e, i)`` is the coefficient of element ``e`` in species ``i``; the charge row
        (if any) holds the charges."""
        return self._formula_matrix

    @property
    def molar_masses(self) -> np.ndarray:
        """Molar masses of the species in ``[kg / mol]``."""
        return self._molar_masses.copy()

    @property
    def phase_slices(self) -> list[slice]:
        """Slices of the species of each phase in the flat species ordering."""
        return list(self._phase_slices)

    @property
    def charges(self) -> np.ndarray:
        return np.array([s.charge for s in self._species], dtype=float)

    # --- lookups --------------------------------------------------------------------

    def index_species(self, name: str) -> int:
        """Index of a species, or :attr:`num_species` if not found."""
        return index_of(self._species_names, name)

    def index_species_or_raise(self, name: str) -> int:
        """Index of a species.

        Raises:
            SpeciesNotFoundError: If the species is not in the system.

        """
        i = self.index_species(name)
        if i == self.num_species:
            raise SpeciesNotFoundError(f"Species '{name}' not found in system.")
        return i

    def species_by_name(self, name: str) -> Species:
        return self._species[self.index_species_or_raise(name)]

    def index_phase(self, name: str) -> int:
        """Index of a phase, or :attr:`num_phases` if not found."""
        return index_of(self._phase_names, name)

    def index_phase_or_raise(self, name: str) -> int:
        i = self.index_phase(name)
        if i == self.num_phases:
            raise SpeciesNotFoundError(f"Phase '{name}' not found in system.")
        return i

    def phase(self, name: str) -> Phase:
        return self._phases[self.index_phase_or_raise(name)]

    def index_element(self, name: str) -> int:
        """Index of an element, or :attr:`num_elements` if not found."""
        return index_of(self._element_names, name)

    def index_phase_with_species(self, index: int) -> int:
        """Index of the phase containing the species with the given index."""
        return int(self._species_phase[index])

    def indices_phases_with_species(self, indices: Sequence[int]) -> np.ndarray:
        """Sorted indices of phases containing any of the given species."""
        return np.unique(self._species_phase[np.asarray(indices, dtype=int)])

    def indices_elements_in_species(self, indices: Sequence[int]) -> np.ndarray:
        """Sorted indices of elements present in any of the given species (including
        the charge row if any of them is charged)."""
        idx = np.asarray(indices, dtype=int)
        if idx.size == 0:
            return np.zeros(0, dtype=int)
        return np.flatnonzero(np.any(self._formula_matrix[:, idx] != 0.0, axis=1))

    # --- thermodynamics -------------------------------------------------------------

    def standard_gibbs_energies(self, T: float, P: float) -> ThermoVector:
        """Standard chemical potentials of all species in ``[J / mol]``."""
        return ThermoVector.from_scalars(
            [s.standard_gibbs_energy(T, P) for s in self._species]
        )

    def standard_volumes(self, T: float, P: float) -> ThermoVector:
        """Standard molar volumes of all species in ``[m^3 / mol]``."""
        return ThermoVector.from_scalars(
            [s.standard_volume(T, P) for s in self._species]
        )

    def ln_activities(self, T: float, P: float, n: np.ndarray) -> ChemicalVector:
        """Logarithm of activities of all species, with derivatives with respect to
        all species amounts (block diagonal by phase)."""
        n = np.asarray(n, dtype=float)
        if n.shape != (self.num_species,):
            raise ValueError(
                f"Expecting {self.num_species} species amounts, got shape {n.shape}."
            )
        ln_a = ChemicalVector.zeros(self.num_species, self.num_species)
        for phase, s in zip(self._phases, self._phase_slices):
            ln_a_p = phase.ln_activities(T, P, n[s])
            ln_a.val[s] = ln_a_p.val
            ln_a.ddT[s] = ln_a_p.ddT
            ln_a.ddP[s] = ln_a_p.ddP
            ln_a.ddn[s, s] = ln_a_p.ddn
        return ln_a

    def element_amounts(self, n: np.ndarray) -> np.ndarray:
        """Amounts of elements ``W n``."""
        return self._formula_matrix @ np.asarray(n, dtype=float)

    def properties(self, T: float, P: float, n: np.ndarray) -> ChemicalProperties:
        """Thermodynamic properties of the system at ``(T, P, n)``."""
        return ChemicalProperties(self, T, P, n)

    def __repr__(self) -> str:
        phases = ", ".join(repr(p) for p in self._phases)
        return f"ChemicalSystem([{phases}])"
