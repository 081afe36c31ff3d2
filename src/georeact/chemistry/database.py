"""A small built-in database of species with standard data at 25 C and 1 bar.

The database plays the role of the external data provider: it maps species names to
:class:`~georeact.chemistry.species.Species` with a standard thermodynamic model.
Standard Gibbs energies of formation are in ``[J / mol]``, entropies and heat
capacities in ``[J / mol K]``, volumes in ``[m^3 / mol]``.

Example:

    .. code-block:: python

        import georeact as gr

        db = gr.Database()
        aqueous = gr.Phase.aqueous(db.species_list(["H2O(l)", "H+", "OH-"]))
        system = gr.ChemicalSystem([aqueous])

"""

from __future__ import annotations

from typing import Iterable, Optional

from ._core import PhysicalState
from .elements import parse_formula
from .species import Species
from .thermo_models import ConstantHeatCapacityModel, IdealGasModel, WaterEosModel
from .utils import SpeciesNotFoundError

__all__ = ["Database", "load_species"]


# name, formula, charge, physical state, G0, S0, Cp, V0
_Entry = tuple[str, str, float, PhysicalState, float, float, float, float]
_STANDARD_DATA: list[_Entry] = [
    ("H+", "H", 1, PhysicalState.aqueous, 0.0, 0.0, 0.0, 0.0),
    ("OH-", "OH", -1, PhysicalState.aqueous, -157244.0, -10.75, -148.5, 0.0),
    ("Na+", "Na", 1, PhysicalState.aqueous, -261905.0, 59.0, 46.4, 0.0),
    ("Cl-", "Cl", -1, PhysicalState.aqueous, -131228.0, 56.5, -136.4, 0.0),
    ("NaCl(aq)", "NaCl", 0, PhysicalState.aqueous, -388735.0, 115.5, 0.0, 0.0),
    ("Ca+2", "Ca", 2, PhysicalState.aqueous, -553580.0, -53.1, 0.0, 0.0),
    ("CO3-2", "CO3", -2, PhysicalState.aqueous, -527810.0, -56.9, 0.0, 0.0),
    ("HCO3-", "HCO3", -1, PhysicalState.aqueous, -586770.0, 91.2, 0.0, 0.0),
    ("CO2(aq)", "CO2", 0, PhysicalState.aqueous, -385980.0, 117.6, 0.0, 0.0),
    ("CaCO3(aq)", "CaCO3", 0, PhysicalState.aqueous, -1099760.0, 0.0, 0.0, 0.0),
    ("CO2(g)", "CO2", 0, PhysicalState.gaseous, -394360.0, 213.74, 37.11, 0.0),
    ("H2O(g)", "H2O", 0, PhysicalState.gaseous, -228570.0, 188.83, 33.58, 0.0),
    ("N2(g)", "N2", 0, PhysicalState.gaseous, 0.0, 191.6, 29.12, 0.0),
    ("O2(g)", "O2", 0, PhysicalState.gaseous, 0.0, 205.15, 29.38, 0.0),
    ("H2(g)", "H2", 0, PhysicalState.gaseous, 0.0, 130.68, 28.84, 0.0),
    ("Calcite", "CaCO3", 0, PhysicalState.mineral, -1128800.0, 92.9, 83.47, 36.93e-6),
    ("Aragonite", "CaCO3", 0, PhysicalState.mineral, -1127793.0, 88.0, 82.3, 34.15e-6),
    ("Halite", "NaCl", 0, PhysicalState.mineral, -384140.0, 72.13, 50.5, 27.02e-6),
]


class Database:
    """Built-in species database.

    Parameters:
        water_model: Name of the water equation of state used for the standard model
            of liquid water ``H2O(l)``.

    """

    def __init__(self, water_model: str = "wagner-pruss") -> None:
        self._species: dict[str, Species] = {}
        self._states: dict[str, PhysicalState] = {}

        model = WaterEosModel(model=water_model)
        water = Species("H2O(l)", parse_formula("H2O"), model)
        self.add_species(water, PhysicalState.aqueous)

        for name, formula, charge, state, G0, S0, Cp, V0 in _STANDARD_DATA:
            if state == PhysicalState.gaseous:
                thermo = IdealGasModel(G0, S0, Cp)
            else:
                thermo = ConstantHeatCapacityModel(G0, S0, Cp, V0)
            self.add_species(
                Species(name, parse_formula(formula), thermo, float(charge)), state
            )

    def add_species(self, species: Species, state: PhysicalState) -> None:
        """Adds or replaces a species."""
        self._species[species.name] = species
        self._states[species.name] = state

    def species(self, name: str) -> Species:
        """Returns the species with the given name.

        Raises:
            SpeciesNotFoundError: If the name is not in the database.

        """
        try:
            return self._species[name]
        except KeyError as err:
            raise SpeciesNotFoundError(
                f"Species '{name}' not found in the database."
            ) from err

    def species_list(self, names: Iterable[str]) -> list[Species]:
        return [self.species(name) for name in names]

    def physical_state(self, name: str) -> PhysicalState:
        self.species(name)
        return self._states[name]

    def names(self, state: Optional[PhysicalState] = None) -> list[str]:
        """Names of all species, or of the species in a physical state."""
        return [n for n, s in self._states.items() if state is None or s == state]

    def species_with_elements(
        self, elements: Iterable[str], state: Optional[PhysicalState] = None
    ) -> list[Species]:
        """Species composed only of the given elements."""
        allowed = set(elements)
        return [
            self._species[n]
            for n in self.names(state)
            if set(self._species[n].elements) <= allowed
        ]

    def __contains__(self, name: str) -> bool:
        return name in self._species


def load_species(
    names: list[str], database: Optional[Database] = None
) -> list[Species]:
    """Creates the species identified by ``names`` in the ``database`` (the built-in
    database by default).

    Raises:
        SpeciesNotFoundError: If a name is not in the database.

    """
    database = Database() if database is None else database
    return database.species_list(names)
