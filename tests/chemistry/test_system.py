"""Tests of formulas, the species database, chemical systems and partitions."""

from __future__ import annotations

import numpy as np
import pytest

import georeact as gr


@pytest.fixture(scope="module")
def system() -> gr.ChemicalSystem:
    db = gr.Database()
    aqueous = gr.Phase.aqueous(
        db.species_list(["H2O(l)", "H+", "OH-", "Ca+2", "HCO3-", "CO2(aq)"])
    )
    gaseous = gr.Phase.gaseous(db.species_list(["CO2(g)"]))
    calcite = gr.Phase.mineral(db.species("Calcite"))
    return gr.ChemicalSystem([aqueous, gaseous, calcite])


@pytest.mark.parametrize(
    "formula, expected",
    [
        ("CaCO3", {"Ca": 1, "C": 1, "O": 3}),
        ("Ca(HCO3)2", {"Ca": 1, "H": 2, "C": 2, "O": 6}),
        ("H2O", {"H": 2, "O": 1}),
        ("Fe0.5Mg0.5", {"Fe": 0.5, "Mg": 0.5}),
    ],
)
def test_parse_formula(formula: str, expected: dict):
    parsed = gr.parse_formula(formula)
    assert set(parsed) == set(expected)
    for element, coeff in expected.items():
        assert np.isclose(parsed[element], coeff)


@pytest.mark.parametrize("formula", ["", "Ca(CO3", "CaCO3)", "Xx2", "h2o"])
def test_parse_invalid_formula(formula: str):
    with pytest.raises(gr.ChemicalModellingError):
        gr.parse_formula(formula)


def test_molar_mass():
    assert np.isclose(gr.molar_mass("H2O"), 18.01528e-3, rtol=1e-5)
    assert np.isclose(gr.molar_mass({"Ca": 1, "C": 1, "O": 3}), 100.0869e-3, rtol=1e-5)


def test_database():
    db = gr.Database()
    assert "Calcite" in db
    assert "Unobtainium" not in db
    with pytest.raises(gr.SpeciesNotFoundError):
        db.species("Unobtainium")
    # not found errors are also key errors
    with pytest.raises(KeyError):
        gr.load_species(["H2O(l)", "Unobtainium"])

    assert db.physical_state("CO2(g)") == gr.PhysicalState.gaseous
    minerals = db.names(gr.PhysicalState.mineral)
    assert {"Calcite", "Aragonite", "Halite"} <= set(minerals)

    names = [s.name for s in db.species_with_elements(["H", "O"])]
    assert "H2O(l)" in names
    assert "OH-" in names
    assert "CO2(g)" not in names


def test_system_topology(system: gr.ChemicalSystem):
    assert system.num_phases == 3
    assert system.num_species == 8
    assert system.phase_names == ["Aqueous", "Gaseous", "Calcite"]
    # elements are sorted, the charge row comes last
    assert system.element_names == ["C", "Ca", "H", "O", gr.CHARGE_ELEMENT]

    W = system.formula_matrix
    assert W.shape == (5, 8)
    i = system.index_species("HCO3-")
    assert np.allclose(W[:, i], [1, 0, 1, 3, -1])
    assert np.allclose(W[-1], system.charges)
    with pytest.raises(ValueError):
        W[0, 0] = 1.0

    assert system.index_species("Halite") == system.num_species
    with pytest.raises(gr.SpeciesNotFoundError):
        system.index_species_or_raise("Halite")
    assert system.species_by_name("Calcite").name == "Calcite"
    assert system.phase("Gaseous").num_species == 1

    assert system.index_phase_with_species(system.index_species("CO2(g)")) == 1
    assert np.array_equal(system.indices_phases_with_species([0, 7]), [0, 2])
    # Ca+2 contains Ca and charge
    assert np.array_equal(system.indices_elements_in_species([3]), [1, 4])


def test_system_requires_unique_names():
    species = gr.load_species(["H2O(l)", "H+"])
    with pytest.raises(gr.ChemicalModellingError):
        gr.ChemicalSystem([gr.Phase.aqueous(species), gr.Phase.aqueous(species)])
    with pytest.raises(gr.ChemicalModellingError):
        gr.ChemicalSystem([])


def test_properties(system: gr.ChemicalSystem):
    n = np.array([55.508, 1e-7, 1e-7, 0.01, 0.02, 0.1, 0.5, 2.0])
    props = system.properties(298.15, 1e5, n)

    assert np.allclose(props.phase_amounts.val, [n[:6].sum(), 0.5, 2.0])
    masses = props.phase_masses.val
    assert np.isclose(masses[2], 2.0 * gr.molar_mass("CaCO3"))
    V = props.phase_volumes.val
    assert np.isclose(V[2], 2.0 * 36.93e-6)
    # ideal gas volume
    assert np.isclose(V[1], 0.5 * gr.R_IDEAL_MOL * 298.15 / 1e5, rtol=1e-6)
    assert np.allclose(props.phase_densities.val, masses / V)

    # mu = mu0 + RT ln a
    RT = gr.R_IDEAL_MOL * 298.15
    mu = props.chemical_potentials
    mu0 = props.standard_gibbs_energies
    assert np.allclose(mu.val, mu0.val + RT * props.ln_activities.val)
    assert np.allclose(mu.ddn, RT * props.ln_activities.ddn)

    # molality of H+ is about 1e-7 mol/kg, its activity coefficient is below one
    assert 7.0 < props.ph() < 7.2

    # derivatives are block diagonal by phase
    ln_a = props.ln_activities
    assert np.allclose(ln_a.ddn[:6, 6:], 0.0)
    assert np.allclose(ln_a.ddn[6, :6], 0.0)


def test_partition(system: gr.ChemicalSystem):
    partition = gr.Partition(system, kinetic=["Calcite"], inert=["CO2(g)"])
    assert np.array_equal(partition.indices_equilibrium_species, np.arange(6))
    assert np.array_equal(partition.indices_kinetic_species, [7])
    assert np.array_equal(partition.indices_inert_species, [6])
    assert partition.num_species == system.num_species
    assert partition.num_equilibrium_species == 6

    # the aqueous species contain all elements
    assert np.array_equal(partition.indices_equilibrium_elements, np.arange(5))
    assert np.array_equal(partition.indices_kinetic_elements, [0, 1, 3])
    assert np.array_equal(partition.indices_phases_with_kinetic_species(), [2])

    W = system.formula_matrix
    assert partition.equilibrium_formula_matrix().shape == (5, 6)
    assert np.allclose(partition.kinetic_cols(W), W[:, [7]])
    assert np.allclose(partition.inert_rows(np.arange(8.0)), [6.0])
    H = np.arange(64.0).reshape(8, 8)
    assert np.allclose(partition.kinetic_rows_cols(H), [[63.0]])

    # default partition: everything in equilibrium
    default = gr.Partition(system)
    assert default.num_equilibrium_species == system.num_species
    assert default.num_kinetic_species == 0


def test_invalid_partitions(system: gr.ChemicalSystem):
    with pytest.raises(gr.ChemicalModellingError):
        gr.Partition(system, kinetic=["Calcite"], inert=["Calcite"])
    with pytest.raises(gr.ChemicalModellingError):
        gr.Partition(system, equilibrium=["H2O(l)"], kinetic=["Calcite"])
    with pytest.raises(gr.SpeciesNotFoundError):
        gr.Partition(system, kinetic=["Halite"])


def test_state(system: gr.ChemicalSystem):
    state = gr.ChemicalState(system)
    assert state.n.shape == (8,)
    state.set_species_amount("Calcite", 1.5)
    state.set_species_amount(0, 55.0)
    assert state.species_amount("Calcite") == 1.5
    assert np.allclose(state.phase_amounts(), [55.0, 0.0, 1.5])
    assert np.allclose(state.element_amounts(), system.formula_matrix @ state.n)

    other = state.copy()
    other.n[0] = 1.0
    assert state.n[0] == 55.0
    with pytest.raises(ValueError):
        state.set_species_amounts(np.ones(3))
    with pytest.raises(gr.SpeciesNotFoundError):
        state.set_species_amount("Halite", 1.0)
