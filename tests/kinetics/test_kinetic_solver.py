"""Tests of the kinetic solver, with and without species in equilibrium."""

from __future__ import annotations

import numpy as np
import pytest

import georeact as gr

WATER = 55.508


def _first_order(k: float, index: int):
    """Rate ``k n_i``."""

    def rate(T, P, n, a):
        return k * gr.ChemicalVector.variables(n)[index]

    return rate


def _constant(c: float):
    def rate(T, P, n, a):
        return gr.ChemicalScalar(c, 0.0, 0.0, np.zeros(n.size))

    return rate


@pytest.fixture(scope="module")
def polymorphs() -> gr.ChemicalSystem:
    return gr.ChemicalSystem(
        [
            gr.Phase.mineral(gr.load_species(["Calcite"])),
            gr.Phase.mineral(gr.load_species(["Aragonite"])),
        ]
    )


@pytest.fixture(scope="module")
def halite() -> gr.ChemicalSystem:
    species = gr.load_species(["H2O(l)", "H+", "OH-", "Na+", "Cl-", "NaCl(aq)"])
    return gr.ChemicalSystem(
        [gr.Phase.aqueous(species), gr.Phase.mineral(gr.load_species(["Halite"]))]
    )


@pytest.fixture(scope="module")
def carbonates() -> gr.ChemicalSystem:
    species = gr.load_species(
        ["H2O(l)", "H+", "OH-", "Ca+2", "CO3-2", "HCO3-", "CO2(aq)"]
    )
    calcite = gr.Phase.mineral(gr.load_species(["Calcite"]))
    return gr.ChemicalSystem([gr.Phase.aqueous(species), calcite])


def test_exponential_decay(polymorphs: gr.ChemicalSystem):
    """All species kinetic: the amounts follow the ODE exactly."""
    k = 1e-3
    reaction = gr.Reaction.from_equation(polymorphs, "Calcite = Aragonite")
    reactions = gr.ReactionSystem(polymorphs, [reaction.with_rate(_first_order(k, 0))])
    partition = gr.Partition(polymorphs, kinetic=["Calcite", "Aragonite"])
    assert partition.num_equilibrium_species == 0

    state = gr.ChemicalState(polymorphs, n=np.array([2.0, 0.0]))
    solver = gr.KineticSolver(reactions, partition)
    result = solver.solve(state, 0.0, 500.0)

    assert result.converged
    assert np.isclose(result.t, 500.0)
    assert result.num_evaluations > 0
    expected = 2.0 * np.exp(-k * 500.0)
    assert np.isclose(state.species_amount("Calcite"), expected, rtol=1e-4)
    assert np.isclose(state.n.sum(), 2.0)


def test_time_steps_compose(polymorphs: gr.ChemicalSystem):
    k = 1e-3
    reaction = gr.Reaction.from_equation(polymorphs, "Calcite = Aragonite")
    reactions = gr.ReactionSystem(polymorphs, [reaction.with_rate(_first_order(k, 0))])
    partition = gr.Partition(polymorphs, kinetic=["Calcite", "Aragonite"])
    solver = gr.KineticSolver(reactions, partition)

    state = gr.ChemicalState(polymorphs, n=np.array([2.0, 0.0]))
    t = 0.0
    for _ in range(4):
        assert solver.solve(state, t, 125.0).converged
        t += 125.0

    expected = 2.0 * np.exp(-k * 500.0)
    assert np.isclose(state.species_amount("Calcite"), expected, rtol=1e-4)


def test_dissolution_into_equilibrium_phase(halite: gr.ChemicalSystem):
    """The dissolved salt is distributed among the aqueous species."""
    c = 1e-4
    reaction = gr.Reaction.from_equation(halite, "Halite = Na+ + Cl-")
    reactions = gr.ReactionSystem(halite, [reaction.with_rate(_constant(c))])
    partition = gr.Partition(halite, kinetic=["Halite"])

    state = gr.ChemicalState(halite)
    for name, amount in [("H2O(l)", WATER), ("Na+", 0.01), ("Cl-", 0.01)]:
        state.set_species_amount(name, amount)
    state.set_species_amount("Halite", 1.0)
    assert gr.EquilibriumSolver(halite, partition).solve(state).converged

    result = gr.KineticSolver(reactions, partition).solve(state, 0.0, 10.0)

    assert result.converged
    assert np.isclose(state.species_amount("Halite"), 1.0 - 10.0 * c, rtol=1e-8)
    sodium = state.species_amount("Na+") + state.species_amount("NaCl(aq)")
    assert np.isclose(sodium, 0.01 + 10.0 * c, rtol=1e-6)
    b = state.element_amounts()
    assert np.isclose(b[halite.index_element("Na")], b[halite.index_element("Cl")])


def test_mineral_dissolution(carbonates: gr.ChemicalSystem):
    calcite = gr.MineralReaction("Calcite", "Calcite = Ca+2 + CO3-2", surface_area=0.1)
    calcite.add_mechanism("logk=-5.81 mol/(m2*s) Ea=23.5 kJ/mol")
    reactions = gr.ReactionSystem(carbonates, [calcite.reaction(carbonates)])
    partition = gr.Partition(carbonates, kinetic=["Calcite"])

    problem = gr.EquilibriumProblem(carbonates, partition)
    problem.add("H2O", WATER).add("CaCO3", 1e-5)
    state = gr.ChemicalState(carbonates)
    state.set_species_amount("Calcite", 1.0)
    assert gr.equilibrate(state, problem).converged

    solver = gr.KineticSolver(reactions, partition)
    rate = solver.rates(state)
    assert rate.val.shape == (1,)
    assert rate.val[0] > 0.0

    result = solver.solve(state, 0.0, 60.0)

    assert result.converged
    dissolved = 1.0 - state.species_amount("Calcite")
    assert 0.0 < dissolved < 1e-4
    b = state.element_amounts()
    assert np.isclose(b[carbonates.index_element("Ca")], 1.0 + 1e-5, rtol=1e-7)
    assert np.isclose(b[carbonates.index_element("C")], 1.0 + 1e-5, rtol=1e-7)


def test_reaction_without_rate(polymorphs: gr.ChemicalSystem):
    reaction = gr.Reaction.from_equation(polymorphs, "Calcite = Aragonite")
    reactions = gr.ReactionSystem(polymorphs, [reaction])
    partition = gr.Partition(polymorphs, kinetic=["Calcite", "Aragonite"])
    state = gr.ChemicalState(polymorphs, n=np.array([1.0, 0.0]))

    with pytest.raises(gr.ChemicalModellingError):
        gr.KineticSolver(reactions, partition).solve(state, 0.0, 1.0)


def test_result_defaults():
    result = gr.KineticResult()
    assert not result.converged
    assert result.num_evaluations == 0
