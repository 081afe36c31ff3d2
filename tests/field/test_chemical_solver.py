"""Tests of chemical computations over the points of a field, and of the porosity,
saturation and density fields with their derivatives."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

import numpy as np
import pytest

import georeact as gr

WATER = 55.508
HALITE = 0.5
HALITE_VOLUME = 27.02e-6


@pytest.fixture(scope="module")
def system() -> gr.ChemicalSystem:
    aqueous = gr.Phase.aqueous(
        gr.load_species(["H2O(l)", "H+", "OH-", "Na+", "Cl-", "NaCl(aq)"])
    )
    gaseous = gr.Phase.gaseous(gr.load_species(["H2O(g)", "N2(g)"]))
    halite = gr.Phase.mineral(gr.load_species(["Halite"]))
    return gr.ChemicalSystem([aqueous, gaseous, halite])


@pytest.fixture(scope="module")
def partition(system: gr.ChemicalSystem) -> gr.Partition:
    return gr.Partition(system, kinetic=["Halite"])


@pytest.fixture(scope="module")
def reactions(system: gr.ChemicalSystem) -> gr.ReactionSystem:
    def rate(T, P, n, a):
        return gr.ChemicalScalar(1e-4, 0.0, 0.0, np.zeros(n.size))

    reaction = gr.Reaction.from_equation(system, "Halite = Na+ + Cl-")
    return gr.ReactionSystem(system, [reaction.with_rate(rate)])


@pytest.fixture(scope="module")
def initial_state(system: gr.ChemicalSystem, partition: gr.Partition):
    state = gr.ChemicalState(system)
    amounts = [("H2O(l)", WATER), ("Na+", 0.1), ("Cl-", 0.1), ("N2(g)", 0.1)]
    for name, amount in amounts + [("Halite", HALITE)]:
        state.set_species_amount(name, amount)
    assert gr.EquilibriumSolver(system, partition).solve(state).converged
    return state


def _element_amounts(state: gr.ChemicalState, partition: gr.Partition) -> np.ndarray:
    ee = partition.indices_equilibrium_elements
    ie = partition.indices_equilibrium_species
    return state.system.formula_matrix[np.ix_(ee, ie)] @ state.n[ie]


def _solver(system, partition, reactions, initial_state, size=3) -> gr.ChemicalSolver:
    solver = gr.ChemicalSolver(reactions, size, partition)
    solver.set_state(initial_state)
    return solver


def test_equilibrate(system, partition, reactions, initial_state):
    solver = _solver(system, partition, reactions, initial_state)
    be = _element_amounts(initial_state, partition)

    results = solver.equilibrate(
        np.array([298.15, 310.0, 320.0]), 1e5, np.tile(be, solver.size)
    )

    assert len(results) == 3
    assert all(r.converged for r in results)
    for i in range(solver.size):
        state = solver.state(i)
        assert np.allclose(_element_amounts(state, partition), be, rtol=1e-8)
        assert state.species_amount("Halite") == HALITE
    assert solver.state(2).T == 320.0


def test_executor_gives_same_states(system, partition, reactions, initial_state):
    be = np.tile(_element_amounts(initial_state, partition), 3)
    T = np.array([298.15, 330.0, 360.0])

    sequential = _solver(system, partition, reactions, initial_state)
    sequential.equilibrate(T, 2e5, be)
    parallel = _solver(system, partition, reactions, initial_state)
    with ThreadPoolExecutor(max_workers=3) as executor:
        results = parallel.equilibrate(T, 2e5, be, executor=executor)

    assert all(r.converged for r in results)
    for i in range(3):
        assert np.allclose(sequential.state(i).n, parallel.state(i).n)


def test_field_shapes(system, partition, reactions, initial_state):
    solver = _solver(system, partition, reactions, initial_state)
    field = solver.porosity_with_diff()

    Ee = partition.num_equilibrium_elements
    assert field.val.shape == (3,)
    assert field.ddT.shape == (3,)
    assert field.ddP.shape == (3,)
    assert field.ddbe.shape == (3, Ee)
    assert field.ddnk.shape == (3, 1)


def test_porosity(system, partition, reactions, initial_state):
    solver = _solver(system, partition, reactions, initial_state)
    V_ref = float(initial_state.properties().phase_volumes.val.sum())

    field = solver.porosity_with_diff()

    assert np.allclose(field.val, 1.0 - HALITE * HALITE_VOLUME / V_ref)
    assert np.allclose(field.val, solver.porosity().val)
    # Only the kinetic mineral is solid.
    assert np.allclose(field.ddbe, 0.0)
    assert np.allclose(field.ddnk[:, 0], -HALITE_VOLUME / V_ref)

    solver.set_reference_volumes(np.full(3, 2.0 * HALITE * HALITE_VOLUME))
    assert np.allclose(solver.porosity().val, 0.5)


def test_saturations(system, partition, reactions, initial_state):
    solver = _solver(system, partition, reactions, initial_state)
    liquid = solver.saturation_with_diff(0)
    gas = solver.saturation_with_diff(1)

    assert np.all((0.0 < liquid.val) & (liquid.val < 1.0))
    assert np.allclose(liquid.val + gas.val, 1.0)
    assert np.allclose(liquid.val, solver.saturation(0).val)
    assert np.allclose(liquid.ddT + gas.ddT, 0.0, atol=1e-12)
    assert np.allclose(liquid.ddP + gas.ddP, 0.0, atol=1e-16)
    assert np.allclose(liquid.ddbe + gas.ddbe, 0.0, atol=1e-12)


def test_density_temperature_derivative(system, partition, reactions, initial_state):
    solver = _solver(system, partition, reactions, initial_state)
    be = np.tile(_element_amounts(initial_state, partition), 3)
    h = 0.1
    T0 = 310.0
    results = solver.equilibrate(np.array([T0 - h, T0, T0 + h]), 1e5, be)
    assert all(r.converged for r in results)

    for ifluid in (0, 1):
        density = solver.density_with_diff(ifluid)
        fd = (density.val[2] - density.val[0]) / (2 * h)
        assert np.isclose(density.ddT[1], fd, rtol=1e-4)
        assert np.allclose(density.val, solver.density(ifluid).val)
    # Liquid water expands when heated.
    assert solver.density(0).val[2] < solver.density(0).val[0]


def test_density_pressure_derivative(system, partition, reactions, initial_state):
    solver = _solver(system, partition, reactions, initial_state)
    be = np.tile(_element_amounts(initial_state, partition), 3)
    h = 100.0
    P0 = 1e5
    results = solver.equilibrate(298.15, np.array([P0 - h, P0, P0 + h]), be)
    assert all(r.converged for r in results)

    gas = solver.density_with_diff(1)
    fd = (gas.val[2] - gas.val[0]) / (2 * h)
    assert gas.ddP[1] > 0.0
    assert np.isclose(gas.ddP[1], fd, rtol=1e-4)


def test_saturation_element_derivative(system, partition, reactions, initial_state):
    solver = _solver(system, partition, reactions, initial_state)
    be = _element_amounts(initial_state, partition)
    ee = partition.indices_equilibrium_elements
    j = int(np.flatnonzero(ee == system.index_element("N"))[0])
    h = 1e-4
    db = np.zeros_like(be)
    db[j] = h
    results = solver.equilibrate(298.15, 1e5, np.concatenate([be - db, be, be + db]))
    assert all(r.converged for r in results)

    gas = solver.saturation_with_diff(1)
    fd = (gas.val[2] - gas.val[0]) / (2 * h)
    # More nitrogen, more gas.
    assert gas.ddbe[1, j] > 0.0
    assert np.isclose(gas.ddbe[1, j], fd, rtol=1e-4)


def test_react(system, partition, reactions, initial_state):
    solver = _solver(system, partition, reactions, initial_state, size=2)
    before = solver.porosity().val

    results = solver.react(0.0, 100.0)

    assert all(r.converged for r in results)
    for i in range(2):
        assert np.isclose(solver.state(i).species_amount("Halite"), HALITE - 1e-2)
    assert np.all(solver.porosity().val > before)
    # The derivatives are evaluated at the new states.
    field = solver.porosity_with_diff()
    assert np.all(np.isfinite(field.ddnk))


def test_errors(system, partition, reactions, initial_state):
    solver = _solver(system, partition, reactions, initial_state, size=2)
    with pytest.raises(ValueError):
        solver.equilibrate(298.15, 1e5, np.ones(3))
    with pytest.raises(ValueError):
        solver.set_reference_volumes(np.ones(3))
    with pytest.raises(IndexError):
        solver.saturation(2)
    with pytest.raises(IndexError):
        solver.density_with_diff(-1)

    without_reactions = gr.ChemicalSolver(system, 1, partition)
    with pytest.raises(ValueError):
        without_reactions.react(0.0, 1.0)
    # No state was set, hence there is no reference volume.
    with pytest.raises(ValueError):
        without_reactions.porosity()


def test_derivatives_need_equilibrium(system, partition, reactions, initial_state):
    solver = _solver(system, partition, reactions, initial_state)
    # Same element amounts, but almost all salt as the neutral complex.
    state = initial_state.copy()
    sodium = state.species_amount("Na+") + state.species_amount("NaCl(aq)")
    state.set_species_amount("NaCl(aq)", 0.99 * sodium)
    state.set_species_amount("Na+", 0.01 * sodium)
    state.set_species_amount("Cl-", 0.01 * sodium)
    solver.set_state(state, [1])

    # Values need no equilibrium.
    assert np.all(np.isfinite(solver.porosity().val))
    with pytest.raises(RuntimeError):
        solver.porosity_with_diff()
