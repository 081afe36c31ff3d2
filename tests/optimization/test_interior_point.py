"""Tests of the primal-dual interior point solver on small problems with known
solutions."""

from __future__ import annotations

import numpy as np
import pytest

from georeact.optimization import (
    OptimumOptions,
    OptimumProblem,
    OptimumState,
    OptimumStatus,
    sensitivity,
    solve,
)


def _projection_problem(c: np.ndarray, total: float = 1.0) -> OptimumProblem:
    """Projection of ``c`` onto the simplex ``x >= 0, sum(x) = total``."""

    def objective(x: np.ndarray):
        return 0.5 * float((x - c) @ (x - c)), x - c, np.ones(x.size)

    def constraint(x: np.ndarray):
        return np.array([x.sum() - total]), np.ones((1, x.size))

    return OptimumProblem(c.size, 1, objective, constraint)


def test_interior_solution():
    problem = _projection_problem(np.array([0.8, 0.6]))
    result = solve(problem)
    assert result.converged
    assert result.status == OptimumStatus.converged
    assert result.iterations < 30
    assert np.allclose(result.state.x, [0.6, 0.4], atol=1e-8)
    assert np.allclose(result.state.y, [-0.2], atol=1e-8)
    assert np.allclose(result.state.z, 0.0, atol=1e-8)
    assert result.error_primal <= 1e-8
    assert result.error_complementarity <= 1e-10


def test_active_bound():
    problem = _projection_problem(np.array([1.5, -0.5]))
    result = solve(problem)
    assert result.converged
    assert result.iterations < 50
    assert np.allclose(result.state.x, [1.0, 0.0], atol=1e-8)
    assert np.allclose(result.state.y, [-0.5], atol=1e-7)
    assert np.allclose(result.state.z, [0.0, 1.0], atol=1e-7)
    # the bound is never violated
    assert np.all(result.state.x > 0.0)


def test_warm_start_from_solution():
    problem = _projection_problem(np.array([1.5, -0.5]))
    result = solve(problem)
    again = solve(problem, result.state)
    assert again.converged
    assert again.iterations <= 1
    assert np.allclose(again.state.x, result.state.x)


def test_nonlinear_objective():
    """Minimizes ``sum x ln x`` over the simplex, the solution is uniform."""

    def objective(x: np.ndarray):
        return float(x @ np.log(x)), np.log(x) + 1.0, 1.0 / x

    def constraint(x: np.ndarray):
        return np.array([x.sum() - 1.0]), np.ones((1, x.size))

    problem = OptimumProblem(4, 1, objective, constraint)
    result = solve(problem)
    assert result.converged
    assert np.allclose(result.state.x, 0.25, atol=1e-8)


def test_start_far_from_active_bound():
    """A linear objective started at the wrong vertex, the variable at the start has
    to vanish."""

    def objective(x: np.ndarray):
        c = np.array([1.0, 2.0])
        return float(c @ x), c, np.zeros(2)

    def constraint(x: np.ndarray):
        return np.array([x.sum() - 1.0]), np.ones((1, 2))

    problem = OptimumProblem(2, 1, objective, constraint)
    start = OptimumState(x=np.array([1e-10, 1.0 - 1e-10]))
    result = solve(problem, start)

    assert result.converged
    assert result.iterations < 100
    assert np.allclose(result.state.x, [1.0, 0.0], atol=1e-8)
    assert np.allclose(result.state.y, [1.0], atol=1e-7)
    assert np.allclose(result.state.z, [0.0, 1.0], atol=1e-7)


def test_lower_bounds_without_equality_constraints():
    def objective(x: np.ndarray):
        return float((x[0] - 3.0) ** 2), 2.0 * (x - 3.0), np.full((1, 1), 2.0)

    def constraint(x: np.ndarray):
        return np.zeros(0), np.zeros((0, 1))

    problem = OptimumProblem(1, 0, objective, constraint, lower=np.array([5.0]))
    result = solve(problem)
    assert result.converged
    assert np.allclose(result.state.x, 5.0, atol=1e-8)
    assert np.allclose(result.state.z, 4.0, atol=1e-7)
    assert result.state.y.size == 0


def test_unsuccessful_exits():
    problem = _projection_problem(np.array([1.5, -0.5]))

    result = solve(problem, options=OptimumOptions(max_iterations=1))
    assert result.status == OptimumStatus.max_iterations
    assert not result.converged
    assert result.iterations == 1

    result = solve(problem, options=OptimumOptions(cancel=lambda: True))
    assert result.status == OptimumStatus.cancelled
    assert result.iterations == 0

    result = solve(problem, options=OptimumOptions(deadline=-1.0))
    assert result.status == OptimumStatus.cancelled

    # the exit status is part of the message
    assert "cancelled" in str(result)


def test_sensitivity():
    c = np.array([0.8, 0.6])
    result = solve(_projection_problem(c))

    # the gradient x - c depends on c with -I
    dx, dy, dz = sensitivity(result.state, dg_dp=-np.eye(2))
    assert np.allclose(dx, [[0.5, -0.5], [-0.5, 0.5]], atol=1e-6)
    assert np.allclose(dy, [[-0.5, -0.5]], atol=1e-6)
    assert np.allclose(dz, 0.0, atol=1e-6)

    # the constraint sum(x) - b = 0 depends on b with -1
    dx, dy, _ = sensitivity(result.state, dh_dp=-np.ones((1, 1)))
    assert np.allclose(dx[:, 0], [0.5, 0.5], atol=1e-6)

    with pytest.raises(ValueError):
        sensitivity(result.state)


def test_dimension_checks():
    state = OptimumState(
        x=np.ones(2),
        y=np.zeros(1),
        z=np.ones(2),
        g=np.zeros(2),
        H=np.ones(2),
        h=np.zeros(1),
        A=np.ones((1, 3)),
    )
    with pytest.raises(ValueError):
        state.check_dimensions()

    def objective(x):
        return 0.0, np.zeros(2), np.zeros(2)

    def constraint(x):
        return np.zeros(0), np.zeros((0, 2))

    with pytest.raises(ValueError):
        OptimumProblem(2, 0, objective, constraint, lower=np.zeros(3))
