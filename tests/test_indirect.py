import numpy as np
import pytest

from splitcone.indirect import IndirectLinSys
from splitcone.types import CscMatrix


def qp_matrices():
    p = CscMatrix([3.0, -1.0, 2.0], [0, 0, 1], [0, 1, 3], 2, 2)
    a = CscMatrix([-1.0, 1.0, 1.0, 1.0], [0, 1, 0, 2], [0, 2, 4], 3, 2)
    return a, p


def full_kkt(a, p, diag_r):
    n = a.n
    pd = np.zeros((n, n)) if p is None else p.to_dense()
    pfull = np.triu(pd) + np.triu(pd, 1).T
    top = np.hstack((pfull + np.diag(diag_r[:n]), a.to_dense().T))
    bottom = np.hstack((a.to_dense(), -np.diag(diag_r[n:])))
    return np.vstack((top, bottom))


def random_problem(seed=0, m=8, n=5):
    rng = np.random.default_rng(seed)
    dense_a = rng.standard_normal((m, n))
    dense_a[np.abs(dense_a) < 0.4] = 0.0
    b = rng.standard_normal((n, n))
    p_dense = np.triu(b.T @ b)
    return CscMatrix.from_dense(dense_a), CscMatrix.from_dense(p_dense), rng


def test_method_name():
    a, p = qp_matrices()
    solver = IndirectLinSys(a, p, np.ones(5))
    assert solver.method() == "sparse-indirect-scs"


def test_solve_matches_dense_qp():
    a, p = qp_matrices()
    diag_r = np.array([0.1, 0.2, 1.0, 2.0, 3.0])
    solver = IndirectLinSys(a, p, diag_r)
    rhs = np.array([1.0, -2.0, 0.5, 0.3, -0.5])
    sol = solver.solve(rhs, None, 1e-12)
    expected = np.linalg.solve(full_kkt(a, p, diag_r), rhs)
    assert np.allclose(sol, expected, atol=1e-8)
    assert solver.tot_cg_its > 0


def test_solve_random_problem():
    a, p, rng = random_problem()
    diag_r = np.concatenate((np.full(a.n, 0.5), np.full(a.m, 2.0)))
    solver = IndirectLinSys(a, p, diag_r)
    rhs = rng.standard_normal(a.n + a.m)
    sol = solver.solve(rhs, None, 1e-12)
    assert np.allclose(full_kkt(a, p, diag_r) @ sol, rhs, atol=1e-7)


def test_warm_start_with_solution_takes_no_iterations():
    a, p = qp_matrices()
    diag_r = np.ones(5)
    solver = IndirectLinSys(a, p, diag_r)
    rhs = np.array([1.0, 2.0, -1.0, 0.0, 0.5])
    expected = np.linalg.solve(full_kkt(a, p, diag_r), rhs)
    sol = solver.solve(rhs, expected, 1e-8)
    assert solver.tot_cg_its == 0
    assert np.allclose(sol, expected, atol=1e-8)


def test_zero_rhs_returns_zero():
    a, p = qp_matrices()
    solver = IndirectLinSys(a, p, np.ones(5))
    sol = solver.solve(np.zeros(5), None, 1e-8)
    assert np.array_equal(sol, np.zeros(5))
    assert solver.tot_cg_its == 0


def test_update_diag_r_changes_solution():
    a, p, rng = random_problem(seed=3)
    first = np.ones(a.n + a.m)
    second = np.concatenate((np.full(a.n, 3.0), np.full(a.m, 0.25)))
    solver = IndirectLinSys(a, p, first)
    before = solver.preconditioner()
    solver.update_diag_r(second)
    assert not np.allclose(before, solver.preconditioner())
    rhs = rng.standard_normal(a.n + a.m)
    sol = solver.solve(rhs, None, 1e-12)
    assert np.allclose(full_kkt(a, p, second) @ sol, rhs, atol=1e-7)


def test_preconditioner_without_constraints_is_inverse_r_x():
    a = CscMatrix([], [], [0, 0, 0, 0], 2, 3)
    diag_r = np.array([2.0, 4.0, 5.0, 1.0, 1.0])
    solver = IndirectLinSys(a, None, diag_r)
    assert np.allclose(solver.preconditioner(), 1.0 / diag_r[:3])


def test_preconditioner_is_positive():
    a, p, _ = random_problem(seed=5)
    solver = IndirectLinSys(a, p, np.ones(a.n + a.m))
    assert np.all(solver.preconditioner() > 0)


def test_non_positive_tol_warns():
    a, p = qp_matrices()
    solver = IndirectLinSys(a, p, np.ones(5))
    with pytest.warns(RuntimeWarning):
        sol = solver.solve(np.ones(5), None, 0.0)
    assert sol.size == 5


def test_bad_lengths_raise():
    a, p = qp_matrices()
    with pytest.raises(ValueError):
        IndirectLinSys(a, p, np.ones(4))
    solver = IndirectLinSys(a, p, np.ones(5))
    with pytest.raises(ValueError):
        solver.solve(np.ones(3), None, 1e-8)
    with pytest.raises(ValueError):
        solver.update_diag_r(np.ones(6))