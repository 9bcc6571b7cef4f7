import numpy as np
import pytest

from splitcone.csparse import (
    Kkt,
    compress,
    cumsum,
    form_kkt,
    mat_t_vec,
    mat_vec,
    sym_upper_mat_vec,
    transpose,
)
from splitcone.types import CscMatrix


def qp_matrices():
    p = CscMatrix([3.0, -1.0, 2.0], [0, 0, 1], [0, 1, 3], 2, 2)
    a = CscMatrix([-1.0, 1.0, 1.0, 1.0], [0, 1, 0, 2], [0, 2, 4], 3, 2)
    return a, p


def full_kkt(a, p, diag_r):
    n, m = a.n, a.m
    pd = np.zeros((n, n)) if p is None else p.to_dense()
    pfull = np.triu(pd) + np.triu(pd, 1).T
    top = np.hstack((pfull + np.diag(diag_r[:n]), a.to_dense().T))
    bottom = np.hstack((a.to_dense(), -np.diag(diag_r[n:])))
    return np.vstack((top, bottom))


def test_cumsum_invariants():
    counts = [2, 0, 3, 1]
    p = cumsum(counts)
    assert p.size == 5
    assert p[0] == 0
    assert np.array_equal(np.diff(p), counts)


def test_cumsum_rejects_negative():
    with pytest.raises(ValueError):
        cumsum([1, -1])


def test_compress_matches_triplets():
    rows = [2, 0, 1, 0, 2]
    cols = [1, 0, 1, 2, 0]
    vals = [1.0, 2.0, 3.0, 4.0, 5.0]
    matrix, mapping = compress(3, 3, rows, cols, vals)
    dense = np.zeros((3, 3))
    np.add.at(dense, (rows, cols), vals)
    assert np.array_equal(matrix.to_dense(), dense)
    assert np.array_equal(matrix.x[mapping], vals)
    assert np.array_equal(matrix.i[mapping], rows)


def test_compress_keeps_order_within_column():
    rows = [3, 1, 2]
    cols = [0, 0, 0]
    matrix, mapping = compress(4, 1, rows, cols, [1.0, 2.0, 3.0])
    assert list(mapping) == [0, 1, 2]
    assert list(matrix.i) == rows


def test_compress_rejects_bad_indices():
    with pytest.raises(ValueError):
        compress(2, 2, [2], [0], [1.0])
    with pytest.raises(ValueError):
        compress(2, 2, [0], [5], [1.0])
    with pytest.raises(ValueError):
        compress(2, 2, [0, 1], [0], [1.0])


def test_transpose_round_trip():
    a, _ = qp_matrices()
    at = transpose(a)
    assert at.shape == (a.n, a.m)
    assert np.array_equal(at.to_dense(), a.to_dense().T)
    assert np.array_equal(transpose(at).to_dense(), a.to_dense())


def test_mat_vec_and_transpose_product():
    rng = np.random.default_rng(1)
    dense = rng.standard_normal((5, 4))
    dense[dense < 0.3] = 0.0
    a = CscMatrix.from_dense(dense)
    x = rng.standard_normal(4)
    y = rng.standard_normal(5)
    assert np.allclose(mat_vec(a, x), dense @ x)
    assert np.allclose(mat_t_vec(a, y), dense.T @ y)
    with pytest.raises(ValueError):
        mat_vec(a, y)


def test_sym_upper_mat_vec():
    _, p = qp_matrices()
    full = np.array([[3.0, -1.0], [-1.0, 2.0]])
    x = np.array([0.5, -2.0])
    assert np.allclose(sym_upper_mat_vec(p, x), full @ x)


def test_sym_upper_mat_vec_ignores_lower_entries():
    p = CscMatrix.from_dense([[1.0, 0.0], [7.0, 1.0]])
    x = np.array([1.0, 1.0])
    assert np.allclose(sym_upper_mat_vec(p, x), x)


@pytest.mark.parametrize("upper", [True, False])
def test_form_kkt_qp_example(upper):
    a, p = qp_matrices()
    diag_r = np.array([0.1, 0.2, 1.0, 2.0, 3.0])
    kkt = form_kkt(a, p, diag_r, upper)
    assert isinstance(kkt, Kkt)
    full = full_kkt(a, p, diag_r)
    expected = np.triu(full) if upper else np.tril(full)
    assert np.allclose(kkt.matrix.to_dense(), expected)
    assert np.allclose(kkt.diag_p, [3.0, 2.0])
    assert np.allclose(kkt.matrix.x[kkt.diag_r_idxs], np.diag(full))


def test_form_kkt_without_p():
    a, _ = qp_matrices()
    diag_r = np.array([1.0, 2.0, 3.0, 4.0, 5.0])
    kkt = form_kkt(a, None, diag_r, True)
    full = full_kkt(a, None, diag_r)
    assert np.allclose(kkt.matrix.to_dense(), np.triu(full))
    assert np.allclose(kkt.diag_p, 0.0)
    assert np.allclose(kkt.matrix.x[kkt.diag_r_idxs], np.diag(full))


def test_form_kkt_p_missing_diagonals():
    a, _ = qp_matrices()
    # column 0 empty, column 1 has only an off-diagonal entry
    p = CscMatrix([4.0], [0], [0, 0, 1], 2, 2)
    diag_r = np.array([0.5, 0.25, 1.0, 1.0, 1.0])
    kkt = form_kkt(a, p, diag_r, True)
    full = full_kkt(a, p, diag_r)
    assert np.allclose(kkt.matrix.to_dense(), np.triu(full))
    assert np.allclose(kkt.diag_p, 0.0)
    assert np.allclose(kkt.matrix.x[kkt.diag_r_idxs], np.diag(full))


def test_form_kkt_rejects_bad_diag_r():
    a, p = qp_matrices()
    with pytest.raises(ValueError):
        form_kkt(a, p, np.ones(4), True)