"""Sparse matrix construction and products in compressed sparse column form."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np

from .types import CscMatrix


@dataclass
class Kkt:
    """A quasi-definite KKT matrix with the bookkeeping needed to update R.

    ``matrix`` holds one triangle of ``[R_x + P, A'; A, -R_y]``, ``diag_p``
    the diagonal of ``P`` and ``diag_r_idxs`` the positions in
    ``matrix.x`` where the entries of ``R`` live.
    """

    matrix: CscMatrix
    diag_p: np.ndarray
    diag_r_idxs: np.ndarray


def _vec(v) -> np.ndarray:
    return np.asarray(v, dtype=np.float64).ravel()


def _columns(a: CscMatrix) -> np.ndarray:
    """Column index of every stored entry."""
    return np.repeat(np.arange(a.n, dtype=np.int64), np.diff(a.p))


def cumsum(counts) -> np.ndarray:
    """Return column pointers (length ``len(counts) + 1``) for the given counts."""
    counts = np.asarray(counts, dtype=np.int64).ravel()
    if np.any(counts < 0):
        raise ValueError("counts must be non-negative")
    return np.concatenate((np.zeros(1, dtype=np.int64), np.cumsum(counts)))


def compress(m, n, rows, cols, values) -> tuple[CscMatrix, np.ndarray]:
    """Convert triplets to compressed sparse column form.

    Entries keep their relative order within each column; duplicates are not
    summed. Returns the matrix and, for every triplet, its position in the
    compressed arrays.
    """
    rows = np.asarray(rows, dtype=np.int64).ravel()
    cols = np.asarray(cols, dtype=np.int64).ravel()
    values = _vec(values)
    if not rows.size == cols.size == values.size:
        raise ValueError("rows, cols and values must have the same length")
    if rows.size:
        if rows.min() < 0 or rows.max() >= m:
            raise ValueError("row index out of range")
        if cols.min() < 0 or cols.max() >= n:
            raise ValueError("column index out of range")
    order = np.argsort(cols, kind="stable")
    mapping = np.empty(rows.size, dtype=np.int64)
    mapping[order] = np.arange(rows.size, dtype=np.int64)
    p = cumsum(np.bincount(cols, minlength=n))
    return CscMatrix(values[order], rows[order], p, m, n), mapping


def transpose(a: CscMatrix) -> CscMatrix:
    """Return the transpose of ``a``."""
    nnz = a.nnz()
    matrix, _ = compress(a.n, a.m, _columns(a), a.i[:nnz], a.x[:nnz])
    return matrix


def mat_vec(a: CscMatrix, x) -> np.ndarray:
    """Return ``A x``."""
    x = _vec(x)
    if x.size != a.n:
        raise ValueError(f"x must have length {a.n}, got {x.size}")
    nnz = a.nnz()
    y = np.zeros(a.m)
    np.add.at(y, a.i[:nnz], a.x[:nnz] * x[_columns(a)])
    return y


def mat_t_vec(a: CscMatrix, x) -> np.ndarray:
    """Return ``A' x``."""
    x = _vec(x)
    if x.size != a.m:
        raise ValueError(f"x must have length {a.m}, got {x.size}")
    nnz = a.nnz()
    y = np.zeros(a.n)
    np.add.at(y, _columns(a), a.x[:nnz] * x[a.i[:nnz]])
    return y


def sym_upper_mat_vec(p: CscMatrix, x) -> np.ndarray:
    """Return ``P x`` for symmetric ``P`` given by its upper triangle.

    Entries below the diagonal are ignored.
    """
    x = _vec(x)
    if p.m != p.n:
        raise ValueError("P must be square")
    if x.size != p.n:
        raise ValueError(f"x must have length {p.n}, got {x.size}")
    nnz = p.nnz()
    rows = p.i[:nnz]
    cols = _columns(p)
    vals = p.x[:nnz]
    upper = rows <= cols
    strict = rows < cols
    y = np.zeros(p.n)
    np.add.at(y, rows[upper], vals[upper] * x[cols[upper]])
    np.add.at(y, cols[strict], vals[strict] * x[rows[strict]])
    return y


def form_kkt(a: CscMatrix, p: Optional[CscMatrix], diag_r, upper=True) -> Kkt:
    """Build one triangle of ``[R_x + P, A'; A, -R_y]``.

    ``P`` is given by its upper triangle (or ``None``), ``diag_r`` holds the
    ``n + m`` diagonal entries of ``R``. With ``upper`` true the upper
    triangle is stored, otherwise the lower one.
    """
    n, m = a.n, a.m
    diag_r = _vec(diag_r)
    if diag_r.size != n + m:
        raise ValueError(f"diag_r must have length n + m = {n + m}, got {diag_r.size}")
    if p is not None and p.shape != (n, n):
        raise ValueError("P must be n x n")

    rows: list[int] = []
    cols: list[int] = []
    vals: list[float] = []
    diag_p = np.zeros(n)
    diag_pos = np.zeros(n + m, dtype=np.int64)

    def push(row: int, col: int, value: float) -> int:
        rows.append(row)
        cols.append(col)
        vals.append(value)
        return len(vals) - 1

    if p is not None:
        for j in range(n):
            start, end = int(p.p[j]), int(p.p[j + 1])
            has_diag = False
            for h in range(start, end):
                i = int(p.i[h])
                if i > j:
                    break
                row, col = (i, j) if upper else (j, i)
                value = float(p.x[h])
                if i == j:
                    diag_p[j] = value
                    diag_pos[j] = push(row, col, value + diag_r[j])
                    has_diag = True
                else:
                    push(row, col, value)
                    if h + 1 == end or int(p.i[h + 1]) > j:
                        diag_pos[j] = push(j, j, float(diag_r[j]))
                        has_diag = True
            if not has_diag:
                diag_pos[j] = push(j, j, float(diag_r[j]))
    else:
        for j in range(n):
            diag_pos[j] = push(j, j, float(diag_r[j]))

    nnz = a.nnz()
    a_cols = _columns(a)
    a_rows = a.i[:nnz] + n
    if upper:
        rows.extend(a_cols.tolist())
        cols.extend(a_rows.tolist())
    else:
        rows.extend(a_rows.tolist())
        cols.extend(a_cols.tolist())
    vals.extend(a.x[:nnz].tolist())

    for j in range(m):
        diag_pos[j + n] = push(j + n, j + n, -float(diag_r[j + n]))

    matrix, mapping = compress(n + m, n + m, rows, cols, vals)
    return Kkt(matrix, diag_p, mapping[diag_pos])