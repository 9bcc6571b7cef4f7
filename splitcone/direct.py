"""Linear system solver based on a fill-reducing ordering and an LDL' factorization."""

from __future__ import annotations

from typing import Optional

import numpy as np

from .csparse import compress, form_kkt
from .types import CG_BEST_TOL, CscMatrix, LinearSystemError


def invert_permutation(perm) -> np.ndarray:
    """Return ``pinv`` with ``pinv[perm[k]] = k``."""
    perm = np.asarray(perm, dtype=np.int64).ravel()
    n = perm.size
    if n and (perm.min() < 0 or perm.max() >= n or np.unique(perm).size != n):
        raise ValueError("not a permutation")
    pinv = np.empty(n, dtype=np.int64)
    pinv[perm] = np.arange(n, dtype=np.int64)
    return pinv


def symperm(a: CscMatrix, pinv=None) -> tuple[CscMatrix, np.ndarray]:
    """Return the upper triangle of ``P A P'`` for symmetric ``A``.

    Only the upper triangle of ``a`` is read. ``pinv`` is the inverse
    permutation (``None`` for the identity). Also returns, for every stored
    entry of ``a``, its position in the result, or -1 for skipped entries
    below the diagonal.
    """
    if a.m != a.n:
        raise ValueError("matrix must be square")
    n = a.n
    if pinv is None:
        pinv = np.arange(n, dtype=np.int64)
    else:
        pinv = np.asarray(pinv, dtype=np.int64).ravel()
        if pinv.size != n:
            raise ValueError(f"permutation must have length {n}, got {pinv.size}")
    nnz = a.nnz()
    rows = a.i[:nnz]
    cols = np.repeat(np.arange(n, dtype=np.int64), np.diff(a.p))
    keep = np.flatnonzero(rows <= cols)
    i2 = pinv[rows[keep]]
    j2 = pinv[cols[keep]]
    matrix, mapping = compress(
        n, n, np.minimum(i2, j2), np.maximum(i2, j2), a.x[:nnz][keep]
    )
    idx_mapping = np.full(nnz, -1, dtype=np.int64)
    idx_mapping[keep] = mapping
    return matrix, idx_mapping


def min_degree_order(a: CscMatrix) -> np.ndarray:
    """Return a minimum degree elimination order for the pattern of ``A + A'``.

    ``perm[k]`` is the node eliminated at step ``k``; ties go to the
    smallest index.
    """
    if a.m != a.n:
        raise ValueError("matrix must be square")
    n = a.n
    nnz = a.nnz()
    adjacency: list[set[int]] = [set() for _ in range(n)]
    cols = np.repeat(np.arange(n), np.diff(a.p))
    for i, j in zip(a.i[:nnz].tolist(), cols.tolist()):
        if i != j:
            adjacency[i].add(j)
            adjacency[j].add(i)

    remaining = set(range(n))
    order: list[int] = []
    while remaining:
        node = min(remaining, key=lambda v: (len(adjacency[v]), v))
        neighbours = adjacency[node]
        for u in neighbours:
            adjacency[u].discard(node)
            adjacency[u].update(neighbours - {u})
        adjacency[node] = set()
        remaining.remove(node)
        order.append(node)
    return np.array(order, dtype=np.int64)


class DirectLinSys:
    """Solves ``[R_x + P, A'; A, -R_y] [x; y] = b`` by factorization.

    The upper triangle of the KKT matrix is permuted with a minimum degree
    ordering and factored as ``L D L'``. Updating ``R`` refactors in place.
    """

    def __init__(self, a: CscMatrix, p: Optional[CscMatrix], diag_r) -> None:
        self.m = a.m
        self.n = a.n
        kkt = form_kkt(a, p, diag_r, True)
        self.diag_p = kkt.diag_p
        self.perm = min_degree_order(kkt.matrix)
        self.kkt, mapping = symperm(kkt.matrix, invert_permutation(self.perm))
        self.diag_r_idxs = mapping[kkt.diag_r_idxs]
        self.factorizations = 0
        self._l = np.eye(self.n + self.m)
        self._d = np.ones(self.n + self.m)
        self._factor()

    def method(self) -> str:
        """Name of the linear solver."""
        return "sparse-direct-amd-qdldl"

    def _factor(self) -> int:
        upper = self.kkt.to_dense()
        if np.any(np.tril(upper, -1) != 0):
            raise LinearSystemError("matrix is not perfectly upper triangular")
        work = upper + np.triu(upper, 1).T
        size = work.shape[0]
        lower = np.eye(size)
        d = np.zeros(size)
        for k in range(size):
            pivot = work[k, k]
            if pivot == 0.0:
                raise LinearSystemError(
                    "LDL factorization failed: zero on the diagonal of D"
                )
            d[k] = pivot
            col = work[k + 1 :, k] / pivot
            lower[k + 1 :, k] = col
            work[k + 1 :, k + 1 :] -= pivot * np.outer(col, col)
        positive = int(np.count_nonzero(d > 0))
        if positive < self.n:
            raise LinearSystemError(
                "LDL factorization failed: the problem seems to be non-convex "
                f"(positive pivots: {positive}, variables: {self.n})"
            )
        self._l = lower
        self._d = d
        self.factorizations += 1
        return positive

    def update_diag_r(self, diag_r) -> None:
        """Replace the diagonal of ``R`` and refactor."""
        diag_r = np.asarray(diag_r, dtype=np.float64).ravel()
        n, m = self.n, self.m
        if diag_r.size != n + m:
            raise ValueError(f"diag_r must have length n + m = {n + m}, got {diag_r.size}")
        self.kkt.x[self.diag_r_idxs[:n]] = self.diag_p + diag_r[:n]
        self.kkt.x[self.diag_r_idxs[n:]] = -diag_r[n:]
        self._factor()

    def solve(self, b, warm_start=None, tol=CG_BEST_TOL) -> np.ndarray:
        """Return the solution for right-hand side ``b``.

        ``warm_start`` and ``tol`` are accepted for interface compatibility
        and ignored: the solve is exact up to rounding.
        """
        b = np.asarray(b, dtype=np.float64).ravel()
        size = self.n + self.m
        if b.size != size:
            raise ValueError(f"b must have length n + m = {size}, got {b.size}")
        y = b[self.perm].copy()
        lower = self._l
        for i in range(size):
            y[i] -= lower[i, :i] @ y[:i]
        y /= self._d
        for i in range(size - 1, -1, -1):
            y[i] -= lower[i + 1 :, i] @ y[i + 1 :]
        out = np.empty(size)
        out[self.perm] = y
        return out