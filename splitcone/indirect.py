"""Linear system solver based on preconditioned conjugate gradient."""

from __future__ import annotations

import warnings
from typing import Optional

import numpy as np

from .csparse import mat_t_vec, mat_vec, sym_upper_mat_vec, transpose
from .linalg import norm_inf
from .types import CG_BEST_TOL, CscMatrix


class IndirectLinSys:
    """Solves ``[R_x + P, A'; A, -R_y] [x; y] = [rx; ry]`` iteratively.

    The system is reduced to ``(R_x + P + A' R_y^{-1} A) x = rx + A' R_y^{-1} ry``,
    solved with diagonally preconditioned CG, and then
    ``y = R_y^{-1} (A x - ry)``.
    """

    def __init__(self, a: CscMatrix, p: Optional[CscMatrix], diag_r) -> None:
        if p is not None and p.shape != (a.n, a.n):
            raise ValueError("P must be n x n")
        self.a = a
        self.p = p
        self.m = a.m
        self.n = a.n
        self.at = transpose(a)
        self.tot_cg_its = 0
        self._m_inv = np.zeros(self.n)
        self.diag_r = np.zeros(self.n + self.m)
        self.update_diag_r(diag_r)

    def method(self) -> str:
        """Name of the linear solver."""
        return "sparse-indirect-scs"

    def update_diag_r(self, diag_r) -> None:
        """Replace the diagonal of ``R`` and rebuild the preconditioner."""
        diag_r = np.asarray(diag_r, dtype=np.float64).ravel()
        if diag_r.size != self.n + self.m:
            raise ValueError(
                f"diag_r must have length n + m = {self.n + self.m}, got {diag_r.size}"
            )
        self.diag_r = diag_r.copy()
        self._set_preconditioner()

    def preconditioner(self) -> np.ndarray:
        """Inverse diagonal of ``R_x + P + A' R_y^{-1} A``."""
        return self._m_inv.copy()

    def _set_preconditioner(self) -> None:
        a, n = self.a, self.n
        nnz = a.nnz()
        cols = np.repeat(np.arange(n), np.diff(a.p))
        diag = self.diag_r[:n].copy()
        np.add.at(
            diag, cols, a.x[:nnz] ** 2 / self.diag_r[n + a.i[:nnz]]
        )
        if self.p is not None:
            pnnz = self.p.nnz()
            pcols = np.repeat(np.arange(n), np.diff(self.p.p))
            on_diag = np.flatnonzero(self.p.i[:pnnz] == pcols)
            # only the first diagonal entry of each column counts
            _, first = np.unique(pcols[on_diag], return_index=True)
            picked = on_diag[first]
            diag[pcols[picked]] += self.p.x[picked]
        self._m_inv = 1.0 / diag

    def _mat_vec(self, x: np.ndarray) -> np.ndarray:
        """Return ``(R_x + P + A' R_y^{-1} A) x``."""
        y = np.zeros(self.n)
        if self.p is not None:
            y += sym_upper_mat_vec(self.p, x)
        z = mat_t_vec(self.at, x) / self.diag_r[self.n:]
        y += mat_t_vec(self.a, z)
        y += self.diag_r[: self.n] * x
        return y

    def _pcg(
        self, b: np.ndarray, s: Optional[np.ndarray], max_its: int, tol: float
    ) -> tuple[np.ndarray, int]:
        if s is None:
            r = b.copy()
            x = np.zeros(self.n)
        else:
            x = s.copy()
            r = b - self._mat_vec(s)

        if norm_inf(r) < max(tol, 1e-12):
            return x, 0

        z = self._m_inv * r
        ztr = float(z @ r)
        direction = z.copy()
        for it in range(max_its):
            gp = self._mat_vec(direction)
            alpha = ztr / float(direction @ gp)
            x += alpha * direction
            r -= alpha * gp
            if norm_inf(r) < tol:
                return x, it + 1
            z = self._m_inv * r
            ztr_prev = ztr
            ztr = float(z @ r)
            direction = z + (ztr / ztr_prev) * direction
        return x, max_its

    def solve(self, b, warm_start=None, tol=CG_BEST_TOL) -> np.ndarray:
        """Return ``[x; y]`` solving the system for right-hand side ``b``.

        ``warm_start`` may hold an initial guess for ``x`` (its first ``n``
        entries are used).
        """
        n, m = self.n, self.m
        b = np.array(b, dtype=np.float64).ravel()
        if b.size != n + m:
            raise ValueError(f"b must have length n + m = {n + m}, got {b.size}")
        if tol <= 0.0:
            warnings.warn(
                f"tol = {tol:4f} <= 0, the linear system may not converge",
                RuntimeWarning,
                stacklevel=2,
            )
        if norm_inf(b) <= 1e-12:
            return np.zeros(n + m)

        s = None
        if warm_start is not None:
            s = np.asarray(warm_start, dtype=np.float64).ravel()
            if s.size < n:
                raise ValueError(f"warm start must have at least {n} entries")
            s = s[:n].copy()

        rx, ry = b[:n], b[n:]
        rhs = rx + mat_t_vec(self.a, ry / self.diag_r[n:])
        x, its = self._pcg(rhs, s, 10 * n, tol)
        y = (mat_vec(self.a, x) - ry) / self.diag_r[n:]
        self.tot_cg_its += its
        return np.concatenate((x, y))