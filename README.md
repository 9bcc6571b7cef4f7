# splitcone

This package provides the building blocks of a splitting conic solver. It is written in Python and uses numpy.

Each iteration of such a solver has to solve a quasi-definite system of this form:

```
[ R_x + P    A^T ] [x]   [r_x]
[   A       -R_y ] [y] = [r_y]
```

In this system:

- `A` is the `m x n` constraint matrix.
- `P` is the upper triangle of a positive semidefinite `n x n` matrix.
- `R = diag(R_x, R_y)` is a positive diagonal of length `n + m`.

## Modules

- `splitcone.types` holds the data types:
  - `CscMatrix` is a validated compressed-sparse-column matrix. It has `nnz()`, `from_dense()`, `to_dense()`, `copy()` and `shape`.
  - `Data`, `Cone`, `Settings`, `Solution`, `Info` and `Scaling` are problem description and result containers.
  - `Status` holds the exit codes. Its `text()` method returns a readable label.
  - `LinearSystemError` is the error raised when a linear system fails.
  - `default_settings()` returns the default settings and `version()` returns the version.
- `splitcone.linalg` holds vector helpers: `dot`, `norm_sq`, `norm_2`, `norm_inf`, `norm_diff`, `norm_inf_diff`, `mean` and `add_scaled_array`. `add_scaled_array` returns a new array.
- `splitcone.csparse` holds sparse helpers:
  - `cumsum` builds column pointers.
  - `compress` converts triplets to CSC. It also returns the position of each triplet in the result.
  - `transpose`, `mat_vec` and `mat_t_vec` are the usual transpose and products.
  - `sym_upper_mat_vec` multiplies by a symmetric matrix that is given by its upper triangle.
  - `form_kkt` builds the upper or lower triangle of the KKT matrix. It returns a `Kkt` that holds the matrix, the diagonal of `P` and the positions of the `R` entries.
- `splitcone.indirect` provides `IndirectLinSys`:
  - It reduces the system to `(R_x + P + A' R_y^{-1} A) x = r_x + A' R_y^{-1} r_y`.
  - It solves the reduced system with diagonally preconditioned conjugate gradients, using at most `10 n` iterations.
  - It then recovers `y = R_y^{-1} (A x - r_y)`.
  - `preconditioner()` returns the inverse diagonal that it uses.
  - `tot_cg_its` counts the CG iterations over all solves.
- `splitcone.direct` provides `DirectLinSys`:
  - It permutes the upper-triangular KKT matrix with a minimum degree ordering and factors it as `L D L'`.
  - The factorisation is done on a dense copy of the permuted matrix.
  - The module also exposes `min_degree_order`, `symperm` and `invert_permutation`.

## Installation

```
pip install .
```

To install with the test dependencies:

```
pip install ".[test]"
```

## Example

```python
import numpy as np
from splitcone.types import CscMatrix
from splitcone.direct import DirectLinSys
from splitcone.indirect import IndirectLinSys

A = CscMatrix.from_dense([[-1.0, 1.0], [1.0, 0.0], [0.0, 1.0]])
P = CscMatrix.from_dense([[3.0, -1.0], [0.0, 2.0]])  # upper triangle only
diag_r = np.full(A.m + A.n, 1e-1)

rhs = np.array([1.0, 2.0, 0.5, -0.3, 0.1])

direct = DirectLinSys(A, P, diag_r)
sol_direct = direct.solve(rhs)

indirect = IndirectLinSys(A, P, diag_r)
sol_indirect = indirect.solve(rhs, None, 1e-9)

assert np.allclose(sol_direct, sol_indirect, atol=1e-6)
```

Both solvers return a new array and leave the right-hand side unchanged.

`solve(b, warm_start=None, tol=1e-12)` takes the same arguments on both solvers, but they use them differently:

- `IndirectLinSys` uses the first `n` entries of `warm_start` as the starting guess for `x`. It stops CG once the infinity norm of the residual is below `tol`, and it emits a `RuntimeWarning` if `tol <= 0`.
- `DirectLinSys` ignores `warm_start` and `tol`.

When the diagonal `R` changes, call `update_diag_r(new_diag_r)` on the solver:

- `DirectLinSys` writes the new values into its KKT matrix and refactors.
- `IndirectLinSys` recomputes its preconditioner.

`DirectLinSys` raises `splitcone.types.LinearSystemError` in these cases:

- a pivot of the factorisation is zero;
- fewer than `n` pivots are positive, which happens, for example, when `P` is not positive semidefinite.

Arrays of the wrong length raise `ValueError`.

## What this package does not do

This package contains the problem types and the linear system solvers only. It has none of the following:

- the iterative conic solve loop;
- cone projections;
- data normalisation;
- acceleration;
- reading or writing problem files;
- a command-line program.

`Data`, `Cone`, `Settings`, `Solution`, `Info` and `Scaling` are plain containers that nothing in the package consumes to solve a problem.

## Running the tests

```
pytest
```