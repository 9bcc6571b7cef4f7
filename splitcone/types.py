"""Problem, cone, settings and result containers shared by the solver."""

from __future__ import annotations

import dataclasses
import enum
from dataclasses import dataclass, field
from typing import Optional

import numpy as np

VERSION = "3.2.2"

# Default solver parameters.
MAX_ITERS = 100000
EPS_REL = 1e-4
EPS_ABS = 1e-4
EPS_INFEAS = 1e-7
ALPHA = 1.5
RHO_X = 1e-6
SCALE = 0.1
VERBOSE = True
NORMALIZE = True
WARM_START = False
ACCELERATION_LOOKBACK = 10
ACCELERATION_INTERVAL = 10
ADAPTIVE_SCALE = True
TIME_LIMIT_SECS = 0.0

# Internal algorithm constants.
FEASIBLE_ITERS = 1
RESCALING_MIN_ITERS = 100
DIV_EPS_TOL = 1e-18
PRINT_INTERVAL = 250
CONVERGED_INTERVAL = 25
ITERATE_NORM = 1.0
TAU_FACTOR = 10.0
AA_RELAXATION = 1.0
AA_REGULARIZATION_TYPE_1 = 1e-6
AA_REGULARIZATION_TYPE_2 = 1e-10
AA_SAFEGUARD_FACTOR = 1.0
AA_MAX_WEIGHT_NORM = 1e10
MAX_SCALE_VALUE = 1e6
MIN_SCALE_VALUE = 1e-6
CG_BEST_TOL = 1e-12
CG_TOL_FACTOR = 0.2
CG_RATE = 1.5


class LinearSystemError(RuntimeError):
    """Raised when a linear system cannot be set up, factored or solved."""


class Status(enum.IntEnum):
    """Exit status of a solve."""

    INFEASIBLE_INACCURATE = -7
    UNBOUNDED_INACCURATE = -6
    SIGINT = -5
    FAILED = -4
    INDETERMINATE = -3
    INFEASIBLE = -2
    UNBOUNDED = -1
    UNFINISHED = 0
    SOLVED = 1
    SOLVED_INACCURATE = 2

    def text(self) -> str:
        """Human readable description of the status."""
        return _STATUS_TEXT[self]


_STATUS_TEXT = {
    Status.INFEASIBLE_INACCURATE: "infeasible (inaccurate)",
    Status.UNBOUNDED_INACCURATE: "unbounded (inaccurate)",
    Status.SIGINT: "interrupted",
    Status.FAILED: "failure",
    Status.INDETERMINATE: "indeterminate",
    Status.INFEASIBLE: "infeasible",
    Status.UNBOUNDED: "unbounded",
    Status.UNFINISHED: "unfinished",
    Status.SOLVED: "solved",
    Status.SOLVED_INACCURATE: "solved (inaccurate)",
}


@dataclass
class CscMatrix:
    """Sparse matrix in compressed sparse column form, zero based."""

    x: np.ndarray
    i: np.ndarray
    p: np.ndarray
    m: int
    n: int

    def __post_init__(self) -> None:
        self.x = np.asarray(self.x, dtype=np.float64).ravel()
        self.i = np.asarray(self.i, dtype=np.int64).ravel()
        self.p = np.asarray(self.p, dtype=np.int64).ravel()
        self.m = int(self.m)
        self.n = int(self.n)
        if self.m < 0 or self.n < 0:
            raise ValueError("matrix dimensions must be non-negative")
        if self.p.size != self.n + 1:
            raise ValueError(
                f"column pointer array must have length n + 1 = {self.n + 1}, "
                f"got {self.p.size}"
            )
        if self.p[0] != 0 or np.any(np.diff(self.p) < 0):
            raise ValueError("column pointers must start at 0 and be non-decreasing")
        nnz = int(self.p[-1])
        if self.i.size < nnz or self.x.size < nnz:
            raise ValueError("row index and value arrays are shorter than p[n]")
        if nnz and (np.any(self.i[:nnz] < 0) or np.any(self.i[:nnz] >= self.m)):
            raise ValueError("row index out of range")

    @property
    def shape(self) -> tuple[int, int]:
        return (self.m, self.n)

    def nnz(self) -> int:
        """Number of stored entries."""
        return int(self.p[self.n])

    @classmethod
    def from_dense(cls, dense) -> "CscMatrix":
        """Build a matrix from a dense 2-D array, keeping its non-zeros."""
        arr = np.asarray(dense, dtype=np.float64)
        if arr.ndim != 2:
            raise ValueError("dense matrix must be two dimensional")
        m, n = arr.shape
        cols, rows = np.nonzero(arr.T)
        counts = np.bincount(cols, minlength=n)
        p = np.concatenate(([0], np.cumsum(counts)))
        return cls(arr[rows, cols], rows, p, m, n)

    def to_dense(self) -> np.ndarray:
        """Return the matrix as a dense array; duplicate entries are summed."""
        dense = np.zeros((self.m, self.n))
        nnz = self.nnz()
        cols = np.repeat(np.arange(self.n), np.diff(self.p))
        np.add.at(dense, (self.i[:nnz], cols), self.x[:nnz])
        return dense

    def copy(self) -> "CscMatrix":
        return CscMatrix(self.x.copy(), self.i.copy(), self.p.copy(), self.m, self.n)


@dataclass
class Settings:
    """Solver settings."""

    normalize: bool = NORMALIZE
    scale: float = SCALE
    adaptive_scale: bool = ADAPTIVE_SCALE
    rho_x: float = RHO_X
    max_iters: int = MAX_ITERS
    eps_abs: float = EPS_ABS
    eps_rel: float = EPS_REL
    eps_infeas: float = EPS_INFEAS
    alpha: float = ALPHA
    time_limit_secs: float = TIME_LIMIT_SECS
    verbose: bool = VERBOSE
    warm_start: bool = WARM_START
    acceleration_lookback: int = ACCELERATION_LOOKBACK
    acceleration_interval: int = ACCELERATION_INTERVAL
    write_data_filename: Optional[str] = None
    log_csv_filename: Optional[str] = None

    def copy(self) -> "Settings":
        return dataclasses.replace(self)


@dataclass
class Data:
    """Problem data: A (m x n), optional upper-triangular P (n x n), b, c."""

    A: CscMatrix
    b: np.ndarray
    c: np.ndarray
    P: Optional[CscMatrix] = None

    def __post_init__(self) -> None:
        self.b = np.asarray(self.b, dtype=np.float64).ravel()
        self.c = np.asarray(self.c, dtype=np.float64).ravel()
        if self.b.size != self.A.m:
            raise ValueError(f"b must have length m = {self.A.m}, got {self.b.size}")
        if self.c.size != self.A.n:
            raise ValueError(f"c must have length n = {self.A.n}, got {self.c.size}")
        if self.P is not None and self.P.shape != (self.A.n, self.A.n):
            raise ValueError("P must be n x n")

    @property
    def m(self) -> int:
        return self.A.m

    @property
    def n(self) -> int:
        return self.A.n

    def copy(self) -> "Data":
        return Data(
            self.A.copy(),
            self.b.copy(),
            self.c.copy(),
            None if self.P is None else self.P.copy(),
        )


@dataclass
class Cone:
    """Cone description; rows of A follow this order."""

    z: int = 0
    l: int = 0
    bu: list[float] = field(default_factory=list)
    bl: list[float] = field(default_factory=list)
    bsize: int = 0
    q: list[int] = field(default_factory=list)
    s: list[int] = field(default_factory=list)
    ep: int = 0
    ed: int = 0
    p: list[float] = field(default_factory=list)

    @property
    def qsize(self) -> int:
        return len(self.q)

    @property
    def ssize(self) -> int:
        return len(self.s)

    @property
    def psize(self) -> int:
        return len(self.p)

    def copy(self) -> "Cone":
        return dataclasses.replace(
            self,
            bu=list(self.bu),
            bl=list(self.bl),
            q=list(self.q),
            s=list(self.s),
            p=list(self.p),
        )


@dataclass
class Solution:
    """Primal-dual solution or certificate of infeasibility."""

    x: Optional[np.ndarray] = None
    y: Optional[np.ndarray] = None
    s: Optional[np.ndarray] = None


@dataclass
class Info:
    """Information about a finished solve."""

    iter: int = 0
    status: str = Status.UNFINISHED.text()
    lin_sys_solver: str = ""
    status_val: Status = Status.UNFINISHED
    scale_updates: int = 0
    pobj: float = float("nan")
    dobj: float = float("nan")
    res_pri: float = float("nan")
    res_dual: float = float("nan")
    gap: float = float("nan")
    res_infeas: float = float("nan")
    res_unbdd_a: float = float("nan")
    res_unbdd_p: float = float("nan")
    setup_time: float = 0.0
    solve_time: float = 0.0
    scale: float = float("nan")
    comp_slack: float = float("nan")
    rejected_accel_steps: int = 0
    accepted_accel_steps: int = 0
    lin_sys_time: float = 0.0
    cone_time: float = 0.0
    accel_time: float = 0.0


@dataclass
class Scaling:
    """Normalization data: row scaling D, column scaling E and scalars."""

    D: np.ndarray
    E: np.ndarray
    primal_scale: float = 1.0
    dual_scale: float = 1.0

    def __post_init__(self) -> None:
        self.D = np.asarray(self.D, dtype=np.float64).ravel()
        self.E = np.asarray(self.E, dtype=np.float64).ravel()

    @property
    def m(self) -> int:
        return self.D.size

    @property
    def n(self) -> int:
        return self.E.size


def default_settings() -> Settings:
    """Return settings populated with the default values."""
    return Settings()


def version() -> str:
    """Return the solver version string."""
    return VERSION