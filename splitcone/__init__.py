"""Problem types, sparse KKT assembly and direct and indirect linear system solvers for splitting conic optimisation."""

__version__ = "3.2.2"

__all__ = ["types", "linalg", "csparse", "indirect", "direct"]