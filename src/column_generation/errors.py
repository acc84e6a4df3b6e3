"""
Exception hierarchy for the cutting-stock column generation package.
"""

from typing import Optional


class CuttingStockError(Exception):
    """Base class for all errors raised by this package."""


class InvalidInputError(CuttingStockError, ValueError):
    """Raised when an instance, a pattern set or an option is malformed."""


class SolverError(CuttingStockError):
    """
    Raised when the underlying LP/MIP solver does not return an optimal solution.

    Attributes:
        status: Solver-specific status reported by the backend
    """

    def __init__(self, message: str, status: Optional[str] = None) -> None:
        super().__init__(message)
        self.status = status


class InfeasibleError(SolverError):
    pass


class UnboundedError(SolverError):
    pass


class NotConvergedError(CuttingStockError):
    """
    Raised when column generation stops before proving optimality.

    The best solution found so far is attached so callers can still use it.

    Attributes:
        solution: Partial CuttingStockSolution (converged=False)
        reason: Why the loop stopped ('max_iterations', 'time_limit', 'duplicate_column')
    """

    def __init__(self, message: str, solution=None, reason: str = "max_iterations") -> None:
        super().__init__(message)
        self.solution = solution
        self.reason = reason
