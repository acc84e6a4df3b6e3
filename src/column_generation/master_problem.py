"""
Restricted Master Problem (RMP) for Column Generation.

This module implements the RMP as an explicit, growable set of pattern columns
that is translated into a LinearProgram for every solve.
"""

from typing import Dict, List, Any, Optional, Sequence, Tuple
import logging

import numpy as np

from .data_models import CuttingStockInstance, Pattern
from .errors import InvalidInputError
from .solvers import LinearProgram, SolverResult, solve_lp, solve_ip, DEFAULT_SOLVER

logger = logging.getLogger(__name__)


class MasterProblem:
    """
    Restricted Master Problem over the patterns generated so far.

    The RMP is formulated as:
    min Σ(x_p)
    s.t. Σ(a_ip * x_p) = demand[i]   ∀i ∈ items
         0 ≤ x_p ≤ U                 ∀p ∈ patterns

    Columns are only ever appended. U is chosen large enough never to bind.
    """

    def __init__(self, instance: CuttingStockInstance, solver=DEFAULT_SOLVER,
                 column_upper_bound: Optional[float] = None):
        """
        Initialize an empty Master Problem.

        Args:
            instance: The cutting-stock instance
            solver: Backend name or instance used for the LP solves
            column_upper_bound: Upper bound on every pattern quantity (default: 1 + total demand)
        """
        self.instance = instance
        self.solver = solver
        if column_upper_bound is None:
            column_upper_bound = 1.0 + float(sum(instance.demand))
        self.column_upper_bound = column_upper_bound

        self.patterns: List[Pattern] = []
        self._pattern_lookup: Dict[Tuple[int, ...], int] = {}

        self.last_result: Optional[SolverResult] = None

        logger.debug(f"MasterProblem initialized with {instance.num_items} demand constraints")

    @property
    def num_columns(self) -> int:
        return len(self.patterns)

    def has_pattern(self, counts: Sequence[int]) -> bool:
        return tuple(int(c) for c in counts) in self._pattern_lookup

    def add_column(self, counts: Sequence[int]) -> Pattern:
        """
        Append a pattern column to the RMP.

        Args:
            counts: Units of each item the pattern yields

        Returns:
            The new Pattern, or the existing one if the same counts were added before
        """
        key = tuple(int(c) for c in counts)
        if len(key) != self.instance.num_items:
            raise InvalidInputError(
                f"Pattern has {len(key)} entries, expected {self.instance.num_items}"
            )

        if key in self._pattern_lookup:
            existing = self.patterns[self._pattern_lookup[key]]
            logger.warning(f"Pattern {list(key)} already present as column {existing.index}")
            return existing

        pattern = Pattern(index=len(self.patterns), counts=key)
        self.patterns.append(pattern)
        self._pattern_lookup[key] = pattern.index

        logger.debug(f"Added column {pattern.index}: {list(key)}")
        return pattern

    def to_linear_program(self, integer: bool = False) -> LinearProgram:
        """
        Build the solver input for the current set of columns.

        The LP master keeps demand rows as equalities; the integer master
        covers demand with >= rows, so over-production is allowed.
        """
        n = len(self.patterns)
        A = np.array([p.counts for p in self.patterns], dtype=float).T.reshape(self.instance.num_items, n)
        return LinearProgram(
            c=np.ones(n),
            A=A,
            senses=[">=" if integer else "=="] * self.instance.num_items,
            rhs=np.asarray(self.instance.demand, dtype=float),
            lower=np.zeros(n),
            upper=np.full(n, self.column_upper_bound),
            integrality=np.full(n, integer, dtype=bool),
            variable_names=[f"pattern_{p.index}" for p in self.patterns],
            constraint_names=[f"demand_{i}" for i in range(self.instance.num_items)],
            name="Restricted_Master_Problem"
        )

    def solve(self, time_limit: Optional[float] = None) -> Dict[str, Any]:
        """
        Solve the LP relaxation of the RMP.

        Returns:
            Dictionary with objective value and solution status

        Raises:
            InfeasibleError, UnboundedError, SolverError: Propagated from the backend
        """
        logger.debug(f"Solving RMP with {self.num_columns} columns")

        self.last_result = solve_lp(self.to_linear_program(), self.solver, time_limit=time_limit)

        result = {
            'status': 'Optimal',
            'objective': self.last_result.objective,
            'num_columns': self.num_columns
        }
        logger.debug(f"RMP objective: {result['objective']:.6f}")
        return result

    def solve_integer(self, time_limit: Optional[float] = None) -> SolverResult:
        """
        Solve the RMP with integral pattern quantities over the current columns.

        The last LP solution is left untouched.
        """
        logger.debug(f"Solving integer RMP with {self.num_columns} columns")
        return solve_ip(self.to_linear_program(integer=True), self.solver, time_limit=time_limit)

    def _require_solution(self) -> SolverResult:
        if self.last_result is None:
            raise RuntimeError("Master problem has not been solved yet")
        return self.last_result

    def get_dual_variables(self) -> np.ndarray:
        """
        Extract dual variables (shadow prices) of the demand constraints.

        Returns:
            Array [π_1, ..., π_m], one per item
        """
        return np.array(self._require_solution().duals, dtype=float)

    def get_pattern_values(self, threshold: float = 1e-9) -> Dict[int, float]:
        """
        Get non-zero pattern quantities from the last LP solution.

        Returns:
            Dictionary mapping column index to quantity
        """
        x = self._require_solution().x
        return {idx: float(value) for idx, value in enumerate(x) if value > threshold}

    def get_objective_value(self) -> float:
        return float(self._require_solution().objective)
