"""
Pricing Subproblem Solver for Column Generation.

This module builds the integer knapsack that prices out new cutting patterns
from the current dual values, and provides the identity starting patterns.
"""

import math
from typing import List, Tuple, Optional, Sequence
import logging

import numpy as np

from .data_models import CuttingStockInstance
from .solvers import LinearProgram, solve_ip, DEFAULT_SOLVER

logger = logging.getLogger(__name__)


def generate_initial_patterns(instance: CuttingStockInstance) -> List[Tuple[int, ...]]:
    """
    Generate the identity starting set: one pattern per item, each yielding one unit.

    The identity set is feasible for any positive demand as long as every item
    fits on a roll.

    Args:
        instance: The cutting-stock instance

    Returns:
        List of m patterns (tuples of length m)
    """
    m = instance.num_items
    patterns = [tuple(1 if j == i else 0 for j in range(m)) for i in range(m)]
    logger.info(f"Generated {m} initial patterns")
    return patterns


def build_pricing_problem(instance: CuttingStockInstance, dual_vars: Sequence[float]) -> LinearProgram:
    """
    Build the pricing knapsack for the given dual values.

    min 1 - Σ(π_i * a_i)
    s.t. Σ(w_i * a_i) ≤ W
         0 ≤ a_i ≤ floor(W / w_i), a_i integer
    """
    widths = np.asarray(instance.item_widths, dtype=float)
    upper = np.array([math.floor(instance.roll_width / w + 1e-9) for w in widths], dtype=float)

    return LinearProgram(
        c=-np.asarray(dual_vars, dtype=float),
        A=widths.reshape(1, -1),
        senses=["<="],
        rhs=np.array([instance.roll_width], dtype=float),
        lower=np.zeros(instance.num_items),
        upper=upper,
        integrality=np.ones(instance.num_items, dtype=bool),
        objective_constant=1.0,
        variable_names=[f"a_{i}" for i in range(instance.num_items)],
        constraint_names=["capacity"],
        name="Pricing_Problem"
    )


def solve_pricing_problem(
    instance: CuttingStockInstance,
    dual_vars: Sequence[float],
    solver=DEFAULT_SOLVER,
    time_limit: Optional[float] = None
) -> Tuple[Tuple[int, ...], float]:
    """
    Solve the pricing subproblem to find the pattern with the most negative reduced cost.

    Args:
        instance: The cutting-stock instance
        dual_vars: Shadow prices of the demand constraints
        solver: Backend name or instance
        time_limit: Optional solver time limit in seconds

    Returns:
        Tuple of (pattern counts, reduced cost)
    """
    logger.debug("Solving pricing subproblem")

    result = solve_ip(build_pricing_problem(instance, dual_vars), solver, time_limit=time_limit)

    pattern = tuple(int(round(v)) for v in result.x)
    # Reduced cost of the rounded pattern
    reduced_cost = 1.0 - float(np.dot(dual_vars, pattern))

    logger.debug(f"Pricing pattern {list(pattern)}, reduced cost: {reduced_cost:.8f}")
    return pattern, reduced_cost
