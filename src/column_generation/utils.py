"""
Utility functions for Column Generation algorithm.

This module provides helper functions for input validation, solution
validation and the reduced-cost optimality certificate.
"""

from typing import Iterable, List, Sequence, Tuple
import logging
import math

from .data_models import CuttingStockInstance, CuttingStockSolution, Pattern
from .errors import InvalidInputError
from .pricing_problem import solve_pricing_problem
from .solvers import DEFAULT_SOLVER

logger = logging.getLogger(__name__)


def _is_positive(value) -> bool:
    try:
        return math.isfinite(value) and value > 0
    except TypeError:
        return False


def validate_instance(instance: CuttingStockInstance) -> None:
    """
    Check that an instance is well formed before any solver is called.

    Every item must fit on a roll on its own, otherwise the identity
    starting patterns are infeasible.

    Args:
        instance: The cutting-stock instance

    Raises:
        InvalidInputError: On the first violation found
    """
    if not _is_positive(instance.roll_width):
        raise InvalidInputError(f"Roll width must be positive, got {instance.roll_width}")

    m = len(instance.item_widths)
    if m == 0:
        raise InvalidInputError("Instance has no items")
    if len(instance.demand) != m:
        raise InvalidInputError(
            f"Got {m} item widths but {len(instance.demand)} demands"
        )
    if len(instance.item_names) != m:
        raise InvalidInputError(
            f"Got {m} item widths but {len(instance.item_names)} item names"
        )

    for i, (width, qty) in enumerate(zip(instance.item_widths, instance.demand)):
        if not _is_positive(width):
            raise InvalidInputError(f"Item {i} has non-positive width {width}")
        if width > instance.roll_width:
            raise InvalidInputError(
                f"Item {i} width {width} exceeds roll width {instance.roll_width}"
            )
        if not _is_positive(qty):
            raise InvalidInputError(f"Item {i} has non-positive demand {qty}")


def is_valid_column(counts: Sequence[int], instance: CuttingStockInstance, tol: float = 1e-9) -> bool:
    """
    Check that a pattern has non-negative integer entries and fits on a roll.
    """
    if len(counts) != instance.num_items:
        return False
    for c in counts:
        if c < 0 or int(c) != c:
            return False
    used = sum(c * w for c, w in zip(counts, instance.item_widths))
    return used <= instance.roll_width + tol


def validate_patterns(patterns: Iterable[Sequence[int]], instance: CuttingStockInstance) -> List[Tuple[int, ...]]:
    """
    Validate a starting pattern set.

    Every item must be produced by at least one pattern, otherwise the
    master problem cannot meet its demand.

    Returns:
        The patterns as tuples of ints

    Raises:
        InvalidInputError: If a pattern is invalid or an item is never produced
    """
    result = []
    for k, counts in enumerate(patterns):
        if not is_valid_column(counts, instance):
            raise InvalidInputError(f"Initial pattern {k} is not a valid cutting pattern: {list(counts)}")
        result.append(tuple(int(c) for c in counts))

    if not result:
        raise InvalidInputError("At least one initial pattern is required")

    for i in range(instance.num_items):
        if all(p[i] == 0 for p in result):
            raise InvalidInputError(f"No initial pattern produces item {i}")

    return result


def validate_solution(instance: CuttingStockInstance, solution: CuttingStockSolution,
                      tolerance: float = 1e-6, allow_overproduction: bool = False) -> bool:
    """
    Validate a solution for feasibility.

    Checks:
    1. Every pattern is a valid cutting pattern
    2. All quantities are non-negative
    3. Production of every item equals its demand (or covers it, when
       allow_overproduction is set)

    Args:
        instance: The cutting-stock instance
        solution: Solution to check
        tolerance: Tolerance relative to the demand, absolute below a demand of 1
        allow_overproduction: Accept production above demand (integer plans)

    Returns:
        True if solution is feasible, False otherwise
    """
    scale = max([1.0] + [abs(d) for d in instance.demand])
    for pattern, qty in zip(solution.patterns, solution.quantities):
        if not is_valid_column(pattern.counts, instance):
            logger.warning(f"Invalid pattern {pattern}")
            return False
        if qty < -tolerance * scale:
            logger.warning(f"Negative quantity {qty} for pattern {pattern}")
            return False

    produced = solution.item_production(instance.num_items)
    for i, (made, wanted) in enumerate(zip(produced, instance.demand)):
        slack = tolerance * max(1.0, abs(wanted))
        short = made < wanted - slack
        over = not allow_overproduction and made > wanted + slack
        if short or over:
            logger.warning(f"Demand violation for item {i}: produced={made:.6f} demand={wanted}")
            return False

    logger.debug("Solution validation passed")
    return True


def verify_optimality_certificate(
    instance: CuttingStockInstance,
    dual_vars: Sequence[float],
    solver=DEFAULT_SOLVER,
    tolerance: float = -1e-7
) -> bool:
    """
    Re-solve the pricing subproblem at the given duals.

    Returns:
        True if no pattern has reduced cost below the tolerance
    """
    _, reduced_cost = solve_pricing_problem(instance, dual_vars, solver)
    return reduced_cost >= tolerance


def total_waste(instance: CuttingStockInstance, solution: CuttingStockSolution) -> float:
    """Trim loss summed over all cut rolls."""
    return sum(p.waste(instance) * q for p, q in zip(solution.patterns, solution.quantities))


def format_pattern(pattern: Pattern, instance: CuttingStockInstance) -> str:
    """Readable description such as '2 x item_0 (22) + 1 x item_1 (42)'."""
    parts = [
        f"{count} x {instance.item_names[i]} ({instance.item_widths[i]:g})"
        for i, count in enumerate(pattern.counts) if count
    ]
    return " + ".join(parts) if parts else "(empty)"
