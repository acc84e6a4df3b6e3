"""
Data models for cutting-stock Column Generation.

This module contains the core data structures: CuttingStockInstance, Pattern,
IterationRecord and CuttingStockSolution.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple, Any
import math


@dataclass
class CuttingStockInstance:
    """
    One-dimensional cutting-stock instance.

    Attributes:
        roll_width: Width of every stock roll
        item_widths: Width of each ordered item (parallel to demand)
        demand: Number of units ordered for each item
        item_names: Optional display names, one per item
        name: Optional instance name
    """
    roll_width: float
    item_widths: List[float]
    demand: List[float]
    item_names: List[str] = field(default_factory=list)
    name: str = "cutting_stock"

    def __post_init__(self):
        """Fill in default item names."""
        self.item_widths = list(self.item_widths)
        self.demand = list(self.demand)
        if not self.item_names:
            self.item_names = [f"item_{i}" for i in range(len(self.item_widths))]
        else:
            self.item_names = list(self.item_names)

    @property
    def num_items(self) -> int:
        return len(self.item_widths)

    def __repr__(self) -> str:
        return (f"CuttingStockInstance({self.name}, roll_width={self.roll_width}, "
                f"items={self.num_items})")


@dataclass(frozen=True)
class Pattern:
    """
    A cutting pattern: how many units of each item one roll yields.

    The index is a stable synthetic identifier assigned by the master problem.
    """
    index: int
    counts: Tuple[int, ...]

    def width_used(self, item_widths: Sequence[float]) -> float:
        return sum(c * w for c, w in zip(self.counts, item_widths))

    def waste(self, instance: CuttingStockInstance) -> float:
        """Trim loss left on the roll after cutting this pattern."""
        return instance.roll_width - self.width_used(instance.item_widths)

    def __str__(self) -> str:
        return f"P{self.index}{list(self.counts)}"


@dataclass
class IterationRecord:
    """One pass of the column generation loop."""
    iteration: int
    objective: float
    reduced_cost: float
    num_columns: int
    new_pattern: Optional[Tuple[int, ...]] = None
    elapsed: float = 0.0


@dataclass
class CuttingStockSolution:
    """
    Result of a column generation run (or of the integer re-solve).

    Attributes:
        patterns: Patterns with a non-zero quantity
        quantities: Number of rolls cut with each pattern (parallel to patterns)
        objective: Total number of rolls (fractional for the LP relaxation)
        iterations: Number of master problem solves
        num_columns: Number of columns in the master problem at the end
        duals: Dual values of the demand constraints at the last master solve
        final_reduced_cost: Pricing objective at the last iteration
        converged: True when the reduced-cost optimality certificate holds
        termination_reason: 'optimal', 'max_iterations', 'time_limit', 'duplicate_column' or 'integer'
        solve_time: Wall-clock seconds
        history: Per-iteration records
    """
    patterns: List[Pattern]
    quantities: List[float]
    objective: float
    iterations: int
    num_columns: int
    duals: List[float] = field(default_factory=list)
    final_reduced_cost: float = math.nan
    converged: bool = True
    termination_reason: str = "optimal"
    solve_time: float = 0.0
    history: List[IterationRecord] = field(default_factory=list)

    def item_production(self, num_items: int) -> List[float]:
        """Units of each item produced by the solution."""
        produced = [0.0] * num_items
        for pattern, qty in zip(self.patterns, self.quantities):
            for i, count in enumerate(pattern.counts):
                produced[i] += count * qty
        return produced

    def as_dict(self) -> Dict[str, Any]:
        return {
            'objective': self.objective,
            'iterations': self.iterations,
            'num_columns': self.num_columns,
            'converged': self.converged,
            'termination_reason': self.termination_reason,
            'solve_time': self.solve_time,
            'final_reduced_cost': self.final_reduced_cost,
            'duals': list(self.duals),
            'patterns': [
                {'index': p.index, 'counts': list(p.counts), 'quantity': q}
                for p, q in zip(self.patterns, self.quantities)
            ],
        }

    def __repr__(self) -> str:
        return (f"CuttingStockSolution(obj={self.objective:.4f}, iters={self.iterations}, "
                f"columns={self.num_columns}, converged={self.converged})")
