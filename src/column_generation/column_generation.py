"""
Column Generation Algorithm Controller.

This module implements the column generation loop for the one-dimensional
cutting-stock problem (Gilmore-Gomory formulation).
"""

import json
import time
from pathlib import Path
from typing import Dict, List, Optional, Sequence
import logging

import numpy as np

from .data_models import CuttingStockInstance, CuttingStockSolution, IterationRecord
from .errors import InvalidInputError, NotConvergedError
from .master_problem import MasterProblem
from .pricing_problem import generate_initial_patterns, solve_pricing_problem
from .solvers import DEFAULT_SOLVER
from .utils import validate_instance, validate_patterns, validate_solution

logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE = -1e-7
DEFAULT_MAX_ITERATIONS = 1000


class ColumnGeneration:
    """
    Column Generation algorithm controller for cutting stock.

    Solves the LP relaxation of the cutting-stock problem by iteratively solving:
    1. Restricted Master Problem (RMP) to get dual variables
    2. Pricing subproblem to generate new patterns with negative reduced cost
    """

    def __init__(
        self,
        instance: CuttingStockInstance,
        initial_patterns: Optional[Sequence[Sequence[int]]] = None,
        tolerance: float = DEFAULT_TOLERANCE,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        solver=DEFAULT_SOLVER,
        time_limit: Optional[float] = None,
        column_upper_bound: Optional[float] = None,
        output_folder: Optional[str] = None
    ):
        """
        Initialize Column Generation algorithm.

        Args:
            instance: The cutting-stock instance to solve
            initial_patterns: Starting columns (default: identity patterns)
            tolerance: The loop stops once the pricing objective is >= tolerance
            max_iterations: Maximum number of master problem solves
            solver: Backend name ('gurobi', 'highs', 'cbc') or backend instance
            time_limit: Optional wall-clock limit in seconds, checked before each iteration
            column_upper_bound: Upper bound on pattern quantities (default: 1 + total demand)
            output_folder: Folder for output files written by save_results()
        """
        if max_iterations < 1:
            raise InvalidInputError(f"max_iterations must be at least 1, got {max_iterations}")

        self.instance = instance
        self.initial_patterns = initial_patterns
        self.tolerance = tolerance
        self.max_iterations = max_iterations
        self.solver = solver
        self.time_limit = time_limit
        self.column_upper_bound = column_upper_bound
        self.output_folder = Path(output_folder) if output_folder else None

        self.master_problem: Optional[MasterProblem] = None
        self.iteration_history: List[IterationRecord] = []
        self.solution: Optional[CuttingStockSolution] = None

    def run(self) -> CuttingStockSolution:
        """
        Run the Column Generation algorithm.

        Returns:
            CuttingStockSolution of the LP relaxation with converged=True

        Raises:
            InvalidInputError: If the instance or the initial patterns are malformed
            InfeasibleError, UnboundedError, SolverError: Propagated from the solver
            NotConvergedError: If the loop stops without an optimality certificate;
                the best solution found is attached
        """
        logger.info("="*60)
        logger.info("Starting Column Generation Algorithm")
        logger.info("="*60)

        validate_instance(self.instance)

        start_time = time.time()

        if self.initial_patterns is None:
            initial = generate_initial_patterns(self.instance)
        else:
            initial = validate_patterns(self.initial_patterns, self.instance)

        self.master_problem = MasterProblem(
            self.instance, solver=self.solver, column_upper_bound=self.column_upper_bound
        )
        for counts in initial:
            self.master_problem.add_column(counts)

        self.iteration_history = []
        iteration = 0
        reduced_cost = float('nan')
        duals = np.zeros(self.instance.num_items)
        termination_reason = "optimal"
        converged = False

        while True:
            elapsed = time.time() - start_time
            if self.time_limit is not None and iteration > 0 and elapsed >= self.time_limit:
                termination_reason = "time_limit"
                break

            iteration += 1

            # Solve RMP
            result = self.master_problem.solve()
            objective = result['objective']

            # Get dual variables
            duals = self.master_problem.get_dual_variables()

            # Solve pricing problem
            new_pattern, reduced_cost = solve_pricing_problem(self.instance, duals, self.solver)

            converged = reduced_cost >= self.tolerance
            record = IterationRecord(
                iteration=iteration,
                objective=objective,
                reduced_cost=reduced_cost,
                num_columns=self.master_problem.num_columns,
                new_pattern=None if converged else new_pattern,
                elapsed=time.time() - start_time
            )
            self._check_monotonic(record)
            self.iteration_history.append(record)

            # Log progress
            if iteration % 10 == 0 or iteration == 1 or converged:
                logger.info(f"Iter {iteration}: obj={objective:.6f}, "
                            f"reduced_cost={reduced_cost:.8f}, "
                            f"columns={self.master_problem.num_columns}")
            else:
                logger.debug(f"Iter {iteration}: obj={objective:.6f}, "
                             f"reduced_cost={reduced_cost:.8f}")

            if converged:
                logger.info("Converged: no pattern with negative reduced cost")
                break

            if self.master_problem.has_pattern(new_pattern):
                termination_reason = "duplicate_column"
                break

            if iteration >= self.max_iterations:
                termination_reason = "max_iterations"
                break

            self.master_problem.add_column(new_pattern)

        solve_time = time.time() - start_time
        self.solution = self._build_solution(
            iteration, duals, reduced_cost, converged, termination_reason, solve_time
        )

        if not validate_solution(self.instance, self.solution):
            logger.warning("Master solution does not meet demand within tolerance")

        logger.info("="*60)
        logger.info("Column Generation Completed")
        logger.info(f"Iterations: {iteration}")
        logger.info(f"Final objective: {self.solution.objective:.6f}")
        logger.info(f"Total columns generated: {self.master_problem.num_columns}")
        logger.info(f"Solve time: {solve_time:.2f} seconds")
        logger.info("="*60)

        if not converged:
            logger.warning(f"Column generation stopped without convergence ({termination_reason})")
            raise NotConvergedError(
                f"Column generation stopped after {iteration} iterations: {termination_reason}",
                solution=self.solution,
                reason=termination_reason
            )

        return self.solution

    def _check_monotonic(self, record: IterationRecord) -> None:
        if not self.iteration_history:
            return
        previous = self.iteration_history[-1].objective
        if record.objective > previous + 1e-6:
            logger.warning(f"Master objective increased from {previous:.6f} to {record.objective:.6f}")

    def retrieve_solution(self) -> Dict[int, float]:
        """
        Extract non-zero pattern quantities from the last master solve.

        Returns:
            Dictionary mapping pattern index to quantity
        """
        if self.master_problem is None:
            raise RuntimeError("run() must be called before retrieve_solution()")

        pattern_values = self.master_problem.get_pattern_values()
        logger.debug(f"{len(pattern_values)} patterns used in the master solution")
        return pattern_values

    def _build_solution(self, iteration: int, duals, reduced_cost: float, converged: bool,
                        termination_reason: str, solve_time: float) -> CuttingStockSolution:
        pattern_values = self.retrieve_solution()
        patterns = [self.master_problem.patterns[idx] for idx in pattern_values]

        return CuttingStockSolution(
            patterns=patterns,
            quantities=list(pattern_values.values()),
            objective=self.master_problem.get_objective_value(),
            iterations=iteration,
            num_columns=self.master_problem.num_columns,
            duals=[float(d) for d in duals],
            final_reduced_cost=reduced_cost,
            converged=converged,
            termination_reason=termination_reason,
            solve_time=solve_time,
            history=list(self.iteration_history)
        )

    def solve_integer(self, time_limit: Optional[float] = None) -> CuttingStockSolution:
        """
        Re-solve the master problem with integral quantities over the generated patterns.

        This yields a feasible cutting plan but not necessarily an optimal integer one.

        Returns:
            CuttingStockSolution with integer quantities
        """
        if self.solution is None:
            raise RuntimeError("run() must be called before solve_integer()")

        start_time = time.time()
        result = self.master_problem.solve_integer(time_limit=time_limit)

        patterns, quantities = [], []
        for idx, value in enumerate(result.x):
            qty = int(round(value))
            if qty > 0:
                patterns.append(self.master_problem.patterns[idx])
                quantities.append(qty)

        integer_solution = CuttingStockSolution(
            patterns=patterns,
            quantities=quantities,
            objective=float(sum(quantities)),
            iterations=self.solution.iterations,
            num_columns=self.master_problem.num_columns,
            duals=list(self.solution.duals),
            final_reduced_cost=self.solution.final_reduced_cost,
            converged=self.solution.converged,
            termination_reason="integer",
            solve_time=time.time() - start_time,
            history=list(self.iteration_history)
        )

        if not validate_solution(self.instance, integer_solution, allow_overproduction=True):
            logger.warning("Integer solution does not cover demand")

        logger.info(f"Integer master objective: {integer_solution.objective:.0f} "
                    f"(LP bound {self.solution.objective:.4f})")
        return integer_solution

    def save_results(self, output_folder: Optional[str] = None,
                     solution: Optional[CuttingStockSolution] = None) -> Path:
        """
        Save results to output files.

        Creates:
        - iterations.txt: iteration history
        - patterns.txt: quantity, counts and waste of each used pattern
        - solution.json: the full solution

        Returns:
            The output folder
        """
        folder = Path(output_folder) if output_folder else self.output_folder
        if folder is None:
            raise InvalidInputError("No output folder given")
        solution = solution or self.solution
        if solution is None:
            raise RuntimeError("run() must be called before save_results()")

        folder.mkdir(parents=True, exist_ok=True)
        logger.info(f"Saving results to {folder}")

        # Save iteration history
        with open(folder / "iterations.txt", 'w') as f:
            f.write("iter_num\tobj\treduced_cost\tnum_columns\tnew_pattern\n")
            for record in solution.history:
                new_pattern = "-" if record.new_pattern is None else ",".join(map(str, record.new_pattern))
                f.write(f"{record.iteration}\t{record.objective:.6f}\t"
                        f"{record.reduced_cost:.8f}\t{record.num_columns}\t{new_pattern}\n")

        # Save used patterns
        with open(folder / "patterns.txt", 'w') as f:
            f.write("pattern_id\tquantity\tcounts\twaste\n")
            for pattern, qty in zip(solution.patterns, solution.quantities):
                f.write(f"{pattern.index}\t{qty:.6f}\t{','.join(map(str, pattern.counts))}\t"
                        f"{pattern.waste(self.instance):g}\n")

        with open(folder / "solution.json", 'w') as f:
            json.dump(solution.as_dict(), f, indent=2)

        logger.info("Results saved successfully")
        return folder


def solve_cutting_stock(
    demand: Sequence[float],
    item_widths: Sequence[float],
    roll_width: float,
    initial_patterns: Optional[Sequence[Sequence[int]]] = None,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
    tolerance: float = DEFAULT_TOLERANCE,
    solver=DEFAULT_SOLVER,
    time_limit: Optional[float] = None
) -> CuttingStockSolution:
    """
    Functional entry point: solve the LP relaxation of a cutting-stock instance.

    See ColumnGeneration.run() for the raised exceptions.
    """
    instance = CuttingStockInstance(
        roll_width=roll_width, item_widths=list(item_widths), demand=list(demand)
    )
    cg = ColumnGeneration(
        instance,
        initial_patterns=initial_patterns,
        tolerance=tolerance,
        max_iterations=max_iterations,
        solver=solver,
        time_limit=time_limit
    )
    return cg.run()
