"""
Entry point for Column Generation algorithm.

This script provides a command-line interface for solving
cutting-stock problems using Column Generation.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .column_generation import ColumnGeneration, DEFAULT_TOLERANCE, DEFAULT_MAX_ITERATIONS
from .data_models import CuttingStockInstance, CuttingStockSolution
from .errors import NotConvergedError
from .parser import parse_instance_file
from .solvers import SOLVERS, DEFAULT_SOLVER
from .utils import format_pattern, total_waste


def setup_logging(verbose: bool = False) -> None:
    """
    Configure logging for the application.

    Args:
        verbose: If True, set logging level to DEBUG
    """
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Returns:
        Parsed arguments
    """
    parser = argparse.ArgumentParser(
        description='Solve one-dimensional cutting-stock problems using Column Generation',
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )

    parser.add_argument(
        '-i', '--input',
        type=str,
        required=True,
        help='Instance file: JSON (.json) or plain text (roll width, then "width demand [name]" lines)'
    )

    parser.add_argument(
        '-o', '--output',
        type=str,
        default=None,
        help='Output folder for result files (nothing is written if omitted)'
    )

    parser.add_argument(
        '-e', '--tolerance',
        type=float,
        default=DEFAULT_TOLERANCE,
        help='Stop once the pricing reduced cost is >= this value'
    )

    parser.add_argument(
        '-m', '--max-iter',
        type=int,
        default=DEFAULT_MAX_ITERATIONS,
        help='Maximum number of master problem solves'
    )

    parser.add_argument(
        '-s', '--solver',
        choices=sorted(SOLVERS),
        default=DEFAULT_SOLVER,
        help='LP/MIP solver backend'
    )

    parser.add_argument(
        '--time-limit',
        type=float,
        default=None,
        help='Wall-clock limit in seconds, checked before each iteration'
    )

    parser.add_argument(
        '--integer',
        action='store_true',
        help='After convergence, re-solve the master problem with integer quantities'
    )

    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Enable verbose (debug) logging'
    )

    return parser.parse_args(argv)


def print_summary(instance: CuttingStockInstance, solution: CuttingStockSolution, title: str) -> None:
    print("\n" + "="*60)
    print(title)
    print("="*60)
    print(f"Instance:            {instance.name}")
    print(f"Objective value:     {solution.objective:.4f}")
    print(f"Iterations:          {solution.iterations}")
    print(f"Columns generated:   {solution.num_columns}")
    print(f"Solve time:          {solution.solve_time:.2f} seconds")
    print(f"Converged:           {'Yes' if solution.converged else 'No'}")
    print(f"Total waste:         {total_waste(instance, solution):.2f}")
    print("Patterns:")
    for pattern, qty in zip(solution.patterns, solution.quantities):
        print(f"  {qty:10.4f} x P{pattern.index}: {format_pattern(pattern, instance)}")
    print("="*60)


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for the Column Generation algorithm.

    Returns:
        Exit code (0 for success, 2 if not converged, 1 for failure)
    """
    # Parse arguments
    args = parse_arguments(argv)

    # Setup logging
    setup_logging(args.verbose)
    logger = logging.getLogger(__name__)

    try:
        # Validate input file
        input_path = Path(args.input)
        if not input_path.exists():
            logger.error(f"Input file not found: {input_path}")
            return 1

        instance = parse_instance_file(input_path)

        # Create column generation solver
        cg = ColumnGeneration(
            instance,
            tolerance=args.tolerance,
            max_iterations=args.max_iter,
            solver=args.solver,
            time_limit=args.time_limit,
            output_folder=args.output
        )

        # Run algorithm
        solution = cg.run()
        print_summary(instance, solution, "LP RELAXATION SUMMARY")

        if args.integer:
            integer_solution = cg.solve_integer(time_limit=args.time_limit)
            print_summary(instance, integer_solution, "INTEGER SOLUTION SUMMARY")
            solution = integer_solution

        # Save results
        if args.output:
            cg.save_results(solution=solution)

        return 0

    except NotConvergedError as e:
        logger.error(str(e))
        if e.solution is not None:
            print_summary(instance, e.solution, "PARTIAL SOLUTION (NOT CONVERGED)")
            if args.output:
                cg.save_results(solution=e.solution)
        return 2

    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        return 1

    except Exception as e:
        logger.exception(f"Error occurred: {e}")
        return 1


if __name__ == '__main__':
    sys.exit(main())
