"""
Column Generation for the Cutting-Stock Problem.

A Python implementation of the Gilmore-Gomory column generation scheme
using Gurobi, HiGHS (via SciPy) or CBC (via PuLP) as the LP/MIP solver.
"""

from .data_models import CuttingStockInstance, Pattern, IterationRecord, CuttingStockSolution
from .errors import (
    CuttingStockError,
    InvalidInputError,
    SolverError,
    InfeasibleError,
    UnboundedError,
    NotConvergedError,
)
from .solvers import LinearProgram, SolverResult, solve_lp, solve_ip, get_solver
from .master_problem import MasterProblem
from .pricing_problem import generate_initial_patterns, build_pricing_problem, solve_pricing_problem
from .column_generation import ColumnGeneration, solve_cutting_stock
from .parser import parse_instance_file, instance_from_dict

__version__ = "1.0.0"

__all__ = [
    'CuttingStockInstance',
    'Pattern',
    'IterationRecord',
    'CuttingStockSolution',
    'CuttingStockError',
    'InvalidInputError',
    'SolverError',
    'InfeasibleError',
    'UnboundedError',
    'NotConvergedError',
    'LinearProgram',
    'SolverResult',
    'solve_lp',
    'solve_ip',
    'get_solver',
    'MasterProblem',
    'generate_initial_patterns',
    'build_pricing_problem',
    'solve_pricing_problem',
    'ColumnGeneration',
    'solve_cutting_stock',
    'parse_instance_file',
    'instance_from_dict'
]
