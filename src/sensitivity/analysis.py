"""
Post-optimal sensitivity analysis of linear programs.

Solves a LinearProgram with Gurobi and reads back, for the optimal basis:
- shadow prices and slacks of the constraints,
- reduced costs and basis status of the variables,
- the objective-coefficient ranges over which the basis stays optimal,
- the right-hand-side ranges over which the shadow prices stay valid.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional
import logging
import math

from gurobipy import GRB

from column_generation.errors import InvalidInputError
from column_generation.solvers import GurobiSolver, LinearProgram

logger = logging.getLogger(__name__)


def _from_gurobi(value: float) -> float:
    """Map Gurobi's infinity sentinel to math.inf."""
    if value >= GRB.INFINITY:
        return math.inf
    if value <= -GRB.INFINITY:
        return -math.inf
    return float(value)


@dataclass
class VariableSensitivity:
    name: str
    value: float
    reduced_cost: float
    objective_coefficient: float
    objective_lower: float
    objective_upper: float
    basic: bool


@dataclass
class ConstraintSensitivity:
    name: str
    shadow_price: float
    slack: float
    rhs: float
    rhs_lower: float
    rhs_upper: float
    binding: bool


@dataclass
class SensitivityReport:
    """
    Sensitivity information for an optimal LP solution.

    Attributes:
        objective: Optimal objective value
        variables: One entry per variable, in model order
        constraints: One entry per constraint, in model order
    """
    objective: float
    variables: List[VariableSensitivity] = field(default_factory=list)
    constraints: List[ConstraintSensitivity] = field(default_factory=list)

    def __post_init__(self):
        self._variables_by_name: Dict[str, VariableSensitivity] = {v.name: v for v in self.variables}
        self._constraints_by_name: Dict[str, ConstraintSensitivity] = {c.name: c for c in self.constraints}

    @property
    def x(self) -> List[float]:
        return [v.value for v in self.variables]

    def variable(self, name: str) -> VariableSensitivity:
        return self._variables_by_name[name]

    def constraint(self, name: str) -> ConstraintSensitivity:
        return self._constraints_by_name[name]


def lp_sensitivity_report(lp: LinearProgram, time_limit: Optional[float] = None,
                          binding_tol: float = 1e-9) -> SensitivityReport:
    """
    Solve an LP and report its sensitivity information.

    Args:
        lp: The linear program (integrality flags must all be False)
        time_limit: Optional solver time limit in seconds
        binding_tol: Slack magnitude below which a constraint counts as binding

    Returns:
        SensitivityReport

    Raises:
        InvalidInputError: If lp has integer variables
        InfeasibleError, UnboundedError, SolverError: Propagated from the solver
    """
    if lp.is_mip:
        raise InvalidInputError("Sensitivity analysis requires a continuous LP")

    solver = GurobiSolver()
    model, variables, constraints = solver.build_model(lp)
    solver.optimize(model, time_limit)

    logger.debug(f"Reading sensitivity information for '{lp.name}'")

    var_reports = [
        VariableSensitivity(
            name=lp.variable_names[j],
            value=v.X,
            reduced_cost=v.RC,
            objective_coefficient=float(lp.c[j]),
            objective_lower=_from_gurobi(v.SAObjLow),
            objective_upper=_from_gurobi(v.SAObjUp),
            basic=v.VBasis == GRB.BASIC
        )
        for j, v in enumerate(variables)
    ]

    con_reports = [
        ConstraintSensitivity(
            name=lp.constraint_names[i],
            shadow_price=c.Pi,
            slack=c.Slack,
            rhs=float(lp.rhs[i]),
            rhs_lower=_from_gurobi(c.SARHSLow),
            rhs_upper=_from_gurobi(c.SARHSUp),
            binding=abs(c.Slack) <= binding_tol
        )
        for i, c in enumerate(constraints)
    ]

    return SensitivityReport(objective=model.ObjVal, variables=var_reports, constraints=con_reports)
