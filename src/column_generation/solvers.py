"""
Solver abstraction for the master and pricing problems.

A LinearProgram is a plain matrix description that any backend can consume:

    min/max  cᵀx + c0
    s.t.     A[i] x  (<=, >=, ==)  rhs[i]
             lower <= x <= upper
             x[j] integer where integrality[j]

Backends:
- GurobiSolver: gurobipy
- HighsSolver:  scipy.optimize.linprog / milp (HiGHS)
- CbcSolver:    PuLP with its bundled CBC binary

Dual values are reported as the derivative of the objective with respect to
the constraint right-hand side.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Union
import logging
import math

import numpy as np
import gurobipy as gp
from gurobipy import GRB
import pulp
from scipy.optimize import linprog, milp, Bounds, LinearConstraint

from .errors import InvalidInputError, SolverError, InfeasibleError, UnboundedError

logger = logging.getLogger(__name__)

SENSES = ("<=", ">=", "==")

DEFAULT_SOLVER = "gurobi"


@dataclass
class LinearProgram:
    """
    Matrix-form (mixed-integer) linear program.
    """
    c: np.ndarray
    A: np.ndarray
    senses: List[str]
    rhs: np.ndarray
    lower: Optional[np.ndarray] = None
    upper: Optional[np.ndarray] = None
    integrality: Optional[np.ndarray] = None
    objective_constant: float = 0.0
    sense: str = "min"
    variable_names: List[str] = field(default_factory=list)
    constraint_names: List[str] = field(default_factory=list)
    name: str = "lp"

    def __post_init__(self):
        """Normalise arrays and validate dimensions."""
        self.c = np.asarray(self.c, dtype=float)
        n = len(self.c)
        self.A = np.asarray(self.A, dtype=float).reshape(-1, n)
        self.rhs = np.asarray(self.rhs, dtype=float)
        m = self.A.shape[0]

        self.lower = np.zeros(n) if self.lower is None else np.asarray(self.lower, dtype=float)
        self.upper = np.full(n, np.inf) if self.upper is None else np.asarray(self.upper, dtype=float)
        if self.integrality is None:
            self.integrality = np.zeros(n, dtype=bool)
        else:
            self.integrality = np.asarray(self.integrality, dtype=bool)
        self.senses = list(self.senses)

        if len(self.rhs) != m or len(self.senses) != m:
            raise InvalidInputError("rhs and senses must have one entry per row of A")
        if len(self.lower) != n or len(self.upper) != n or len(self.integrality) != n:
            raise InvalidInputError("bounds and integrality must have one entry per column of A")
        bad = [s for s in self.senses if s not in SENSES]
        if bad:
            raise InvalidInputError(f"Unknown constraint sense(s): {bad}")
        if self.sense not in ("min", "max"):
            raise InvalidInputError(f"Objective sense must be 'min' or 'max', got {self.sense!r}")

        if not self.variable_names:
            self.variable_names = [f"x_{j}" for j in range(n)]
        if not self.constraint_names:
            self.constraint_names = [f"c_{i}" for i in range(m)]

    @property
    def num_variables(self) -> int:
        return len(self.c)

    @property
    def num_constraints(self) -> int:
        return self.A.shape[0]

    @property
    def is_mip(self) -> bool:
        return bool(self.integrality.any())


@dataclass
class SolverResult:
    """
    Optimal solution returned by a backend.

    Attributes:
        status: Always 'optimal' (failures raise instead)
        objective: Objective value including the constant term
        x: Primal values
        duals: One value per constraint (None for integer programs)
        reduced_costs: One value per variable (None for integer programs)
    """
    status: str
    objective: float
    x: np.ndarray
    duals: Optional[np.ndarray] = None
    reduced_costs: Optional[np.ndarray] = None


def _finite_or_none(value: float) -> Optional[float]:
    return None if math.isinf(value) else float(value)


class GurobiSolver:
    """Backend built on gurobipy."""

    name = "gurobi"

    _SENSE_MAP = {"<=": GRB.LESS_EQUAL, ">=": GRB.GREATER_EQUAL, "==": GRB.EQUAL}

    def build_model(self, lp: LinearProgram, relax: bool = False):
        """
        Translate a LinearProgram into a Gurobi model.

        Returns:
            Tuple of (model, variables, constraints)
        """
        model = gp.Model(lp.name)
        model.setParam('OutputFlag', 0)
        model.setParam('LogFile', '')

        variables = []
        for j in range(lp.num_variables):
            vtype = GRB.INTEGER if (lp.integrality[j] and not relax) else GRB.CONTINUOUS
            lb = -GRB.INFINITY if math.isinf(lp.lower[j]) else lp.lower[j]
            ub = GRB.INFINITY if math.isinf(lp.upper[j]) else lp.upper[j]
            variables.append(model.addVar(
                lb=lb,
                ub=ub,
                obj=lp.c[j],
                vtype=vtype,
                name=lp.variable_names[j]
            ))

        constraints = []
        for i in range(lp.num_constraints):
            row = lp.A[i]
            nonzero = np.flatnonzero(row)
            expr = gp.LinExpr([float(row[j]) for j in nonzero], [variables[j] for j in nonzero])
            constraints.append(model.addLConstr(
                expr, self._SENSE_MAP[lp.senses[i]], lp.rhs[i], name=lp.constraint_names[i]
            ))

        model.ObjCon = lp.objective_constant
        model.ModelSense = GRB.MAXIMIZE if lp.sense == "max" else GRB.MINIMIZE
        model.update()
        return model, variables, constraints

    def optimize(self, model, time_limit: Optional[float] = None) -> None:
        """Optimize and raise on any non-optimal status."""
        if time_limit is not None:
            model.setParam('TimeLimit', time_limit)
        model.optimize()

        if model.status == GRB.INF_OR_UNBD:
            # Presolve could not tell the two apart
            model.setParam('DualReductions', 0)
            model.optimize()

        if model.status == GRB.INFEASIBLE:
            raise InfeasibleError(f"Model '{model.ModelName}' is infeasible", status="infeasible")
        if model.status == GRB.UNBOUNDED:
            raise UnboundedError(f"Model '{model.ModelName}' is unbounded", status="unbounded")
        if model.status != GRB.OPTIMAL:
            raise SolverError(f"Gurobi stopped with status {model.status}", status=str(model.status))

    def solve(self, lp: LinearProgram, relax: bool = False,
              time_limit: Optional[float] = None) -> SolverResult:
        model, variables, constraints = self.build_model(lp, relax=relax)
        self.optimize(model, time_limit)

        x = np.array([v.X for v in variables])
        duals = reduced_costs = None
        if not model.IsMIP:
            duals = np.array([c.Pi for c in constraints])
            reduced_costs = np.array([v.RC for v in variables])

        return SolverResult('optimal', model.ObjVal, x, duals, reduced_costs)


class HighsSolver:
    """Backend built on scipy's HiGHS interfaces (linprog for LPs, milp for MIPs)."""

    name = "highs"

    def solve(self, lp: LinearProgram, relax: bool = False,
              time_limit: Optional[float] = None) -> SolverResult:
        # HiGHS only minimizes; flip a maximization and flip the answers back
        flip = -1.0 if lp.sense == "max" else 1.0
        c = flip * lp.c

        if lp.is_mip and not relax:
            return self._solve_milp(lp, c, flip, time_limit)
        return self._solve_lp(lp, c, flip, time_limit)

    def _solve_lp(self, lp: LinearProgram, c: np.ndarray, flip: float,
                  time_limit: Optional[float]) -> SolverResult:
        ub_rows = [i for i, s in enumerate(lp.senses) if s != "=="]
        eq_rows = [i for i, s in enumerate(lp.senses) if s == "=="]
        # '>=' rows are negated into '<=' form
        row_sign = np.array([-1.0 if lp.senses[i] == ">=" else 1.0 for i in ub_rows])

        kwargs = {}
        if ub_rows:
            kwargs['A_ub'] = lp.A[ub_rows] * row_sign[:, None]
            kwargs['b_ub'] = lp.rhs[ub_rows] * row_sign
        if eq_rows:
            kwargs['A_eq'] = lp.A[eq_rows]
            kwargs['b_eq'] = lp.rhs[eq_rows]

        bounds = [(_finite_or_none(lo), _finite_or_none(hi)) for lo, hi in zip(lp.lower, lp.upper)]
        options = {"disp": False}
        if time_limit is not None:
            options["time_limit"] = time_limit

        res = linprog(c, bounds=bounds, method="highs", options=options, **kwargs)
        self._check_status(res.status, res.message, lp.name)

        duals = np.zeros(lp.num_constraints)
        if ub_rows:
            duals[ub_rows] = np.asarray(res.ineqlin.marginals) * row_sign
        if eq_rows:
            duals[eq_rows] = np.asarray(res.eqlin.marginals)
        reduced_costs = np.asarray(res.lower.marginals) + np.asarray(res.upper.marginals)

        objective = flip * res.fun + lp.objective_constant
        return SolverResult('optimal', objective, np.asarray(res.x), flip * duals, flip * reduced_costs)

    def _solve_milp(self, lp: LinearProgram, c: np.ndarray, flip: float,
                    time_limit: Optional[float]) -> SolverResult:
        row_lb = np.array([-np.inf if s == "<=" else r for s, r in zip(lp.senses, lp.rhs)])
        row_ub = np.array([np.inf if s == ">=" else r for s, r in zip(lp.senses, lp.rhs)])
        constraints = LinearConstraint(lp.A, row_lb, row_ub) if lp.num_constraints else None

        options = {"disp": False}
        if time_limit is not None:
            options["time_limit"] = time_limit

        res = milp(
            c,
            integrality=lp.integrality.astype(int),
            bounds=Bounds(lp.lower, lp.upper),
            constraints=constraints,
            options=options
        )
        self._check_status(res.status, res.message, lp.name)

        x = np.asarray(res.x)
        x[lp.integrality] = np.round(x[lp.integrality])
        objective = flip * res.fun + lp.objective_constant
        return SolverResult('optimal', objective, x)

    @staticmethod
    def _check_status(status: int, message: str, name: str) -> None:
        if status == 0:
            return
        if status == 2:
            raise InfeasibleError(f"Model '{name}' is infeasible: {message}", status="infeasible")
        if status == 3:
            raise UnboundedError(f"Model '{name}' is unbounded: {message}", status="unbounded")
        raise SolverError(f"HiGHS stopped with status {status}: {message}", status=str(status))


class CbcSolver:
    """Backend built on PuLP and the CBC binary it ships with."""

    name = "cbc"

    @staticmethod
    def command(time_limit: Optional[float] = None):
        """CBC through COIN_CMD where PuLP can find a binary, else the bundled PULP_CBC_CMD."""
        if pulp.COIN_CMD().available():
            return pulp.COIN_CMD(msg=False, timeLimit=time_limit)
        return pulp.PULP_CBC_CMD(msg=False, timeLimit=time_limit)

    def solve(self, lp: LinearProgram, relax: bool = False,
              time_limit: Optional[float] = None) -> SolverResult:
        # Always hand CBC a minimization so dual signs stay predictable
        flip = -1.0 if lp.sense == "max" else 1.0
        integer = lp.is_mip and not relax

        prob = pulp.LpProblem(lp.name.replace(" ", "_"), pulp.LpMinimize)
        variables = [
            pulp.LpVariable(
                f"x{j}",
                lowBound=_finite_or_none(lp.lower[j]),
                upBound=_finite_or_none(lp.upper[j]),
                cat=pulp.LpInteger if (integer and lp.integrality[j]) else pulp.LpContinuous
            )
            for j in range(lp.num_variables)
        ]

        prob += pulp.lpSum(float(flip * lp.c[j]) * variables[j] for j in range(lp.num_variables)), "objective"

        constraints = []
        for i in range(lp.num_constraints):
            row = lp.A[i]
            expr = pulp.lpSum(float(row[j]) * variables[j] for j in np.flatnonzero(row))
            if lp.senses[i] == "<=":
                constraint = expr <= float(lp.rhs[i])
            elif lp.senses[i] == ">=":
                constraint = expr >= float(lp.rhs[i])
            else:
                constraint = expr == float(lp.rhs[i])
            prob.addConstraint(constraint, f"c{i}")
            constraints.append(constraint)

        prob.solve(self.command(time_limit))

        if prob.status == pulp.LpStatusInfeasible:
            raise InfeasibleError(f"Model '{lp.name}' is infeasible", status="infeasible")
        if prob.status == pulp.LpStatusUnbounded:
            raise UnboundedError(f"Model '{lp.name}' is unbounded", status="unbounded")
        if prob.status != pulp.LpStatusOptimal:
            raise SolverError(f"CBC stopped with status {pulp.LpStatus[prob.status]}",
                              status=pulp.LpStatus[prob.status])

        x = np.array([v.varValue if v.varValue is not None else 0.0 for v in variables])
        duals = reduced_costs = None
        if not integer:
            duals = flip * np.array([constraint.pi or 0.0 for constraint in constraints])
            reduced_costs = flip * np.array([v.dj or 0.0 for v in variables])
        else:
            x[lp.integrality] = np.round(x[lp.integrality])

        objective = float(np.dot(lp.c, x)) + lp.objective_constant

        return SolverResult('optimal', objective, x, duals, reduced_costs)


SOLVERS = {
    'gurobi': GurobiSolver,
    'highs': HighsSolver,
    'cbc': CbcSolver,
}

SolverLike = Union[str, GurobiSolver, HighsSolver, CbcSolver]


def get_solver(solver: SolverLike = DEFAULT_SOLVER):
    """
    Resolve a backend name (or pass through a backend instance).

    Raises:
        InvalidInputError: If the name is not a known backend
    """
    if not isinstance(solver, str):
        return solver
    key = solver.lower()
    if key not in SOLVERS:
        raise InvalidInputError(f"Unknown solver '{solver}', expected one of {sorted(SOLVERS)}")
    return SOLVERS[key]()


def solve_lp(lp: LinearProgram, solver: SolverLike = DEFAULT_SOLVER,
             time_limit: Optional[float] = None) -> SolverResult:
    """Solve the continuous relaxation of lp and return primal values, duals and objective."""
    backend = get_solver(solver)
    logger.debug(f"Solving LP '{lp.name}' ({lp.num_variables} vars, "
                 f"{lp.num_constraints} rows) with {backend.name}")
    return backend.solve(lp, relax=True, time_limit=time_limit)


def solve_ip(lp: LinearProgram, solver: SolverLike = DEFAULT_SOLVER,
             time_limit: Optional[float] = None) -> SolverResult:
    """Solve lp honouring its integrality flags."""
    backend = get_solver(solver)
    logger.debug(f"Solving IP '{lp.name}' ({int(lp.integrality.sum())} integer vars) "
                 f"with {backend.name}")
    return backend.solve(lp, relax=False, time_limit=time_limit)
