import math

import numpy as np
import pytest

from column_generation import (
    ColumnGeneration,
    CuttingStockInstance,
    CuttingStockSolution,
    InvalidInputError,
    NotConvergedError,
    Pattern,
    solve_cutting_stock,
)
from column_generation.pricing_problem import solve_pricing_problem
from column_generation.utils import (
    is_valid_column,
    validate_solution,
    verify_optimality_certificate,
)

TOLERANCE = -1e-7


@pytest.fixture
def converged(instance, solver):
    cg = ColumnGeneration(instance, solver=solver, tolerance=TOLERANCE)
    solution = cg.run()
    return cg, solution


def test_reference_objective(converged):
    _, solution = converged

    assert solution.converged
    assert solution.termination_reason == "optimal"
    assert solution.objective == pytest.approx(57.25, abs=1e-6)
    # The identity start is not optimal, so at least one column is generated
    assert solution.iterations > 1
    assert solution.num_columns > 5


def test_termination_certificate(instance, solver, converged):
    _, solution = converged

    assert solution.final_reduced_cost >= TOLERANCE
    assert verify_optimality_certificate(instance, solution.duals, solver, TOLERANCE)


def test_feasibility(instance, converged):
    _, solution = converged

    assert validate_solution(instance, solution)
    produced = solution.item_production(instance.num_items)
    assert produced == pytest.approx(instance.demand, abs=1e-6)
    assert sum(solution.quantities) == pytest.approx(solution.objective, abs=1e-6)


def test_objective_is_non_increasing(converged):
    _, solution = converged
    objectives = [record.objective for record in solution.history]

    assert objectives[0] == pytest.approx(131.0)
    for before, after in zip(objectives, objectives[1:]):
        assert after <= before + 1e-6


def test_generated_columns_are_valid(instance, converged):
    cg, _ = converged

    for pattern in cg.master_problem.patterns:
        assert is_valid_column(pattern.counts, instance)
        assert all(isinstance(c, int) and c >= 0 for c in pattern.counts)
        assert pattern.width_used(instance.item_widths) <= instance.roll_width


def test_columns_are_never_removed(converged):
    cg, solution = converged
    history = solution.history

    assert [r.num_columns for r in history] == sorted(r.num_columns for r in history)
    assert [p.index for p in cg.master_problem.patterns] == list(range(cg.master_problem.num_columns))


def test_termination_check_is_idempotent(instance, solver, converged):
    _, solution = converged

    _, first = solve_pricing_problem(instance, solution.duals, solver)
    _, second = solve_pricing_problem(instance, solution.duals, solver)

    assert first >= TOLERANCE
    assert second == pytest.approx(first, abs=1e-9)


def test_single_item_filling_the_roll(solver):
    solution = solve_cutting_stock(demand=[7], item_widths=[100], roll_width=100, solver=solver)

    assert solution.converged
    assert solution.iterations == 1
    assert solution.objective == pytest.approx(7.0)
    assert [p.counts for p in solution.patterns] == [(1,)]


def test_max_iterations_reports_best_solution(instance, solver):
    cg = ColumnGeneration(instance, solver=solver, max_iterations=1)

    with pytest.raises(NotConvergedError) as excinfo:
        cg.run()

    error = excinfo.value
    assert error.reason == "max_iterations"
    assert error.solution is not None
    assert not error.solution.converged
    assert error.solution.iterations == 1
    assert error.solution.objective == pytest.approx(sum(instance.demand))
    assert error.solution.final_reduced_cost < TOLERANCE
    assert validate_solution(instance, error.solution)


def test_time_limit_stops_before_next_iteration(instance):
    cg = ColumnGeneration(instance, solver="highs", time_limit=0.0)

    with pytest.raises(NotConvergedError) as excinfo:
        cg.run()

    assert excinfo.value.reason == "time_limit"
    assert excinfo.value.solution.iterations == 1


def test_repeated_pattern_stops_the_loop(instance):
    # A positive tolerance can never be met: columns already in the basis price at zero
    cg = ColumnGeneration(instance, solver="highs", tolerance=0.5)

    with pytest.raises(NotConvergedError) as excinfo:
        cg.run()

    assert excinfo.value.reason == "duplicate_column"
    assert excinfo.value.solution.objective == pytest.approx(57.25, abs=1e-6)


def test_integer_resolve(instance, converged):
    cg, solution = converged
    integer_solution = cg.solve_integer()

    assert integer_solution.termination_reason == "integer"
    assert integer_solution.objective >= math.ceil(solution.objective - 1e-6)
    assert all(float(q).is_integer() for q in integer_solution.quantities)
    assert validate_solution(instance, integer_solution, allow_overproduction=True)


def test_custom_initial_patterns(instance):
    patterns = [
        (4, 0, 0, 0, 0),
        (0, 2, 0, 0, 0),
        (0, 0, 1, 0, 0),
        (0, 0, 0, 1, 0),
        (1, 0, 0, 0, 1),
    ]
    solution = ColumnGeneration(instance, initial_patterns=patterns, solver="highs").run()

    assert solution.objective == pytest.approx(57.25, abs=1e-6)


@pytest.mark.parametrize("patterns", [
    [(5, 0, 0, 0, 0), (0, 1, 0, 0, 0), (0, 0, 1, 0, 0), (0, 0, 0, 1, 0), (0, 0, 0, 0, 1)],
    [(1, 0, 0, 0, 0), (0, 1, 0, 0, 0), (0, 0, 1, 0, 0), (0, 0, 0, 1, 0)],
    [(1, 0, 0, 0), (0, 1, 0, 0, 0), (0, 0, 1, 0, 0), (0, 0, 0, 1, 0), (0, 0, 0, 0, 1)],
    [(-1, 1, 0, 0, 0), (1, 0, 0, 0, 0), (0, 0, 1, 0, 0), (0, 0, 0, 1, 0), (0, 0, 0, 0, 1)],
    [],
])
def test_invalid_initial_patterns(instance, patterns):
    with pytest.raises(InvalidInputError):
        ColumnGeneration(instance, initial_patterns=patterns, solver="highs").run()


@pytest.mark.parametrize("kwargs", [
    dict(demand=[1, 2], item_widths=[10, 20], roll_width=0),
    dict(demand=[1, 2], item_widths=[10, 20], roll_width=-5),
    dict(demand=[1, 2], item_widths=[10, 120], roll_width=100),
    dict(demand=[1, 2], item_widths=[10, 0], roll_width=100),
    dict(demand=[1, 0], item_widths=[10, 20], roll_width=100),
    dict(demand=[1, -3], item_widths=[10, 20], roll_width=100),
    dict(demand=[1, 2, 3], item_widths=[10, 20], roll_width=100),
    dict(demand=[], item_widths=[], roll_width=100),
])
def test_invalid_instances(kwargs):
    with pytest.raises(InvalidInputError):
        solve_cutting_stock(solver="highs", **kwargs)


def test_max_iterations_must_be_positive(instance):
    with pytest.raises(InvalidInputError):
        ColumnGeneration(instance, max_iterations=0)


def test_save_results(instance, tmp_path):
    cg = ColumnGeneration(instance, solver="highs", output_folder=str(tmp_path / "out"))
    cg.run()
    folder = cg.save_results()

    iterations = (folder / "iterations.txt").read_text().splitlines()
    patterns = (folder / "patterns.txt").read_text().splitlines()

    assert iterations[0].startswith("iter_num")
    assert len(iterations) == 1 + cg.solution.iterations
    assert len(patterns) == 1 + len(cg.solution.patterns)
    assert (folder / "solution.json").exists()


def test_fractional_instance(solver):
    instance = CuttingStockInstance(roll_width=10.5, item_widths=[3.5, 5.25], demand=[6, 4])
    solution = ColumnGeneration(instance, solver=solver).run()

    # 3 x 3.5 and 2 x 5.25 both fill the roll exactly
    assert solution.objective == pytest.approx(4.0, abs=1e-6)


def test_integer_resolve_with_fractional_demand(solver):
    instance = CuttingStockInstance(roll_width=100, item_widths=[30, 45], demand=[2.5, 3])
    cg = ColumnGeneration(instance, solver=solver)
    solution = cg.run()
    integer_solution = cg.solve_integer()

    assert integer_solution.objective >= math.ceil(solution.objective - 1e-6)
    produced = integer_solution.item_production(instance.num_items)
    assert produced[0] >= 2.5
    assert produced[1] >= 3
    assert validate_solution(instance, integer_solution, allow_overproduction=True)


@pytest.mark.parametrize("seed", [3, 7, 11, 15, 17, 22, 23, 25])
def test_random_instances_meet_demand(solver, seed):
    rng = np.random.default_rng(seed)
    roll_width = [100, 250, 1000, 97.5][seed % 4]
    num_items = int(rng.integers(3, 16))
    widths = rng.choice(np.arange(int(roll_width * 0.1), int(roll_width * 0.7)), size=num_items, replace=False)
    demand = rng.integers(1, 200, size=num_items)
    instance = CuttingStockInstance(
        roll_width=roll_width,
        item_widths=[float(w) for w in widths],
        demand=[int(d) for d in demand]
    )

    solution = ColumnGeneration(instance, solver=solver).run()

    assert solution.converged
    assert validate_solution(instance, solution)


def test_validate_solution_scales_with_demand():
    instance = CuttingStockInstance(roll_width=100, item_widths=[50], demand=[150])
    pattern = Pattern(index=0, counts=(2,))

    def plan(quantity):
        return CuttingStockSolution(patterns=[pattern], quantities=[quantity],
                                    objective=quantity, iterations=1, num_columns=1)

    # 150.0000011 units, within solver precision of the demand
    assert validate_solution(instance, plan(75.00000055))
    assert not validate_solution(instance, plan(74.9))
    assert not validate_solution(instance, plan(76.0))
    assert validate_solution(instance, plan(76.0), allow_overproduction=True)
    assert not validate_solution(instance, plan(74.9), allow_overproduction=True)
