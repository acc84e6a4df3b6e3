import math

import pytest

from column_generation import InvalidInputError, LinearProgram
from sensitivity import lp_sensitivity_report


@pytest.fixture
def wyndor():
    # Wyndor Glass, written as a minimization of negative profit
    return LinearProgram(
        c=[-3.0, -5.0],
        A=[[1.0, 0.0], [0.0, 2.0], [3.0, 2.0]],
        senses=["<=", "<=", "<="],
        rhs=[4.0, 12.0, 18.0],
        variable_names=["doors", "windows"],
        constraint_names=["plant1", "plant2", "plant3"],
        name="wyndor"
    )


def test_solution(wyndor):
    report = lp_sensitivity_report(wyndor)

    assert report.objective == pytest.approx(-36.0)
    assert report.x == pytest.approx([2.0, 6.0])


def test_shadow_prices(wyndor):
    report = lp_sensitivity_report(wyndor)

    assert report.constraint("plant1").shadow_price == pytest.approx(0.0)
    assert report.constraint("plant2").shadow_price == pytest.approx(-1.5)
    assert report.constraint("plant3").shadow_price == pytest.approx(-1.0)

    assert not report.constraint("plant1").binding
    assert report.constraint("plant1").slack == pytest.approx(2.0)
    assert report.constraint("plant2").binding
    assert report.constraint("plant3").binding


def test_rhs_ranges(wyndor):
    report = lp_sensitivity_report(wyndor)

    plant1 = report.constraint("plant1")
    assert plant1.rhs_lower == pytest.approx(2.0)
    assert plant1.rhs_upper == math.inf

    plant2 = report.constraint("plant2")
    assert (plant2.rhs_lower, plant2.rhs_upper) == (pytest.approx(6.0), pytest.approx(18.0))

    plant3 = report.constraint("plant3")
    assert (plant3.rhs_lower, plant3.rhs_upper) == (pytest.approx(12.0), pytest.approx(24.0))


def test_objective_ranges(wyndor):
    report = lp_sensitivity_report(wyndor)

    doors = report.variable("doors")
    assert doors.basic
    assert doors.reduced_cost == pytest.approx(0.0)
    assert (doors.objective_lower, doors.objective_upper) == (pytest.approx(-7.5), pytest.approx(0.0))

    windows = report.variable("windows")
    assert windows.basic
    assert windows.objective_lower == -math.inf
    assert windows.objective_upper == pytest.approx(-2.0)


def test_rejects_integer_programs(wyndor):
    wyndor.integrality[:] = True

    with pytest.raises(InvalidInputError):
        lp_sensitivity_report(wyndor)
