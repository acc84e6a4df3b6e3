from pathlib import Path

import pytest

from column_generation import CuttingStockInstance

SOLVER_NAMES = ["gurobi", "highs", "cbc"]

DATA_DIR = Path(__file__).resolve().parent.parent / "data"


@pytest.fixture
def instance():
    return CuttingStockInstance(
        roll_width=100,
        item_widths=[22, 42, 52, 53, 78],
        demand=[45, 38, 25, 11, 12],
        name="example"
    )


@pytest.fixture(params=SOLVER_NAMES)
def solver(request):
    return request.param


@pytest.fixture
def data_dir():
    return DATA_DIR
