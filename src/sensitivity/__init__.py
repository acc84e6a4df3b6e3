"""
Sensitivity analysis package for linear programs.

Reports shadow prices, reduced costs and ranging information of an
optimal LP basis, as computed by Gurobi.
"""

from .analysis import (
    VariableSensitivity,
    ConstraintSensitivity,
    SensitivityReport,
    lp_sensitivity_report,
)

__all__ = [
    'VariableSensitivity',
    'ConstraintSensitivity',
    'SensitivityReport',
    'lp_sensitivity_report'
]
