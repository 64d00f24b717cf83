"""Service layer: the FinanceModel facade and reporting projections."""

from .finance_model import FinanceModel
from .reporting import (
    PeriodSummary,
    build_balance_frame,
    build_flow_frame,
    pivot_balances,
    summarize_period,
)

__all__ = [
    "FinanceModel",
    "PeriodSummary",
    "build_balance_frame",
    "build_flow_frame",
    "pivot_balances",
    "summarize_period",
]
