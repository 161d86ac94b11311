"""Monthly budgets and recurring-budget materialization."""

from splitledger.budgets.materializer import BudgetMaterializer

__all__ = ["BudgetMaterializer"]
