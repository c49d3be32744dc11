from .cycle import BudgetCycleManager, LegState, quantize_down

__all__ = ["BudgetCycleManager", "LegState", "quantize_down"]
