"""Execution surface protocol and the procedures that drive it."""

from ebbtide.execution.surface import DryRunSurface, ExecutionSurface, SellableRow

__all__ = [
    "ExecutionSurface",
    "DryRunSurface",
    "SellableRow",
]
