"""Rotation planning and iteration scheduling."""

from .iteration_scheduler import IterationScheduler
from .rotation import ProbeTarget, RunNumberEstimator, plan_iteration

__all__ = ["IterationScheduler", "ProbeTarget", "RunNumberEstimator", "plan_iteration"]
