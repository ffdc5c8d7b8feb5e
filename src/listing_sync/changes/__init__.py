"""
Pending change queue and write plans.
"""

from .queue import ChangeQueue, PlanRejection, WritePlan

__all__ = ["ChangeQueue", "PlanRejection", "WritePlan"]
