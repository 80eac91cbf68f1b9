"""Planning: diff desired resources against prior state."""

from .models import Action, Change, Plan
from .planner import diff_attributes, plan, plan_destroy

__all__ = ["Action", "Change", "Plan", "diff_attributes", "plan", "plan_destroy"]
