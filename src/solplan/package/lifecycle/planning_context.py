from __future__ import annotations

from dataclasses import dataclass

from solplan.package.domain.options_model import RunOptions
from solplan.package.domain.run_plan_model import RunPlan
from solplan.package.lifecycle.plan.inventory.collaborators import Collaborators


@dataclass(kw_only=True)
class PlanningContext:
    run_plan: RunPlan
    options: RunOptions
    collaborators: Collaborators
