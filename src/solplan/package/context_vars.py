from __future__ import annotations

from contextvars import ContextVar
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from solplan.package.lifecycle.planning_context import PlanningContext

current_planning_context: ContextVar["PlanningContext"] = ContextVar(
    "current_planning_context")
