from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from importlib.metadata import PackageNotFoundError, version as get_version
from pathlib import Path
from typing import TYPE_CHECKING, Any

from appdirs import user_cache_dir

from solplan.helper.multiformat_serializable_mixin import MultiformatSerializableMixin

if TYPE_CHECKING:
    from solplan.package.lifecycle.audit.plan_event_model import PlanEvent

APP_NAME = "solplan"


def _solplan_version() -> str:
    try:
        return get_version(APP_NAME)
    except PackageNotFoundError:
        return "0+unknown"


@dataclass(slots=True, kw_only=True)
class RunPlan(MultiformatSerializableMixin):
    """
    Bookkeeping for one lifecycle invocation.

    Attributes:
        audit_log (list[PlanEvent]): Events recorded during the run.
        cache_root (Path): Per-user cache directory; the default audit log lives here.
        created_at (datetime.datetime): When the plan was created.
        solution_dir (Path | None): Directory of the solution being planned.
        solution_name (str | None): Name of the solution being planned.
        metadata (dict[str, Any]): Free-form run facts (selection size, outcome).
        solplan_version (str): Version of solplan that created the plan.
    """
    audit_log: list[PlanEvent] = field(default_factory=list)
    cache_root: Path = field(default_factory=lambda: Path(user_cache_dir(APP_NAME)))
    created_at: datetime.datetime = field(default_factory=lambda: datetime.datetime.now(datetime.timezone.utc))
    solution_dir: Path | None = None
    solution_name: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    solplan_version: str = field(default_factory=_solplan_version)

    @property
    def audit_log_path(self) -> Path:
        stem = self.solution_name or "solution"
        return self.cache_root / f"{stem}.audit.json"

    def to_mapping(self, *args, **kwargs) -> dict[str, Any]:
        return {
            "audit_log": [e.to_mapping() for e in self.audit_log],
            "cache_root": str(self.cache_root),
            "created_at": self.created_at.isoformat(),
            "solution_dir": str(self.solution_dir) if self.solution_dir else None,
            "solution_name": self.solution_name,
            "metadata": dict(self.metadata),
            "solplan_version": self.solplan_version,
        }
