from __future__ import annotations

import datetime
import functools
import uuid
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, ParamSpec, TypeVar

from typing_extensions import Self

from solplan.helper.multiformat_model_mixin import MultiformatModelMixin
from solplan.package.context_vars import current_planning_context
from solplan.package.domain.run_plan_model import RunPlan

P = ParamSpec("P")
R = TypeVar("R")


# --------------------------------------------------------------------------- #
# Typed + runtime-safe event type definition
# --------------------------------------------------------------------------- #

class StageType(str, Enum):
    """
    Enumeration of the stages of a planning run.

    Attributes:
        LIFECYCLE (str): The overall orchestration, from start to completion.
        INIT (str): Option loading, solution validation and context expansion.
        SELECT (str): Context selection.
        RESOLVE (str): Per-context resolution of target, toolchain, layers,
            packs and components.
        PERSIST (str): Context set and build index updates.
        EMIT (str): Hand-off of the resolved contexts to the emitter.
    """
    LIFECYCLE = "LIFECYCLE"
    INIT = "INIT"
    SELECT = "SELECT"
    RESOLVE = "RESOLVE"
    PERSIST = "PERSIST"
    EMIT = "EMIT"


class LevelType(str, Enum):
    """
    Severity of an event.

    Attributes:
        DEBUG (str): Detailed tracing.
        INFO (str): Progress of the run.
        WARN (str): A condition that does not stop the run or the context.
        ERROR (str): A failure of a context or of the run.
    """
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"


class EventType(str, Enum):
    """
    Categories of events recorded during a run.

    Attributes:
        ACTION (str): A meaningful step was taken.
        COMPLETE (str): A stage or substage finished successfully.
        DECISION (str): A conditional branch was taken, e.g. a policy choice.
        DISCOVER (str): Layers or other inputs were discovered.
        EXCEPTION (str): An exception escaped a stage.
        FAIL (str): A stage or a context failed.
        INPUT (str): External input was received.
        OUTPUT (str): An artifact was produced.
        RESOLVE (str): An item was resolved.
        SKIP (str): A step was intentionally bypassed.
        START (str): A stage or substage began.
        VALIDATION (str): A validation check ran.
    """
    ACTION = "ACTION"
    COMPLETE = "COMPLETE"
    DECISION = "DECISION"
    DISCOVER = "DISCOVER"
    EXCEPTION = "EXCEPTION"
    FAIL = "FAIL"
    INPUT = "INPUT"
    OUTPUT = "OUTPUT"
    RESOLVE = "RESOLVE"
    SKIP = "SKIP"
    START = "START"
    VALIDATION = "VALIDATION"


def _active_plan() -> RunPlan | None:
    try:
        return current_planning_context.get().run_plan
    except LookupError:
        return None


def record_event(
        stage: StageType,
        event_type: EventType,
        level: LevelType = LevelType.INFO,
        *,
        substage: str | None = None,
        message: str | None = None,
        payload: dict[str, Any] | None = None) -> PlanEvent | None:
    """
    Appends an event to the active run plan's audit log.

    Engine functions can be called outside a lifecycle run (embedding callers,
    tests); then there is no run plan and nothing is recorded.

    Returns:
        PlanEvent | None: The recorded event, or None when no run is active.
    """
    plan = _active_plan()
    if plan is None:
        return None
    event = PlanEvent.make(stage, event_type, level, substage=substage, message=message, payload=payload)
    plan.audit_log.append(event)
    return event


def audit(stage: StageType, substage: str | None = None) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """
    Decorator that logs audit events for a specified stage during the execution of a function.

    Logs START, COMPLETE, and EXCEPTION events into the active RunPlan's audit log.

    Args:
        stage (StageType): The main stage to log the audit events.
        substage (str | None): Optional substage to include in the logged events.

    Returns:
        Callable[[Callable[P, R]], Callable[P, R]]: A decorator that applies audit logging to the
        wrapped function.

    Raises:
        RuntimeError: If no active RunPlan exists in the current context.
    """
    def decorator(fn: Callable[P, R]) -> Callable[P, R]:
        @functools.wraps(fn)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            plan = _active_plan()
            if plan is None:
                raise RuntimeError("No active RunPlan in context for @audit-decorated function")

            plan.audit_log.append(PlanEvent.make(stage, EventType.START, substage=substage))
            try:
                result = fn(*args, **kwargs)
                plan.audit_log.append(PlanEvent.make(stage, EventType.COMPLETE, substage=substage))
                return result
            except Exception as e:
                plan.audit_log.append(
                    PlanEvent.make(
                        stage,
                        EventType.EXCEPTION,
                        LevelType.ERROR,
                        substage=substage,
                        message=str(e)))
                raise

        return wrapper

    return decorator


# --------------------------------------------------------------------------- #
# Data model
# --------------------------------------------------------------------------- #

@dataclass(slots=True, frozen=True)
class PlanEvent(MultiformatModelMixin):
    """
    One structured event of a planning run.

    Attributes:
        event_id (str): Unique identifier for the event.
        event_type (EventType): Type of the event. Defaults to `EventType.ACTION`.
        level (LevelType): Severity of the event. Defaults to `LevelType.INFO`.
        message (str | None): Optional human readable details.
        payload (Mapping[str, Any] | None): Optional structured details.
        stage (StageType | None): Stage the event belongs to.
        substage (str | None): Optional substage within the stage.
        timestamp (datetime.datetime): When the event occurred, in UTC.
    """
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    event_type: EventType = EventType.ACTION
    level: LevelType = LevelType.INFO
    message: str | None = field(default=None)
    payload: Mapping[str, Any] | None = field(default=None)
    stage: StageType | None = None
    substage: str | None = field(default=None)
    timestamp: datetime.datetime = field(
        default_factory=lambda: datetime.datetime.now(datetime.timezone.utc))

    def __post_init__(self):
        """
        Raises:
            TypeError: If `stage` is not a StageType, `event_type` is not an
                EventType or `level` is not a LevelType.
        """
        if not isinstance(self.stage, StageType):
            raise TypeError("PlanEvent.stage must be a StageType")
        if not isinstance(self.event_type, EventType):
            raise TypeError("PlanEvent.event_type must be an EventType")
        if not isinstance(self.level, LevelType):
            raise TypeError("PlanEvent.level must be a LevelType")

    def to_mapping(self, *args, **kwargs) -> dict[str, Any]:
        return {
            "event_id": self.event_id,
            "event_type": self.event_type.value,
            "level": self.level.value,
            "message": self.message or "",
            "payload": dict(self.payload or {}),
            "stage": self.stage.value if self.stage else None,
            "substage": self.substage or "",
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def make(
            cls,
            stage: StageType,
            event_type: EventType,
            level: LevelType = LevelType.INFO,
            *,
            substage: str | None = None,
            message: str | None = None,
            payload: dict[str, Any] | None = None) -> PlanEvent:
        """
        Creates an event with a read-only payload.

        Args:
            stage: Stage of the run.
            event_type: Type of the event.
            level: Severity of the event. Defaults to LevelType.INFO.
            substage: Optional substage. Defaults to None.
            message: Optional descriptive message. Defaults to None.
            payload: Optional structured details. Defaults to None.

        Returns:
            PlanEvent: The new event.
        """
        return cls(
            stage=stage,
            substage=substage,
            event_type=event_type,
            level=level,
            message=message,
            payload=MappingProxyType(dict(payload or {})))

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any], **_: Any) -> Self:
        return cls(
            event_id=mapping.get("event_id", str(uuid.uuid4())),
            event_type=EventType(mapping.get("event_type", EventType.ACTION.value)),
            level=LevelType(mapping.get("level", LevelType.INFO.value)),
            message=mapping.get("message"),
            payload=mapping.get("payload"),
            stage=StageType(mapping.get("stage", StageType.LIFECYCLE.value)),
            substage=mapping.get("substage"),
            timestamp=datetime.datetime.fromisoformat(
                mapping.get("timestamp", datetime.datetime.now(datetime.timezone.utc).isoformat())))
