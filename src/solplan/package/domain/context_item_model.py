from __future__ import annotations

import threading
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from solplan.helper.multiformat_serializable_mixin import MultiformatSerializableMixin
from solplan.package.domain.errors import ContextStateError, ErrorKind, SolplanError
from solplan.package.domain.identifier_model import ContextIdentifier
from solplan.package.domain.layer_model import Layer, LayerReport
from solplan.package.domain.requirements_model import ResolvedPack, ResolvedToolchain, TargetRecord
from solplan.package.domain.solution_model import ContextDescriptor


class ContextStatus(str, Enum):
    PENDING = "PENDING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"


class Severity(str, Enum):
    WARNING = "WARNING"
    ERROR = "ERROR"


@dataclass(frozen=True, slots=True, kw_only=True)
class Diagnostic(MultiformatSerializableMixin):
    """
    A reportable condition attached to a context or to the run.

    Attributes:
        kind (ErrorKind): Error category.
        message (str): Human readable message.
        severity (Severity): WARNING conditions never fail a context by themselves.
        subject (str | None): What the diagnostic is about (a pattern, a pack id, ...).
    """
    kind: ErrorKind
    message: str
    severity: Severity = Severity.WARNING
    subject: str | None = None

    @classmethod
    def from_error(cls, error: SolplanError) -> Diagnostic:
        return cls(kind=error.kind, message=error.message, severity=Severity.ERROR, subject=error.subject)

    def __str__(self) -> str:
        return f"{self.severity.value.lower()}: {self.message}"

    def to_mapping(self, *args, **kwargs) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "severity": self.severity.value,
            "subject": self.subject,
        }


@dataclass(slots=True, kw_only=True)
class ContextItem(MultiformatSerializableMixin):
    """
    The per-context result record: what was resolved for one selected context.

    The item starts PENDING and moves to SUCCEEDED or FAILED exactly once
    through `succeed()` / `fail()`. Resolution collected before a failing step
    stays on the item.

    Attributes:
        descriptor (ContextDescriptor): The context this item resolves.
        target (TargetRecord | None): Selected device or board.
        resolved_toolchain (ResolvedToolchain | None): Selected toolchain, if any.
        layer_report (LayerReport | None): Full layer resolution report.
        resolved_packs (list[ResolvedPack]): Packs in first-seen order.
        unresolved_dependencies (list[str]): Component ids no resolved pack offers.
        config_files (list[Path]): Configuration files of the found components.
        diagnostics (list[Diagnostic]): Warnings and the hard error, if any.
        error (SolplanError | None): The hard error that failed the context.
    """
    descriptor: ContextDescriptor
    target: TargetRecord | None = None
    resolved_toolchain: ResolvedToolchain | None = None
    layer_report: LayerReport | None = None
    resolved_packs: list[ResolvedPack] = field(default_factory=list)
    unresolved_dependencies: list[str] = field(default_factory=list)
    config_files: list[Path] = field(default_factory=list)
    diagnostics: list[Diagnostic] = field(default_factory=list)
    error: SolplanError | None = None
    _status: ContextStatus = field(default=ContextStatus.PENDING, init=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False, compare=False)

    @property
    def identifier(self) -> ContextIdentifier:
        return self.descriptor.identifier

    @property
    def name(self) -> str:
        return self.descriptor.name

    @property
    def status(self) -> ContextStatus:
        return self._status

    @property
    def resolved_layers(self) -> list[Layer]:
        return list(self.layer_report.selected) if self.layer_report else []

    @property
    def warnings(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.severity == Severity.WARNING]

    def warn(self, kind: ErrorKind, message: str, subject: str | None = None) -> None:
        self.diagnostics.append(Diagnostic(kind=kind, message=message, subject=subject))

    def succeed(self) -> None:
        self._transition(ContextStatus.SUCCEEDED)

    def fail(self, error: SolplanError) -> None:
        self._transition(ContextStatus.FAILED)
        self.error = error
        self.diagnostics.append(Diagnostic.from_error(error))

    def _transition(self, status: ContextStatus) -> None:
        with self._lock:
            if self._status != ContextStatus.PENDING:
                raise ContextStateError(
                    f"context '{self.name}' is already {self._status.value}",
                    subject=self.name)
            self._status = status

    def to_mapping(self, *args, **kwargs) -> dict[str, Any]:
        dirs = self.descriptor.directories
        return {
            "context": self.name,
            "status": self._status.value,
            "target": self.target.name if self.target else None,
            "toolchain": str(self.resolved_toolchain) if self.resolved_toolchain else None,
            "layers": [layer.id for layer in self.resolved_layers],
            "packs": [str(p) for p in self.resolved_packs],
            "unresolved_dependencies": list(self.unresolved_dependencies),
            "config_files": [str(p) for p in self.config_files],
            "directories": dirs.to_mapping(),
            "diagnostics": [d.to_mapping() for d in self.diagnostics],
        }

