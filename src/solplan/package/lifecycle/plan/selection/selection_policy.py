from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from solplan.package.domain.build_index_model import ContextSet
from solplan.package.domain.context_item_model import Diagnostic, Severity
from solplan.package.domain.errors import ErrorKind, MalformedIdentifierError, NoContextSelectedError
from solplan.package.domain.identifier_model import ContextIdentifier
from solplan.package.domain.options_model import SelectionMode
from solplan.package.domain.solution_model import ContextDescriptor
from solplan.package.lifecycle.audit.plan_event_model import EventType, LevelType, StageType, record_event


@dataclass(slots=True, kw_only=True)
class ContextSelection:
    """
    The contexts chosen for a run.

    Attributes:
        contexts (list[ContextDescriptor]): Selected contexts, in the requested order.
        patterns (list[str]): The patterns that were applied; empty when everything was selected.
        missing_filters (list[str]): Patterns that matched no context.
        diagnostics (list[Diagnostic]): Non-fatal selection warnings.
        from_context_set (bool): Whether the patterns came from the context set.
    """
    contexts: list[ContextDescriptor] = field(default_factory=list)
    patterns: list[str] = field(default_factory=list)
    missing_filters: list[str] = field(default_factory=list)
    diagnostics: list[Diagnostic] = field(default_factory=list)
    from_context_set: bool = False

    @property
    def identifiers(self) -> list[ContextIdentifier]:
        return [d.identifier for d in self.contexts]

    @property
    def names(self) -> list[str]:
        return [d.name for d in self.contexts]

    def __len__(self) -> int:
        return len(self.contexts)


def order_contexts(descriptors: Sequence[ContextDescriptor], mode: SelectionMode) -> list[ContextDescriptor]:
    """
    Orders contexts by declaration order, or by the order they first appear in
    the input files. Contexts the input order does not list follow in
    declaration order.
    """
    match mode:
        case SelectionMode.DECLARATION:
            return sorted(descriptors, key=lambda d: d.declaration_index)
        case SelectionMode.YML_ORDER:
            return sorted(
                descriptors,
                key=lambda d: (d.input_index is None, d.input_index or 0, d.declaration_index))
        case _:
            raise ValueError(f"unsupported selection mode: {mode!r}")


def _missing(pattern: str, message: str) -> Diagnostic:
    return Diagnostic(kind=ErrorKind.UNKNOWN_CONTEXT, message=message, severity=Severity.WARNING, subject=pattern)


def select_contexts(
        descriptors: Sequence[ContextDescriptor],
        patterns: Sequence[str] = (),
        *,
        context_set: ContextSet | None = None,
        use_context_set: bool = False,
        mode: SelectionMode = SelectionMode.DECLARATION) -> ContextSelection:
    """
    Applies selection filters to the expanded contexts of a solution.

    With no patterns every context is selected. Otherwise a context is selected
    when it matches at least one pattern. A pattern that matches nothing, or is
    malformed, is reported as a missing filter and does not stop the run as long
    as some other pattern matched. When the context set is requested and no
    explicit patterns were given, the identifiers recorded in the context set
    act as the patterns; a missing context set selects everything.

    Args:
        descriptors (Sequence[ContextDescriptor]): The full context universe.
        patterns (Sequence[str]): Context filter patterns.
        context_set (ContextSet | None): The persisted context set, if any.
        use_context_set (bool): Whether to select from the context set.
        mode (SelectionMode): Order of the result. Pattern order never matters.

    Returns:
        ContextSelection: The selected contexts and the selection diagnostics.

    Raises:
        MalformedIdentifierError: If nothing matched and a pattern was malformed.
        NoContextSelectedError: If nothing matched any of the patterns.
    """
    selection = ContextSelection()
    active = [p for p in patterns if p is not None]
    if not active and use_context_set:
        if context_set is None:
            selection.diagnostics.append(
                Diagnostic(
                    kind=ErrorKind.CONTEXT_SET_MISSING,
                    message="context set file not found, all contexts are selected",
                    severity=Severity.WARNING))
        else:
            active = context_set.patterns
            selection.from_context_set = True

    if not active:
        selection.contexts = order_contexts(descriptors, mode)
        _record(selection)
        return selection

    selection.patterns = list(active)
    chosen: set[ContextIdentifier] = set()
    malformed: list[str] = []
    for text in active:
        try:
            pattern = ContextIdentifier.parse(text)
        except MalformedIdentifierError as e:
            malformed.append(text)
            selection.missing_filters.append(text)
            selection.diagnostics.append(_missing(text, e.message))
            continue
        matched = [d.identifier for d in descriptors if pattern.matches(d.identifier)]
        if not matched:
            selection.missing_filters.append(text)
            selection.diagnostics.append(_missing(text, f"no context matches the filter '{text}'"))
        chosen.update(matched)

    if not chosen:
        if malformed:
            raise MalformedIdentifierError(
                f"malformed context filter(s): {', '.join(malformed)}", subject=malformed[0])
        raise NoContextSelectedError(
            f"no context matches the filter(s): {', '.join(active)}", subject=active[0])

    selection.contexts = order_contexts([d for d in descriptors if d.identifier in chosen], mode)
    _record(selection)
    return selection


def _record(selection: ContextSelection) -> None:
    record_event(
        StageType.SELECT,
        EventType.DECISION,
        LevelType.WARN if selection.missing_filters else LevelType.INFO,
        message=f"selected {len(selection)} context(s)",
        payload={
            "selected": selection.names,
            "missing_filters": list(selection.missing_filters),
            "from_context_set": selection.from_context_set,
        })
