from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """
    Closed set of error categories the engine reports.

    Context-local kinds either fail a single context or are recorded as
    diagnostics on it; run-level kinds abort the run before any context is
    processed.
    """
    MALFORMED_IDENTIFIER = "MALFORMED_IDENTIFIER"
    UNKNOWN_CONTEXT = "UNKNOWN_CONTEXT"
    PACK_UNSATISFIED = "PACK_UNSATISFIED"
    PACK_VERSION_DRIFT = "PACK_VERSION_DRIFT"
    TOOLCHAIN_UNRESOLVED = "TOOLCHAIN_UNRESOLVED"
    DEVICE_AMBIGUOUS = "DEVICE_AMBIGUOUS"
    DEVICE_NOT_FOUND = "DEVICE_NOT_FOUND"
    LAYER_WIRING_CONFLICT = "LAYER_WIRING_CONFLICT"
    LAYER_NOT_FOUND = "LAYER_NOT_FOUND"
    UNRESOLVED_COMPONENT_DEPENDENCY = "UNRESOLVED_COMPONENT_DEPENDENCY"
    SOLUTION_INVALID = "SOLUTION_INVALID"
    NO_CONTEXT_SELECTED = "NO_CONTEXT_SELECTED"
    CONFIGURATION = "CONFIGURATION"
    CONTEXT_SET_MISSING = "CONTEXT_SET_MISSING"
    CANCELLED = "CANCELLED"


class SolplanError(Exception):
    kind: ErrorKind = ErrorKind.CONFIGURATION

    def __init__(self, message: str, *, subject: str | None = None):
        super().__init__(message)
        self.message = message
        self.subject = subject


# --------------------------------------------------------------------------- #
# Run-level errors
# --------------------------------------------------------------------------- #

class MalformedIdentifierError(SolplanError, ValueError):
    kind = ErrorKind.MALFORMED_IDENTIFIER


class SolutionError(SolplanError):
    kind = ErrorKind.SOLUTION_INVALID


class NoContextSelectedError(SolplanError):
    kind = ErrorKind.NO_CONTEXT_SELECTED


class ConfigurationError(SolplanError, ValueError):
    kind = ErrorKind.CONFIGURATION


class RunCancelledError(SolplanError):
    kind = ErrorKind.CANCELLED


class ContextStateError(SolplanError, RuntimeError):
    """Raised when a context item is moved out of a terminal status."""


# --------------------------------------------------------------------------- #
# Context-local errors (fail one context, never its siblings)
# --------------------------------------------------------------------------- #

class ContextResolutionError(SolplanError):
    pass


class PackUnsatisfiedError(ContextResolutionError):
    kind = ErrorKind.PACK_UNSATISFIED


class PackVersionDriftError(ContextResolutionError):
    kind = ErrorKind.PACK_VERSION_DRIFT


class ToolchainUnresolvedError(ContextResolutionError):
    kind = ErrorKind.TOOLCHAIN_UNRESOLVED


class DeviceAmbiguousError(ContextResolutionError):
    kind = ErrorKind.DEVICE_AMBIGUOUS


class DeviceNotFoundError(ContextResolutionError):
    kind = ErrorKind.DEVICE_NOT_FOUND


class LayerWiringConflictError(ContextResolutionError):
    kind = ErrorKind.LAYER_WIRING_CONFLICT


class LayerNotFoundError(ContextResolutionError):
    kind = ErrorKind.LAYER_NOT_FOUND
