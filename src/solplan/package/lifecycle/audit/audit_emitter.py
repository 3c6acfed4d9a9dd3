from __future__ import annotations

import logging
import sys
from pathlib import Path

from solplan.package.domain.run_plan_model import RunPlan
from solplan.package.lifecycle.audit.plan_event_model import LevelType, PlanEvent

AUDIT_LOGGER_NAME = "solplan.audit"

_LEVELS = {
    LevelType.DEBUG: logging.DEBUG,
    LevelType.INFO: logging.INFO,
    LevelType.WARN: logging.WARNING,
    LevelType.ERROR: logging.ERROR,
}


def to_logging_level(level: LevelType) -> int:
    return _LEVELS.get(level, logging.INFO)


def emit_event(logger: logging.Logger, event: PlanEvent, indent: int = 2) -> None:
    """
    Emits one event to the logger as JSON, at the logging level matching the
    event's level.

    Args:
        logger (logging.Logger): The logger to emit through.
        event (PlanEvent): The event to emit.
        indent (int): JSON indentation. Defaults to 2.
    """
    logger.log(to_logging_level(event.level), event.to_json(indent=indent))


def emit_all(logger: logging.Logger, events: list[PlanEvent], indent: int = 2) -> None:
    for event in events:
        emit_event(logger, event, indent=indent)


def configure_emitter(dest: list[str], level: int = logging.INFO) -> logging.Logger:
    """
    Configures and returns the audit logger. Existing handlers of the logger
    are closed and replaced.

    Args:
        dest (list[str]): Destinations for the logger output:
            - "stdout": the standard output.
            - "stderr": the standard error.
            - "file:<path>": a file at `<path>`; parent directories are created.
        level (int, optional): The logging level. Defaults to `logging.INFO`.

    Returns:
        logging.Logger: The configured logger instance.

    Raises:
        ValueError: If a destination is not recognized.
    """
    logger = logging.getLogger(AUDIT_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False
    for old in list(logger.handlers):
        logger.removeHandler(old)
        old.close()

    for d in dest:
        handler: logging.Handler
        if d == "stdout":
            handler = logging.StreamHandler(sys.stdout)
        elif d == "stderr":
            handler = logging.StreamHandler(sys.stderr)
        elif d.startswith("file:"):
            path = Path(d[len("file:"):])
            path.parent.mkdir(parents=True, exist_ok=True)
            handler = logging.FileHandler(path, encoding="utf-8")
        else:
            raise ValueError(f"Unknown audit log destination: {d}")

        handler.setFormatter(logging.Formatter('%(message)s'))
        logger.addHandler(handler)

    return logger


def emit_audit_log(
        run_plan: RunPlan,
        dest: str = "file",
        path: Path | None = None,
        indent: int = 2) -> logging.Logger:
    """
    Emits the audit log of a run plan.

    Args:
        run_plan (RunPlan): The plan whose audit log is emitted.
        dest (str): Space separated destinations; "file" means `path`, or the
            plan's default audit log path in the per-user cache directory.
            Defaults to "file".
        path (Path | None): File for the "file" destination.
        indent (int): JSON indentation of the entries. Defaults to 2.

    Returns:
        logging.Logger: The logger the events were emitted through.

    Raises:
        ValueError: If the run plan is not provided or a destination is unknown.
    """
    if run_plan is None:
        raise ValueError("No run plan found; cannot emit audit log")
    file_path = path or run_plan.audit_log_path
    dests = []
    for d in dest.split():
        if d == "file":
            dests.append(f"file:{file_path}")
        else:
            dests.append(d)
    logger = configure_emitter(dests)
    emit_all(logger, run_plan.audit_log, indent)
    for handler in logger.handlers:
        handler.flush()
    return logger
