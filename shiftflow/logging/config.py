"""
Centralized logging configuration for the shiftflow core.

Every module logs through structlog with keyword context (owner, order_id,
shift_id, ...). configure_logging routes structlog through the standard
library so that APScheduler's own loggers end up in the same stream.
"""
import logging
import sys
from typing import Any, Optional

import structlog
from structlog.types import FilteringBoundLogger

# Chatty third-party loggers, held at WARNING unless DEBUG is requested
NOISY_LOGGERS = ("apscheduler.scheduler", "apscheduler.executors.default")


def _build_processors(include_timestamp: bool, include_caller: bool) -> list:
    processors: list = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
    ]

    if include_timestamp:
        processors.append(structlog.processors.TimeStamper(fmt="iso", utc=True))

    if include_caller:
        processors.append(structlog.processors.CallsiteParameterAdder(
            parameters=[structlog.processors.CallsiteParameter.FILENAME,
                        structlog.processors.CallsiteParameter.LINENO]
        ))

    processors.extend([
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ])
    return processors


def configure_logging(
    level: str = "INFO",
    format_json: bool = False,
    include_timestamp: bool = True,
    include_caller: bool = False,
    extra_processors: Optional[list] = None
) -> None:
    """
    Configure structlog for the service process.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_json: If True, one JSON object per line; otherwise console output
        include_timestamp: Add a UTC ISO8601 timestamp to every event
        include_caller: Include caller information (filename, line number)
        extra_processors: Additional structlog processors, run before rendering
    """
    log_level = getattr(logging, level.upper())

    logging.basicConfig(level=log_level, stream=sys.stdout, format="%(message)s")
    logging.getLogger().setLevel(log_level)

    third_party_level = log_level if log_level <= logging.DEBUG else max(log_level, logging.WARNING)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(third_party_level)

    processors = _build_processors(include_timestamp, include_caller)
    if extra_processors:
        processors.extend(extra_processors)

    if format_json:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> FilteringBoundLogger:
    """
    Get a configured structlog logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger instance
    """
    return structlog.get_logger(name)


def get_state_logger(name: str) -> FilteringBoundLogger:
    """Logger for manual swap session transitions."""
    return get_logger(name).bind(subsystem="swap_lifecycle", audit_trail=True)


def get_cycle_logger(name: str) -> FilteringBoundLogger:
    """Logger for alert, DCA and limit order cycles."""
    return get_logger(name).bind(subsystem="automation", audit_trail=True)


def log_state_transition(
    logger: FilteringBoundLogger,
    identity: str,
    from_state: str,
    to_state: str,
    trigger: str,
    context: Optional[dict[str, Any]] = None
) -> None:
    """
    Log a session state transition with standardized format.

    Args:
        logger: Structlog logger instance
        identity: Owner identity of the session
        from_state: Current state
        to_state: Target state
        trigger: What caused the transition (quote_received, status_poll, ...)
        context: Additional context data
    """
    bound_logger = logger.bind(
        owner=identity,
        from_state=from_state,
        to_state=to_state,
        trigger=trigger,
    )

    if context:
        bound_logger = bound_logger.bind(context=context)

    bound_logger.info("State transition")


def log_cycle_summary(logger: FilteringBoundLogger, report: Any) -> None:
    """Log the counters of one engine cycle; failures raise it to warning."""
    bound_logger = logger.bind(
        engine=report.engine,
        evaluated=report.evaluated,
        triggered=report.triggered,
        executed=report.executed,
        failed=report.failed,
        skipped=report.skipped,
        duration_ms=report.duration_ms,
    )

    if report.failed:
        bound_logger.warning("Cycle finished with failures", errors=report.errors[:5])
    else:
        bound_logger.info("Cycle finished")
