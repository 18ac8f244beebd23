"""
Structured logging setup using structlog.

Log events go to stderr so that the output of the CLI commands on stdout
stays machine-readable. Components log event names with bound context:

    log = structlog.get_logger().bind(component="maker")
    log.info("fill_detected", source="orders", count=1)
"""
import logging
import sys

import structlog

# The HTTP stack logs every request at INFO; one cycle makes dozens of them
QUIET_LOGGERS = ("httpx", "httpcore")


def setup_logging(level: str = "INFO", json_output: bool = False) -> None:
    """Route structlog through stdlib logging on stderr.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR)
        json_output: Render one JSON object per line instead of console text
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(log_level)
    logging.basicConfig(format="%(message)s", level=log_level, handlers=[handler], force=True)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))

    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]
    if json_output:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
