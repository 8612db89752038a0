"""structlog setup shared by the API server and the CLI.

Both entry points call :func:`configure_logging` once at start-up.  Log
lines go to stderr: the CLI prints its results on stdout, and keeping the
two streams apart lets ``shelfmind search ... --json`` be piped.

Output is a coloured console rendering by default and one JSON object per
line when ``json_output`` is set (the entry points set it when
``APP_ENV=production``).  The stdlib root logger is routed through the
same renderer, and the chatty HTTP, OpenAI and fastembed loggers are held
at WARNING unless DEBUG is requested.
"""

import logging
import sys
from typing import TextIO

import structlog

# Third-party loggers that log every request or model download at INFO.
_NOISY_LOGGERS = ("httpx", "httpcore", "openai", "aiosqlite", "fastembed", "huggingface_hub")


def _shared_processors(json_output: bool) -> list[structlog.types.Processor]:
    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if json_output:
        # JSON needs the traceback as a string field.
        processors.append(structlog.processors.format_exc_info)
    else:
        processors.append(structlog.dev.set_exc_info)
    return processors


def configure_logging(
    log_level: str = "INFO",
    json_output: bool = False,
    stream: TextIO | None = None,
) -> structlog.BoundLogger:
    """Configure structlog and the stdlib root logger.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL.
        json_output: Render JSON lines instead of console output.
        stream: Destination for every log line; stderr when omitted.

    Returns:
        A configured structlog BoundLogger.
    """
    out = stream if stream is not None else sys.stderr
    level = logging.getLevelName(log_level.upper())
    shared = _shared_processors(json_output)

    if json_output:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=out.isatty())

    structlog.configure(
        processors=[*shared, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=out),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(out)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                *shared,
                renderer,
            ],
        )
    )
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    third_party_level = level if level == logging.DEBUG else max(level, logging.WARNING)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(third_party_level)

    return structlog.get_logger()


def get_logger(name: str) -> structlog.BoundLogger:
    """Return a structlog logger bound to *name*, configuring defaults on first use."""
    if not structlog.is_configured():
        configure_logging()
    return structlog.get_logger(logger_name=name)
