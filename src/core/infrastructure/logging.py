"""Structlog configuration shared by the migration CLI and request workers.

Colored console output when attached to a terminal, JSON lines otherwise.
"""

import os
import sys

import structlog


def _wants_colors() -> bool:
    # FORCE_COLOR=1 enables colors in non-TTY environments (like Docker)
    force_color = os.environ.get("FORCE_COLOR", "").lower() in ("1", "true", "yes")
    return force_color or sys.stdout.isatty()


def configure_logging(json_output: bool | None = None, level: int = 0) -> None:
    """Configure structlog processors.

    Args:
        json_output: Force JSON (True) or console (False) rendering. When
            None the choice follows the terminal, see ``_wants_colors``.
        level: Minimum numeric log level passed to the filtering logger.
    """
    use_json = (not _wants_colors()) if json_output is None else json_output

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    if use_json:
        processors = [
            *shared_processors,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = [
            *shared_processors,
            structlog.dev.ConsoleRenderer(colors=True),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        # stderr keeps stdout free for the CLI summary
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )
