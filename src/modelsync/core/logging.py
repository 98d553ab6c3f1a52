"""Logging for synchronization runs.

Every event goes through structlog into stdlib handlers, one per configured
output. ``run_context`` binds the run id and project path for the duration
of a run; ``PhaseRunner`` copies that context into its worker threads, so
events logged by workers carry the same fields.

While a spinner is on screen, console handlers drop records from every
thread. File handlers keep receiving them.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING
from uuid import uuid4

import structlog

if TYPE_CHECKING:
    from modelsync.config.models import LoggingConfig, LogOutputConfig

_CONSOLE_DESTINATIONS = ("stderr", "stdout")

_SHARED_PROCESSORS: list[structlog.types.Processor] = [
    structlog.contextvars.merge_contextvars,
    structlog.processors.add_log_level,
    structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S", key="timestamp"),
]


@contextmanager
def run_context(project: Path | str, run_id: str | None = None) -> Iterator[str]:
    """Bind ``run_id`` and ``project`` to every event logged inside the block."""
    rid = run_id or uuid4().hex[:12]
    with structlog.contextvars.bound_contextvars(run_id=rid, project=str(project)):
        yield rid


class ConsoleSuppressingFilter(logging.Filter):
    """Drops console records while a live display owns the terminal."""

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: ARG002
        from modelsync.core.progress import is_console_suppressed

        return not is_console_suppressed()


def _level(name: str) -> int:
    return logging.getLevelNamesMapping().get(name.upper(), logging.INFO)


def _renderer(output: LogOutputConfig, stream_is_tty: bool) -> structlog.types.Processor:
    if output.format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=stream_is_tty)


def _handler(output: LogOutputConfig, default_level: str) -> logging.Handler:
    handler: logging.Handler
    if output.destination in _CONSOLE_DESTINATIONS:
        stream = sys.stderr if output.destination == "stderr" else sys.stdout
        handler = logging.StreamHandler(stream)
        handler.addFilter(ConsoleSuppressingFilter())
        is_tty = hasattr(stream, "isatty") and stream.isatty()
    else:
        path = Path(output.destination)
        path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(path, mode="a", encoding="utf-8")
        is_tty = False

    handler.setLevel(_level(output.level or default_level))
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=_renderer(output, is_tty),
            foreign_pre_chain=_SHARED_PROCESSORS,
        )
    )
    return handler


def configure_logging(*, config: LoggingConfig | None = None, level: str = "INFO") -> None:
    """Route structlog through stdlib logging to the outputs in ``config``.

    Without a config, logs go to stderr at ``level``. Calling again replaces
    the handlers installed by the previous call.
    """
    from modelsync.config.models import LoggingConfig

    if config is None:
        config = LoggingConfig(level=level)  # type: ignore[arg-type]
    root_level = _level(config.level)

    structlog.configure(
        processors=[*_SHARED_PROCESSORS, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.make_filtering_bound_logger(root_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(root_level)
    # engine echo would drown out the run's own events
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    for output in config.outputs:
        root.addHandler(_handler(output, config.level))


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    logger = structlog.get_logger()
    if name:
        logger = logger.bind(logger=name)
    return logger  # type: ignore[no-any-return]
