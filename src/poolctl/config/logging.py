"""Logging setup: stdlib ``logging`` rendered by structlog.

Services log through ``logging.getLogger(__name__)`` or
``structlog.get_logger(__name__)``; both end up in one stderr handler
whose formatter is either structlog's console renderer or JSON lines
(``--log-json``).
"""

from __future__ import annotations

import logging
import sys

import structlog

# Third-party loggers kept at WARNING even under --verbose.
_QUIET_LOGGERS = ("sqlalchemy", "sqlalchemy.engine")


def _pre_chain() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def configure_logging(*, verbose: bool = False, log_json: bool = False) -> None:
    """Install the stderr handler and route structlog through it.

    The ``poolctl`` logger goes to DEBUG with *verbose*; everything else
    stays at WARNING. Calling this again replaces the previous handler.
    """
    pre_chain = _pre_chain()
    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    renderer: structlog.types.Processor
    if log_json:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(logging.WARNING)
    logging.getLogger("poolctl").setLevel(logging.DEBUG if verbose else logging.WARNING)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def bind_actor(role: str, **context: str) -> None:
    """Tag every following log line with the acting role (admin, technician, client).

    Bound through structlog contextvars, so stdlib ``logging`` records pick
    it up via ``merge_contextvars`` in the formatter's pre-chain.
    """
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(actor=role, **context)
