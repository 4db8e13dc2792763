"""
structlog setup shared by the API server and the CLI.

stdlib loggers (``logging.getLogger(__name__)`` in the core modules) are
rendered through structlog's ``ProcessorFormatter``, so orchestrator
transitions and receipt polling end up in the same stream as HTTP request
logs, with the request id attached when there is one.
"""

import logging
import sys
from typing import Any, List, Optional

import structlog
from structlog.types import EventDict, Processor

from .config import Settings, settings as default_settings


NOISY_LOGGERS = ("uvicorn.access", "httpcore", "httpx")


def _ledger_context(config: Settings) -> Processor:
    """Stamp the configured pool/token onto every record."""

    pool = config.pool_address if config.pool_configured else None
    token = config.token_address if config.token_configured else None

    def processor(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("pool", pool)
        event_dict.setdefault("token", token)
        return event_dict

    return processor


def build_processors(config: Settings, json_logs: bool) -> List[Processor]:
    processors: List[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]
    if json_logs:
        processors.append(_ledger_context(config))
        processors.append(structlog.processors.format_exc_info)
    processors.append(structlog.processors.UnicodeDecoder())
    return processors


def setup_logging(
    log_level: Optional[str] = None,
    json_logs: Optional[bool] = None,
    config: Optional[Settings] = None,
) -> None:
    """Route structlog and stdlib logging to stderr.

    Args:
        log_level: Override ``settings.log_level``.
        json_logs: JSON lines when true, colored console otherwise. Defaults
            to JSON unless the level is DEBUG.
    """
    config = config or default_settings
    level = getattr(logging, (log_level or config.log_level).upper(), logging.INFO)
    if json_logs is None:
        json_logs = level != logging.DEBUG

    shared = build_processors(config, json_logs)
    renderer: Processor = (
        structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # stdout belongs to the CLI's own output
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
