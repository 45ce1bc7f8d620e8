from __future__ import annotations
import logging, sys
import structlog
import structlog.stdlib
from skillzcollab.config import get_logging_config

def configure_logging():
    cfg = get_logging_config()
    level = logging.getLevelName(cfg.level.upper())
    if not isinstance(level, int):
        level = logging.INFO
    renderer = structlog.dev.ConsoleRenderer() if cfg.format == "console" else structlog.processors.JSONRenderer()
    timestamper = structlog.processors.TimeStamper(fmt="iso")
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            timestamper,
            structlog.processors.add_log_level,
            structlog.processors.format_exc_info,
            structlog.processors.EventRenamer("message"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=True,
    )
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(structlog.stdlib.ProcessorFormatter(renderer))
    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)
