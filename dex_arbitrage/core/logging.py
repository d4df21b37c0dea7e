from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Iterable

import structlog

from dex_arbitrage.config.models import LoggingConfig

_MAX_LOG_SIZE = 10 * 1024 * 1024
_BACKUP_COUNT = 5
_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_COMPONENT_LOGGERS = (
    ("dex_arbitrage.system", "system.log"),
    ("dex_arbitrage.core.rpc", "rpc.log"),
    ("dex_arbitrage.services.poll_loop", "poll_loop.log"),
    ("dex_arbitrage.services.reporter", "reporter.log"),
    ("dex_arbitrage.services.arbitrage_engine", "arbitrage_engine.log"),
)


def _create_file_handler(log_file: Path, level: str) -> RotatingFileHandler:
    handler = RotatingFileHandler(
        log_file,
        maxBytes=_MAX_LOG_SIZE,
        backupCount=_BACKUP_COUNT,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(_FORMAT))
    return handler


def _setup_logger(
    logger_name: str,
    log_file: str,
    level: str,
    logs_dir: Path,
    console_format: str = _FORMAT,
) -> logging.Logger:
    logger = logging.getLogger(logger_name)
    logger.setLevel(level)
    logger.propagate = False
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(console_format))
    logger.addHandler(console_handler)

    logger.addHandler(_create_file_handler(logs_dir / log_file, level))
    return logger


def configure_logging(config: LoggingConfig, venues: Iterable[str] = ()) -> None:
    shared_processors: list[structlog.types.Processor] = [
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    renderer: structlog.types.Processor
    if config.json_format:
        renderer = structlog.processors.JSONRenderer(sort_keys=True)
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=shared_processors + [renderer],
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(config.level)),
        cache_logger_on_first_use=True,
    )

    logs_dir = Path(config.directory)
    logs_dir.mkdir(parents=True, exist_ok=True)

    level = config.level

    for logger_name, log_file in _COMPONENT_LOGGERS:
        _setup_logger(logger_name, log_file, level, logs_dir)
    for venue in venues:
        _setup_logger(f"dex_arbitrage.quoters.{venue}", f"{venue}.log", level, logs_dir)
    # Status lines are the per-cycle output: bare message on the console, never filtered by the configured level.
    _setup_logger("dex_arbitrage.status", "status.log", "INFO", logs_dir, console_format="%(message)s")

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(_FORMAT))
    root_logger.addHandler(console_handler)
