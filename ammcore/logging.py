"""
Logging configuration for the AMM adapter client.

Sinks: colored stdout, a rotating debug file, an error file, a trade log for
records bound with ``TRADE_DECISION=True`` and, when enabled, a capped Redis
list that the API can tail.
"""
from __future__ import annotations

import json
import logging
import os
import sys
from pathlib import Path
from typing import Any

from loguru import logger
from redis import Redis

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<magenta>{extra[network]}</magenta> | <cyan>{name}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[network]} | {name}:{function}:{line} - {message}"
TRADE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {extra[network]} | {message}"

TMP_LOG_DIR = Path("/tmp/amm_adapter_logs")


def _app_settings():
    # Imported here: config must load before logging configures itself.
    from ammcore.settings.config import settings

    return settings


def _log_dir(log_file: Path) -> Path:
    for candidate in (log_file.parent, Path.cwd() / "logs", TMP_LOG_DIR):
        try:
            candidate.mkdir(parents=True, exist_ok=True)
        except OSError:
            continue
        if os.access(candidate, os.W_OK):
            return candidate
    raise OSError(f"No writable log directory for {log_file}")


def _is_trade_record(record: dict[str, Any]) -> bool:
    return bool(record["extra"].get("TRADE_DECISION"))


class RedisLogSink:
    """Pushes INFO+ records onto a capped Redis list (newest last)."""

    def __init__(self, client: Redis, key: str, max_entries: int) -> None:
        self.client = client
        self.key = key
        self.max_entries = max_entries

    @classmethod
    def connect(cls, app_settings) -> "RedisLogSink | None":
        client = Redis(
            host=app_settings.redis_host,
            port=app_settings.redis_port,
            db=app_settings.redis_db,
            decode_responses=True,
        )
        try:
            client.ping()
        except Exception as exc:
            logger.warning("Redis log sink disabled: {}", exc)
            return None
        return cls(client, app_settings.log_redis_list_key, app_settings.log_redis_max_entries)

    def write(self, message: Any) -> None:
        record = message.record
        entry = {
            "at": record["time"].isoformat(),
            "level": record["level"].name,
            "source": f"{record['name']}:{record['line']}",
            "message": record["message"],
            "trade": _is_trade_record(record),
            "extra": {key: str(value) for key, value in record["extra"].items()},
        }
        try:
            pipe = self.client.pipeline()
            pipe.rpush(self.key, json.dumps(entry))
            pipe.ltrim(self.key, -self.max_entries, -1)
            pipe.execute()
        except Exception as exc:
            # Must not go through the Redis sink again
            sys.stderr.write(f"Redis log sink write failed: {exc}\n")


class LoguruHandler(logging.Handler):
    """Route stdlib logging records (web3, urllib3, uvicorn) into loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno
        logger.opt(depth=6, exception=record.exc_info).log(level, record.getMessage())


def setup_logging():
    """Install the adapter client's sinks on the global loguru logger."""
    app_settings = _app_settings()
    console_level = (os.getenv("LOG_LEVEL") or app_settings.log_level or "INFO").upper()

    logger.remove()
    logger.configure(extra={"network": app_settings.network_name, "TRADE_DECISION": False})
    logger.add(sys.stdout, format=CONSOLE_FORMAT, level=console_level, colorize=True)

    log_file = Path(app_settings.log_file)
    directory = _log_dir(log_file)
    file_sinks = (
        (log_file.name, "DEBUG", FILE_FORMAT, None, "100 MB", "30 days"),
        ("errors.log", "ERROR", FILE_FORMAT, None, "50 MB", "90 days"),
        ("trade_decisions.log", "INFO", TRADE_FORMAT, _is_trade_record, "50 MB", "365 days"),
    )
    for name, level, fmt, record_filter, rotation, retention in file_sinks:
        logger.add(
            str(directory / name),
            format=fmt,
            level=level,
            filter=record_filter,
            rotation=rotation,
            retention=retention,
            compression="zip",
        )

    if app_settings.log_redis_enabled:
        redis_sink = RedisLogSink.connect(app_settings)
        if redis_sink is not None:
            logger.add(redis_sink, level="INFO", enqueue=False)

    logging.basicConfig(handlers=[LoguruHandler()], level=logging.INFO, force=True)

    logger.info("Logging initialized level={} dir={}", console_level, directory)
    return logger


def _configure() -> Any:
    try:
        return setup_logging()
    except OSError as exc:
        # Unwritable log directories: keep the stdout sink only
        logger.warning("File logging disabled: {}", exc)
        return logger


log = _configure()
