from __future__ import annotations

import logging
import logging.config
import os
from pathlib import Path
from typing import Any, Mapping

# ----------------------------------------------------------------------
# Environment-driven defaults
# ----------------------------------------------------------------------

DEFAULT_LOG_LEVEL = (
    os.getenv("TABULAR_IO_LOG_LEVEL")
    or os.getenv("LOG_LEVEL", "INFO")
).upper()

DEFAULT_LOG_DIR = Path(
    os.getenv("TABULAR_IO_LOG_DIR") or os.getenv("LOG_DIR", "logs")
)

LOG_FILE_NAME = "tabular_io.log"

# Decides handler behaviour: console-only, or console + rotating file in prod.
APP_ENV = (
    os.getenv("TABULAR_IO_ENV")
    or os.getenv("ENV")
    or "dev"
).lower()

# Set to 0/false/no when embedding the library in an application that owns logging.
AUTO_CONFIG = os.getenv("TABULAR_IO_CONFIGURE_LOGGING", "1").lower() not in {
    "0",
    "false",
    "no",
}

# "text" (default) or "json".
LOG_FORMAT = os.getenv("TABULAR_IO_LOG_FORMAT", "text").lower()

PACKAGE_LOGGER = "tabular_io"

_LOG_CONFIGURED = False


def _supports_json_logging() -> bool:
    """Return True if python-json-logger is importable."""
    try:
        import pythonjsonlogger  # noqa: F401
    except ImportError:
        return False
    return True


def _build_formatters(fmt: str) -> dict[str, Any]:
    """Build formatter configuration based on the requested format.

    Structured fields passed through ``extra={...}`` (path, selector, n_rows,
    ...) only show up in JSON mode; text mode keeps lines short.
    """
    if fmt == "json" and _supports_json_logging():
        return {
            "json": {
                "class": "pythonjsonlogger.jsonlogger.JsonFormatter",
                "format": "%(asctime)s %(levelname)s %(name)s %(message)s",
            },
            "json_verbose": {
                "class": "pythonjsonlogger.jsonlogger.JsonFormatter",
                "format": (
                    "%(asctime)s %(levelname)s %(name)s "
                    "%(filename)s %(lineno)d %(message)s"
                ),
            },
        }

    return {
        "standard": {
            "format": "[%(asctime)s] [%(levelname)s] %(name)s - %(message)s",
        },
        "verbose": {
            "format": (
                "[%(asctime)s] [%(levelname)s] %(name)s "
                "(%(filename)s:%(lineno)d) - %(message)s"
            ),
        },
    }


def _build_logging_config(
    env: str,
    log_dir: Path,
    level: str,
    fmt: str,
) -> dict[str, Any]:
    """Return a dictConfig-style logging configuration.

    The console handler is always installed. In 'prod' the package logger
    also writes to a rotating file under ``log_dir``; the directory is only
    created in that case so importing the library never touches the disk.
    """
    formatters = _build_formatters(fmt)

    if "json" in formatters:
        console_formatter = "json"
        file_formatter = "json_verbose"
    else:
        console_formatter = "standard"
        file_formatter = "verbose"

    handlers: dict[str, Any] = {
        "console": {
            "class": "logging.StreamHandler",
            "level": level,
            "formatter": console_formatter,
            "stream": "ext://sys.stderr",
        },
    }

    if env.lower() in {"prod", "production"}:
        log_dir.mkdir(parents=True, exist_ok=True)
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": level,
            "formatter": file_formatter,
            "filename": str(log_dir / LOG_FILE_NAME),
            "maxBytes": 10 * 1024 * 1024,  # 10 MB
            "backupCount": 5,
            "encoding": "utf-8",
        }
        package_handlers = ["console", "file"]
    else:
        package_handlers = ["console"]

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": formatters,
        "handlers": handlers,
        # The root logger belongs to the host application; we only manage ours.
        "loggers": {
            PACKAGE_LOGGER: {
                "level": level,
                "handlers": package_handlers,
                "propagate": False,
            },
        },
    }


def configure_logging(
    *,
    level: str | None = None,
    log_dir: Path | str | None = None,
    env: str | None = None,
    fmt: str | None = None,
    extra_config: Mapping[str, Any] | None = None,
    force: bool = False,
) -> None:
    """Configure logging for the ``tabular_io`` logger hierarchy.

    Parameters
    ----------
    level:
        Log level ("DEBUG", "INFO", "WARNING", etc.). Defaults to env or "INFO".
    log_dir:
        Directory for the rotating log file (prod only). Defaults to env or "logs".
    env:
        Application environment ("dev", "prod", "test"). Defaults to TABULAR_IO_ENV/ENV.
    fmt:
        "text" (default) or "json". Defaults to TABULAR_IO_LOG_FORMAT.
    extra_config:
        Optional dictConfig-style overrides merged (shallowly) into the base config.
    force:
        If True, re-configure logging even if it was already configured.
    """
    global _LOG_CONFIGURED

    if _LOG_CONFIGURED and not force:
        return

    effective_level = (level or DEFAULT_LOG_LEVEL).upper()
    effective_dir = Path(log_dir) if log_dir is not None else DEFAULT_LOG_DIR
    effective_env = (env or APP_ENV).lower()
    effective_fmt = (fmt or LOG_FORMAT).lower()

    if effective_fmt == "json" and not _supports_json_logging():
        logging.getLogger(__name__).warning(
            "JSON logging requested but python-json-logger is not installed; "
            "falling back to text format."
        )
        effective_fmt = "text"

    config = _build_logging_config(
        env=effective_env,
        log_dir=effective_dir,
        level=effective_level,
        fmt=effective_fmt,
    )

    if extra_config:
        for key, value in extra_config.items():
            if isinstance(value, dict) and isinstance(config.get(key), dict):
                config[key].update(value)
            else:
                config[key] = value

    logging.config.dictConfig(config)
    _LOG_CONFIGURED = True


def configure_logging_from_app_config(
    app_config: Any,
    *,
    fmt: str | None = None,
    extra_config: Mapping[str, Any] | None = None,
    force: bool = False,
) -> None:
    """Configure logging from a ``tabular_io.config.AppConfig`` instance.

    Typed as ``Any`` to avoid an import cycle with the config module.

        from tabular_io.config import get_config
        from tabular_io.logging_config import configure_logging_from_app_config

        configure_logging_from_app_config(get_config())
    """
    env = getattr(app_config, "env", "dev")
    level = getattr(app_config, "log_level", "INFO")

    resolved = app_config.resolved_paths() if hasattr(app_config, "resolved_paths") else None
    log_dir = resolved.log_dir if resolved is not None else DEFAULT_LOG_DIR

    configure_logging(
        level=str(level),
        log_dir=log_dir,
        env=str(env),
        fmt=fmt,
        extra_config=extra_config,
        force=force,
    )


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a logger, configuring the package logger on first use.

    If TABULAR_IO_CONFIGURE_LOGGING=0/false/no, this will *not* auto-configure
    logging and simply returns ``logging.getLogger(name)``.

        from tabular_io.logging_config import get_logger

        logger = get_logger(__name__)
        logger.info("Loaded table", extra={"n_rows": 3})
    """
    if not _LOG_CONFIGURED and AUTO_CONFIG:
        configure_logging()

    return logging.getLogger(name)
