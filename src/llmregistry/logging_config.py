# src/llmregistry/logging_config.py
"""
Logging configuration for llmregistry.

The library itself only ever calls ``logging.getLogger(__name__)``.
Applications embedding the registry can call ``configure_logging()``
once at startup to get:

- a console handler gated by ``DisplayFilter``
- an optional log file (one per run, or a single rotating file)
- per-component levels (e.g. keep ``llmregistry.selection`` at DEBUG
  while the aggregator stays at INFO)

Options come from the ``logging`` table of the registry settings:

    [llmregistry.logging]
    console_enabled = true
    console_level = "INFO"
    file_enabled = true
    file_mode = "single"

    [llmregistry.logging.components]
    "llmregistry.selection" = "DEBUG"

Display records:
    With ``console_enabled = false`` (the default) the console handler
    still exists but only passes records logged with
    ``extra={"display": True}``; ``log_display()`` sets that flag. Use it
    for messages the user should always see, such as a failed provider
    during startup.

Usage:
    from llmregistry.logging_config import configure_logging, log_display

    configure_logging(config=settings.logging)
    log_display(logger, logging.WARNING, "Provider %s unavailable", name)
"""

import logging
import os
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

DEFAULT_LOGGING_CONFIG: dict[str, Any] = {
    "console_enabled": False,
    "console_level": "WARNING",
    "console_format": "%(levelname)s - %(name)s - %(message)s",
    "display_min_level": "INFO",
    "file_enabled": False,
    "file_level": "DEBUG",
    "file_directory": "~/.local/share/llmregistry/logs",
    "file_mode": "per_run",
    "file_name_pattern": "{app}_{timestamp:%Y%m%d_%H%M%S}.log",
    "file_single_name": "{app}.log",
    "file_format": "%(asctime)s [%(levelname)-8s] %(name)-36s - %(message)s (%(filename)s:%(lineno)d)",
    "rotation_max_bytes": 5 * 1024 * 1024,
    "rotation_backup_count": 3,
    "components": {
        "llmregistry": "INFO",
        "asyncio": "WARNING",
    },
}


def _resolve_level(level: str | int | None, default: int) -> int:
    if isinstance(level, int):
        return level
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        if isinstance(resolved, int):
            return resolved
    return default


# ---------------------------------------------------------------------------
# DisplayFilter
# ---------------------------------------------------------------------------


class DisplayFilter(logging.Filter):
    """Decides which records reach the console handler.

    - console globally enabled: every record passes; the handler level filters.
    - console disabled: only records with ``display=True`` at or above
      ``display_min_level`` pass.
    """

    def __init__(self, console_globally_enabled: bool = False, display_min_level: int = logging.INFO) -> None:
        super().__init__()
        self.console_globally_enabled = console_globally_enabled
        self.display_min_level = display_min_level

    def filter(self, record: logging.LogRecord) -> bool:
        if self.console_globally_enabled:
            return True
        if getattr(record, "display", False):
            return record.levelno >= self.display_min_level
        return False


# ---------------------------------------------------------------------------
# LoggingManager
# ---------------------------------------------------------------------------


class LoggingManager:
    """
    Owns the handlers installed by ``configure_logging()``.

    Handlers are attached to the ``llmregistry`` logger by default, not the
    root logger, so an application's own logging setup is left alone.
    Pass ``logger_name=""`` to install them on the root logger instead.
    """

    def __init__(self) -> None:
        self.configured = False
        self.log_file_path: Path | None = None
        self.console_handler: logging.Handler | None = None
        self.file_handler: logging.Handler | None = None
        self.display_filter: DisplayFilter | None = None
        self._target: logging.Logger | None = None

    def configure(
        self,
        app_name: str = "llmregistry",
        config: dict[str, Any] | None = None,
        logger_name: str = "llmregistry",
        force_reconfigure: bool = False,
    ) -> Path | None:
        """
        Install console and file handlers.

        Args:
            app_name: Used in the log file name
            config: Logging options, merged over DEFAULT_LOGGING_CONFIG
            logger_name: Logger to attach handlers to ("" for root)
            force_reconfigure: Replace handlers from an earlier call

        Returns:
            Path of the log file, or None when file logging is off
        """
        if self.configured and not force_reconfigure:
            return self.log_file_path

        options = {**DEFAULT_LOGGING_CONFIG, **(config or {})}
        self.reset()

        target = logging.getLogger(logger_name)
        target.setLevel(logging.DEBUG)
        self._target = target

        console_enabled = bool(options.get("console_enabled", False))
        self.display_filter = DisplayFilter(
            console_globally_enabled=console_enabled,
            display_min_level=_resolve_level(options.get("display_min_level"), logging.INFO),
        )
        self.console_handler = self._create_console_handler(options)
        if not console_enabled:
            # The filter is the only gate while the console is off.
            self.console_handler.setLevel(logging.DEBUG)
        self.console_handler.addFilter(self.display_filter)
        target.addHandler(self.console_handler)

        if options.get("file_enabled", False):
            self.file_handler, self.log_file_path = self._create_file_handler(options, app_name)
            if self.file_handler is not None:
                target.addHandler(self.file_handler)

        for component, level in (options.get("components") or {}).items():
            resolved = _resolve_level(level, -1)
            if resolved >= 0:
                logging.getLogger(component).setLevel(resolved)

        self.configured = True
        logging.getLogger(__name__).debug(
            f"Logging configured (console={'on' if console_enabled else 'display-only'}, "
            f"file={self.log_file_path or 'off'})"
        )
        return self.log_file_path

    def reset(self) -> None:
        """Remove and close the handlers installed by this manager."""
        if self._target is not None:
            for handler in (self.console_handler, self.file_handler):
                if handler is not None:
                    self._target.removeHandler(handler)
                    handler.close()
        self.console_handler = None
        self.file_handler = None
        self.display_filter = None
        self.log_file_path = None
        self._target = None
        self.configured = False

    def _create_console_handler(self, options: dict[str, Any]) -> logging.Handler:
        handler = logging.StreamHandler(sys.stderr)
        handler.setLevel(_resolve_level(options.get("console_level"), logging.WARNING))
        handler.setFormatter(logging.Formatter(options.get("console_format") or DEFAULT_LOGGING_CONFIG["console_format"]))
        return handler

    def _create_file_handler(
        self, options: dict[str, Any], app_name: str
    ) -> tuple[logging.Handler | None, Path | None]:
        """
        Create the file handler.

        ``file_mode = "single"`` writes to one RotatingFileHandler file;
        anything else creates a new timestamped file per run.
        """
        log_dir = Path(os.path.expanduser(options["file_directory"]))
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            sys.stderr.write(f"Warning: Cannot create log directory {log_dir}: {e}\n")
            return None, None

        try:
            if options.get("file_mode") == "single":
                try:
                    filename = options["file_single_name"].format(app=app_name)
                except (KeyError, ValueError):
                    filename = f"{app_name}.log"
                path = log_dir / filename
                handler: logging.Handler = RotatingFileHandler(
                    path,
                    maxBytes=int(options["rotation_max_bytes"]),
                    backupCount=int(options["rotation_backup_count"]),
                    encoding="utf-8",
                )
            else:
                timestamp = datetime.now()
                try:
                    filename = options["file_name_pattern"].format(app=app_name, timestamp=timestamp)
                except (KeyError, ValueError):
                    filename = f"{app_name}_{timestamp:%Y%m%d_%H%M%S}.log"
                path = log_dir / filename
                handler = logging.FileHandler(path, encoding="utf-8")
        except OSError as e:
            sys.stderr.write(f"Warning: Cannot open log file in {log_dir}: {e}\n")
            return None, None

        handler.setLevel(_resolve_level(options.get("file_level"), logging.DEBUG))
        handler.setFormatter(logging.Formatter(options.get("file_format") or DEFAULT_LOGGING_CONFIG["file_format"]))
        return handler, path

    def set_console_level(self, level: str | int) -> None:
        if self.console_handler is not None:
            self.console_handler.setLevel(_resolve_level(level, self.console_handler.level))


_manager = LoggingManager()


# ---------------------------------------------------------------------------
# Public module-level functions
# ---------------------------------------------------------------------------


def configure_logging(
    app_name: str = "llmregistry",
    config: dict[str, Any] | None = None,
    logger_name: str = "llmregistry",
    force_reconfigure: bool = False,
) -> Path | None:
    """
    Configure llmregistry logging once per process.

    Example:
        >>> from llmregistry.config import load_registry_settings_file
        >>> settings = load_registry_settings_file("~/.config/llmregistry/config.toml")
        >>> configure_logging(config=settings.logging)
    """
    return _manager.configure(
        app_name=app_name,
        config=config,
        logger_name=logger_name,
        force_reconfigure=force_reconfigure,
    )


def reset_logging() -> None:
    """Remove the handlers installed by ``configure_logging()``."""
    _manager.reset()


def log_display(logger: logging.Logger, level: int, msg: str, *args: Any, **kwargs: Any) -> None:
    """Log a record that reaches the console even when the console is off.

    ``display_min_level`` still applies. Any ``extra`` passed by the
    caller is kept.
    """
    extra = dict(kwargs.pop("extra", None) or {})
    extra["display"] = True
    logger.log(level, msg, *args, extra=extra, **kwargs)


def get_log_file_path() -> Path | None:
    return _manager.log_file_path


def set_console_level(level: str | int) -> None:
    """Change the console handler's level at runtime."""
    _manager.set_console_level(level)
