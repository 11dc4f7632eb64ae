"""Logging setup shared by the CLI and library callers.

Library modules only do ``logger = logging.getLogger(__name__)``; handlers are
installed once by the entry point through setup_logging().

Line formats:
    human  2025-10-28T13:45:12.345Z | INFO     | app=shadow_mask input=title.png | Saved ...
    json   {"t": "2025-10-28T13:45:12.345+00:00", "lvl": "INFO", "app": "shadow_mask", ...}

Contextual fields (push_context / pop_context) live in a ContextVar. Thread
pool workers only see them when the task runs inside a copied context, which
is how the pipeline submits channel renders.

setup_logging() may be called repeatedly: it detaches the handlers it
installed last time before adding new ones, and never touches handlers owned
by someone else (e.g. pytest's capture handler).
"""

import contextvars
import json as jsonlib
import logging
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

_context_var: contextvars.ContextVar = contextvars.ContextVar('log_context', default={})

_installed: List[logging.Handler] = []

_QUIET_LIBS = ("PIL",)


class ContextFormatter(logging.Formatter):
    """Formats records as human-readable or JSON lines with context fields.

    Parameters
    ----------
    fmt_mode : str
        "human" or "json"
    use_color : bool
        Colour the level name (human mode, only when stderr is a terminal)
    """

    LEVEL_COLORS = {
        'DEBUG': '\033[36m',
        'INFO': '\033[32m',
        'WARNING': '\033[33m',
        'ERROR': '\033[31m',
        'CRITICAL': '\033[35m',
    }

    def __init__(self, fmt_mode: str = "human", use_color: bool = True):
        super().__init__()
        if fmt_mode not in ("human", "json"):
            raise ValueError(f"Unknown format mode: {fmt_mode}. Use 'human' or 'json'.")
        self.fmt_mode = fmt_mode
        self.use_color = use_color and sys.stderr.isatty()

    def format(self, record: logging.LogRecord) -> str:
        fields = _context_var.get()
        when = datetime.fromtimestamp(record.created, tz=timezone.utc)

        if self.fmt_mode == "json":
            payload = {
                't': when.isoformat(),
                'lvl': record.levelname,
                'logger': record.name,
                'pid': os.getpid(),
                'thread': record.threadName,
                **fields,
                'msg': record.getMessage(),
            }
            if record.exc_info:
                payload['exc'] = self.formatException(record.exc_info)
            return jsonlib.dumps(payload, default=str)

        level = f"{record.levelname:8s}"
        if self.use_color:
            level = f"{self.LEVEL_COLORS.get(record.levelname, '')}{level}\033[0m"

        parts = [when.strftime('%Y-%m-%dT%H:%M:%S.%f')[:-3] + 'Z', level]
        if fields:
            parts.append(' '.join(f"{k}={v}" for k, v in fields.items()))
        if record.threadName != 'MainThread':
            parts.append(record.threadName)
        parts.append(record.getMessage())

        text = ' | '.join(parts)
        if record.exc_info:
            text = f"{text}\n{self.formatException(record.exc_info)}"
        return text


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    *,
    json: bool = False,
    color: bool = True,
    to_stderr: bool = True,
    capture_warnings: bool = True,
    context: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """Install console and/or file handlers on the root logger.

    Parameters
    ----------
    log_level : str
        "DEBUG", "INFO", "WARNING", "ERROR" or "CRITICAL"
    log_file : str, optional
        Also append log lines to this file (parent dirs are created)
    json : bool
        JSON lines in the log file instead of human format, default False
    color : bool
        Coloured level names on the console, default True
    to_stderr : bool
        Log to stderr, default True
    capture_warnings : bool
        Route ``warnings.warn`` through logging, default True
    context : dict, optional
        Fields added to every line (e.g. {"app": "shadow_mask"})

    Returns
    -------
    dict
        {"handlers": [installed handlers]}

    Raises
    ------
    ValueError
        Unknown log level
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {log_level}")

    _detach_handlers()
    root = logging.getLogger()
    root.setLevel(level)

    if to_stderr:
        console = logging.StreamHandler(sys.stderr)
        console.setFormatter(ContextFormatter("human", use_color=color))
        _installed.append(console)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding='utf-8')
        file_handler.setFormatter(ContextFormatter("json" if json else "human", use_color=False))
        _installed.append(file_handler)

    for handler in _installed:
        root.addHandler(handler)

    if context:
        push_context(**context)

    for lib in _QUIET_LIBS:
        logging.getLogger(lib).setLevel(logging.WARNING)

    if capture_warnings:
        logging.captureWarnings(True)

    return {'handlers': list(_installed)}


def push_context(**kwargs) -> None:
    """Add fields to every subsequent log line of this context.

    Examples
    --------
    >>> push_context(input="title.png", mask="DELTA")
    """
    _context_var.set({**_context_var.get(), **kwargs})


def pop_context(keys: Optional[List[str]] = None) -> None:
    """Remove the given context fields, or all of them when ``keys`` is None."""
    if keys is None:
        _context_var.set({})
        return
    _context_var.set({k: v for k, v in _context_var.get().items() if k not in keys})


def install_excepthook() -> None:
    """Log uncaught exceptions (except Ctrl+C) at CRITICAL before exiting."""
    def _log_uncaught(exc_type, exc_value, exc_tb):
        if issubclass(exc_type, KeyboardInterrupt):
            sys.__excepthook__(exc_type, exc_value, exc_tb)
            return
        logging.getLogger(__name__).critical(
            "Uncaught exception", exc_info=(exc_type, exc_value, exc_tb)
        )

    sys.excepthook = _log_uncaught


def _detach_handlers() -> None:
    root = logging.getLogger()
    while _installed:
        handler = _installed.pop()
        root.removeHandler(handler)
        handler.close()


def shutdown() -> None:
    """Detach and close the handlers installed by setup_logging(), clear context.

    Call at the end of main(); a later setup_logging() starts clean.
    """
    _detach_handlers()
    pop_context()
