# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# winunattend/core/logger.py
"""
Logging for answer-file and media builds.

One named logger per process, configured by ``Log.setup()``:

- console on stderr: ``HH:MM:SS ✅ INFO     message pass=specialize``
- optional file copy: uncolored, millisecond timestamps, module:line
- ``json_logs=True``: one JSON object per line on both handlers

Structured context travels in ``record.ctx`` (a dict). Build code attaches it
with ``extra=Log.ctx(pass_="specialize", fragment=path)`` or through an
adapter from ``Log.bind()``.
"""
from __future__ import annotations

import datetime as _dt
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

from termcolor import colored as _colored

TRACE = 5
if logging.getLevelName(TRACE) != "TRACE":
    logging.addLevelName(TRACE, "TRACE")


def _logger_trace(self: logging.Logger, msg: str, *args, **kwargs) -> None:
    if self.isEnabledFor(TRACE):
        self._log(TRACE, msg, args, **kwargs)


if not hasattr(logging.Logger, "trace"):
    logging.Logger.trace = _logger_trace  # type: ignore[attr-defined]

DEFAULT_LOG_FILE = os.path.join("logs", "winunattend.log")

# levelname -> (emoji, termcolor color)
_LEVELS = {
    "TRACE": ("🧬", "cyan"),
    "DEBUG": ("🔍", "blue"),
    "INFO": ("✅", "green"),
    "WARNING": ("⚠️", "yellow"),
    "ERROR": ("💥", "red"),
    "CRITICAL": ("🧨", "red"),
}

# Context keys rendered first, in this order; the rest follow sorted.
_CTX_ORDER = ("pass", "fragment", "template", "output", "step")


def c(
    text: str,
    color: Optional[str] = None,
    attrs: Optional[List[str]] = None,
    *,
    enable: bool = True,
) -> str:
    """Colorize text with termcolor when enabled."""
    if not enable or not color:
        return text
    return _colored(text, color=color, attrs=attrs or [])


def _stderr_is_tty() -> bool:
    isatty = getattr(sys.stderr, "isatty", None)
    return bool(isatty and isatty())


def _ctx_items(ctx: Optional[Mapping[str, Any]]) -> List[Tuple[str, str]]:
    if not ctx:
        return []
    keys = [k for k in _CTX_ORDER if k in ctx]
    keys += sorted(k for k in ctx if k not in _CTX_ORDER)
    return [(k, str(ctx[k]).replace("\n", "\\n")) for k in keys]


class ContextLoggerAdapter(logging.LoggerAdapter):
    """Adds a fixed context to every record; per-call ``extra=Log.ctx(...)`` wins on conflicts."""

    def process(self, msg: Any, kwargs: Dict[str, Any]) -> Tuple[Any, Dict[str, Any]]:
        extra = dict(kwargs.get("extra") or {})
        extra["ctx"] = {**self.extra, **(extra.get("ctx") or {})}
        kwargs["extra"] = extra
        return msg, kwargs


class ConsoleFormatter(logging.Formatter):
    def __init__(self, *, color: bool = True, detailed: bool = False):
        super().__init__()
        self.color = color
        self.detailed = detailed

    def format(self, record: logging.LogRecord) -> str:
        emoji, color = _LEVELS.get(record.levelname, ("•", None))
        color_ok = self.color and not self.detailed and _stderr_is_tty()

        when = _dt.datetime.fromtimestamp(record.created)
        ts = when.strftime("%H:%M:%S.%f")[:-3] if self.detailed else when.strftime("%H:%M:%S")
        level = c(f"{record.levelname:<8}", color, enable=color_ok)
        msg = record.getMessage()
        if record.levelno >= logging.WARNING:
            msg = c(msg, color, ["bold"], enable=color_ok)

        where = f" [{record.module}:{record.lineno}]" if self.detailed else ""
        ctx = "".join(f" {k}={v}" for k, v in _ctx_items(getattr(record, "ctx", None)))
        line = f"{ts} {emoji} {level}{where} {msg}{ctx}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class JsonFormatter(logging.Formatter):
    """NDJSON: one object per record, context under ``ctx``."""

    def __init__(self, *, utc: bool = True):
        super().__init__()
        self.tz = _dt.timezone.utc if utc else None

    def format(self, record: logging.LogRecord) -> str:
        obj: Dict[str, Any] = {
            "ts": _dt.datetime.fromtimestamp(record.created, tz=self.tz).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "msg": record.getMessage(),
            "module": record.module,
            "lineno": record.lineno,
        }
        ctx = _ctx_items(getattr(record, "ctx", None))
        if ctx:
            obj["ctx"] = dict(ctx)
        if record.exc_info:
            obj["traceback"] = self.formatException(record.exc_info)
        return json.dumps(obj, ensure_ascii=False)


class Log:
    @staticmethod
    def _level_from_flags(verbose: int, quiet: int) -> int:
        """-q WARNING, -qq ERROR, -vv DEBUG, -vvv TRACE; quiet wins."""
        if quiet >= 2:
            return logging.ERROR
        if quiet == 1:
            return logging.WARNING
        if verbose >= 3:
            return TRACE
        if verbose >= 2:
            return logging.DEBUG
        return logging.INFO

    @staticmethod
    def ctx(**fields: Any) -> Dict[str, Any]:
        """``extra=`` payload; ``pass_`` is stored as ``pass``."""
        return {"ctx": {k.rstrip("_"): v for k, v in fields.items()}}

    @staticmethod
    def bind(logger: logging.Logger, **fields: Any) -> ContextLoggerAdapter:
        return ContextLoggerAdapter(logger, Log.ctx(**fields)["ctx"])

    @staticmethod
    def step(logger: logging.Logger, msg: str, **fields: Any) -> None:
        logger.info("➡️  %s", msg, extra=Log.ctx(**fields))

    @staticmethod
    def ok(logger: logging.Logger, msg: str, **fields: Any) -> None:
        logger.info("✅ %s", msg, extra=Log.ctx(**fields))

    @staticmethod
    def fail(logger: logging.Logger, msg: str, **fields: Any) -> None:
        logger.error("💥 %s", msg, extra=Log.ctx(**fields))

    @staticmethod
    def trace(logger: logging.Logger, msg: str, *args: Any, **fields: Any) -> None:
        logger.trace(msg, *args, extra=Log.ctx(**fields))  # type: ignore[attr-defined]

    @staticmethod
    def setup(
        verbose: int = 0,
        log_file: Optional[str] = DEFAULT_LOG_FILE,
        *,
        quiet: int = 0,
        color: bool = True,
        json_logs: bool = False,
        append: bool = True,
        logger_name: str = "winunattend",
    ) -> logging.Logger:
        """
        (Re)configure the build logger. Safe to call twice: the CLI calls it
        once before the config is read and again with the log file, whose
        ``append`` flag comes from ``build_settings.preserve_logs``.
        """
        logger = logging.getLogger(logger_name)
        logger.propagate = False
        level = Log._level_from_flags(verbose, quiet)
        logger.setLevel(level)

        for h in list(logger.handlers):
            logger.removeHandler(h)
            h.close()

        handlers: List[logging.Handler] = [logging.StreamHandler(stream=sys.stderr)]
        handlers[0].setFormatter(JsonFormatter() if json_logs else ConsoleFormatter(color=color))

        if log_file:
            fp = Path(log_file).expanduser().resolve()
            fp.parent.mkdir(parents=True, exist_ok=True)
            fh = logging.FileHandler(fp, mode="a" if append else "w", encoding="utf-8")
            fh.setFormatter(JsonFormatter() if json_logs else ConsoleFormatter(color=False, detailed=True))
            handlers.append(fh)

        for h in handlers:
            h.setLevel(level)
            logger.addHandler(h)

        Log.trace(logger, "Logger ready (level=%s, file=%s)", logging.getLevelName(level), log_file or "-")
        return logger
