# SPDX-License-Identifier: LGPL-3.0-or-later
# winunattend/core/exceptions.py
"""
Error types raised by the build and media steps.

Every error carries an exit code for ``main()`` and a one-line message that is
shown as-is. Subclasses add typed fields (template, output, tool, ...) that
verbose CLI output and ``to_dict()`` include when they are set.
"""
from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

_BASE_FIELDS = ("code", "msg", "cause")

# Setup's own exit codes stay below this; media failures use it by default.
MEDIA_EXIT_CODE = 40


def _exit_code(x: Any) -> int:
    try:
        code = int(x)
    except (TypeError, ValueError):
        return 1
    if code < 0:
        return 1
    return min(code, 255)


def _single_line(s: str) -> str:
    # Only line breaks are touched; paths with repeated spaces must survive.
    return (s or "").replace("\r\n", " ").replace("\r", " ").replace("\n", " ").strip()


@dataclass(eq=False)
class WinUnattendError(Exception):
    code: int = 1
    msg: str = "error"
    cause: Optional[BaseException] = None

    def __post_init__(self) -> None:
        self.code = _exit_code(self.code)
        self.msg = _single_line(self.msg) or type(self).__name__
        super().__init__(self.msg)

    def details(self) -> Dict[str, Any]:
        """Typed fields added by subclasses, skipping unset ones."""
        out: Dict[str, Any] = {}
        for f in fields(self):
            if f.name in _BASE_FIELDS:
                continue
            value = getattr(self, f.name)
            if value is not None:
                out[f.name] = value
        return out

    def user_message(self, *, include_details: bool = False, include_cause: bool = False) -> str:
        parts = [self.msg]
        d = self.details()
        if include_details and d:
            parts.append("[" + ", ".join(f"{k}={v}" for k, v in d.items()) + "]")
        if include_cause and self.cause is not None:
            parts.append(f"(cause: {type(self.cause).__name__}: {_single_line(str(self.cause))})")
        return " ".join(parts)

    def __str__(self) -> str:
        return self.msg

    def to_dict(self, *, include_cause: bool = False) -> Dict[str, Any]:
        d: Dict[str, Any] = {"type": type(self).__name__, "code": self.code, "message": self.msg}
        for k, v in self.details().items():
            d[k] = str(v) if isinstance(v, Path) else v
        if include_cause and self.cause is not None:
            d["cause"] = {"type": type(self.cause).__name__, "message": _single_line(str(self.cause))}
        return d


class Fatal(WinUnattendError):
    """Stops the run; ``main()`` exits with ``code``."""


@dataclass(eq=False)
class AssemblyError(Fatal):
    """Template missing or unreadable, or the answer file could not be written."""

    template: Optional[Path] = None
    output: Optional[Path] = None


@dataclass(eq=False)
class MediaError(Fatal):
    """An imaging step failed (mount, copy, inject, oscdimg)."""

    code: int = MEDIA_EXIT_CODE
    tool: Optional[str] = None
    target: Optional[Path] = None
    exit_code: Optional[int] = None


def format_exception_for_cli(e: BaseException, *, verbose: int = 0) -> str:
    """
    verbose=0: message
    verbose=1: message + typed fields
    verbose>=2: message + typed fields + cause
    """
    if isinstance(e, WinUnattendError):
        return e.user_message(include_details=verbose >= 1, include_cause=verbose >= 2)
    text = _single_line(str(e))
    if verbose >= 2:
        return f"{type(e).__name__}: {text}"
    return text or type(e).__name__
