# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# winunattend/core/utils.py
from __future__ import annotations

import json
import logging
import shutil
import subprocess
from enum import Enum
from pathlib import Path, PureWindowsPath
from typing import Any, List, Optional

from .exceptions import MediaError

# Exit status reported for a tool killed by its timeout.
TIMEOUT_EXIT_CODE = 124


def _json_default(o: Any) -> Any:
    if isinstance(o, Path):
        return str(o)
    if isinstance(o, Enum):
        return o.value
    raise TypeError(f"Object of type {type(o).__name__} is not JSON serializable")


class U:
    @staticmethod
    def ensure_dir(p: Path) -> None:
        p.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def which(prog: str) -> Optional[str]:
        return shutil.which(prog)

    @staticmethod
    def json_dump(obj: Any) -> str:
        return json.dumps(obj, indent=2, sort_keys=True, default=_json_default, ensure_ascii=False)

    @staticmethod
    def human_bytes(n: Optional[int]) -> str:
        if n is None:
            return "unknown"
        x = float(n)
        for unit in ("B", "KiB", "MiB", "GiB", "TiB"):
            if x < 1024 or unit == "TiB":
                return f"{int(x)} {unit}" if unit == "B" else f"{x:.2f} {unit}"
            x /= 1024
        return f"{n} B"

    @staticmethod
    def run_tool(
        logger: logging.Logger,
        cmd: List[str],
        *,
        check: bool = False,
        capture: bool = False,
        timeout: Optional[float] = None,
        target: Optional[Path] = None,
    ) -> subprocess.CompletedProcess:
        """
        Run an imaging tool (powershell, robocopy, oscdimg).

        Tools with their own exit-code conventions run with check=False and
        the caller inspects returncode. Launch failures, timeouts and, with
        check=True, non-zero exits become MediaError naming the tool.
        """
        tool = PureWindowsPath(cmd[0]).name
        logger.debug("Running %s: %s", tool, subprocess.list2cmdline(cmd))

        try:
            return subprocess.run(cmd, check=check, capture_output=capture, text=True, timeout=timeout)

        except subprocess.CalledProcessError as e:
            stderr = (e.stderr or "").strip()
            logger.error("%s exited with code %d%s", tool, e.returncode, f": {stderr}" if stderr else "")
            raise MediaError(
                msg=f"{tool} exited with code {e.returncode}",
                cause=e,
                tool=tool,
                target=target,
                exit_code=e.returncode,
            ) from e

        except subprocess.TimeoutExpired as e:
            logger.error("%s timed out after %ss", tool, timeout)
            raise MediaError(
                msg=f"{tool} timed out after {timeout}s",
                cause=e,
                tool=tool,
                target=target,
                exit_code=TIMEOUT_EXIT_CODE,
            ) from e

        except OSError as e:
            logger.error("Cannot run %s: %s", tool, e)
            raise MediaError(msg=f"Cannot run {tool}: {e}", cause=e, tool=tool, target=target) from e
