# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# winunattend/unattend/passes.py
"""
Windows Setup configuration passes and the fragment files that feed them.

Each pass has one optional fragment file, ``<passes_dir>/<pass>.xml``, and
one placeholder token in the template, ``{{<PASS>_PASS}}``.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Tuple

from ..core.logger import Log


class Pass(str, Enum):
    WINDOWSPE = "windowspe"
    OFFLINESERVICING = "offlineservicing"
    GENERALIZE = "generalize"
    SPECIALIZE = "specialize"
    AUDITSYSTEM = "auditsystem"
    AUDITUSER = "audituser"
    OOBESYSTEM = "oobesystem"

    @property
    def placeholder(self) -> str:
        return "{{" + self.name + "_PASS}}"

    @property
    def file_name(self) -> str:
        return f"{self.value}.xml"


# Substitution order is the declaration order above.
PASS_MAPPING: Tuple[Tuple[str, Pass], ...] = tuple((p.placeholder, p) for p in Pass)


@dataclass(frozen=True)
class Fragment:
    pass_: Pass
    path: Path
    content: str = ""
    found: bool = False
    error: Optional[str] = None


class FragmentStore:
    """Reads per-pass fragments from a directory. Missing files read as empty."""

    def __init__(self, passes_dir: Path, logger: logging.Logger):
        self.passes_dir = Path(passes_dir)
        self.logger = logger

    def path_for(self, p: Pass) -> Path:
        return self.passes_dir / p.file_name

    def read(self, p: Pass) -> Fragment:
        path = self.path_for(p)
        ctx = Log.ctx(pass_=p.value, fragment=path)
        if not path.exists():
            self.logger.warning("Pass file not found: %s", path, extra=ctx)
            return Fragment(pass_=p, path=path)
        try:
            # newline="" keeps CRLF fragments byte-for-byte.
            with open(path, "r", encoding="utf-8", newline="") as f:
                content = f.read()
        except (OSError, UnicodeDecodeError) as e:
            self.logger.error("Error reading pass file %s: %s", p.value, e, extra=ctx)
            return Fragment(pass_=p, path=path, error=str(e))
        self.logger.debug("Read %s pass: %d chars", p.value, len(content), extra=ctx)
        return Fragment(pass_=p, path=path, content=content, found=True)
