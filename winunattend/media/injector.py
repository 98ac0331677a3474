# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# winunattend/media/injector.py
from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from ..core.exceptions import MediaError
from ..core.utils import U

# Setup copies $OEM$\$$ to %WINDIR%, so scripts land in C:\Windows\Setup\Scripts.
OEM_SCRIPTS_DIR = Path("sources") / "$OEM$" / "$$" / "Setup" / "Scripts"


@dataclass
class InjectionResult:
    answer_file: Path
    scripts: List[Path] = field(default_factory=list)


def inject_answer_file(
    work_dir: Path,
    answer_file: Path,
    scripts_dir: Optional[Path],
    logger: logging.Logger,
) -> InjectionResult:
    """
    Place autounattend.xml at the root of an extracted image and copy the
    post-install scripts under sources/$OEM$. A missing scripts directory is
    not an error.
    """
    if not answer_file.exists():
        raise MediaError(msg=f"Answer file not found: {answer_file}", target=answer_file)
    if not work_dir.is_dir():
        raise MediaError(msg=f"Extracted image directory not found: {work_dir}", target=work_dir)

    target = work_dir / "autounattend.xml"
    try:
        shutil.copyfile(answer_file, target)
    except OSError as e:
        raise MediaError(msg=f"Failed to copy answer file into {work_dir}", cause=e, target=target) from e
    logger.info("Injected %s", target)

    result = InjectionResult(answer_file=target)
    if scripts_dir is None or not scripts_dir.is_dir():
        logger.warning("Scripts directory not found, skipping script injection: %s", scripts_dir)
        return result

    dest_root = work_dir / OEM_SCRIPTS_DIR
    try:
        U.ensure_dir(dest_root)
        for src in sorted(p for p in scripts_dir.rglob("*") if p.is_file()):
            dest = dest_root / src.relative_to(scripts_dir)
            U.ensure_dir(dest.parent)
            shutil.copy2(src, dest)
            result.scripts.append(dest)
    except OSError as e:
        raise MediaError(msg=f"Failed to copy scripts into {dest_root}", cause=e, target=dest_root) from e

    logger.info("Injected %d script(s) into %s", len(result.scripts), dest_root)
    return result
