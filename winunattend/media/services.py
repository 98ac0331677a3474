# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# winunattend/media/services.py
"""
Thin wrappers over the Windows imaging tools.

- ImageMounter: PowerShell Mount-DiskImage / Dismount-DiskImage
- BulkCopier:   robocopy (exit codes below 8 mean success)
- ImageBuilder: oscdimg with BIOS + UEFI boot sectors

The pipeline depends only on the Protocols below, so tests and non-Windows
hosts can substitute their own implementations.
"""
from __future__ import annotations

import logging
import subprocess
from contextlib import contextmanager
from pathlib import Path
from typing import ContextManager, Iterator, List, Optional, Protocol

from ..core.exceptions import MediaError
from ..core.utils import U

ROBOCOPY_FAILURE_THRESHOLD = 8

BIOS_BOOT_SECTOR = Path("boot") / "etfsboot.com"
UEFI_BOOT_SECTOR = Path("efi") / "microsoft" / "boot" / "efisys.bin"


class MountService(Protocol):
    def mounted(self, image: Path) -> ContextManager[Path]: ...


class CopyService(Protocol):
    def copy_tree(self, src: Path, dst: Path) -> int: ...


class IsoBuildService(Protocol):
    def build(self, src_dir: Path, output_iso: Path, label: str) -> int: ...


def _ps_quote(s: str) -> str:
    return "'" + s.replace("'", "''") + "'"


class ImageMounter:
    def __init__(self, logger: logging.Logger, *, timeout: Optional[float] = None, powershell: str = "powershell"):
        self.logger = logger
        self.timeout = timeout
        self.powershell = powershell

    def _ps(self, script: str, image: Path, *, capture: bool = False) -> subprocess.CompletedProcess:
        return U.run_tool(
            self.logger,
            [self.powershell, "-NoProfile", "-NonInteractive", "-Command", script],
            check=True,
            capture=capture,
            timeout=self.timeout,
            target=image,
        )

    def mount(self, image: Path) -> Path:
        script = (
            f"$img = Mount-DiskImage -ImagePath {_ps_quote(str(image))} -PassThru; "
            "($img | Get-Volume).DriveLetter"
        )
        try:
            cp = self._ps(script, image, capture=True)
        except MediaError as e:
            raise MediaError(msg=f"Failed to mount image: {image}", cause=e, tool=e.tool, target=image) from e

        lines = (cp.stdout or "").strip().splitlines()
        letter = lines[-1].strip() if lines else ""
        if len(letter) != 1 or not letter.isalpha():
            self.dismount(image)
            raise MediaError(msg=f"Mounted image has no drive letter: {image}", tool=self.powershell, target=image)
        root = Path(f"{letter.upper()}:\\")
        self.logger.info("Mounted %s at %s", image, root)
        return root

    def dismount(self, image: Path) -> None:
        try:
            self._ps(f"Dismount-DiskImage -ImagePath {_ps_quote(str(image))} | Out-Null", image)
        except MediaError as e:
            raise MediaError(msg=f"Failed to dismount image: {image}", cause=e, tool=e.tool, target=image) from e
        self.logger.info("Dismounted %s", image)

    @contextmanager
    def mounted(self, image: Path) -> Iterator[Path]:
        root = self.mount(image)
        try:
            yield root
        except BaseException:
            # The copy failure is the one to report; a stuck mount is only logged.
            try:
                self.dismount(image)
            except MediaError as e:
                self.logger.error("%s (while handling an earlier failure)", e)
            raise
        self.dismount(image)


class BulkCopier:
    def __init__(self, logger: logging.Logger, *, timeout: Optional[float] = None, robocopy: str = "robocopy"):
        self.logger = logger
        self.timeout = timeout
        self.robocopy = robocopy

    def copy_tree(self, src: Path, dst: Path) -> int:
        cmd = [self.robocopy, str(src), str(dst), "/E", "/NFL", "/NDL", "/NJH", "/NP"]
        cp = U.run_tool(self.logger, cmd, capture=True, timeout=self.timeout, target=dst)

        # 0-7 are combinations of "copied", "extra files" and "mismatched" bits.
        if cp.returncode >= ROBOCOPY_FAILURE_THRESHOLD:
            raise MediaError(
                msg=f"robocopy failed with exit code {cp.returncode}: {src} -> {dst}",
                tool="robocopy",
                target=dst,
                exit_code=cp.returncode,
            )
        self.logger.info("Copied %s -> %s (robocopy rc=%d)", src, dst, cp.returncode)
        return cp.returncode


class ImageBuilder:
    def __init__(self, logger: logging.Logger, *, timeout: Optional[float] = None, oscdimg: Optional[str] = None):
        self.logger = logger
        self.timeout = timeout
        self.oscdimg = oscdimg or U.which("oscdimg") or "oscdimg"

    def command(self, src_dir: Path, output_iso: Path, label: str) -> List[str]:
        etfsboot = src_dir / BIOS_BOOT_SECTOR
        efisys = src_dir / UEFI_BOOT_SECTOR
        return [
            self.oscdimg,
            "-m",
            "-o",
            "-u2",
            "-udfver102",
            f"-l{label}",
            f"-bootdata:2#p0,e,b{etfsboot}#pEF,e,b{efisys}",
            str(src_dir),
            str(output_iso),
        ]

    def build(self, src_dir: Path, output_iso: Path, label: str) -> int:
        for sector in (BIOS_BOOT_SECTOR, UEFI_BOOT_SECTOR):
            if not (src_dir / sector).exists():
                raise MediaError(msg=f"Boot sector file missing: {src_dir / sector}", tool="oscdimg", target=src_dir)

        U.ensure_dir(output_iso.parent)
        cp = U.run_tool(self.logger, self.command(src_dir, output_iso, label), timeout=self.timeout, target=output_iso)
        if cp.returncode != 0:
            raise MediaError(
                msg=f"oscdimg failed with exit code {cp.returncode}",
                tool="oscdimg",
                target=output_iso,
                exit_code=cp.returncode,
            )
        self.logger.info("Built %s (%s)", output_iso, U.human_bytes(output_iso.stat().st_size if output_iso.exists() else None))
        return cp.returncode
