# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# winunattend/media/pipeline.py
from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional

from ..config.config_loader import UnattendConfig
from ..core.exceptions import AssemblyError, Fatal, MediaError
from ..core.logger import Log
from ..unattend.builder import BuildResult, UnattendBuilder
from ..unattend.reporter import Reporter
from .injector import inject_answer_file
from .services import CopyService, IsoBuildService, MountService

STEPS = ("xml", "extract", "inject", "iso")

DEFAULT_WORK_DIR = Path("iso") / "work"


def work_marker(wd: Path) -> Path:
    """Sibling file recording that ``wd`` was created by an extract step (kept out of the image tree)."""
    return wd.parent / f".{wd.name}.winunattend"


@dataclass
class PipelineResult:
    steps_run: List[str] = field(default_factory=list)
    build_result: Optional[BuildResult] = None
    work_dir: Optional[Path] = None
    iso_path: Optional[Path] = None
    owns_work_dir: bool = False


class MediaPipeline:
    """
    Produces a customized installation ISO:

      xml     -> build + validate autounattend.xml
      extract -> mount the source ISO and copy its tree into work_dir
      inject  -> place the answer file and post-install scripts in work_dir
      iso     -> rebuild a bootable ISO from work_dir

    Any step can be skipped by name; later steps then rely on whatever an
    earlier run left on disk. extract only replaces a work_dir that an
    earlier extract created (see work_marker); a non-empty directory from
    anywhere else is refused.
    """

    def __init__(
        self,
        config: UnattendConfig,
        logger: logging.Logger,
        reporter: Reporter,
        builder: UnattendBuilder,
        mounter: MountService,
        copier: CopyService,
        iso_builder: IsoBuildService,
    ):
        self.config = config
        self.logger = logger
        self.reporter = reporter
        self.builder = builder
        self.mounter = mounter
        self.copier = copier
        self.iso_builder = iso_builder

    @property
    def iso_path(self) -> Path:
        return self.config.iso_output_dir / f"{self.config.iso_settings.label}.iso"

    def run(
        self,
        source_iso: Optional[Path],
        *,
        work_dir: Optional[Path] = None,
        skip: Iterable[str] = (),
    ) -> PipelineResult:
        skipped = set(skip)
        unknown = skipped - set(STEPS)
        if unknown:
            raise Fatal(code=2, msg=f"Unknown step(s) to skip: {', '.join(sorted(unknown))}")

        wd = Path(work_dir) if work_dir is not None else self.config.resolve(DEFAULT_WORK_DIR)
        result = PipelineResult(work_dir=wd)
        log = Log.bind(self.logger, source=source_iso, work_dir=wd)

        try:
            for step in STEPS:
                if step in skipped:
                    log.info("Skipping step %s", step, extra=Log.ctx(step=step))
                    continue
                self.reporter.step(f"Step: {step}")
                getattr(self, f"_step_{step}")(result, source_iso, wd)
                result.steps_run.append(step)
        finally:
            if self.config.build_settings.cleanup_after_build and result.owns_work_dir:
                log.info("🧹 Removing work tree %s", wd)
                shutil.rmtree(wd, ignore_errors=True)
                work_marker(wd).unlink(missing_ok=True)

        log.info("Media pipeline finished: %s", ", ".join(result.steps_run) or "nothing to do")
        return result

    def _step_xml(self, result: PipelineResult, source_iso: Optional[Path], wd: Path) -> None:
        br = self.builder.build()
        result.build_result = br
        if not br.success:
            raise AssemblyError(code=2, msg=f"Answer file build failed: {br.error}", output=self.config.output_path)

    def _step_extract(self, result: PipelineResult, source_iso: Optional[Path], wd: Path) -> None:
        if source_iso is None or not Path(source_iso).is_file():
            raise MediaError(code=2, msg=f"Source image not found: {source_iso}", target=source_iso)

        marker = work_marker(wd)
        ours = marker.exists()
        if wd.exists() and not ours and any(wd.iterdir()):
            raise MediaError(
                code=2,
                msg=f"Work directory is not empty and was not created by an earlier extract: {wd}",
                target=wd,
            )

        # Nothing on disk changes until the image is mounted.
        with self.mounter.mounted(Path(source_iso)) as root:
            if ours and wd.exists():
                self.logger.info("Replacing previous work tree %s", wd)
                shutil.rmtree(wd)
            if not wd.exists():
                wd.mkdir(parents=True)
                marker.write_text(f"{source_iso}\n", encoding="utf-8")
                ours = True
            result.owns_work_dir = ours
            self.copier.copy_tree(root, wd)
        self.reporter.ok(f"Extracted {source_iso} -> {wd}")

    def _step_inject(self, result: PipelineResult, source_iso: Optional[Path], wd: Path) -> None:
        injected = inject_answer_file(wd, self.config.output_path, self.config.scripts_dir, self.logger)
        self.reporter.ok(f"Injected answer file and {len(injected.scripts)} script(s)")

    def _step_iso(self, result: PipelineResult, source_iso: Optional[Path], wd: Path) -> None:
        self.iso_builder.build(wd, self.iso_path, self.config.iso_settings.label)
        result.iso_path = self.iso_path
        self.reporter.ok(f"Built {self.iso_path}")
