# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# winunattend/unattend/builder.py
"""
Answer-file build driver.

    Start -> Assemble -> Validate -> Report -> Done
    Start -> Assemble -> Fail

Assembly failures never escape ``build()``; they come back as a result with
``success=False`` and the stats gathered up to the failure.
"""
from __future__ import annotations

import logging
import traceback
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..config.config_loader import UnattendConfig
from ..core.exceptions import AssemblyError
from ..core.logger import Log
from .assembler import Assembler
from .monitor import BuildMonitor
from .passes import FragmentStore
from .reporter import Reporter
from .validator import ValidationResult, XmlValidator


@dataclass
class BuildStats:
    start_time: datetime
    end_time: Optional[datetime] = None
    duration: float = 0.0  # seconds
    passes_processed: int = 0
    file_size: int = 0

    def finish(self, end_time: Optional[datetime] = None) -> None:
        self.end_time = end_time or datetime.now()
        self.duration = max(0.0, (self.end_time - self.start_time).total_seconds())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "startTime": self.start_time.isoformat(),
            "endTime": self.end_time.isoformat() if self.end_time else None,
            "duration": self.duration,
            "passesProcessed": self.passes_processed,
            "fileSize": self.file_size,
        }


@dataclass
class BuildResult:
    success: bool
    output_path: Optional[Path] = None
    is_valid: Optional[bool] = None
    warnings: List[str] = field(default_factory=list)
    error: Optional[str] = None
    build_stats: Optional[BuildStats] = None
    validation: Optional[ValidationResult] = None
    validation_report: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"success": self.success}
        if self.output_path is not None:
            d["outputPath"] = str(self.output_path)
        if self.is_valid is not None:
            d["isValid"] = self.is_valid
        if self.success or self.warnings:
            d["warnings"] = list(self.warnings)
        if self.error is not None:
            d["error"] = self.error
        if self.build_stats is not None:
            d["buildStats"] = self.build_stats.to_dict()
        if self.validation is not None:
            d["validation"] = self.validation.to_dict()
        if self.validation_report is not None:
            d["validationReport"] = self.validation_report
        return d


class UnattendBuilder:
    """Builds and validates autounattend.xml from a template and pass fragments."""

    def __init__(
        self,
        config: UnattendConfig,
        logger: logging.Logger,
        reporter: Reporter,
        monitor: BuildMonitor,
        validator: Optional[XmlValidator] = None,
    ):
        self.config = config
        self.logger = logger
        self.reporter = reporter
        self.monitor = monitor
        self.validator = validator or XmlValidator()

    def _assembler(self) -> Assembler:
        return Assembler(
            template_path=self.config.template_path,
            store=FragmentStore(self.config.passes_dir, self.logger),
            output_path=self.config.output_path,
            logger=self.logger,
        )

    def _failed(self, stats: BuildStats, assembler: Assembler, e: Exception) -> BuildResult:
        stats.passes_processed = assembler.passes_processed
        stats.finish()
        Log.fail(self.logger, f"Build failed: {e}")
        result = BuildResult(
            success=False,
            error=str(e),
            warnings=list(assembler.warnings),
            build_stats=stats,
        )
        self.reporter.error(f"Build failed: {e}")
        self.reporter.summary(result)
        return result

    def build(self) -> BuildResult:
        stats = BuildStats(start_time=datetime.now())
        assembler = self._assembler()

        self.reporter.step("Starting autounattend.xml build process...")
        measurement = self.monitor.start("assemble", template=str(assembler.template_path))
        try:
            doc = assembler.assemble()
        except AssemblyError as e:
            measurement.fail()
            return self._failed(stats, assembler, e)
        except Exception as e:
            measurement.fail()
            self.logger.debug(traceback.format_exc())
            return self._failed(stats, assembler, e)
        measurement.stop()

        stats.passes_processed = doc.passes_processed
        stats.file_size = doc.file_size
        self.reporter.ok(f"Successfully generated autounattend.xml at: {doc.output_path}")

        warnings = list(doc.warnings)
        validation: Optional[ValidationResult] = None
        report: Optional[str] = None

        if self.config.validation.enable_xml_validation:
            measurement = self.monitor.start("validate", output=str(doc.output_path))
            validation = self.validator.validate_file(doc.output_path)
            measurement.stop()
            report = self.validator.generate_report(validation)
            warnings.extend(validation.warnings)
            for err in validation.errors:
                self.logger.error("Validation error: %s", err)
        else:
            self.logger.info("XML validation disabled by configuration")

        stats.finish()

        result = BuildResult(
            success=True,
            output_path=doc.output_path,
            is_valid=validation.is_valid if validation is not None else None,
            warnings=warnings,
            build_stats=stats,
            validation=validation,
            validation_report=report,
        )

        if validation is not None:
            self.reporter.validation(validation)
        self.reporter.summary(result)
        self.logger.info(
            "Build finished: valid=%s warnings=%d passes=%d size=%d duration=%.3fs",
            result.is_valid,
            len(warnings),
            stats.passes_processed,
            stats.file_size,
            stats.duration,
        )
        return result
