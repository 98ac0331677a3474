# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# winunattend/cli.py
from __future__ import annotations

import argparse
import logging
import sys
import traceback
from pathlib import Path
from typing import Optional, Sequence

from .config.config_loader import DEFAULT_CONFIG_PATH, ConfigManager, UnattendConfig
from .core.exceptions import Fatal, format_exception_for_cli
from .core.logger import DEFAULT_LOG_FILE, Log, c
from .core.utils import U
from .media.pipeline import STEPS, MediaPipeline
from .media.services import BulkCopier, ImageBuilder, ImageMounter
from .unattend.builder import BuildResult, UnattendBuilder
from .unattend.monitor import BuildMonitor
from .unattend.reporter import make_reporter
from .unattend.validator import XmlValidator


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="winunattend",
        description=c("winunattend: build, validate and inject Windows autounattend.xml", "green", ["bold"]),
    )

    g = p.add_argument_group("Config / logging")
    g.add_argument("--config", default=str(DEFAULT_CONFIG_PATH), help="YAML config file (default: %(default)s)")
    g.add_argument("--base-dir", dest="base_dir", default=None, help="Directory relative config paths resolve against")
    g.add_argument("-v", "--verbose", action="count", default=0, help="-vv debug, -vvv trace")
    g.add_argument("-q", "--quiet", action="count", default=0, help="-q warnings only, -qq errors only")
    g.add_argument("--log-file", dest="log_file", default=DEFAULT_LOG_FILE, help="Log file (default: %(default)s)")
    g.add_argument("--no-log-file", dest="log_file", action="store_const", const=None, help="Disable the log file")
    g.add_argument("--json-logs", action="store_true", help="Emit NDJSON log lines")
    g.add_argument("--write-default-config", action="store_true", help="Write the effective config to --config and exit")

    o = p.add_argument_group("Output")
    o.add_argument("--plain", action="store_true", help="Plain text output instead of Rich panels")
    o.add_argument("--json", action="store_true", help="Print the structured build result as JSON")
    o.add_argument("--benchmark-history", dest="benchmark_history", default=None,
                   help="Append step timings to this JSON history file")
    o.add_argument("--performance-report", action="store_true", help="Print step timings after the build")

    a = p.add_argument_group("Actions")
    a.add_argument("--validate-only", dest="validate_only", metavar="XML", default=None,
                   help="Validate an existing answer file and exit")
    a.add_argument("--source-iso", dest="source_iso", default=None,
                   help="Run the full media pipeline against this Windows ISO")
    a.add_argument("--work-dir", dest="work_dir", default=None, help="Extraction directory for --source-iso")
    a.add_argument("--skip", action="append", default=[], choices=STEPS,
                   help="Skip a media pipeline step (repeatable)")
    return p


def _exit_code(result: BuildResult, cfg: UnattendConfig) -> int:
    if not result.success or result.is_valid is False:
        return 1
    if cfg.validation.strict_mode and result.warnings:
        return 1
    return 0


def _run(args: argparse.Namespace, logger: logging.Logger, manager: ConfigManager) -> int:
    cfg = manager.get()
    # Keep stdout machine-readable when --json is set.
    reporter = make_reporter("basic" if args.plain else "rich", sys.stderr if args.json else None)

    if args.validate_only:
        validation = XmlValidator().validate_file(args.validate_only)
        if args.json:
            print(U.json_dump(validation.to_dict()))
        else:
            reporter.validation(validation)
        return 0 if validation.is_valid else 1

    if not manager.validate():
        raise Fatal(code=2, msg=f"Invalid configuration: {manager.config_path}")

    monitor = BuildMonitor(logger)
    builder = UnattendBuilder(cfg, logger, reporter, monitor)

    if args.source_iso or args.skip:
        timeout = cfg.build_settings.timeout
        pipeline = MediaPipeline(
            cfg,
            logger,
            reporter,
            builder,
            mounter=ImageMounter(logger, timeout=timeout),
            copier=BulkCopier(logger, timeout=timeout),
            iso_builder=ImageBuilder(logger, timeout=timeout),
        )
        out = pipeline.run(
            Path(args.source_iso) if args.source_iso else None,
            work_dir=Path(args.work_dir) if args.work_dir else None,
            skip=args.skip,
        )
        result = out.build_result
        rc = _exit_code(result, cfg) if result is not None else 0
        if out.iso_path is not None:
            reporter.ok(f"ISO ready: {out.iso_path}")
    else:
        result = builder.build()
        rc = _exit_code(result, cfg)

    if args.json and result is not None:
        print(U.json_dump(result.to_dict()))
    if args.performance_report:
        print(monitor.generate_report())
    if args.benchmark_history:
        monitor.save_history(Path(args.benchmark_history))
    return rc


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(list(argv) if argv is not None else sys.argv[1:])

    # Console-only until the config says whether the log file is appended or truncated.
    logger = Log.setup(args.verbose, None, quiet=args.quiet, json_logs=args.json_logs)
    base_dir = Path(args.base_dir).expanduser().resolve() if args.base_dir else None
    manager = ConfigManager(logger, args.config, base_dir=base_dir)
    if args.log_file:
        logger = Log.setup(
            args.verbose,
            args.log_file,
            quiet=args.quiet,
            json_logs=args.json_logs,
            append=manager.get().build_settings.preserve_logs,
        )

    if args.write_default_config:
        manager.save()
        return 0

    try:
        return _run(args, logger, manager)
    except Fatal as e:
        logger.error(format_exception_for_cli(e, verbose=args.verbose))
        return e.code
    except KeyboardInterrupt:
        logger.warning("Interrupted by user (Ctrl+C).")
        return 130
    except Exception as e:
        # Unexpected exceptions should not fail silently.
        logger.error(f"💥 UNHANDLED {type(e).__name__}: {e}")
        logger.debug(traceback.format_exc())
        return 1
