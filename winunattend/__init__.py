# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# winunattend/__init__.py
"""
winunattend - Windows answer-file assembly and installation media customization.

Usage as a library:

    from winunattend import ConfigManager, UnattendBuilder, BuildMonitor, make_reporter
    from winunattend.core.logger import Log

    logger = Log.setup(verbose=1, log_file=None)
    config = ConfigManager(logger, "config/winunattend.yaml").get()
    builder = UnattendBuilder(config, logger, make_reporter("basic"), BuildMonitor(logger))
    result = builder.build()
    print(result.to_dict())
"""

__version__ = "0.1.0"

from .config.config_loader import ConfigManager, UnattendConfig
from .unattend.builder import BuildResult, BuildStats, UnattendBuilder
from .unattend.monitor import BuildMonitor
from .unattend.reporter import BasicReporter, Reporter, RichReporter, make_reporter
from .unattend.validator import ValidationResult, XmlValidator

__all__ = [
    "__version__",
    "ConfigManager",
    "UnattendConfig",
    "UnattendBuilder",
    "BuildResult",
    "BuildStats",
    "BuildMonitor",
    "Reporter",
    "RichReporter",
    "BasicReporter",
    "make_reporter",
    "ValidationResult",
    "XmlValidator",
]
