# SPDX-License-Identifier: LGPL-3.0-or-later
# winunattend/config/__init__.py
from .config_loader import ConfigManager, UnattendConfig, deep_merge_dict

__all__ = ["ConfigManager", "UnattendConfig", "deep_merge_dict"]
