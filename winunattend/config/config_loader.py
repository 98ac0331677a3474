# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# winunattend/config/config_loader.py
"""
YAML configuration for answer-file and media builds.

File values are deep-merged over the built-in defaults, so a config file only
needs the keys it changes:

    iso_settings:
      label: Win11_Lab
    paths:
      passes: ./my-passes
"""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import yaml

DEFAULT_CONFIG_PATH = Path("config") / "winunattend.yaml"

TEMPLATE_FILE_NAME = "autounattend-template.xml"
OUTPUT_FILE_NAME = "autounattend.xml"


def deep_merge_dict(base: Dict[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    """Deep merge two dictionaries recursively.

    Dict values are merged recursively; lists and scalars are replaced (override wins).

    Example:
        >>> deep_merge_dict({"a": {"b": 1, "c": 2}, "d": 3}, {"a": {"c": 99}, "e": 4})
        {'a': {'b': 1, 'c': 99}, 'd': 3, 'e': 4}
    """
    out: Dict[str, Any] = dict(base)
    for k, v in override.items():
        if k in out and isinstance(out[k], dict) and isinstance(v, Mapping):
            out[k] = deep_merge_dict(out[k], v)
        else:
            out[k] = v
    return out


@dataclass
class UserAccount:
    username: str = "cloudit"
    password: str = "CloudIT"
    full_name: str = "CloudIT User"
    description: str = "Default CloudIT automation user"
    auto_logon: bool = True


@dataclass
class IsoSettings:
    label: str = "CloudIT_Windows"
    publisher: str = "CloudIT"
    output_path: str = "./iso/result"


@dataclass
class BuildSettings:
    timeout: float = 600.0  # seconds, per external tool invocation
    cleanup_after_build: bool = False
    preserve_logs: bool = True


@dataclass
class PathSettings:
    templates: str = "./unattended/templates"
    passes: str = "./unattended/passes"
    scripts: str = "./unattended/scripts"
    build: str = "./unattended/build"


@dataclass
class ValidationSettings:
    enable_xml_validation: bool = True
    strict_mode: bool = False


def _section(cls: Any, data: Any) -> Any:
    # Unknown keys are dropped so an old config file never breaks a newer build.
    if not isinstance(data, Mapping):
        return cls()
    known = {f.name for f in fields(cls)}
    return cls(**{k: v for k, v in data.items() if k in known})


@dataclass
class UnattendConfig:
    user_account: UserAccount = field(default_factory=UserAccount)
    iso_settings: IsoSettings = field(default_factory=IsoSettings)
    build_settings: BuildSettings = field(default_factory=BuildSettings)
    paths: PathSettings = field(default_factory=PathSettings)
    validation: ValidationSettings = field(default_factory=ValidationSettings)
    base_dir: Path = field(default_factory=Path.cwd)

    # ------------------------------------------------------------------
    # Construction / serialization
    # ------------------------------------------------------------------

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], *, base_dir: Optional[Path] = None) -> "UnattendConfig":
        return cls(
            user_account=_section(UserAccount, data.get("user_account")),
            iso_settings=_section(IsoSettings, data.get("iso_settings")),
            build_settings=_section(BuildSettings, data.get("build_settings")),
            paths=_section(PathSettings, data.get("paths")),
            validation=_section(ValidationSettings, data.get("validation")),
            base_dir=Path(base_dir) if base_dir is not None else Path.cwd(),
        )

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d.pop("base_dir", None)
        return d

    # ------------------------------------------------------------------
    # Resolved locations
    # ------------------------------------------------------------------

    def resolve(self, p: Union[str, Path]) -> Path:
        pp = Path(p).expanduser()
        return pp if pp.is_absolute() else (self.base_dir / pp)

    @property
    def template_path(self) -> Path:
        return self.resolve(self.paths.templates) / TEMPLATE_FILE_NAME

    @property
    def passes_dir(self) -> Path:
        return self.resolve(self.paths.passes)

    @property
    def scripts_dir(self) -> Path:
        return self.resolve(self.paths.scripts)

    @property
    def build_dir(self) -> Path:
        return self.resolve(self.paths.build)

    @property
    def output_path(self) -> Path:
        return self.build_dir / OUTPUT_FILE_NAME

    @property
    def iso_output_dir(self) -> Path:
        return self.resolve(self.iso_settings.output_path)


class ConfigManager:
    """
    Loads, updates, saves and sanity-checks the YAML configuration.

    The manager is created once by the entry point and handed to whatever
    needs the configuration.
    """

    def __init__(
        self,
        logger: logging.Logger,
        config_path: Optional[Union[str, Path]] = None,
        *,
        base_dir: Optional[Path] = None,
    ):
        self.logger = logger
        self.config_path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
        self.base_dir = Path(base_dir) if base_dir is not None else Path.cwd()
        self.config = self.load()

    def _defaults(self) -> Dict[str, Any]:
        return UnattendConfig().to_dict()

    def load(self) -> UnattendConfig:
        data = self._defaults()
        if not self.config_path.exists():
            self.logger.info("Config file not found, using defaults: %s", self.config_path)
            return UnattendConfig.from_dict(data, base_dir=self.base_dir)

        try:
            raw = yaml.safe_load(self.config_path.read_text(encoding="utf-8")) or {}
            if not isinstance(raw, Mapping):
                raise ValueError("top-level YAML value must be a mapping")
            data = deep_merge_dict(data, raw)
            self.logger.debug("Loaded config: %s", self.config_path)
        except (OSError, ValueError, yaml.YAMLError) as e:
            self.logger.error("Failed to load configuration %s, using defaults: %s", self.config_path, e)
            data = self._defaults()

        return UnattendConfig.from_dict(data, base_dir=self.base_dir)

    def get(self) -> UnattendConfig:
        return self.config

    def update(self, updates: Mapping[str, Any]) -> UnattendConfig:
        merged = deep_merge_dict(self.config.to_dict(), updates)
        self.config = UnattendConfig.from_dict(merged, base_dir=self.base_dir)
        self.save()
        return self.config

    def save(self) -> Path:
        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        self.config_path.write_text(
            yaml.safe_dump(self.config.to_dict(), sort_keys=False, default_flow_style=False),
            encoding="utf-8",
        )
        self.logger.info("Configuration saved: %s", self.config_path)
        return self.config_path

    def validate(self) -> bool:
        cfg = self.config
        if not cfg.user_account.username or not cfg.user_account.password:
            self.logger.error("Invalid user account configuration (username and password are required)")
            return False
        if not cfg.iso_settings.label:
            self.logger.error("Invalid ISO settings configuration (label is required)")
            return False
        self.logger.debug("Configuration validation passed")
        return True
