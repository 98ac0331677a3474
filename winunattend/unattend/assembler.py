# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# winunattend/unattend/assembler.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List

from ..core.exceptions import AssemblyError
from ..core.logger import Log
from ..core.utils import U
from .passes import PASS_MAPPING, FragmentStore


@dataclass
class AssembledDocument:
    output_path: Path
    text: str
    file_size: int
    passes_processed: int
    warnings: List[str] = field(default_factory=list)


class Assembler:
    """
    Substitutes pass fragments into the answer-file template.

    Only the first occurrence of each placeholder is replaced; tokens the
    mapping does not know are left in place for the validator to report.
    ``passes_processed`` and ``warnings`` reflect the most recent call and stay
    readable when it raises.
    """

    def __init__(self, template_path: Path, store: FragmentStore, output_path: Path, logger: logging.Logger):
        self.template_path = Path(template_path)
        self.store = store
        self.output_path = Path(output_path)
        self.logger = logger
        self.passes_processed = 0
        self.warnings: List[str] = []

    def read_template(self) -> str:
        if not self.template_path.exists():
            raise AssemblyError(
                code=2,
                msg=f"Template file not found: {self.template_path}",
                template=self.template_path,
            )
        try:
            with open(self.template_path, "r", encoding="utf-8", newline="") as f:
                return f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise AssemblyError(
                code=2,
                msg=f"Error reading template file {self.template_path}: {e}",
                cause=e,
                template=self.template_path,
            ) from e

    def render(self) -> str:
        self.passes_processed = 0
        self.warnings = []

        text = self.read_template()
        for placeholder, pass_ in PASS_MAPPING:
            Log.trace(self.logger, "Processing %s pass", pass_.value, pass_=pass_.value)
            frag = self.store.read(pass_)
            if frag.found:
                self.passes_processed += 1
            elif frag.error:
                self.warnings.append(f"Pass file unreadable: {frag.path} ({frag.error})")
            else:
                self.warnings.append(f"Pass file not found: {frag.path}")
            text = text.replace(placeholder, frag.content, 1)
        return text

    def write(self, text: str) -> int:
        try:
            U.ensure_dir(self.output_path.parent)
            with open(self.output_path, "w", encoding="utf-8", newline="") as f:
                f.write(text)
        except OSError as e:
            raise AssemblyError(
                code=3,
                msg=f"Error writing output file {self.output_path}: {e}",
                cause=e,
                output=self.output_path,
            ) from e
        return self.output_path.stat().st_size

    def assemble(self) -> AssembledDocument:
        Log.step(self.logger, "Assembling autounattend.xml", template=self.template_path, output=self.output_path)
        text = self.render()
        size = self.write(text)
        Log.ok(self.logger, f"Generated {self.output_path}", passes=self.passes_processed, bytes=size)
        return AssembledDocument(
            output_path=self.output_path,
            text=text,
            file_size=size,
            passes_processed=self.passes_processed,
            warnings=list(self.warnings),
        )
