# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# winunattend/unattend/validator.py
"""
Text-level checks for an assembled autounattend.xml.

Nothing here parses XML. Every check is a substring test or a regex count,
and the results depend on that: the tag-balance count misfires on
self-closing elements and the root element must match byte-for-byte. Keep it
that way unless every consumer of the report agrees to different results.
"""
from __future__ import annotations

import base64
import binascii
import re
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

XML_DECLARATION = '<?xml version="1.0"'
UNATTEND_ROOT_OPEN = '<unattend xmlns="urn:schemas-microsoft-com:unattend">'
UNATTEND_ROOT_CLOSE = "</unattend>"

REQUIRED_COMPONENTS = (
    "Microsoft-Windows-Setup",
    "Microsoft-Windows-Shell-Setup",
)
DEPRECATED_COMPONENTS = (
    "Microsoft-Windows-LUA-Settings",
    "Microsoft-Windows-OutOfBoxExperience",
)
WEAK_PASSWORDS = ("password", "123456", "admin", "user")

# (marker that must be present, suggestion when it is not)
OPTIMIZATION_HINTS = (
    ("Microsoft-Windows-WindowsUpdateServices", "Consider adding Windows Update configuration"),
    ("Microsoft-Windows-International", "Consider adding international/regional settings"),
    ("<DiskConfiguration>", "Consider adding explicit disk configuration"),
    ("DoNotSendAdditionalData", "Consider configuring Windows Error Reporting settings"),
)

_OPEN_TAG_RE = re.compile(r"<[^/!?][^>]*>")
_CLOSE_TAG_RE = re.compile(r"</[^>]*>")
_PLACEHOLDER_RE = re.compile(r"\{\{[^}]+\}\}")
_ARCH_RE = re.compile(r'processorArchitecture="([^"]+)"')
_PASSWORD_RE = re.compile(r"<Password>([^<]+)</Password>", re.IGNORECASE)
_PASSWORD_TAG_RE = re.compile(r"</?Password>")


@dataclass
class ValidationResult:
    is_valid: bool = True
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)

    def finalize(self) -> "ValidationResult":
        self.is_valid = not self.errors
        return self

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["isValid"] = d.pop("is_valid")
        return d


def is_base64(value: str) -> bool:
    """True when ``value`` survives a decode/encode round trip unchanged."""
    try:
        decoded = base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError):
        return False
    return base64.b64encode(decoded).decode("ascii") == value


class XmlValidator:
    def validate_file(self, xml_path: Union[str, Path]) -> ValidationResult:
        result = ValidationResult()
        path = Path(xml_path)
        if not path.exists():
            result.errors.append(f"XML file not found: {path}")
            return result.finalize()
        try:
            with open(path, "r", encoding="utf-8", newline="") as f:
                content = f.read()
        except (OSError, UnicodeDecodeError) as e:
            result.errors.append(f"Validation failed: {e}")
            return result.finalize()
        return self.validate_text(content, result)

    def validate_text(self, content: str, result: Optional[ValidationResult] = None) -> ValidationResult:
        result = result if result is not None else ValidationResult()
        self._check_structure(content, result)
        self._check_components(content, result)
        self._check_passwords(content, result)
        self._suggest_optimizations(content, result)
        return result.finalize()

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    def _check_structure(self, content: str, result: ValidationResult) -> None:
        if XML_DECLARATION not in content:
            result.errors.append("Missing XML declaration")
        if UNATTEND_ROOT_OPEN not in content:
            result.errors.append("Missing or invalid unattend root element")
        if UNATTEND_ROOT_CLOSE not in content:
            result.errors.append("Missing closing unattend tag")

        # Self-closing tags count as opens with no close.
        if len(_OPEN_TAG_RE.findall(content)) != len(_CLOSE_TAG_RE.findall(content)):
            result.warnings.append("Potential tag mismatch detected")

        leftovers = _PLACEHOLDER_RE.findall(content)
        if leftovers:
            result.errors.append(f"Unreplaced placeholders found: {', '.join(leftovers)}")

    def _check_components(self, content: str, result: ValidationResult) -> None:
        for component in REQUIRED_COMPONENTS:
            if component not in content:
                result.warnings.append(f"Recommended component missing: {component}")

        for component in DEPRECATED_COMPONENTS:
            if component in content:
                result.warnings.append(f"Deprecated component found: {component}")

        if len(set(_ARCH_RE.findall(content))) > 1:
            result.warnings.append("Multiple processor architectures detected - ensure consistency")

    def _check_passwords(self, content: str, result: ValidationResult) -> None:
        for m in _PASSWORD_RE.finditer(content):
            # Tag stripping is case-sensitive, so <password>x</password> keeps its tags.
            value = _PASSWORD_TAG_RE.sub("", m.group(0))
            encoded = is_base64(value)
            if not encoded:
                result.warnings.append("Plaintext password detected - consider using Base64 encoding")

            plain = base64.b64decode(value).decode("utf-8", errors="replace") if encoded else value
            if any(weak in plain.lower() for weak in WEAK_PASSWORDS):
                result.warnings.append("Weak password detected")

        if "<AutoLogon>" in content and "<Password>" not in content:
            result.warnings.append("Auto-logon enabled without password")

    def _suggest_optimizations(self, content: str, result: ValidationResult) -> None:
        for marker, suggestion in OPTIMIZATION_HINTS:
            if marker not in content:
                result.suggestions.append(suggestion)

    # ------------------------------------------------------------------
    # Report
    # ------------------------------------------------------------------

    @staticmethod
    def generate_report(result: ValidationResult) -> str:
        lines = ["", "=== XML Validation Report ===", f"Status: {'✅ VALID' if result.is_valid else '❌ INVALID'}", ""]
        for title, items in (
            ("🚨 ERRORS:", result.errors),
            ("⚠️  WARNINGS:", result.warnings),
            ("💡 SUGGESTIONS:", result.suggestions),
        ):
            if items:
                lines.append(title)
                lines.extend(f"  • {item}" for item in items)
                lines.append("")
        lines.append("===========================")
        return "\n".join(lines) + "\n"
