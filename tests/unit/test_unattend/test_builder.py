# SPDX-License-Identifier: LGPL-3.0-or-later
"""End-to-end tests for the answer-file build driver."""
from __future__ import annotations

import io
import tracemalloc
from unittest.mock import patch

import pytest

from winunattend.config.config_loader import UnattendConfig
from winunattend.unattend.assembler import Assembler
from winunattend.unattend.builder import BuildResult, UnattendBuilder
from winunattend.unattend.monitor import BuildMonitor
from winunattend.unattend.passes import Pass
from winunattend.unattend.reporter import BasicReporter

DECL = '<?xml version="1.0" encoding="utf-8"?>'
ROOT_OPEN = '<unattend xmlns="urn:schemas-microsoft-com:unattend">'

FULL_TEMPLATE = DECL + "\n" + ROOT_OPEN + "\n" + "\n".join(p.placeholder for p in Pass) + "\n</unattend>\n"

FRAGMENTS = {
    "windowspe": (
        '<settings pass="windowsPE">'
        '<component name="Microsoft-Windows-Setup" processorArchitecture="amd64"></component>'
        "</settings>"
    ),
    "offlineservicing": '<settings pass="offlineServicing"></settings>',
    "generalize": '<settings pass="generalize"></settings>',
    "specialize": '<settings pass="specialize"></settings>',
    "auditsystem": '<settings pass="auditSystem"></settings>',
    "audituser": '<settings pass="auditUser"></settings>',
    "oobesystem": (
        '<settings pass="oobeSystem">'
        '<component name="Microsoft-Windows-Shell-Setup" processorArchitecture="amd64">'
        "<Password><Value>Y2xvdWRpdA==</Value></Password>"
        "</component>"
        "</settings>"
    ),
}


@pytest.fixture
def stream():
    return io.StringIO()


@pytest.fixture
def monitor(fake_logger):
    return BuildMonitor(fake_logger)


@pytest.fixture
def builder(config, fake_logger, stream, monitor):
    return UnattendBuilder(config, fake_logger, BasicReporter(stream), monitor)


@pytest.fixture
def full_tree(write_template, write_pass):
    write_template(FULL_TEMPLATE)
    for name, text in FRAGMENTS.items():
        write_pass(name, text)


@pytest.mark.unit
class TestBuildSuccess:
    def test_all_passes_present(self, builder, config, full_tree):
        result = builder.build()

        assert result.success
        assert result.is_valid is True
        assert result.warnings == []
        assert result.error is None
        assert result.output_path == config.output_path
        assert result.build_stats.passes_processed == 7
        assert result.build_stats.file_size == config.output_path.stat().st_size
        assert result.build_stats.end_time is not None
        assert result.build_stats.duration >= 0.0

        text = config.output_path.read_text(encoding="utf-8")
        assert "{{" not in text
        for fragment in FRAGMENTS.values():
            assert fragment in text

    def test_rebuild_is_byte_identical(self, builder, config, full_tree):
        builder.build()
        first = config.output_path.read_bytes()
        builder.build()
        assert config.output_path.read_bytes() == first

    def test_missing_fragments_become_warnings(self, builder, config, write_template, write_pass):
        write_template(FULL_TEMPLATE)
        write_pass("windowspe", FRAGMENTS["windowspe"])
        write_pass("oobesystem", FRAGMENTS["oobesystem"])

        result = builder.build()

        assert result.success
        assert result.is_valid is True
        assert result.build_stats.passes_processed == 2
        missing = [w for w in result.warnings if w.startswith("Pass file not found")]
        assert len(missing) == 5
        assert any("specialize.xml" in w for w in missing)

    def test_validation_warnings_are_merged(self, builder, write_template):
        write_template(DECL + ROOT_OPEN + "<Password>admin</Password></unattend>")

        result = builder.build()

        assert result.success
        assert result.is_valid is True
        assert "Weak password detected" in result.warnings
        assert "Recommended component missing: Microsoft-Windows-Setup" in result.warnings
        assert result.warnings[:7] == [w for w in result.warnings if w.startswith("Pass file not found")]

    def test_leftover_placeholder_is_invalid(self, builder, write_template):
        write_template(DECL + ROOT_OPEN + "{{CUSTOM_PASS}}</unattend>")

        result = builder.build()

        assert result.success
        assert result.is_valid is False
        assert result.validation.errors == ["Unreplaced placeholders found: {{CUSTOM_PASS}}"]
        assert "❌ INVALID" in result.validation_report

    def test_validation_disabled(self, builder, config, full_tree):
        config.validation.enable_xml_validation = False

        result = builder.build()

        assert result.success
        assert result.is_valid is None
        assert result.validation is None
        assert "isValid" not in result.to_dict()
        assert "validation" not in result.to_dict()

    def test_monitor_records_each_step(self, builder, monitor, full_tree):
        builder.build()
        assert [m.operation for m in monitor.metrics] == ["assemble", "validate"]
        assert all(m.success for m in monitor.metrics)

    def test_two_pass_template(self, builder, config, write_template, write_pass):
        write_template(DECL + ROOT_OPEN + "{{WINDOWSPE_PASS}}{{OOBESYSTEM_PASS}}</unattend>")
        write_pass("windowspe", "<A/>")
        write_pass("oobesystem", "<B/>")

        result = builder.build()

        assert result.success
        assert result.is_valid is True
        assert result.build_stats.passes_processed == 2
        assert config.output_path.read_text(encoding="utf-8") == DECL + ROOT_OPEN + "<A/><B/></unattend>"

    def test_memory_tracing_off_after_build(self, builder, full_tree):
        was_tracing = tracemalloc.is_tracing()
        tracemalloc.stop()
        try:
            builder.build()
            assert not tracemalloc.is_tracing()
        finally:
            if was_tracing:
                tracemalloc.start()

    def test_plain_summary(self, builder, stream, full_tree):
        builder.build()
        out = stream.getvalue()
        assert "-> Starting autounattend.xml build process..." in out
        assert "=== XML Validation Report ===" in out
        assert "=== Build Summary ===" in out
        assert "Validation: PASSED" in out
        assert "Passes processed: 7" in out


@pytest.mark.unit
class TestBuildFailure:
    def test_missing_template(self, builder, config, monitor, stream):
        result = builder.build()

        assert result.success is False
        assert result.is_valid is None
        assert result.output_path is None
        assert "Template file not found" in result.error
        assert str(config.template_path) in result.error
        assert result.build_stats.passes_processed == 0
        assert result.build_stats.end_time is not None
        assert not config.output_path.exists()

        assert [(m.operation, m.success) for m in monitor.metrics] == [("assemble", False)]
        assert "Build failed: Template file not found" in stream.getvalue()

    def test_error_keeps_template_path_spacing(self, tmp_path, fake_logger, stream, monitor):
        cfg = UnattendConfig(base_dir=tmp_path / "my  answer   files")
        builder = UnattendBuilder(cfg, fake_logger, BasicReporter(stream), monitor)

        result = builder.build()

        assert result.success is False
        assert str(cfg.template_path) in result.error

    def test_unwritable_output(self, builder, config, write_template, write_pass):
        write_template(FULL_TEMPLATE)
        write_pass("windowspe", FRAGMENTS["windowspe"])
        config.output_path.mkdir(parents=True)

        result = builder.build()

        assert result.success is False
        assert "Error writing output file" in result.error
        assert result.build_stats.passes_processed == 1
        assert len(result.warnings) == 6

    def test_unexpected_error_becomes_result(self, builder, monitor, full_tree):
        with patch.object(Assembler, "render", side_effect=RuntimeError("disk vanished")):
            result = builder.build()

        assert result.success is False
        assert result.error == "disk vanished"
        assert monitor.metrics[0].success is False

    def test_failure_dict_shape(self, builder):
        d = builder.build().to_dict()
        assert d["success"] is False
        assert "error" in d
        assert "outputPath" not in d
        assert "isValid" not in d
        assert "warnings" not in d
        assert set(d["buildStats"]) == {"startTime", "endTime", "duration", "passesProcessed", "fileSize"}


@pytest.mark.unit
class TestBuildResultDict:
    def test_success_keys(self, builder, full_tree):
        d = builder.build().to_dict()
        assert set(d) == {
            "success",
            "outputPath",
            "isValid",
            "warnings",
            "buildStats",
            "validation",
            "validationReport",
        }
        assert d["buildStats"]["passesProcessed"] == 7
        assert d["validation"]["isValid"] is True

    def test_minimal_result(self):
        assert BuildResult(success=True).to_dict() == {"success": True, "warnings": []}
