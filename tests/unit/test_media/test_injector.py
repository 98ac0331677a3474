# SPDX-License-Identifier: LGPL-3.0-or-later
from __future__ import annotations

import pytest

from winunattend.core.exceptions import MediaError
from winunattend.media.injector import OEM_SCRIPTS_DIR, inject_answer_file


@pytest.fixture
def answer_file(tmp_path):
    p = tmp_path / "build" / "autounattend.xml"
    p.parent.mkdir()
    p.write_bytes(b'<?xml version="1.0"?>\r\n<unattend/>\r\n')
    return p


@pytest.fixture
def work_dir(tmp_path):
    wd = tmp_path / "work"
    (wd / "sources").mkdir(parents=True)
    return wd


@pytest.mark.unit
class TestInjectAnswerFile:
    def test_answer_file_copied_to_root(self, fake_logger, answer_file, work_dir, tmp_path):
        result = inject_answer_file(work_dir, answer_file, tmp_path / "no-scripts", fake_logger)

        assert result.answer_file == work_dir / "autounattend.xml"
        assert result.answer_file.read_bytes() == answer_file.read_bytes()
        assert result.scripts == []
        assert any("Scripts directory not found" in m for m in fake_logger.messages("warning"))

    def test_scripts_copied_under_oem(self, fake_logger, answer_file, work_dir, tmp_path):
        scripts = tmp_path / "scripts"
        (scripts / "lib").mkdir(parents=True)
        (scripts / "firstlogon.cmd").write_text("@echo off\r\n", encoding="utf-8")
        (scripts / "lib" / "helpers.ps1").write_text("Write-Host hi\n", encoding="utf-8")

        result = inject_answer_file(work_dir, answer_file, scripts, fake_logger)

        dest = work_dir / OEM_SCRIPTS_DIR
        assert sorted(result.scripts) == sorted([dest / "firstlogon.cmd", dest / "lib" / "helpers.ps1"])
        assert (dest / "lib" / "helpers.ps1").read_text(encoding="utf-8") == "Write-Host hi\n"

    def test_oem_path_layout(self):
        assert OEM_SCRIPTS_DIR.parts == ("sources", "$OEM$", "$$", "Setup", "Scripts")

    def test_missing_answer_file(self, fake_logger, work_dir, tmp_path):
        with pytest.raises(MediaError) as ei:
            inject_answer_file(work_dir, tmp_path / "missing.xml", None, fake_logger)
        assert "Answer file not found" in str(ei.value)

    def test_missing_work_dir(self, fake_logger, answer_file, tmp_path):
        with pytest.raises(MediaError) as ei:
            inject_answer_file(tmp_path / "nowhere", answer_file, None, fake_logger)
        assert "Extracted image directory not found" in str(ei.value)
