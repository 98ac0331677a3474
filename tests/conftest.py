# SPDX-License-Identifier: LGPL-3.0-or-later
import os
import sys
from pathlib import Path

import pytest

_THIS_DIR = Path(__file__).resolve().parent
_REPO_ROOT = _THIS_DIR.parent

if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))
if str(_THIS_DIR) not in sys.path:
    sys.path.insert(0, str(_THIS_DIR))

os.environ.setdefault("PYTHONPATH", str(_REPO_ROOT))

from fakes.fake_logger import FakeLogger  # noqa: E402
from winunattend.config.config_loader import UnattendConfig  # noqa: E402


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests with no external tools")
    config.addinivalue_line("markers", "security: checks around secrets and passwords")


@pytest.fixture
def fake_logger():
    return FakeLogger()


@pytest.fixture
def config(tmp_path):
    """Default config rooted in tmp_path (unattended/templates, passes, build)."""
    return UnattendConfig(base_dir=tmp_path)


@pytest.fixture
def write_template(config):
    def _write(text):
        config.template_path.parent.mkdir(parents=True, exist_ok=True)
        config.template_path.write_text(text, encoding="utf-8")
        return config.template_path
    return _write


@pytest.fixture
def write_pass(config):
    def _write(name, text):
        config.passes_dir.mkdir(parents=True, exist_ok=True)
        p = config.passes_dir / f"{name}.xml"
        p.write_text(text, encoding="utf-8")
        return p
    return _write
