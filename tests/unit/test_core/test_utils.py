# SPDX-License-Identifier: LGPL-3.0-or-later
import subprocess
import tempfile
import unittest
from pathlib import Path
from unittest.mock import Mock, patch

from winunattend.core.exceptions import MediaError
from winunattend.core.utils import TIMEOUT_EXIT_CODE, U
from winunattend.unattend.passes import Pass


class TestUtilsFileOperations(unittest.TestCase):
    """Test utility file operations."""

    def test_ensure_dir_creates_directory(self):
        with tempfile.TemporaryDirectory() as td:
            new_dir = Path(td) / "subdir" / "nested"

            U.ensure_dir(new_dir)

            self.assertTrue(new_dir.is_dir())

    def test_ensure_dir_handles_existing(self):
        with tempfile.TemporaryDirectory() as td:
            existing = Path(td) / "existing"
            existing.mkdir()

            # Should not raise
            U.ensure_dir(existing)

            self.assertTrue(existing.exists())


class TestRunTool(unittest.TestCase):
    """Imaging tool execution."""

    def setUp(self):
        self.logger = Mock()

    @patch('subprocess.run')
    def test_exit_code_left_to_caller(self, mock_run):
        mock_run.return_value = Mock(returncode=3, stdout="", stderr="")

        result = U.run_tool(self.logger, ["robocopy", "D:\\", "C:\\work"])

        self.assertEqual(result.returncode, 3)
        self.assertEqual(mock_run.call_args.kwargs["check"], False)

    @patch('subprocess.run')
    def test_passes_timeout_and_capture(self, mock_run):
        mock_run.return_value = Mock(returncode=0, stdout="E", stderr="")

        result = U.run_tool(self.logger, ["powershell", "-Command", "x"], capture=True, timeout=30)

        self.assertEqual(result.stdout, "E")
        self.assertEqual(mock_run.call_args.kwargs["timeout"], 30)
        self.assertEqual(mock_run.call_args.kwargs["capture_output"], True)

    @patch('subprocess.run')
    def test_checked_failure_names_tool(self, mock_run):
        mock_run.side_effect = subprocess.CalledProcessError(1, ["powershell"], output="", stderr="Access denied")

        with self.assertRaises(MediaError) as cm:
            U.run_tool(self.logger, ["C:\\Windows\\powershell.exe", "-Command", "x"], check=True, target=Path("win.iso"))

        err = cm.exception
        self.assertEqual(err.tool, "powershell.exe")
        self.assertEqual(err.exit_code, 1)
        self.assertEqual(err.target, Path("win.iso"))
        self.assertIsInstance(err.cause, subprocess.CalledProcessError)
        self.assertTrue(self.logger.error.called)

    @patch('subprocess.run')
    def test_timeout(self, mock_run):
        mock_run.side_effect = subprocess.TimeoutExpired(["robocopy"], 5)

        with self.assertRaises(MediaError) as cm:
            U.run_tool(self.logger, ["robocopy"], timeout=5)

        self.assertEqual(cm.exception.exit_code, TIMEOUT_EXIT_CODE)
        self.assertIn("timed out after 5s", str(cm.exception))

    @patch('subprocess.run')
    def test_missing_binary(self, mock_run):
        mock_run.side_effect = FileNotFoundError(2, "No such file", "oscdimg")

        with self.assertRaises(MediaError) as cm:
            U.run_tool(self.logger, ["oscdimg"])

        self.assertEqual(cm.exception.tool, "oscdimg")
        self.assertIsNone(cm.exception.exit_code)

    def test_which_returns_none_for_missing(self):
        self.assertIsNone(U.which("nonexistent-command-xyz123"))


class TestUtilsFormatting(unittest.TestCase):
    def test_human_bytes(self):
        self.assertEqual(U.human_bytes(None), "unknown")
        self.assertEqual(U.human_bytes(512), "512 B")
        self.assertEqual(U.human_bytes(1024), "1.00 KiB")
        self.assertEqual(U.human_bytes(5 * 1024 * 1024), "5.00 MiB")

    def test_json_dump_is_sorted_and_unicode(self):
        self.assertEqual(U.json_dump({"b": 1, "a": "✅"}), '{\n  "a": "✅",\n  "b": 1\n}')

    def test_json_dump_paths_and_passes(self):
        out = U.json_dump({"p": Path("build"), "pass": Pass.SPECIALIZE})
        self.assertIn('"p": "build"', out)
        self.assertIn('"pass": "specialize"', out)

    def test_json_dump_rejects_unknown_types(self):
        with self.assertRaises(TypeError):
            U.json_dump({"x": object()})


if __name__ == "__main__":
    unittest.main()
