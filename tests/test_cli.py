"""Tests for the command line entry point."""

import io
import json
import shutil
import sys
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from rich.console import Console

from app_launcher.cli import main


class TestCli(unittest.TestCase):
    def setUp(self):
        self.config_dir = Path(tempfile.mkdtemp(prefix="app_launcher_cli_"))
        self.addCleanup(shutil.rmtree, self.config_dir, True)
        self.app_dir = self.config_dir / "apps" / "my-game"
        self.app_dir.mkdir(parents=True)

        self.console = Console(file=io.StringIO(), width=200)
        patcher = patch("app_launcher.cli.console", self.console)
        patcher.start()
        self.addCleanup(patcher.stop)

    def run_cli(self, *argv):
        return main(["--config-dir", str(self.config_dir), *argv])

    @property
    def output(self):
        return self.console.file.getvalue()

    def register(self):
        return self.run_cli(
            "register", str(self.app_dir), "--title", "My Game", "--id", "g1"
        )

    def test_register(self):
        self.assertEqual(self.register(), 0)

        with open(self.config_dir / "installs.json") as f:
            record = json.load(f)["g1"]
        self.assertEqual(record["install_folder"], "my-game")
        self.assertEqual(record["app"]["title"], "My Game")
        self.assertIn("Registered My Game as g1", self.output)

    def test_isolation_toggle(self):
        self.assertEqual(self.run_cli("isolation", "enable"), 0)
        with open(self.config_dir / "launcher_config.json") as f:
            self.assertTrue(json.load(f)["isolate_apps"])

        self.assertEqual(self.run_cli("isolation", "disable"), 0)
        with open(self.config_dir / "launcher_config.json") as f:
            self.assertFalse(json.load(f)["isolate_apps"])

    def test_status(self):
        self.assertEqual(self.run_cli("status"), 0)

        self.assertIn("isolate_apps", self.output)
        self.assertIn("sandbox_backend", self.output)

    def test_launch_unknown_install(self):
        self.assertEqual(self.run_cli("launch", "nope"), 1)
        self.assertIn("unknown install: nope", self.output)

    def test_launch_without_candidates(self):
        """Test that an empty install fails after the reconfigure retry."""
        self.register()

        self.assertEqual(self.run_cli("launch", "g1"), 1)
        self.assertIn("No executables found", self.output)

    @unittest.skipIf(sys.platform.startswith("win"), "POSIX process handling")
    def test_launch_reports_crash_exit_code(self):
        """Test that a crashing child sets the launcher's exit status."""
        self.register()

        code = self.run_cli(
            "launch", "--exe", sys.executable, "g1",
            "--", "-c", "print('bye'); raise SystemExit(4)",
        )

        self.assertEqual(code, 4)
        self.assertIn("My Game crashed: process exited with code 4", self.output)
        self.assertIn("bye", self.output)


if __name__ == "__main__":
    unittest.main()
