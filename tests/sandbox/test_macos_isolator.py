"""Tests for macOS sandbox-exec isolation behind a proxy bundle."""

import os
import shutil
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from app_launcher.sandbox.macos_isolator import BundleIsolationBackend
from app_launcher.types import InstallRecord, IsolationContext, LaunchPlan


class TestBundleIsolationBackend(unittest.IsolatedAsyncioTestCase):
    """Test cases for BundleIsolationBackend."""

    def setUp(self):
        """Set up test fixtures."""
        self.backend = BundleIsolationBackend()
        self.app_dir = tempfile.mkdtemp(prefix="app_launcher_macos_")
        self.addCleanup(shutil.rmtree, self.app_dir, True)

        app = Path(self.app_dir)
        self.install = InstallRecord(
            id="cave-1",
            install_location=str(app.parent),
            install_folder=app.name,
        )
        self.target = str(app / "Game.app" / "Contents" / "MacOS" / "Game")
        self.plan = LaunchPlan(
            target=self.target,
            argv=["open", "-W", str(app / "Game.app"), "--args", "--level", "two words"],
            indirect=True,
        )
        self.context = IsolationContext(
            install=self.install, plan=self.plan, args=["--level", "two words"]
        )

    def test_platform(self):
        """Test that platform is correctly identified."""
        self.assertEqual(self.backend.get_platform(), "macos")

    @patch("shutil.which")
    def test_is_available_when_sandbox_exec_installed(self, mock_which):
        """Test availability check when sandbox-exec is installed."""
        mock_which.return_value = "/usr/bin/sandbox-exec"
        self.assertTrue(self.backend.is_available())
        mock_which.assert_called_once_with("sandbox-exec")

    @patch("shutil.which", return_value=None)
    async def test_check_and_install_without_sandbox_exec(self, mock_which):
        """Test that a missing sandbox-exec is a need that install cannot fix."""
        report = await self.backend.check()
        self.assertEqual(report.needs, {"sandbox-exec"})

        install = await self.backend.install(report.needs)
        self.assertEqual(len(install.errors), 1)

    def test_generate_sandbox_profile(self):
        """Test basic sandbox profile generation."""
        profile = self.backend._generate_sandbox_profile(self.app_dir)

        self.assertIn("(version 1)", profile)
        self.assertIn("(deny default)", profile)
        self.assertIn("(allow process-exec*)", profile)
        self.assertIn("(allow network*)", profile)
        self.assertIn(f'(subpath "{os.path.abspath(self.app_dir)}")', profile)

    def test_generate_sandbox_profile_blocks_sensitive_paths(self):
        """Test that sensitive paths are explicitly denied."""
        profile = self.backend._generate_sandbox_profile(self.app_dir)

        self.assertIn("/.ssh", profile)
        self.assertIn("/.aws", profile)
        self.assertIn("/.gnupg", profile)
        self.assertIn("(deny file-read*", profile)

    async def test_within_substitutes_proxy_bundle(self):
        """Test that the launch target becomes the proxy bundle."""
        async with self.backend.within(self.context) as plan:
            bundle = Path(self.app_dir) / ".itch" / "Game.app"
            self.assertEqual(plan.argv, ["open", "-W", str(bundle)])
            self.assertTrue(plan.indirect)
            self.assertTrue(plan.isolated)
            # Cancellation still has to find the real executable
            self.assertEqual(plan.target, self.target)

    async def test_proxy_bundle_runs_real_executable_in_sandbox(self):
        """Test the proxy bundle's contents."""
        async with self.backend.within(self.context):
            bundle = Path(self.app_dir) / ".itch" / "Game.app"
            script = bundle / "Contents" / "MacOS" / "Game"

            self.assertTrue((bundle / "Contents" / "Info.plist").exists())
            self.assertTrue(os.access(script, os.X_OK))

            content = script.read_text()
            self.assertIn("exec sandbox-exec -f", content)
            self.assertIn("isolate-app.sb", content)
            self.assertIn(self.target, content)
            self.assertIn("'two words'", content)
            self.assertNotIn("--args", content)

    async def test_proxy_bundle_removed_after_launch(self):
        """Test that the proxy bundle is cleaned up when the block exits."""
        async with self.backend.within(self.context):
            pass

        self.assertFalse((Path(self.app_dir) / ".itch" / "Game.app").exists())

    async def test_proxy_bundle_removed_when_launch_fails(self):
        """Test that the proxy bundle is cleaned up even if the block raises."""
        with self.assertRaises(RuntimeError):
            async with self.backend.within(self.context):
                raise RuntimeError("spawn failed")

        self.assertFalse((Path(self.app_dir) / ".itch" / "Game.app").exists())


if __name__ == "__main__":
    unittest.main()
