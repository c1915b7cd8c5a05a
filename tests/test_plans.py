"""Tests for non-isolated launch plans."""

import unittest
from unittest.mock import AsyncMock, patch

from app_launcher.errors import UnsupportedPlatform
from app_launcher.plans import build_plan, is_app_bundle
from app_launcher.types import ResolvedExecutable

BUNDLE_EXE = "/Applications/Games/Game.app/Contents/MacOS/Game"


class TestBuildPlan(unittest.IsolatedAsyncioTestCase):
    async def test_direct_plan(self):
        """Test that a plain executable runs as-is."""
        resolved = ResolvedExecutable(
            path="/games/a/run", cwd="/games/a", args=["--level", "2"], console=True
        )

        plan = await build_plan(resolved, "linux", env={"FOO": "bar"})

        self.assertEqual(plan.target, "/games/a/run")
        self.assertEqual(plan.argv, ["/games/a/run", "--level", "2"])
        self.assertEqual(plan.env, {"FOO": "bar"})
        self.assertEqual(plan.cwd, "/games/a")
        self.assertTrue(plan.console)
        self.assertFalse(plan.indirect)

    @patch("app_launcher.plans.get_output", new_callable=AsyncMock)
    async def test_macos_bundle_goes_through_open(self, mock_output):
        """Test that .app bundles are opened and cancelled via their binary."""
        mock_output.return_value = BUNDLE_EXE
        resolved = ResolvedExecutable(
            path="/Applications/Games/Game.app", args=["--windowed"]
        )

        plan = await build_plan(resolved, "macos")

        mock_output.assert_awaited_once_with(
            ["activate", "--print-bundle-executable-path", "/Applications/Games/Game.app"]
        )
        self.assertEqual(plan.target, BUNDLE_EXE)
        self.assertEqual(
            plan.argv,
            ["open", "-W", "/Applications/Games/Game.app", "--args", "--windowed"],
        )
        self.assertTrue(plan.indirect)

    @patch("app_launcher.plans.get_output", new_callable=AsyncMock)
    async def test_macos_bundle_without_args(self, mock_output):
        """Test that --args is only passed when there are arguments."""
        mock_output.return_value = BUNDLE_EXE

        plan = await build_plan(
            ResolvedExecutable(path="/Applications/Games/Game.app/"), "macos"
        )

        self.assertEqual(plan.argv, ["open", "-W", "/Applications/Games/Game.app/"])

    @patch("app_launcher.plans.get_output", new_callable=AsyncMock)
    async def test_macos_plain_binary_is_direct(self, mock_output):
        """Test that non-bundle executables on macOS are not wrapped."""
        plan = await build_plan(ResolvedExecutable(path="/games/a/run"), "macos")

        self.assertEqual(plan.argv, ["/games/a/run"])
        mock_output.assert_not_awaited()

    async def test_unsupported_platform(self):
        with self.assertRaises(UnsupportedPlatform):
            await build_plan(ResolvedExecutable(path="/games/a/run"), "plan9")

    def test_is_app_bundle(self):
        self.assertTrue(is_app_bundle("/Applications/Game.app"))
        self.assertTrue(is_app_bundle("/Applications/Game.APP/"))
        self.assertFalse(is_app_bundle("/Applications/Game.app/Contents/MacOS/Game"))
        self.assertFalse(is_app_bundle("/games/application"))


if __name__ == "__main__":
    unittest.main()
