"""Tests for per-platform argument quoting."""

import unittest

from app_launcher.quoting import join_command, quote_arg, split_command

TRICKY_ARGS = [
    ["plain", "args"],
    ["with space", "tab\there"],
    ['double"quote', "single'quote", "both\"'"],
    ["", "empty before", ""],
    ["C:\\Program Files\\Game\\", "trailing\\\\"],
    ["back\\\"slash-quote", "\\\\\\\"", "a\\b\\c"],
    ["semi;colon", "pipe|amp&", "$VAR", "`tick`", "*glob?"],
    ["new\nline", "unicode ünï ✓"],
]


class TestRoundTrip(unittest.TestCase):
    """split_command(join_command(args)) must give back args."""

    def test_posix_round_trip(self):
        """Test that POSIX quoting preserves argument boundaries."""
        for args in TRICKY_ARGS:
            with self.subTest(args=args):
                self.assertEqual(split_command(join_command(args, "linux"), "linux"), args)

    def test_windows_round_trip(self):
        """Test that Windows quoting preserves argument boundaries."""
        for args in TRICKY_ARGS:
            with self.subTest(args=args):
                self.assertEqual(
                    split_command(join_command(args, "windows"), "windows"), args
                )


class TestWindowsQuoting(unittest.TestCase):
    def test_simple_argument_unquoted(self):
        """Test that arguments without special characters are left alone."""
        self.assertEqual(quote_arg("game.exe", "windows"), "game.exe")
        self.assertEqual(quote_arg("C:\\dir\\", "windows"), "C:\\dir\\")

    def test_space_is_quoted(self):
        """Test that spaces trigger quoting."""
        self.assertEqual(quote_arg("a b", "windows"), '"a b"')

    def test_empty_argument(self):
        """Test that an empty argument becomes an empty quoted string."""
        self.assertEqual(quote_arg("", "windows"), '""')

    def test_embedded_quote_is_escaped(self):
        """Test that embedded quotes are backslash-escaped."""
        self.assertEqual(quote_arg('say "hi"', "windows"), '"say \\"hi\\""')

    def test_trailing_backslashes_doubled(self):
        """Test that backslashes before the closing quote are doubled."""
        self.assertEqual(quote_arg("C:\\my dir\\", "windows"), '"C:\\my dir\\\\"')

    def test_split_handles_mixed_quoting(self):
        """Test parsing of a hand-written command line."""
        self.assertEqual(
            split_command('game.exe "a b" c\\d "e\\"f"', "windows"),
            ["game.exe", "a b", "c\\d", 'e"f'],
        )


class TestPosixQuoting(unittest.TestCase):
    def test_space_is_quoted(self):
        """Test that shell metacharacters are quoted."""
        self.assertEqual(quote_arg("a b", "linux"), "'a b'")
        self.assertEqual(quote_arg("safe-arg", "macos"), "safe-arg")

    def test_join(self):
        """Test joining a full command line."""
        self.assertEqual(
            join_command(["/games/my game/run", "--level", "1"], "linux"),
            "'/games/my game/run' --level 1",
        )


if __name__ == "__main__":
    unittest.main()
