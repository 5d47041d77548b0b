"""Tests for the CLI module."""

import json
import os
import tempfile
import unittest
from unittest.mock import AsyncMock, patch

from typer.testing import CliRunner

from subreddit_trends.cli import app
from subreddit_trends.errors import RateLimited, SubredditNotFound


class TestCli(unittest.TestCase):
    """Test cases for the CLI interface."""

    def setUp(self):
        """Set up test environment."""
        self.runner = CliRunner()

        self.temp_dir = tempfile.TemporaryDirectory()
        self.config_path = os.path.join(self.temp_dir.name, "config.yaml")
        with open(self.config_path, "w", encoding="utf-8") as f:
            f.write("""
fetch:
  top_n: 5
  default_timeframe: day
            """)

        self.logging_patch = patch("subreddit_trends.cli.setup_logging")
        self.logging_patch.start()

    def tearDown(self):
        """Clean up test environment."""
        self.logging_patch.stop()
        self.temp_dir.cleanup()

    @patch("subreddit_trends.cli._resolve", new_callable=AsyncMock)
    def test_resolve_command(self, mock_resolve):
        """Test the resolve command."""
        mock_resolve.return_value = {"exists": True, "canonical": "Cooking", "accessibility": "public"}

        result = self.runner.invoke(app, ["resolve", "r/cooking", "--config", self.config_path])

        self.assertEqual(result.exit_code, 0)
        self.assertEqual(json.loads(result.stdout)["canonical"], "Cooking")
        self.assertEqual(mock_resolve.await_args.args[1], "r/cooking")

    @patch("subreddit_trends.cli._resolve", new_callable=AsyncMock)
    def test_resolve_command_not_found(self, mock_resolve):
        """A missing subreddit exits with code 1."""
        mock_resolve.return_value = {"exists": False, "canonical": "nope", "accessibility": "not-found"}

        result = self.runner.invoke(app, ["resolve", "nope", "--config", self.config_path])

        self.assertEqual(result.exit_code, 1)

    @patch("subreddit_trends.cli._top", new_callable=AsyncMock)
    def test_top_command(self, mock_top):
        """Test the top command uses the configured default timeframe."""
        mock_top.return_value = [{
            "title": "Post 1",
            "url": "https://example.com/1",
            "permalink": "https://www.reddit.com/r/Cooking/comments/1/post/",
            "score": 42,
            "provenance": "json",
        }]

        result = self.runner.invoke(app, ["top", "cooking", "--config", self.config_path])

        self.assertEqual(result.exit_code, 0)
        self.assertIn("1. [42] Post 1", result.stdout)
        self.assertEqual(mock_top.await_args.args[2], "day")

    @patch("subreddit_trends.cli._top", new_callable=AsyncMock)
    def test_top_command_json(self, mock_top):
        """The --json flag prints raw post dictionaries."""
        mock_top.return_value = []

        result = self.runner.invoke(app, ["top", "cooking", "-t", "week", "--json", "--config", self.config_path])

        self.assertEqual(result.exit_code, 0)
        self.assertEqual(json.loads(result.stdout), [])
        self.assertEqual(mock_top.await_args.args[2], "week")

    @patch("subreddit_trends.cli._top", new_callable=AsyncMock)
    def test_top_command_errors(self, mock_top):
        """Pipeline errors exit with code 1."""
        for error in (SubredditNotFound("nope"), RateLimited(30)):
            mock_top.side_effect = error
            result = self.runner.invoke(app, ["top", "nope", "--config", self.config_path])
            self.assertEqual(result.exit_code, 1)

    def test_invalid_config(self):
        """An invalid configuration aborts before any request."""
        with open(self.config_path, "w", encoding="utf-8") as f:
            f.write("fetch:\n  top_n: 0\n")

        with patch("subreddit_trends.cli._top", new_callable=AsyncMock) as mock_top:
            result = self.runner.invoke(app, ["top", "cooking", "--config", self.config_path])

        self.assertEqual(result.exit_code, 1)
        mock_top.assert_not_awaited()


if __name__ == "__main__":
    unittest.main()
