"""
Tests for the server launcher.
"""

from pathlib import Path

from run_server import build_parser, route_table
from trackheat.main import DEFAULT_DATA_FOLDER


class TestLauncher:
    """Tests for argument parsing and the route listing."""

    def test_defaults_follow_app(self):
        """The default folder is the one the app falls back to."""
        args = build_parser().parse_args([])

        assert args.data_folder == DEFAULT_DATA_FOLDER
        assert args.port == 8000
        assert args.host == "127.0.0.1"
        assert not args.debug

    def test_custom_arguments(self):
        args = build_parser().parse_args(["/tmp/rides", "--port", "5000", "-d"])

        assert args.data_folder == Path("/tmp/rides")
        assert args.port == 5000
        assert args.debug

    def test_route_table_lists_api(self):
        """Routes come from the app, without HEAD/OPTIONS noise."""
        lines = route_table()

        assert "GET  /heatmap" in lines
        assert "POST /folder" in lines
        assert "POST /folder/rescan" in lines
        assert not any(line.startswith("HEAD") for line in lines)
