"""
Tests for the dataview CLI.

The HTTP source is replaced by an in-memory source so commands run
without a server.
"""

import json
from unittest.mock import patch

import pytest
import typer
from typer.testing import CliRunner

from dataview import __version__
from dataview.cli import app
from dataview.cli.show import parse_where
from dataview.core.exceptions import RemoteOperationError
from dataview.core.remote import MemoryRemoteSource

from conftest import SAMPLE_CONTACTS

runner = CliRunner()


@pytest.fixture
def memory_backend(clean_env):
    """Route the show command to an in-memory source of contacts."""
    source = MemoryRemoteSource(SAMPLE_CONTACTS)
    with patch("dataview.cli.show.build_source", return_value=source) as build:
        yield {"source": source, "build": build, "project_dir": clean_env}


class TestParseWhere:
    """Test --where parsing."""

    def test_json_values_decoded(self):
        """Numbers and booleans are decoded, other values stay strings."""
        assert parse_where(["age=36", "active=true", "city=London"]) == {
            "age": 36,
            "active": True,
            "city": "London",
        }

    def test_empty(self):
        assert parse_where(None) == {}

    @pytest.mark.parametrize("pair", ["city", "=London"])
    def test_malformed(self, pair):
        """Pairs without a field name or '=' are rejected."""
        with pytest.raises(typer.BadParameter):
            parse_where([pair])


class TestShowCommand:
    """Test `dataview show`."""

    def test_show_table(self, memory_backend):
        """All records are rendered."""
        result = runner.invoke(app, ["show", "contacts"])

        assert result.exit_code == 0
        for name in ("Ada", "Grace", "Edsger", "Barbara", "Alan"):
            assert name in result.output
        memory_backend["build"].assert_called_once()
        assert memory_backend["build"].call_args.args[1] == "contacts"

    def test_show_paged_and_filtered(self, memory_backend):
        """Paging, ordering and filters are sent to the source."""
        result = runner.invoke(
            app,
            [
                "show",
                "contacts",
                "--where",
                "city=London",
                "--order-by",
                "-age",
                "--page-size",
                "2",
                "--page",
                "1",
                "--json",
            ],
        )

        assert result.exit_code == 0
        assert json.loads(result.output) == [
            {"id": 1, "name": "Ada", "city": "London", "age": 36}
        ]
        assert memory_backend["source"].calls == [
            ("fetch", {"city": "London", "order_by": "-age", "limit": 2, "offset": 2})
        ]

    def test_show_uses_configured_page_size(self, memory_backend, monkeypatch):
        """query.page_size from configuration applies when --page-size is omitted."""
        monkeypatch.setenv("DATAVIEW_PAGE_SIZE", "3")

        result = runner.invoke(app, ["show", "contacts", "--json"])

        assert result.exit_code == 0
        assert len(json.loads(result.output)) == 3

    def test_show_empty(self, memory_backend):
        """An empty page says so."""
        result = runner.invoke(app, ["show", "contacts", "--where", "city=Paris"])

        assert result.exit_code == 0
        assert "No records in contacts" in result.output

    def test_show_remote_failure(self, memory_backend):
        """A failing remote exits with the general error code."""
        source = memory_backend["source"]
        error = RemoteOperationError("fetch failed: HTTP 503", operation="fetch", status_code=503)

        with patch.object(source, "fetch", side_effect=error):
            result = runner.invoke(app, ["show", "contacts"])

        assert result.exit_code == 1
        assert "Remote operation failed" in result.output

    def test_show_invalid_config(self, memory_backend, monkeypatch):
        """Bad configuration exits with the user error code."""
        monkeypatch.setenv("DATAVIEW_TIMEOUT", "soon")

        result = runner.invoke(app, ["show", "contacts"])

        assert result.exit_code == 2
        assert "Invalid configuration" in result.output

    def test_show_negative_page_rejected(self, memory_backend):
        """--page must not be negative."""
        result = runner.invoke(app, ["show", "contacts", "--page", "-1"])
        assert result.exit_code == 2

    def test_show_missing_api_key(self, clean_env, monkeypatch):
        """A configured but unset API key env var is a user error."""
        monkeypatch.delenv("CONTACTS_API_KEY", raising=False)
        (clean_env / ".dataview.json").write_text(
            json.dumps(
                {"remote": {"auth_header": "X-Api-Key", "auth_env_var": "CONTACTS_API_KEY"}}
            )
        )

        result = runner.invoke(app, ["show", "contacts"])

        assert result.exit_code == 2
        assert "CONTACTS_API_KEY is not set" in result.output


class TestConfigCommand:
    """Test `dataview config`."""

    def test_config_json(self, clean_env, monkeypatch):
        """The resolved configuration is printed as JSON."""
        monkeypatch.setenv("DATAVIEW_BASE_URL", "https://api.test")

        result = runner.invoke(app, ["config", "--json"])

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["remote"]["base_url"] == "https://api.test"
        assert data["dataset"]["buffer"] is True

    def test_config_lists_files(self, clean_env):
        """The plain output names the config file layers."""
        (clean_env / ".dataview.json").write_text("{}")

        result = runner.invoke(app, ["config"])

        assert result.exit_code == 0
        assert "Configuration files" in result.output
        assert "project" in result.output

    def test_config_invalid(self, clean_env, monkeypatch):
        """Invalid configuration exits with the user error code."""
        monkeypatch.setenv("DATAVIEW_MAX_RETRIES", "many")

        result = runner.invoke(app, ["config"])

        assert result.exit_code == 2


class TestMainCallback:
    """Test global options."""

    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_no_args_shows_help(self):
        result = runner.invoke(app, [])
        assert "show" in result.output
        assert "config" in result.output
