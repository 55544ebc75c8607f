"""Tests for the command line interface."""

import json

import pytest
from typer.testing import CliRunner

from schema_relations.main import app

runner = CliRunner()


@pytest.fixture
def catalog_file(tmp_path, blog_catalog, blog_sample_values):
    data = blog_catalog.to_dict()
    data["sample_values"] = blog_sample_values
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps(data))
    return str(path)


class TestAnalyzeCommand:
    """Test the analyze command."""

    def test_single_table_json(self, catalog_file):
        result = runner.invoke(app, ["analyze", "users", "--catalog", catalog_file, "--format", "json"])

        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["table"] == "users"
        assert [r["method"] for r in data["relationships"]] == ["profile", "posts", "comments", "roleUsers", "roles"]

    def test_single_table_table_format(self, catalog_file):
        result = runner.invoke(app, ["analyze", "employees", "--catalog", catalog_file])

        assert result.exit_code == 0, result.output
        assert "manager" in result.stdout
        assert "Self-reference" in result.stdout

    def test_whole_schema_json(self, catalog_file, blog_catalog):
        result = runner.invoke(app, ["analyze", "-c", catalog_file, "-f", "json", "--workers", "2"])

        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert set(data["results"]) == set(blog_catalog.table_names)
        assert data["errors"] == {}

    def test_whole_schema_summary(self, catalog_file):
        result = runner.invoke(app, ["analyze", "-c", catalog_file])

        assert result.exit_code == 0, result.output
        assert "Tables analyzed: 12" in result.stdout

    def test_no_sampling(self, catalog_file):
        result = runner.invoke(app, ["analyze", "videos", "-c", catalog_file, "-f", "json", "--no-sampling"])

        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["relationships"][0]["confidence"] == 0.5
        assert data["warnings"][0]["code"] == "SAMPLING_UNAVAILABLE"

    def test_config_file(self, catalog_file, tmp_path):
        config_path = tmp_path / "relationships.json"
        config_path.write_text(json.dumps({
            "custom_relationships": {
                "posts": [{"type": "belongsTo", "related_table": "users", "foreign_key": "user_id", "method": "author"}],
            },
        }))

        result = runner.invoke(app, [
            "analyze", "posts", "-c", catalog_file, "-f", "json", "--config", str(config_path),
        ])

        assert result.exit_code == 0, result.output
        methods = [r["method"] for r in json.loads(result.stdout)["relationships"]]
        assert "author" in methods
        assert "user" not in methods

    def test_unknown_table(self, catalog_file):
        result = runner.invoke(app, ["analyze", "missing", "-c", catalog_file])

        assert result.exit_code == 1
        assert "Table not found: missing" in result.stdout

    def test_requires_one_source(self):
        result = runner.invoke(app, ["analyze", "users"])

        assert result.exit_code == 1
        assert "exactly one" in result.stdout

    def test_missing_catalog_file(self, tmp_path):
        result = runner.invoke(app, ["analyze", "-c", str(tmp_path / "none.json")])

        assert result.exit_code == 1
        assert "Catalog file not found" in result.stdout

    def test_invalid_config(self, catalog_file, tmp_path):
        config_path = tmp_path / "bad.json"
        config_path.write_text(json.dumps({"sample_limit": 0}))

        result = runner.invoke(app, ["analyze", "users", "-c", catalog_file, "--config", str(config_path)])

        assert result.exit_code == 1
        assert "Invalid relationship configuration" in result.stdout

    def test_unknown_format(self, catalog_file):
        result = runner.invoke(app, ["analyze", "users", "-c", catalog_file, "-f", "xml"])

        assert result.exit_code == 1
        assert "Unknown format" in result.stdout


class TestCyclesCommand:
    """Test the cycles command."""

    def test_lists_cycles_once(self, catalog_file):
        result = runner.invoke(app, ["cycles", "-c", catalog_file])

        assert result.exit_code == 0, result.output
        assert result.stdout.count("a -> b -> c -> a") == 1
        assert "employees" in result.stdout

    def test_no_cycles(self, tmp_path):
        path = tmp_path / "flat.json"
        path.write_text(json.dumps({"name": "flat", "tables": [{"name": "users", "primary_key": ["id"]}]}))

        result = runner.invoke(app, ["cycles", "-c", str(path)])

        assert result.exit_code == 0
        assert "No foreign key cycles found" in result.stdout


class TestConfigCommand:
    def test_shows_settings(self):
        result = runner.invoke(app, ["config"])

        assert result.exit_code == 0
        assert "Sample limit" in result.stdout
