"""
Tests for the archivesearch command line.

Each test points --store at its own temp directory.
"""

import json

import pytest
from typer.testing import CliRunner

from archivesearch.cli import app

runner = CliRunner()


@pytest.fixture
def store(tmp_path):
    """A store directory seeded through the CLI."""
    path = str(tmp_path)
    for args in [
        ["add", "a1", "--title", "Book 1", "--tags", "artist:bob,color", "--file", "1.zip"],
        ["add", "a2", "--title", "Book 10", "--tags", "artist:alice", "--file", "2.zip", "--new"],
        ["add", "a3", "--title", "Book 2", "--tags", "date_added:1", "--file", "3.zip"],
        ["add", "a4", "--title", "No file", "--tags", "artist:bob"],
    ]:
        result = runner.invoke(app, [*args, "--store", path])
        assert result.exit_code == 0, result.output
    return path


class TestSearchCommand:

    def test_plain_output(self, store):
        result = runner.invoke(app, ["search", "book", "--store", store])
        assert result.exit_code == 0, result.output
        lines = result.output.strip().splitlines()
        assert [line.split()[0] for line in lines[:-1]] == ["a1", "a3", "a2"]
        assert "1-3 of 3 matches (4 archives)" in lines[-1]

    def test_json_output(self, store):
        result = runner.invoke(app, ["--json", "search", "artist:", "--sort", "artist", "--store", store])
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["total_candidates"] == 4
        assert data["total_matches"] == 2
        assert [r["id"] for r in data["page"]] == ["a2", "a1"]

    def test_flags(self, store):
        result = runner.invoke(app, ["--json", "search", "--new", "--store", store])
        assert [r["id"] for r in json.loads(result.stdout)["page"]] == ["a2"]
        result = runner.invoke(app, ["--json", "search", "--untagged", "--store", store])
        assert [r["id"] for r in json.loads(result.stdout)["page"]] == ["a3"]
        result = runner.invoke(app, ["--json", "search", "book", "--desc", "--start", "2", "--store", store])
        assert [r["id"] for r in json.loads(result.stdout)["page"]] == ["a1"]

    def test_no_results(self, store):
        result = runner.invoke(app, ["search", "nothing-like-this", "--store", store])
        assert result.exit_code == 0
        assert "No results (0 matches of 4 archives)" in result.output

    def test_negated_filter(self, store):
        result = runner.invoke(app, ["--json", "search", "--store", store, "--", "-color book"])
        assert result.exit_code == 0, result.output
        assert [r["id"] for r in json.loads(result.stdout)["page"]] == ["a3", "a2"]

    def test_search_written_to_ops_log(self, store, tmp_path):
        runner.invoke(app, ["search", "artist:bob", "--store", store])
        log_text = (tmp_path / "archivesearch-ops.log").read_text()
        assert "2 of 4 archives matched" in log_text


class TestMatchCommand:

    def test_match(self):
        result = runner.invoke(app, ["match", "c*t", "cart,dog"])
        assert result.exit_code == 0
        assert "match" in result.output

    def test_no_match_exits_1(self):
        result = runner.invoke(app, ["match", '"cat"$', "category,dog"])
        assert result.exit_code == 1
        assert "no match" in result.output


class TestCategoryCommands:

    def test_static_category_search(self, store):
        result = runner.invoke(app, ["category", "create", "faves", "--id", "a2", "--id", "a3", "--store", store])
        assert result.exit_code == 0, result.output
        assert "2 archives" in result.output
        result = runner.invoke(app, ["--json", "search", "-c", "faves", "--store", store])
        data = json.loads(result.stdout)
        assert data["total_candidates"] == 2
        assert [r["id"] for r in data["page"]] == ["a3", "a2"]

    def test_saved_search_and_list(self, store):
        runner.invoke(app, ["category", "create", "bobs", "--search", "artist:bob", "--store", store])
        result = runner.invoke(app, ["--json", "search", "-c", "bobs", "--store", store])
        assert [r["id"] for r in json.loads(result.stdout)["page"]] == ["a1"]
        result = runner.invoke(app, ["--json", "category", "list", "--store", store])
        listed = json.loads(result.stdout)
        assert listed[0]["name"] == "bobs"
        assert listed[0]["last_used"] is not None

    def test_search_and_ids_conflict(self, store):
        result = runner.invoke(
            app, ["category", "create", "x", "--search", "a", "--id", "a1", "--store", store],
        )
        assert result.exit_code == 1

    def test_delete(self, store):
        runner.invoke(app, ["category", "create", "tmp", "--store", store])
        assert runner.invoke(app, ["category", "delete", "tmp", "--store", store]).exit_code == 0
        assert runner.invoke(app, ["category", "delete", "tmp", "--store", store]).exit_code == 1


class TestCacheCommand:

    def test_clear(self, store):
        runner.invoke(app, ["search", "book", "--store", store])
        result = runner.invoke(app, ["cache", "clear", "--store", store])
        assert result.exit_code == 0
        assert "cleared" in result.output
