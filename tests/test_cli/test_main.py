"""Tests for the narrative CLI."""

import pytest
from typer.testing import CliRunner

from narrative_engine.cli.main import app

runner = CliRunner()

VALID = """
[acts]
critique = "Critique the text above."

[narratives.topicA]
description = "First topic"
toc = ["write", "critique"]
[narratives.topicA.acts]
write = "Write about A."

[narratives.batch]
toc = ["run"]
[narratives.batch.acts.run]
narrative = "topicA"
"""

BROKEN = """
[narratives.one]
toc = ["missing"]
"""


@pytest.fixture
def valid_file(tmp_path):
    path = tmp_path / "valid.toml"
    path.write_text(VALID)
    return path


@pytest.fixture
def broken_file(tmp_path):
    path = tmp_path / "broken.toml"
    path.write_text(BROKEN)
    return path


class TestValidate:
    """Tests for the validate command."""

    def test_valid_file(self, valid_file):
        result = runner.invoke(app, ["validate", str(valid_file)])
        assert result.exit_code == 0
        assert "is valid" in result.output

    def test_invalid_file_exits_nonzero(self, broken_file):
        """Every error is reported and the exit code is 1."""
        result = runner.invoke(app, ["validate", str(broken_file)])
        assert result.exit_code == 1
        assert "error(s)" in result.output
        assert "missing" in result.output

    def test_missing_file(self, tmp_path):
        result = runner.invoke(app, ["validate", str(tmp_path / "nope.toml")])
        assert result.exit_code == 1


class TestShow:
    """Tests for the show command."""

    def test_show_multi(self, valid_file):
        result = runner.invoke(app, ["show", str(valid_file)])
        assert result.exit_code == 0
        assert "2 narrative(s)" in result.output
        assert "topicA" in result.output
        assert "batch" in result.output

    def test_show_one_narrative(self, valid_file):
        result = runner.invoke(app, ["show", str(valid_file), "--narrative", "batch"])
        assert result.exit_code == 0
        assert "topicA" in result.output

    def test_show_unknown_narrative(self, valid_file):
        result = runner.invoke(app, ["show", str(valid_file), "-n", "ghost"])
        assert result.exit_code == 1
        assert "ghost" in result.output

    def test_show_broken_file(self, broken_file):
        result = runner.invoke(app, ["show", str(broken_file)])
        assert result.exit_code == 1
