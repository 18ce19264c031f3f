"""Unit tests for the command-line interface."""

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from frontier_analytics.cli import main


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


class TestCommands:
    """Test each analysis command end to end."""

    def test_frontiers_to_stdout(self, runner, input_document_file: Path):
        result = runner.invoke(main, ["frontiers", str(input_document_file), "--quiet"])
        assert result.exit_code == 0, result.output
        payload = json.loads(result.stdout[result.stdout.index("{") :])
        assert payload["activityCount"] == 1
        assert payload["ftpWatts"] == 250
        assert "durationPower" in payload

    def test_frontiers_to_file(self, runner, input_document_file: Path, tmp_path: Path):
        output = tmp_path / "out" / "frontiers.json"
        result = runner.invoke(
            main, ["frontiers", str(input_document_file), "--output", str(output)]
        )
        assert result.exit_code == 0, result.output
        payload = json.loads(output.read_text(encoding="utf-8"))
        assert payload["activityCount"] == 1

    def test_durability_with_filters(
        self, runner, input_document_file: Path, tmp_path: Path
    ):
        output = tmp_path / "durability.json"
        result = runner.invoke(
            main,
            [
                "durability",
                str(input_document_file),
                "--min-duration",
                "0",
                "--discipline",
                "road",
                "--output",
                str(output),
            ],
        )
        assert result.exit_code == 0, result.output
        payload = json.loads(output.read_text(encoding="utf-8"))
        assert [r["activityId"] for r in payload["rides"]] == ["101"]
        assert payload["filters"]["discipline"] == "road"
        assert payload["filters"]["minDurationSec"] == 0

    def test_durable_tss(self, runner, input_document_file: Path, tmp_path: Path):
        output = tmp_path / "durable.json"
        result = runner.invoke(
            main,
            [
                "durable-tss",
                str(input_document_file),
                "--threshold-kj",
                "50",
                "--output",
                str(output),
            ],
        )
        assert result.exit_code == 0, result.output
        payload = json.loads(output.read_text(encoding="utf-8"))
        assert payload["thresholdKj"] == 50
        assert payload["filters"] == {"startDate": None, "endDate": None}
        assert payload["rides"][0]["postThresholdKj"] is not None

    def test_adaptation_with_config(
        self, runner, input_document_file: Path, sample_config_file: Path, tmp_path: Path
    ):
        output = tmp_path / "adaptation.json"
        result = runner.invoke(
            main,
            [
                "adaptation",
                str(input_document_file),
                "--config",
                str(sample_config_file),
                "--output",
                str(output),
            ],
        )
        assert result.exit_code == 0, result.output
        payload = json.loads(output.read_text(encoding="utf-8"))
        assert payload["totalActivities"] == 1
        assert [w["days"] for w in payload["windows"]] == [2, 3, 4]


class TestErrors:
    """Test error reporting."""

    def test_invalid_document_aborts(self, runner, tmp_path: Path):
        path = tmp_path / "invalid.json"
        path.write_text(json.dumps({"activities": [{"durationSec": 1}]}), encoding="utf-8")
        result = runner.invoke(main, ["frontiers", str(path)])
        assert result.exit_code != 0
        assert "Aborted" in result.output

    def test_missing_input(self, runner, tmp_path: Path):
        result = runner.invoke(main, ["frontiers", str(tmp_path / "absent.json")])
        assert result.exit_code != 0
