"""Tests for the command-line interface."""

import json

import pytest
from typer.testing import CliRunner

from chordlock.cli import app


@pytest.fixture
def runner():
    return CliRunner()


class TestDetectCommand:
    """Test `chordlock detect`."""

    def test_major_triad(self, runner):
        result = runner.invoke(app, ["detect", "60", "64", "67"])
        assert result.exit_code == 0
        assert "Chord: C" in result.output

    def test_json_output(self, runner):
        result = runner.invoke(app, ["detect", "59", "62", "67", "--json", "-a", "2"])
        assert result.exit_code == 0

        data = json.loads(result.output)
        assert data["chord"] == "G/B"
        assert len(data["candidates"]) <= 2
        assert data["notes"] == [59, 62, 67]

    def test_key_and_minor(self, runner):
        result = runner.invoke(app, ["detect", "57", "60", "64", "--key", "Am", "--json"])
        data = json.loads(result.output)
        assert data["key"] == "A minor"
        assert data["chord"] == "Am"
        assert data["candidates"][0]["roman"] == "i"

    def test_no_slash(self, runner):
        result = runner.invoke(app, ["detect", "59", "62", "67", "--no-slash", "--json"])
        assert json.loads(result.output)["chord"] == "G"

    def test_out_of_range_note(self, runner):
        result = runner.invoke(app, ["detect", "60", "200"])
        assert result.exit_code == 1
        assert "0-127" in result.output

    def test_bad_key(self, runner):
        result = runner.invoke(app, ["detect", "60", "64", "67", "--key", "H"])
        assert result.exit_code == 1


class TestConversionCommands:
    """Test `notes`, `degree` and `roman`."""

    def test_notes(self, runner):
        result = runner.invoke(app, ["notes", "Cmaj7"])
        assert result.exit_code == 0
        assert "60 64 67 71" in result.output

    def test_notes_json(self, runner):
        result = runner.invoke(app, ["notes", "Am", "--octave", "3", "--json"])
        data = json.loads(result.output)
        assert data["chord"] == "Am"
        assert data["notes"] == [57, 60, 64]

    def test_notes_invalid(self, runner):
        result = runner.invoke(app, ["notes", "Xm"])
        assert result.exit_code == 1

    def test_degree(self, runner):
        result = runner.invoke(app, ["degree", "V7", "--key", "C"])
        assert result.exit_code == 0
        assert "G7" in result.output

    def test_degree_requires_key(self, runner):
        result = runner.invoke(app, ["degree", "V7"])
        assert result.exit_code == 1
        assert "--key is required" in result.output

    def test_roman(self, runner):
        result = runner.invoke(app, ["roman", "D7", "--key", "C"])
        assert result.exit_code == 0
        assert "V7/V" in result.output


class TestBatchCommand:
    """Test `chordlock batch`."""

    @pytest.fixture
    def chord_file(self, tmp_path):
        path = tmp_path / "chords.txt"
        path.write_text(
            "# progression\n"
            "60,64,67\n"
            "[57, 60, 64]\n"
            "\n"
            "55 59 62 65\n"
            "60, x\n"
        )
        return path

    def test_json_results(self, runner, chord_file):
        result = runner.invoke(app, ["batch", str(chord_file), "--json"])
        assert result.exit_code == 0

        data = json.loads(result.output)
        chords = [(r["line"], r.get("chord")) for r in data["results"]]
        assert chords == [(2, "C"), (3, "Am"), (5, "G7"), (6, None)]
        assert "error" in data["results"][-1]
        assert data["results"][2]["complexity"] == 2.0

        stats = data["statistics"]
        assert stats["total_detections"] == 3
        assert stats["successful_detections"] == 3

    def test_key_context(self, runner, chord_file):
        result = runner.invoke(app, ["batch", str(chord_file), "--key", "C", "--json"])
        data = json.loads(result.output)

        assert data["key"] == "C major"
        assert data["results"][2]["candidates"][0]["roman"] == "V7"

    def test_table_output(self, runner, chord_file):
        result = runner.invoke(app, ["batch", str(chord_file)])
        assert result.exit_code == 0
        assert "Batch Results" in result.output
        assert "3/3" in result.output

    def test_missing_file(self, runner, tmp_path):
        result = runner.invoke(app, ["batch", str(tmp_path / "missing.txt")])
        assert result.exit_code == 1
        assert "File not found" in result.output
