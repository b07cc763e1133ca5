"""Tests for the ChordDetector facade and result formatting.

Tests for:
- Detection from note events with default velocity
- Single notes, empty state and out-of-range input
- Alternatives truncation and normalization
- Key context and configuration setters
- Independent copies
- Text and JSON formatting
- Detection statistics and chord complexity
"""

import json

import pytest

from chordlock import ChordDetector, DetectionStatistics, DetectorConfig
from chordlock.core import note_name
from chordlock.inference import Interpretation, KeyContext
from chordlock.output import (
    candidate_to_dict,
    format_candidates,
    result_to_dict,
    result_to_json,
    statistics_to_dict,
)


@pytest.fixture
def detector():
    return ChordDetector()


class TestDetection:
    """Test detection through note events."""

    @pytest.mark.parametrize("root", range(12))
    def test_major_triads(self, detector, root):
        detector.set_chord_from_midi([60 + root, 64 + root, 67 + root])
        alternatives = detector.detect_alternatives(3)

        assert detector.detect_best().name == note_name(root)
        assert alternatives[0].confidence > alternatives[1].confidence

    def test_note_events(self, detector):
        detector.note_on(57)
        detector.note_on(60)
        detector.note_on(64)
        assert detector.detect_best().name == "Am"

        detector.note_off(57)
        detector.note_on(55)
        assert detector.detect_best().name == "C/G"

    def test_current_mask(self, detector):
        detector.set_chord_from_midi([60, 64, 67, 72])
        assert detector.current_mask() == 0b10010001
        assert detector.is_chord_active()

    def test_nothing_sounding(self, detector):
        assert detector.detect_best() is None
        assert detector.detect_alternatives() == []

    def test_single_note(self, detector):
        detector.note_on(60)
        best = detector.detect_best()

        assert best.name == "C4"
        assert best.confidence == pytest.approx(10.0)
        assert best.interpretation == Interpretation.SINGLE_NOTE

    def test_out_of_range_notes_ignored(self, detector):
        detector.note_on(128)
        detector.note_on(60, velocity=200)
        assert not detector.is_chord_active()

    def test_loud_melody_does_not_change_chord(self, detector):
        for note in (48, 64, 67):
            detector.note_on(note, 60)
        detector.note_on(86, 120)
        assert detector.detect_best().name == "C"

    def test_reset(self, detector):
        detector.set_chord_from_midi([60, 64, 67])
        detector.reset()
        assert detector.detect_best() is None


class TestAlternatives:
    """Test truncated, renormalized result lists."""

    @pytest.mark.parametrize("notes", [
        [60, 64, 67],
        [57, 60, 64, 67],
        [59, 62, 67],
        [55, 59, 62, 65],
    ])
    def test_sum_to_ten(self, detector, notes):
        detector.set_chord_from_midi(notes)
        alternatives = detector.detect_alternatives(3)

        assert 0 < len(alternatives) <= 3
        assert sum(c.confidence for c in alternatives) == pytest.approx(10.0, abs=1e-4)

    def test_detailed_defaults_to_config(self):
        detector = ChordDetector(DetectorConfig(max_alternatives=2))
        detector.set_chord_from_midi([60, 64, 67, 69])
        assert len(detector.detect_detailed()) == 2

    def test_detailed_includes_equivalence(self, detector):
        detector.set_chord_from_midi([48, 64, 67, 69])
        names = [c.name for c in detector.detect_detailed(5)]
        assert "C6 (=Am7)" in names

    def test_threshold_filters(self):
        detector = ChordDetector(DetectorConfig(confidence_threshold=1.0))
        detector.set_chord_from_midi([60, 64, 67])
        candidates = detector.detect_alternatives(5)
        assert [c.name for c in candidates] == ["C"]


class TestConfiguration:
    """Test configuration and key setters."""

    def test_invalid_config(self):
        with pytest.raises(ValueError, match="max_alternatives"):
            DetectorConfig(max_alternatives=0)
        with pytest.raises(ValueError, match="confidence_threshold"):
            DetectorConfig(confidence_threshold=11.0)

    def test_velocity_flag_propagates(self):
        config = DetectorConfig(velocity_sensitive=False)
        assert not config.velocity.velocity_sensitive

    def test_key_context(self, detector):
        detector.set_key_context(9, is_minor=True)
        assert detector.key_context == KeyContext(9, is_minor=True)

        detector.set_chord_from_midi([57, 60, 64])
        assert detector.detect_best().name == "Am"

        detector.clear_key_context()
        assert not detector.key_context.is_active

    def test_invalid_tonic(self, detector):
        with pytest.raises(ValueError, match="Tonic"):
            detector.set_key_context(12)

    def test_slash_detection_toggle(self, detector):
        detector.set_chord_from_midi([59, 62, 67])
        assert detector.detect_best().name == "G/B"

        detector.set_slash_chord_detection(False)
        assert detector.detect_best().name == "G"

    def test_velocity_insensitive(self, detector):
        detector.set_velocity_sensitivity(False)
        for note in (60, 64, 67):
            detector.note_on(note, 60)
        detector.note_on(86, 120)
        # the loud D now counts as a chord tone
        assert detector.detect_best().name != "C"


class TestCopy:
    """Test detector copies."""

    def test_copy_is_independent(self, detector):
        detector.set_chord_from_midi([60, 64, 67])
        detector.set_key_context(0)
        clone = detector.copy()

        clone.note_on(70)
        clone.clear_key_context()
        clone.set_slash_chord_detection(False)

        assert detector.current_mask() == 0b10010001
        assert detector.key_context.tonic == 0
        assert detector.config.slash_chord_detection
        assert clone.detect_best().name != detector.detect_best().name


class TestFormatting:
    """Test text and JSON output."""

    @pytest.fixture
    def candidates(self, detector):
        detector.set_chord_from_midi([59, 62, 67])
        return detector.detect_detailed(3)

    def test_format_candidates(self, candidates):
        text = format_candidates(candidates)
        assert text.splitlines()[0].startswith("1. G/B (")
        assert len(text.splitlines()) == len(candidates)

    def test_format_empty(self):
        assert format_candidates([]) == "No chord detected"

    def test_detailed_dict(self, candidates):
        data = candidate_to_dict(candidates[0], detailed=True)
        assert data["name"] == "G/B"
        assert data["root"] == "G"
        assert data["bass"] == "B"
        assert data["is_inversion"]
        assert data["inversion_degree"] == 1

    def test_roman_with_key(self, candidates):
        data = candidate_to_dict(candidates[0], key=KeyContext(0))
        assert data["roman"] == "V"

    def test_result_json(self, candidates):
        data = json.loads(result_to_json(candidates, notes=[59, 62, 67], key=KeyContext(0)))
        assert data["chord"] == "G/B"
        assert data["key"] == "C major"
        assert data["notes"] == [59, 62, 67]
        assert len(data["candidates"]) == len(candidates)

    def test_empty_result(self):
        assert result_to_dict([])["chord"] is None


class TestStatistics:
    """Test detection statistics."""

    def test_counts_every_call(self, detector):
        detector.detect_best()
        detector.set_chord_from_midi([60, 64, 67])
        detector.detect_alternatives(3)

        stats = detector.statistics
        assert stats.total_detections == 2
        assert stats.successful_detections == 1
        assert stats.success_rate == pytest.approx(0.5)
        assert stats.average_detection_ms >= 0.0
        assert stats.average_confidence > 0.0

    def test_moving_averages(self):
        stats = DetectionStatistics()
        stats.update(elapsed_ms=10.0, confidence=8.0)
        stats.update(elapsed_ms=0.0, confidence=None)

        assert stats.average_detection_ms == pytest.approx(0.9)
        assert stats.average_confidence == pytest.approx(0.72)
        assert stats.successful_detections == 1

    def test_empty_statistics(self):
        assert DetectionStatistics().success_rate == 0.0

    def test_reset_and_copy_start_fresh(self, detector):
        detector.set_chord_from_midi([60, 64, 67])
        detector.detect_best()

        assert detector.copy().statistics.total_detections == 0
        detector.reset_statistics()
        assert detector.statistics.total_detections == 0

    def test_statistics_dict(self, detector):
        detector.set_chord_from_midi([60, 64, 67])
        detector.detect_best()

        data = statistics_to_dict(detector.statistics)
        assert data["total_detections"] == 1
        assert data["success_rate"] == 1.0


class TestComplexity:
    """Test chord complexity from the sounding pitch classes."""

    @pytest.mark.parametrize("notes,expected", [
        ([], 0.0),
        ([60], 1.0),
        ([60, 64, 67, 72], 1.0),
        ([60, 64, 67, 70], 2.0),
        ([60, 62, 64, 67, 70], 3.0),
        ([60, 62, 64, 65, 67, 70], 4.0),
        ([60, 61, 62, 63, 64, 65, 66], 5.0),
    ])
    def test_by_pitch_class_count(self, detector, notes, expected):
        detector.set_chord_from_midi(notes)
        assert detector.chord_complexity() == expected
