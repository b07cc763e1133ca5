"""Tests for the candidate engine.

Tests for:
- Major triad recognition on every root
- Symmetric chord lane
- Softmax normalization
- Transposition invariance of every table quality
- Key-context ranking (C major tonic, A minor regression guard)
- Slash chords, inversions and ambiguous equivalences
"""

import pytest

from chordlock.core import mask_from_pitch_classes, note_name, pitch_classes, transpose_mask
from chordlock.inference import (
    CandidateEngine,
    Interpretation,
    KeyContext,
    softmax_confidences,
)
from chordlock.inference.detectors import AUGMENTED_MASKS, DIMINISHED7_MASKS
from chordlock.inference.candidates import make_candidate
from chordlock.inference.table import CHORD_TABLE_ENTRIES


C_MAJOR = mask_from_pitch_classes([0, 4, 7])
C_MAJOR_SEVENTH = mask_from_pitch_classes([0, 4, 7, 11])
C_SIX = mask_from_pitch_classes([0, 4, 7, 9])
C_MINOR_SEVENTH = mask_from_pitch_classes([0, 3, 7, 10])


@pytest.fixture
def engine():
    return CandidateEngine()


def names(candidates):
    return [c.name for c in candidates]


class TestMajorTriads:
    """Test that every major triad is recognized by name."""

    @pytest.mark.parametrize("root", range(12))
    def test_root_position(self, engine, root):
        candidates = engine.generate_candidates(transpose_mask(C_MAJOR, root), bass=root)

        assert candidates[0].name == note_name(root)
        assert candidates[0].root == root
        assert candidates[0].confidence > candidates[1].confidence

    def test_empty_mask(self, engine):
        assert engine.generate_candidates(0) == []

    def test_unknown_bass_is_ignored(self, engine):
        candidates = engine.generate_candidates(C_MAJOR, bass=2)
        assert candidates[0].name == "C"


class TestSymmetricLane:
    """Test the augmented/diminished-seventh short circuit."""

    @pytest.mark.parametrize("aug_mask", AUGMENTED_MASKS)
    def test_augmented_single_candidate(self, engine, aug_mask):
        for bass in pitch_classes(aug_mask):
            candidates = engine.generate_candidates(aug_mask, bass=bass)

            assert len(candidates) == 1
            assert candidates[0].root == bass
            assert candidates[0].interpretation == Interpretation.SYMMETRIC
            assert candidates[0].confidence == pytest.approx(10.0)

    def test_diminished_seventh_single_candidate(self, engine):
        candidates = engine.generate_candidates(DIMINISHED7_MASKS[0], bass=3)
        assert names(candidates) == ["D#dim7"]

    def test_augmented_without_bass(self, engine):
        candidates = engine.generate_candidates(AUGMENTED_MASKS[0])
        assert names(candidates) == ["Caug"]


class TestNormalization:
    """Test softmax confidences."""

    @pytest.mark.parametrize("pcs", [
        [0, 4, 7],
        [9, 0, 4, 7],
        [7, 11, 2, 5],
        [0, 2, 7],
        [11, 2, 5, 9],
        [0, 1, 3, 4, 8, 10],
    ])
    def test_confidences_sum_to_ten(self, engine, pcs):
        mask = mask_from_pitch_classes(pcs)
        candidates = engine.generate_candidates(mask, bass=pcs[0])
        assert sum(c.confidence for c in candidates) == pytest.approx(10.0, abs=1e-4)

    def test_softmax_preserves_order(self):
        candidates = [
            make_candidate(name="C", mask=C_MAJOR, confidence=3.0, root=0),
            make_candidate(name="E", mask=C_MAJOR, confidence=1.0, root=4),
        ]
        softmax_confidences(candidates)
        assert candidates[0].confidence > candidates[1].confidence
        assert sum(c.confidence for c in candidates) == pytest.approx(10.0)

    def test_softmax_empty(self):
        candidates = []
        softmax_confidences(candidates)
        assert candidates == []


class TestTransposition:
    """Test that rotating a chord rotates its best root."""

    @pytest.mark.parametrize("entry", CHORD_TABLE_ENTRIES, ids=lambda e: e.quality or "major")
    @pytest.mark.parametrize("k", range(1, 12))
    def test_round_trip(self, engine, entry, k):
        original = engine.generate_candidates(entry.pattern, bass=0)[0]
        shifted = engine.generate_candidates(entry.at_root(k), bass=k)[0]

        assert (shifted.root - k) % 12 == original.root
        assert shifted.quality == original.quality

    @pytest.mark.parametrize("root", range(12))
    def test_minor_seventh_in_root_position(self, engine, root):
        mask = transpose_mask(C_MINOR_SEVENTH, root)
        best = engine.generate_candidates(mask, bass=root)[0]
        assert best.name == f"{note_name(root)}m7"

    def test_c_rooted_reading_is_not_dropped(self, engine):
        candidates = engine.generate_candidates(C_MINOR_SEVENTH, bass=0)
        d_candidates = engine.generate_candidates(transpose_mask(C_MINOR_SEVENTH, 2), bass=2)

        assert candidates[0].name == "Cm7"
        assert candidates[0].confidence == pytest.approx(d_candidates[0].confidence)

    def test_ninth_chord(self, engine):
        ninth = mask_from_pitch_classes([0, 2, 4, 7, 10])
        assert engine.generate_candidates(ninth, bass=0)[0].name == "C9"

    def test_sixth_over_root_reads_as_inverted_minor_seventh(self, engine):
        names_c = names(engine.generate_candidates(C_SIX, bass=0)[:2])
        names_d = names(engine.generate_candidates(transpose_mask(C_SIX, 2), bass=2)[:2])

        assert names_c == ["Am7/C", "C6"]
        assert names_d == ["Bm7/D", "D6"]

    def test_sus2_over_root(self, engine):
        sus2 = mask_from_pitch_classes([0, 2, 7])
        candidates = engine.generate_candidates(sus2, bass=0)

        # the fourth above G in the bass takes the inversion lane
        assert names(candidates[:2]) == ["Gsus4/C", "Csus2"]

    def test_half_diminished_exact_reading(self, engine):
        half_diminished = mask_from_pitch_classes([11, 2, 5, 9])
        best = engine.generate_candidates(half_diminished, bass=11)[0]

        assert best.name == "Bm7♭5"
        assert best.interpretation == Interpretation.HALF_DIMINISHED


class TestKeyContextRanking:
    """Test functional ranking with a key."""

    def test_tonic_in_c_major(self, engine):
        candidates = engine.generate_candidates(C_MAJOR, bass=0, key_context=KeyContext(0))

        assert candidates[0].name == "C"
        others = [c for c in candidates[1:] if c.root != 0]
        assert all(candidates[0].confidence > c.confidence for c in others)

    def test_a_minor_beats_c_sixth_misread(self, engine):
        a_minor = mask_from_pitch_classes([9, 0, 4])
        candidates = engine.generate_candidates(
            a_minor, bass=9, key_context=KeyContext(9, is_minor=True)
        )

        assert candidates[0].name == "Am"
        c_rooted = [c for c in candidates if c.root == 0]
        assert all(candidates[0].confidence > c.confidence for c in c_rooted)

    def test_a_minor_in_c_major(self, engine):
        a_minor = mask_from_pitch_classes([9, 0, 4])
        candidates = engine.generate_candidates(a_minor, bass=9, key_context=KeyContext(0))
        assert candidates[0].name == "Am"

    def test_rootless_reading_needs_key(self, engine):
        upper = mask_from_pitch_classes([4, 7, 11])
        without_key = engine.generate_candidates(upper, bass=4)
        with_key = engine.generate_candidates(upper, bass=4, key_context=KeyContext(0))

        assert not any(c.interpretation == Interpretation.ROOTLESS for c in without_key)
        assert any(c.interpretation == Interpretation.ROOTLESS for c in with_key)


class TestSlashChords:
    """Test slash and inversion readings."""

    def test_first_inversion(self, engine):
        g_major = mask_from_pitch_classes([7, 11, 2])
        best = engine.generate_candidates(g_major, bass=11)[0]

        assert best.name == "G/B"
        assert best.is_slash
        assert best.inversion_degree == 1

    def test_slash_disabled_reads_root_chord(self, engine):
        g_major = mask_from_pitch_classes([7, 11, 2])
        candidates = engine.generate_candidates(g_major, bass=11, slash_chords=False)

        assert candidates[0].name == "G"
        assert not any(c.is_slash for c in candidates)

    def test_c_sixth_reads_as_a_minor_seventh_over_a(self, engine):
        best = engine.generate_candidates(C_SIX, bass=9)[0]
        assert best.name == "Am7"


class TestEquivalences:
    """Test ambiguous equivalences in detailed analysis."""

    def test_only_when_requested(self, engine):
        plain = engine.generate_candidates(C_SIX, bass=0)
        assert "C6 (=Am7)" not in names(plain)

    def test_c_bass(self, engine):
        candidates = engine.generate_candidates(C_SIX, bass=0, include_equivalences=True)
        assert "C6 (=Am7)" in names(candidates[:5])

    def test_a_bass(self, engine):
        candidates = engine.generate_candidates(C_SIX, bass=9, include_equivalences=True)
        top = names(candidates[:5])
        assert "Am7" in top or "Am7 (=C6)" in top
