"""Tests for chord-name parsing, note building and roman numerals.

Tests for:
- Note and chord symbol parsing with aliases and slash basses
- Chord symbol to MIDI notes
- Roman numeral degree to chord symbol
- Chord symbol to roman numeral
"""

import pytest

from chordlock.inference import (
    analyze_degree,
    chord_name_to_notes,
    degree_to_chord_name,
    parse_chord_name,
    parse_note_name,
)


class TestParseNoteName:
    """Test note-name parsing."""

    @pytest.mark.parametrize("name,pc", [
        ("C", 0), ("c", 0), ("F#", 6), ("Bb", 10), ("E♭", 3), ("B#", 0), ("Cb", 11),
    ])
    def test_valid(self, name, pc):
        assert parse_note_name(name) == pc

    @pytest.mark.parametrize("name", ["H", "", "C##", "Cm"])
    def test_invalid(self, name):
        with pytest.raises(ValueError, match="Invalid note name"):
            parse_note_name(name)


class TestParseChordName:
    """Test chord symbol parsing."""

    def test_major(self):
        spec = parse_chord_name("C")
        assert (spec.root, spec.quality, spec.bass) == (0, "", -1)

    def test_aliases(self):
        assert parse_chord_name("F#m7b5").quality == "m7♭5"
        assert parse_chord_name("BbM7").quality == "maj7"
        assert parse_chord_name("Dmin").quality == "m"
        assert parse_chord_name("G+").quality == "aug"

    def test_slash_bass(self):
        spec = parse_chord_name("C/E")
        assert spec.bass == 4
        assert spec.symbol == "C/E"

    def test_six_nine_is_not_slash(self):
        spec = parse_chord_name("C6/9")
        assert spec.quality == "6/9"
        assert spec.bass == -1

    def test_symbol_is_canonical(self):
        assert parse_chord_name("Bbmaj7").symbol == "A#maj7"

    @pytest.mark.parametrize("name", ["Hm", "Cxyz", "", "C/H"])
    def test_invalid(self, name):
        with pytest.raises(ValueError):
            parse_chord_name(name)


class TestChordNameToNotes:
    """Test MIDI note building."""

    def test_major_triad(self):
        assert chord_name_to_notes("C") == [60, 64, 67]

    def test_octave(self):
        assert chord_name_to_notes("Am7", root_octave=3) == [57, 60, 64, 67]

    def test_slash_bass_below_root(self):
        assert chord_name_to_notes("C/E") == [52, 60, 64, 67]

    def test_tension_voiced_up(self):
        assert chord_name_to_notes("Cadd9") == [60, 64, 67, 74]

    def test_out_of_range_notes_dropped(self):
        assert chord_name_to_notes("G", root_octave=9) == [127]


class TestDegreeToChordName:
    """Test roman numeral to chord symbol."""

    @pytest.mark.parametrize("degree,expected", [
        ("I", "C"),
        ("ii", "Dm"),
        ("V7", "G7"),
        ("IVmaj7", "Fmaj7"),
        ("bVII", "A#"),
        ("viiø", "Bm7♭5"),
        ("vii°", "Bdim"),
        ("II", "D"),
    ])
    def test_c_major(self, degree, expected):
        assert degree_to_chord_name(degree, 0) == expected

    def test_minor_key(self):
        assert degree_to_chord_name("i", 9, is_minor=True) == "Am"
        assert degree_to_chord_name("V", 9, is_minor=True) == "E"
        assert degree_to_chord_name("ii7", 9, is_minor=True) == "Bm7♭5"

    def test_invalid(self):
        with pytest.raises(ValueError, match="Invalid degree"):
            degree_to_chord_name("X", 0)
        with pytest.raises(ValueError, match="tonic"):
            degree_to_chord_name("I", -1)


class TestAnalyzeDegree:
    """Test chord symbol to roman numeral."""

    @pytest.mark.parametrize("chord,expected", [
        ("C", "I"),
        ("Am", "vi"),
        ("G7", "V7"),
        ("D7", "V7/V"),
        ("E7", "V7/vi"),
        ("Bb", "♭VII"),
    ])
    def test_c_major(self, chord, expected):
        assert analyze_degree(chord, 0) == expected

    def test_minor_key(self):
        assert analyze_degree("C", 9, is_minor=True) == "III"
