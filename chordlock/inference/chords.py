"""Chord names - Parse chord symbols and convert between names, notes and degrees.

Implements the reverse direction of detection:
- Chord symbol parsing with common quality aliases and slash basses
- Chord symbol to MIDI notes in a chosen octave
- Roman numeral degree to chord symbol in a key
- Chord symbol to roman numeral in a key
"""

import re
from dataclasses import dataclass
from typing import Dict, List, Tuple

from ..core.constants import NUM_PITCH_CLASSES
from ..core.pitch import note_name, pitch_classes
from .candidates import QualityFlags
from .key import MAJOR_SCALE, FunctionalHarmony, KeyContext
from .table import CHORD_TABLE


NOTE_NUMBERS: Dict[str, int] = {
    "C": 0, "D": 2, "E": 4, "F": 5, "G": 7, "A": 9, "B": 11,
}
ACCIDENTALS: Dict[str, int] = {"#": 1, "♯": 1, "b": -1, "♭": -1, "": 0}

# Spellings accepted on input -> table quality
QUALITY_ALIASES: Dict[str, str] = {
    "maj": "", "major": "", "M": "",
    "min": "m", "minor": "m", "-": "m",
    "+": "aug", "augmented": "aug",
    "°": "dim", "diminished": "dim",
    "°7": "dim7", "o7": "dim7",
    "ø": "m7♭5", "ø7": "m7♭5", "m7b5": "m7♭5", "min7b5": "m7♭5",
    "M7": "maj7", "Maj7": "maj7", "major7": "maj7", "Δ": "maj7", "Δ7": "maj7",
    "min7": "m7", "-7": "m7", "dom7": "7",
    "mmaj7": "mMaj7", "minmaj7": "mMaj7", "mM7": "mMaj7",
    "+7": "7#5", "aug7": "7#5",
    "M9": "maj9", "min9": "m9",
    "sus": "sus4", "add2": "add9", "add4": "add11",
    "no3": "5", "omit3": "5",
    "69": "6/9",
}

# Voicings where tensions sit above the octave
VOICED_INTERVALS: Dict[str, Tuple[int, ...]] = {
    "add9": (0, 4, 7, 14),
    "madd9": (0, 3, 7, 14),
    "6/9": (0, 4, 7, 9, 14),
    "9": (0, 4, 7, 10, 14),
    "maj9": (0, 4, 7, 11, 14),
    "m9": (0, 3, 7, 10, 14),
    "7b9": (0, 4, 7, 10, 13),
    "7#9": (0, 4, 7, 10, 15),
    "11": (0, 4, 7, 10, 14, 17),
    "m11": (0, 3, 7, 10, 14, 17),
    "13": (0, 4, 7, 10, 14, 21),
    "maj13": (0, 4, 7, 11, 14, 21),
}

# Diatonic triad quality per degree
MAJOR_DEGREE_QUALITIES = ("", "m", "m", "", "", "m", "dim")
MINOR_DEGREE_QUALITIES = ("m", "dim", "", "m", "m", "", "")

ROMAN_NUMERALS = ("vii", "iii", "vi", "iv", "ii", "v", "i")
ROMAN_INDEX = {"i": 0, "ii": 1, "iii": 2, "iv": 3, "v": 4, "vi": 5, "vii": 6}

_NOTE_RE = re.compile(r"^([A-Ga-g])([#b♯♭]?)")
_DEGREE_RE = re.compile(
    r"^([#b♯♭]?)(" + "|".join(ROMAN_NUMERALS) + r")(.*)$",
    re.IGNORECASE,
)


@dataclass
class ChordSpec:
    """A parsed chord symbol."""
    root: int
    quality: str
    bass: int = -1

    @property
    def root_name(self) -> str:
        return note_name(self.root)

    @property
    def bass_name(self) -> str:
        return note_name(self.bass) if self.bass >= 0 else ""

    @property
    def symbol(self) -> str:
        """Canonical symbol (e.g., 'Cmaj7', 'G/B')."""
        symbol = f"{self.root_name}{self.quality}"
        if self.bass >= 0 and self.bass != self.root:
            symbol += f"/{self.bass_name}"
        return symbol


def parse_note_name(name: str) -> int:
    """
    Convert a note name to a pitch class.

    Args:
        name: Note name such as 'C', 'f#', 'Bb' or 'E♭'

    Returns:
        Pitch class 0-11

    Raises:
        ValueError: If the name is not a note
    """
    name = name.strip()
    match = _NOTE_RE.match(name)
    if not match or match.end() != len(name):
        raise ValueError(f"Invalid note name: '{name}'")
    letter, accidental = match.groups()
    return (NOTE_NUMBERS[letter.upper()] + ACCIDENTALS[accidental]) % NUM_PITCH_CLASSES


def _is_note_name(text: str) -> bool:
    match = _NOTE_RE.match(text)
    return bool(match) and match.end() == len(text)


def _canonical_quality(quality: str) -> str:
    quality = quality.strip().replace("♯", "#")
    for spelling in (quality, quality.replace("b5", "♭5"), quality.lower()):
        if spelling in QUALITY_ALIASES:
            return QUALITY_ALIASES[spelling]
        if CHORD_TABLE.by_quality(spelling) is not None:
            return spelling
    raise ValueError(f"Unknown chord quality: '{quality}'")


def parse_chord_name(name: str) -> ChordSpec:
    """
    Parse a chord symbol into root, quality and optional slash bass.

    Args:
        name: Chord symbol (e.g., 'Am7', 'F#m7b5', 'C/E', 'Bbmaj7', 'C6/9')

    Returns:
        ChordSpec with a canonical table quality

    Raises:
        ValueError: If the root, quality or bass cannot be parsed
    """
    name = name.strip()
    match = _NOTE_RE.match(name)
    if not match:
        raise ValueError(f"Invalid chord name: '{name}'")
    root = parse_note_name(match.group(0))
    rest = name[match.end():]

    bass = -1
    if "/" in rest:
        head, _, tail = rest.rpartition("/")
        # '6/9' is a quality, not a slash chord
        if _is_note_name(tail):
            bass = parse_note_name(tail)
            rest = head

    return ChordSpec(root=root, quality=_canonical_quality(rest), bass=bass)


def intervals_for_quality(quality: str) -> List[int]:
    """Semitone intervals above the root for a quality, tensions voiced up."""
    quality = _canonical_quality(quality)
    if quality in VOICED_INTERVALS:
        return list(VOICED_INTERVALS[quality])
    entry = CHORD_TABLE.by_quality(quality)
    return pitch_classes(entry.pattern)


def chord_name_to_notes(name: str, root_octave: int = 4) -> List[int]:
    """
    Build MIDI notes for a chord symbol in root position.

    A slash bass is placed below the root. ``root_octave`` follows the
    C4 = 60 convention.

    Raises:
        ValueError: If the name cannot be parsed
    """
    spec = parse_chord_name(name)
    base = (root_octave + 1) * 12 + spec.root
    notes = [base + i for i in intervals_for_quality(spec.quality)]
    if spec.bass >= 0 and spec.bass != spec.root:
        bass_note = base - ((spec.root - spec.bass) % NUM_PITCH_CLASSES)
        notes.insert(0, bass_note)
    return [n for n in notes if 0 <= n <= 127]


def degree_to_chord_name(degree: str, tonic: int, is_minor: bool = False) -> str:
    """
    Convert a roman numeral degree to a chord symbol in a key.

    Case selects the triad where it differs from the diatonic default
    (uppercase major, lowercase minor). Accidentals are relative to the
    major scale, so 'bVII' is the same root in major and minor.

    Args:
        degree: Roman numeral with optional accidental and suffix
            (e.g., 'V7', 'ii', 'bVII', 'viiø', 'IVmaj7')
        tonic: Key tonic pitch class
        is_minor: Minor key

    Returns:
        Chord symbol (e.g., 'G7')

    Raises:
        ValueError: If the degree or tonic is invalid
    """
    key = KeyContext(tonic=tonic, is_minor=is_minor)
    if not key.is_active:
        raise ValueError("A tonic 0-11 is required")
    match = _DEGREE_RE.match(degree.strip())
    if not match:
        raise ValueError(f"Invalid degree: '{degree}'")
    accidental, numeral, suffix = match.groups()
    index = ROMAN_INDEX[numeral.lower()]

    if accidental:
        root = (tonic + MAJOR_SCALE[index] + ACCIDENTALS[accidental]) % NUM_PITCH_CLASSES
        quality = "" if numeral.isupper() else "m"
    else:
        root = key.degree_root(index)
        defaults = MINOR_DEGREE_QUALITIES if is_minor else MAJOR_DEGREE_QUALITIES
        quality = defaults[index]
        if numeral.isupper() and quality != "":
            quality = ""
        elif numeral.islower() and quality == "":
            quality = "m"

    return note_name(root) + _degree_quality(quality, suffix)


def _degree_quality(triad: str, suffix: str) -> str:
    """Combine a diatonic triad quality with a numeral suffix."""
    if not suffix:
        return triad
    if suffix in ("°", "o", "dim"):
        return "dim"
    if suffix in ("°7", "o7", "dim7"):
        return "dim7"
    if suffix in ("ø", "ø7"):
        return "m7♭5"
    if suffix in ("+", "aug"):
        return "aug"
    if suffix in ("maj7", "M7", "Δ7", "maj9"):
        seventh = suffix.replace("M7", "maj7").replace("Δ7", "maj7")
        return ("m" + seventh.replace("maj", "Maj")) if triad == "m" else seventh
    if suffix in ("7", "9", "11", "13"):
        if triad == "dim":
            return "m7♭5" if suffix == "7" else "dim"
        return triad + suffix
    return _canonical_quality(triad + suffix)


def analyze_degree(chord_name: str, tonic: int, is_minor: bool = False) -> str:
    """
    Roman numeral of a chord symbol in a key.

    Dominant sevenths in a major key on I, II, III, VI and VII read as
    secondary dominants (e.g., 'D7' in C major -> 'V7/V').

    Raises:
        ValueError: If the chord name or tonic is invalid
    """
    key = KeyContext(tonic=tonic, is_minor=is_minor)
    if not key.is_active:
        raise ValueError("A tonic 0-11 is required")
    spec = parse_chord_name(chord_name)
    entry = CHORD_TABLE.by_quality(spec.quality)
    flags = entry.flags if entry is not None else QualityFlags.NONE
    return FunctionalHarmony(key).roman_numeral(spec.root, flags)
