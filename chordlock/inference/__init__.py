"""Inference layer - Chord recognition from pitch-class masks.

This layer turns a (weighted) pitch-class mask into ranked chord readings:
- Chord table lookup with root rotation
- Root estimation from interval structure and bass
- Key context and functional harmony scoring
- Specialized family detectors (sixth, sus, symmetric, altered, extended)
- Key-context detectors (diatonic, rootless, polychord)
- Reverse lookup from chord names and roman numerals

Pipeline: Mask + Bass + Key → CandidateEngine → Ranked ChordCandidates
"""

from .candidates import (
    ChordCandidate,
    ChordExtensions,
    Interpretation,
    QualityFlags,
)
from .table import ChordTable, ChordTableEntry, CHORD_TABLE
from .root import RootEstimator, RootCandidate
from .key import KeyContext, FunctionalHarmony, HarmonicFunction, NO_KEY
from .detectors import AmbiguousSet, AMBIGUOUS_SETS
from .engine import CandidateEngine, softmax_confidences
from .chords import (
    ChordSpec,
    parse_note_name,
    parse_chord_name,
    intervals_for_quality,
    chord_name_to_notes,
    degree_to_chord_name,
    analyze_degree,
)

__all__ = [
    # Candidates
    "ChordCandidate",
    "ChordExtensions",
    "Interpretation",
    "QualityFlags",
    # Chord table
    "ChordTable",
    "ChordTableEntry",
    "CHORD_TABLE",
    # Root estimation
    "RootEstimator",
    "RootCandidate",
    # Key context
    "KeyContext",
    "FunctionalHarmony",
    "HarmonicFunction",
    "NO_KEY",
    # Detectors
    "AmbiguousSet",
    "AMBIGUOUS_SETS",
    # Engine
    "CandidateEngine",
    "softmax_confidences",
    # Reverse lookup
    "ChordSpec",
    "parse_note_name",
    "parse_chord_name",
    "intervals_for_quality",
    "chord_name_to_notes",
    "degree_to_chord_name",
    "analyze_degree",
]
