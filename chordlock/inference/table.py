"""Chord table - Immutable root-normalized interval patterns.

Every entry stores its pattern with the root at bit 0. Chords on other
roots are found by rotating the input mask to the hypothesized root and
looking the result up (see ``ChordTable.lookup_rotated``).
"""

from dataclasses import dataclass
from typing import Dict, Iterator, Optional, Tuple

from ..core.pitch import mask_from_pitch_classes, rotate_mask, transpose_mask
from ..core.constants import NUM_PITCH_CLASSES
from .candidates import QualityFlags as Q


@dataclass(frozen=True)
class ChordTableEntry:
    """A chord quality: root-normalized pattern, suffix and base confidence."""

    pattern: int
    quality: str
    confidence: float
    flags: Q = Q.NONE

    @property
    def size(self) -> int:
        return bin(self.pattern).count("1")

    def at_root(self, root: int) -> int:
        """Absolute mask of this quality built on ``root``."""
        return transpose_mask(self.pattern, root)


def _entry(intervals, quality, confidence, flags=Q.NONE) -> ChordTableEntry:
    return ChordTableEntry(mask_from_pitch_classes(intervals), quality, confidence, flags)


_DOM7 = Q.SEVENTH | Q.DOMINANT
_MIN7 = Q.SEVENTH | Q.MINOR_SEVENTH
_MAJ7 = Q.SEVENTH | Q.MAJOR_SEVENTH

# Chord qualities (intervals from root in semitones)
CHORD_TABLE_ENTRIES: Tuple[ChordTableEntry, ...] = (
    # Dyads
    _entry([0, 7], "5", 0.6),
    # Triads
    _entry([0, 4, 7], "", 1.0),
    _entry([0, 3, 7], "m", 1.0),
    _entry([0, 3, 6], "dim", 0.9, Q.DIMINISHED),
    _entry([0, 4, 8], "aug", 0.9, Q.AUGMENTED),
    _entry([0, 5, 7], "sus4", 0.85, Q.SUSPENDED),
    _entry([0, 2, 7], "sus2", 0.85, Q.SUSPENDED),
    # Sixths and add chords
    _entry([0, 4, 7, 9], "6", 0.9, Q.SIXTH),
    _entry([0, 3, 7, 9], "m6", 0.85, Q.SIXTH),
    _entry([0, 2, 4, 7], "add9", 0.85, Q.EXTENDED),
    _entry([0, 2, 3, 7], "madd9", 0.8, Q.EXTENDED),
    _entry([0, 4, 5, 7], "add11", 0.75, Q.EXTENDED),
    _entry([0, 2, 4, 7, 9], "6/9", 0.85, Q.SIXTH | Q.EXTENDED),
    # Sevenths
    _entry([0, 4, 7, 10], "7", 0.95, _DOM7),
    _entry([0, 4, 7, 11], "maj7", 0.95, _MAJ7),
    _entry([0, 3, 7, 10], "m7", 0.95, _MIN7),
    _entry([0, 3, 7, 11], "mMaj7", 0.85, Q.SEVENTH | Q.MAJOR_SEVENTH),
    _entry([0, 3, 6, 10], "m7♭5", 0.9, _MIN7 | Q.DIMINISHED),
    _entry([0, 3, 6, 9], "dim7", 0.9, Q.SEVENTH | Q.DIMINISHED),
    _entry([0, 5, 7, 10], "7sus4", 0.85, _DOM7 | Q.SUSPENDED),
    _entry([0, 2, 7, 10], "7sus2", 0.8, _DOM7 | Q.SUSPENDED),
    _entry([0, 4, 6, 10], "7b5", 0.8, _DOM7 | Q.ALTERED),
    _entry([0, 4, 8, 10], "7#5", 0.85, _DOM7 | Q.AUGMENTED | Q.ALTERED),
    _entry([0, 4, 8, 11], "maj7#5", 0.8, _MAJ7 | Q.AUGMENTED),
    # Extended
    _entry([0, 2, 4, 7, 10], "9", 0.9, _DOM7 | Q.EXTENDED),
    _entry([0, 2, 4, 7, 11], "maj9", 0.9, _MAJ7 | Q.EXTENDED),
    _entry([0, 2, 3, 7, 10], "m9", 0.9, _MIN7 | Q.EXTENDED),
    _entry([0, 1, 4, 7, 10], "7b9", 0.85, _DOM7 | Q.ALTERED),
    _entry([0, 3, 4, 7, 10], "7#9", 0.85, _DOM7 | Q.ALTERED),
    _entry([0, 2, 4, 5, 7, 10], "11", 0.85, _DOM7 | Q.EXTENDED),
    _entry([0, 2, 3, 5, 7, 10], "m11", 0.85, _MIN7 | Q.EXTENDED),
    _entry([0, 2, 4, 7, 9, 10], "13", 0.85, _DOM7 | Q.EXTENDED),
    _entry([0, 2, 4, 7, 9, 11], "maj13", 0.8, _MAJ7 | Q.EXTENDED),
)


class ChordTable:
    """O(1) lookup from a root-normalized 12-bit pattern to a chord quality."""

    def __init__(self, entries: Tuple[ChordTableEntry, ...] = CHORD_TABLE_ENTRIES):
        self._entries = tuple(entries)
        self._by_pattern: Dict[int, ChordTableEntry] = {}
        self._by_quality: Dict[str, ChordTableEntry] = {}
        for entry in self._entries:
            if not entry.pattern & 1:
                raise ValueError(f"Pattern for '{entry.quality}' must contain its root")
            # First definition of a pattern wins
            self._by_pattern.setdefault(entry.pattern, entry)
            self._by_quality.setdefault(entry.quality, entry)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[ChordTableEntry]:
        return iter(self._entries)

    def lookup(self, pattern: int) -> Optional[ChordTableEntry]:
        """Exact lookup of a root-normalized pattern."""
        return self._by_pattern.get(pattern)

    def lookup_rotated(self, mask: int, root: int) -> Optional[ChordTableEntry]:
        """Look up ``mask`` read with ``root`` as its root."""
        if not mask & (1 << root):
            return None
        return self.lookup(rotate_mask(mask, root))

    def by_quality(self, quality: str) -> Optional[ChordTableEntry]:
        return self._by_quality.get(quality)

    def transposed_entries(self) -> Iterator[Tuple[int, ChordTableEntry, int]]:
        """Yield (root, entry, absolute_mask) for every entry on every root."""
        for root in range(NUM_PITCH_CLASSES):
            for entry in self._entries:
                yield root, entry, entry.at_root(root)


# Shared read-only instance
CHORD_TABLE = ChordTable()
