"""Pitch-class mask helpers.

A mask is a 12-bit integer: bit i is set when pitch class i (0=C ... 11=B)
is sounding. All helpers are pure functions over plain ints.
"""

from typing import Iterable, List

from .constants import PITCH_NAMES, NUM_PITCH_CLASSES, FULL_MASK


def mask_from_pitch_classes(pitch_classes: Iterable[int]) -> int:
    """Build a mask from pitch classes (any integer, reduced mod 12)."""
    mask = 0
    for pc in pitch_classes:
        mask |= 1 << (pc % NUM_PITCH_CLASSES)
    return mask


def mask_from_midi(notes: Iterable[int]) -> int:
    """Build a mask from MIDI note numbers."""
    return mask_from_pitch_classes(notes)


def pitch_classes(mask: int) -> List[int]:
    """Sorted pitch classes present in a mask."""
    return [pc for pc in range(NUM_PITCH_CLASSES) if mask & (1 << pc)]


def popcount(mask: int) -> int:
    """Number of pitch classes in a mask."""
    return bin(mask & FULL_MASK).count("1")


def has_pitch(mask: int, pc: int) -> bool:
    return bool(mask & (1 << (pc % NUM_PITCH_CLASSES)))


def rotate_mask(mask: int, root: int) -> int:
    """Re-express a mask relative to a root: bit b moves to (b - root) mod 12."""
    rotated = 0
    for pc in pitch_classes(mask):
        rotated |= 1 << ((pc - root) % NUM_PITCH_CLASSES)
    return rotated


def transpose_mask(mask: int, semitones: int) -> int:
    """Shift every pitch class up by ``semitones``."""
    return rotate_mask(mask, -semitones)


def is_subset(inner: int, outer: int) -> bool:
    return (inner & outer) == inner


def find_missing_notes(input_mask: int, expected_mask: int) -> List[int]:
    """Pitch classes expected by a chord but not present in the input."""
    return pitch_classes(expected_mask & ~input_mask & FULL_MASK)


def find_extra_notes(input_mask: int, expected_mask: int) -> List[int]:
    """Pitch classes present in the input but not part of the chord."""
    return pitch_classes(input_mask & ~expected_mask & FULL_MASK)


def match_score(input_mask: int, chord_mask: int) -> float:
    """Fraction of the input notes that belong to the chord (0-1)."""
    input_notes = popcount(input_mask)
    if input_notes == 0:
        return 0.0
    return popcount(input_mask & chord_mask) / input_notes


def interval(from_pc: int, to_pc: int) -> int:
    """Ascending interval in semitones between two pitch classes."""
    return (to_pc - from_pc) % NUM_PITCH_CLASSES


def note_name(pc: int) -> str:
    """Pitch class name (e.g. 'C', 'F#')."""
    return PITCH_NAMES[pc % NUM_PITCH_CLASSES]


def midi_note_name(note: int) -> str:
    """MIDI note name with octave (e.g. 'C4', 'A#3')."""
    octave = (note // 12) - 1
    return f"{note_name(note)}{octave}"


def mask_to_names(mask: int) -> List[str]:
    return [note_name(pc) for pc in pitch_classes(mask)]
