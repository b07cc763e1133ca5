"""Core types and constants for Chordlock."""

from .note import NoteState
from .constants import (
    PITCH_NAMES,
    NUM_PITCH_CLASSES,
    MIDI_MIN,
    MIDI_MAX,
    DEFAULT_VELOCITY,
    CONFIDENCE_SCALE,
)
from .pitch import (
    mask_from_pitch_classes,
    mask_from_midi,
    pitch_classes,
    popcount,
    rotate_mask,
    transpose_mask,
    find_missing_notes,
    find_extra_notes,
    match_score,
    note_name,
    midi_note_name,
)

__all__ = [
    "NoteState",
    "PITCH_NAMES",
    "NUM_PITCH_CLASSES",
    "MIDI_MIN",
    "MIDI_MAX",
    "DEFAULT_VELOCITY",
    "CONFIDENCE_SCALE",
    "mask_from_pitch_classes",
    "mask_from_midi",
    "pitch_classes",
    "popcount",
    "rotate_mask",
    "transpose_mask",
    "find_missing_notes",
    "find_extra_notes",
    "match_score",
    "note_name",
    "midi_note_name",
]
