"""Note state - the 128 note-on flags and velocities a detector reads."""

from dataclasses import dataclass, field
from typing import List, Optional

from .constants import MIDI_MIN, MIDI_MAX, NUM_MIDI_NOTES, DEFAULT_VELOCITY
from .pitch import mask_from_pitch_classes, midi_note_name


def _valid_note(note: int) -> bool:
    return MIDI_MIN <= note <= MIDI_MAX


@dataclass
class NoteState:
    """Snapshot-able state of the sounding MIDI notes.

    Out-of-range note numbers and velocities are ignored rather than raised,
    so a stream of raw MIDI events can be fed in unchecked.
    """

    active: List[bool] = field(default_factory=lambda: [False] * NUM_MIDI_NOTES)
    velocities: List[int] = field(default_factory=lambda: [0] * NUM_MIDI_NOTES)

    def note_on(self, note: int, velocity: int = DEFAULT_VELOCITY) -> None:
        if not _valid_note(note) or not MIDI_MIN <= velocity <= MIDI_MAX:
            return
        self.active[note] = True
        self.velocities[note] = velocity

    def note_off(self, note: int) -> None:
        if not _valid_note(note):
            return
        self.active[note] = False
        self.velocities[note] = 0

    def set_velocity(self, note: int, velocity: int) -> None:
        if _valid_note(note) and MIDI_MIN <= velocity <= MIDI_MAX:
            self.velocities[note] = velocity

    def reset(self) -> None:
        self.active = [False] * NUM_MIDI_NOTES
        self.velocities = [0] * NUM_MIDI_NOTES

    def copy(self) -> "NoteState":
        return NoteState(active=list(self.active), velocities=list(self.velocities))

    @property
    def sounding(self) -> List[int]:
        """MIDI numbers of the sounding notes, lowest first."""
        return [n for n in range(NUM_MIDI_NOTES) if self.active[n]]

    @property
    def is_active(self) -> bool:
        return any(self.active)

    @property
    def mask(self) -> int:
        """Pitch-class mask of every sounding note."""
        return mask_from_pitch_classes(self.sounding)

    def lowest_note(self, within_mask: Optional[int] = None) -> int:
        """Lowest sounding MIDI note, optionally restricted to a pitch-class mask.

        Returns -1 when nothing qualifies.
        """
        for note in range(NUM_MIDI_NOTES):
            if not self.active[note]:
                continue
            if within_mask is None or within_mask & (1 << (note % 12)):
                return note
        return -1

    def highest_note(self) -> int:
        for note in range(MIDI_MAX, MIDI_MIN - 1, -1):
            if self.active[note]:
                return note
        return -1

    def note_names(self) -> List[str]:
        """Get note names of the sounding notes (e.g., 'C4', 'A#3')."""
        return [midi_note_name(n) for n in self.sounding]
