"""Global constants for Chordlock."""

# Pitch names
PITCH_NAMES = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]

NUM_PITCH_CLASSES = 12
FULL_MASK = (1 << NUM_PITCH_CLASSES) - 1

# MIDI ranges
MIDI_MIN = 0
MIDI_MAX = 127
NUM_MIDI_NOTES = 128
DEFAULT_VELOCITY = 80

# Register boundaries
BASS_REGISTER_CEILING = 48  # C3

# Roots ordered by how often they occur as chord roots in common repertoire
ROOT_FREQUENCY_ORDER = [0, 7, 5, 2, 9, 4, 11, 1, 6, 10, 3, 8]

# Softmax output scale: normalized confidences sum to this value
CONFIDENCE_SCALE = 10.0
