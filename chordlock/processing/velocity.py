"""Velocity classification - Separate harmony from melody by velocity and register.

Each sounding note is assigned a role:
- Bass: below C3, always harmonic and boosted
- Melody: loud notes, excluded from the harmony when filtering is on
- Harmony: soft pad-like notes, boosted
- Mixed: everything in between, included at reduced weight

The result is a weighted 12-entry pitch-class vector plus harmonic and
melodic masks that the candidate engine consumes.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

import numpy as np

from ..core import NoteState, NUM_PITCH_CLASSES
from ..core.constants import BASS_REGISTER_CEILING, MIDI_MAX


class NoteRole(Enum):
    """Role a sounding note plays in the texture."""
    HARMONY = "harmony"
    MELODY = "melody"
    MIXED = "mixed"
    BASS = "bass"


MIXED_WEIGHT_FILTERED = 0.7
MELODY_WEIGHT_UNFILTERED = 0.3


@dataclass
class VelocityConfig:
    """Configuration for velocity classification.

    Attributes:
        velocity_sensitive: Weight notes by velocity and role (default: True)
        harmony_filter_enabled: Drop melody notes from the harmony (default: True)
        bass_weight_enabled: Apply register-based bass weighting (default: True)
        melody_threshold: Velocity at or above which a note is melody (default: 100)
        pad_threshold: Velocity at or below which a note is harmony (default: 70)
        bass_boost_factor: Weight multiplier for bass notes, >= 1 (default: 1.5)
        harmony_boost_factor: Weight multiplier for harmony notes, >= 1 (default: 1.2)

    Raises:
        ValueError: If melody_threshold <= pad_threshold or a boost factor is < 1.
    """

    velocity_sensitive: bool = True
    harmony_filter_enabled: bool = True
    bass_weight_enabled: bool = True
    melody_threshold: int = 100
    pad_threshold: int = 70
    bass_boost_factor: float = 1.5
    harmony_boost_factor: float = 1.2

    def __post_init__(self):
        if self.melody_threshold <= self.pad_threshold:
            raise ValueError(
                f"melody_threshold ({self.melody_threshold}) must be greater than "
                f"pad_threshold ({self.pad_threshold})"
            )
        if self.bass_boost_factor < 1.0:
            raise ValueError(f"bass_boost_factor must be >= 1, got {self.bass_boost_factor}")
        if self.harmony_boost_factor < 1.0:
            raise ValueError(
                f"harmony_boost_factor must be >= 1, got {self.harmony_boost_factor}"
            )


@dataclass
class VelocityWeights:
    """Weighted pitch-class view of the sounding notes."""

    harmonic_mask: int = 0
    melodic_mask: int = 0
    weights: np.ndarray = field(default_factory=lambda: np.zeros(NUM_PITCH_CLASSES))
    total_harmonic_weight: float = 0.0
    total_melodic_weight: float = 0.0

    def harmonic_ratio(self, mask: int) -> float:
        """Share of the normalized harmonic weight that falls on ``mask``."""
        total = float(self.weights.sum())
        if total <= 0.0:
            return 0.0
        in_chord = sum(
            self.weights[pc]
            for pc in range(NUM_PITCH_CLASSES)
            if mask & (1 << pc) and self.harmonic_mask & (1 << pc)
        )
        return float(in_chord / total)


@dataclass
class VelocityDistribution:
    """Summary of how the sounding notes split into roles."""

    harmonic_note_count: int = 0
    melodic_note_count: int = 0
    average_harmony_velocity: float = 0.0
    average_melody_velocity: float = 0.0
    lowest_note: int = -1
    highest_note: int = -1
    dynamic_range: int = 0


class VelocityClassifier:
    """Turn note/velocity state into weighted harmonic and melodic masks."""

    def __init__(self, config: Optional[VelocityConfig] = None):
        self.config = config if config is not None else VelocityConfig()

    def classify_note(self, velocity: int, midi_note: int) -> NoteRole:
        """Classify a single note by register first, then by velocity."""
        if midi_note < BASS_REGISTER_CEILING:
            return NoteRole.BASS
        if velocity >= self.config.melody_threshold:
            return NoteRole.MELODY
        if velocity <= self.config.pad_threshold:
            return NoteRole.HARMONY
        return NoteRole.MIXED

    def role_weight(self, role: NoteRole, velocity: int) -> float:
        """Harmonic weight contributed by a note (0 when excluded)."""
        weight = velocity / MIDI_MAX
        cfg = self.config
        if role == NoteRole.BASS:
            return weight * (cfg.bass_boost_factor if cfg.bass_weight_enabled else 1.0)
        if role == NoteRole.HARMONY:
            return weight * cfg.harmony_boost_factor
        if role == NoteRole.MIXED:
            return weight * (MIXED_WEIGHT_FILTERED if cfg.harmony_filter_enabled else 1.0)
        if cfg.harmony_filter_enabled:
            return 0.0
        return weight * MELODY_WEIGHT_UNFILTERED

    def process(self, notes: NoteState) -> VelocityWeights:
        """
        Build velocity weights from the current note state.

        Args:
            notes: Note-on flags and velocities

        Returns:
            VelocityWeights with weights normalized by total harmonic weight
        """
        result = VelocityWeights()

        if not self.config.velocity_sensitive:
            for note in notes.sounding:
                pc = note % NUM_PITCH_CLASSES
                result.harmonic_mask |= 1 << pc
                result.weights[pc] = 1.0
                result.total_harmonic_weight += 1.0
            return result

        for note in notes.sounding:
            pc = note % NUM_PITCH_CLASSES
            velocity = notes.velocities[note]
            role = self.classify_note(velocity, note)

            if role == NoteRole.MELODY:
                result.melodic_mask |= 1 << pc
                result.total_melodic_weight += velocity / MIDI_MAX
                if self.config.harmony_filter_enabled:
                    continue

            weight = self.role_weight(role, velocity)
            result.harmonic_mask |= 1 << pc
            result.weights[pc] += weight
            result.total_harmonic_weight += weight

        if result.total_harmonic_weight > 0.0:
            result.weights = result.weights / result.total_harmonic_weight

        return result

    def analyze_distribution(self, notes: NoteState) -> VelocityDistribution:
        """Count and average the sounding notes per role."""
        dist = VelocityDistribution()
        sounding = notes.sounding
        if not sounding:
            return dist

        harmony_velocities = []
        melody_velocities = []
        for note in sounding:
            velocity = notes.velocities[note]
            if self.classify_note(velocity, note) == NoteRole.MELODY:
                melody_velocities.append(velocity)
            else:
                harmony_velocities.append(velocity)

        all_velocities = [notes.velocities[n] for n in sounding]
        dist.harmonic_note_count = len(harmony_velocities)
        dist.melodic_note_count = len(melody_velocities)
        if harmony_velocities:
            dist.average_harmony_velocity = float(np.mean(harmony_velocities))
        if melody_velocities:
            dist.average_melody_velocity = float(np.mean(melody_velocities))
        dist.lowest_note = sounding[0]
        dist.highest_note = sounding[-1]
        dist.dynamic_range = max(all_velocities) - min(all_velocities)
        return dist
