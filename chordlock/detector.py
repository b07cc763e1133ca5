"""Chord detector - Note-state facade over the candidate engine.

Tracks note-on/off events and velocities, holds the key context and
configuration, and runs detection on the current snapshot.
"""

import logging
import time
from dataclasses import dataclass, field, replace
from typing import Iterable, List, Optional

from .core import NoteState, DEFAULT_VELOCITY, popcount, midi_note_name
from .core.constants import NUM_PITCH_CLASSES, CONFIDENCE_SCALE
from .processing import VelocityClassifier, VelocityConfig
from .inference import CandidateEngine, ChordCandidate, Interpretation, KeyContext, NO_KEY
from .inference.candidates import make_candidate
from .inference.engine import rescale_confidences

logger = logging.getLogger(__name__)

STATISTICS_SMOOTHING = 0.1

# Distinct pitch classes -> complexity, triads and smaller score 1.0
COMPLEXITY_BY_SIZE = {4: 2.0, 5: 3.0, 6: 4.0}
MAX_COMPLEXITY = 5.0


@dataclass
class DetectorConfig:
    """Configuration for a ChordDetector.

    Attributes:
        velocity_sensitive: Weight notes by velocity and role (default: True)
        slash_chord_detection: Allow readings whose bass is not the root (default: True)
        max_alternatives: Default number of alternatives returned (default: 5)
        confidence_threshold: Drop normalized candidates below this (default: 0.0)
        velocity: Velocity classifier settings
    """

    velocity_sensitive: bool = True
    slash_chord_detection: bool = True
    max_alternatives: int = 5
    confidence_threshold: float = 0.0
    velocity: VelocityConfig = field(default_factory=VelocityConfig)

    def __post_init__(self):
        if self.max_alternatives < 1:
            raise ValueError(f"max_alternatives must be >= 1, got {self.max_alternatives}")
        if not 0.0 <= self.confidence_threshold <= CONFIDENCE_SCALE:
            raise ValueError(
                f"confidence_threshold must be in [0, {CONFIDENCE_SCALE}], "
                f"got {self.confidence_threshold}"
            )
        if self.velocity.velocity_sensitive != self.velocity_sensitive:
            self.velocity = replace(self.velocity, velocity_sensitive=self.velocity_sensitive)


@dataclass
class DetectionStatistics:
    """Running statistics over detection calls.

    Averages are exponential moving averages with weight ``smoothing`` on
    the newest call. Calls that find no chord count as a confidence of 0.
    """

    total_detections: int = 0
    successful_detections: int = 0
    average_detection_ms: float = 0.0
    average_confidence: float = 0.0
    smoothing: float = STATISTICS_SMOOTHING

    @property
    def success_rate(self) -> float:
        """Fraction of calls that produced a chord."""
        if self.total_detections == 0:
            return 0.0
        return self.successful_detections / self.total_detections

    def update(self, elapsed_ms: float, confidence: Optional[float]) -> None:
        """Fold one detection call into the counters and averages."""
        self.total_detections += 1
        if confidence is not None:
            self.successful_detections += 1
        alpha = self.smoothing
        self.average_detection_ms = self.average_detection_ms * (1.0 - alpha) + elapsed_ms * alpha
        self.average_confidence = (
            self.average_confidence * (1.0 - alpha) + (confidence or 0.0) * alpha
        )


@dataclass
class EngineState:
    """Everything a detection call reads: notes, key and configuration."""

    notes: NoteState = field(default_factory=NoteState)
    key: KeyContext = NO_KEY
    config: DetectorConfig = field(default_factory=DetectorConfig)

    def copy(self) -> "EngineState":
        return EngineState(
            notes=self.notes.copy(),
            key=self.key,
            config=replace(self.config),
        )


class ChordDetector:
    """Real-time chord detector fed by MIDI note events.

    One detector owns one note stream. It is not safe to mutate from
    several threads; use ``copy()`` to fork an independent detector.

    Example:
        >>> detector = ChordDetector()
        >>> detector.set_chord_from_midi([60, 64, 67])
        >>> detector.detect_best().name
        'C'
    """

    def __init__(
        self,
        config: Optional[DetectorConfig] = None,
        engine: Optional[CandidateEngine] = None,
    ):
        self.state = EngineState(config=config or DetectorConfig())
        self.engine = engine or CandidateEngine()
        self.classifier = VelocityClassifier(self.state.config.velocity)
        self.statistics = DetectionStatistics()

    @property
    def config(self) -> DetectorConfig:
        return self.state.config

    @property
    def key_context(self) -> KeyContext:
        return self.state.key

    # Note input

    def note_on(self, note: int, velocity: int = DEFAULT_VELOCITY) -> None:
        self.state.notes.note_on(note, velocity)

    def note_off(self, note: int) -> None:
        self.state.notes.note_off(note)

    def set_velocity(self, note: int, velocity: int) -> None:
        self.state.notes.set_velocity(note, velocity)

    def set_chord_from_midi(self, notes: Iterable[int], velocity: int = DEFAULT_VELOCITY) -> None:
        """Replace the sounding notes with ``notes``."""
        self.state.notes.reset()
        for note in notes:
            self.state.notes.note_on(note, velocity)

    def reset(self) -> None:
        self.state.notes.reset()

    # Configuration

    def set_key_context(self, tonic: int, is_minor: bool = False) -> None:
        """
        Set the key used for functional ranking.

        Raises:
            ValueError: If tonic is not a pitch class 0-11
        """
        if not 0 <= tonic < NUM_PITCH_CLASSES:
            raise ValueError(f"Tonic must be 0-11, got {tonic}")
        self.state.key = KeyContext(tonic=tonic, is_minor=is_minor)

    def clear_key_context(self) -> None:
        self.state.key = NO_KEY

    def set_velocity_sensitivity(self, enabled: bool) -> None:
        self.state.config.velocity_sensitive = enabled
        self.state.config.velocity = replace(self.state.config.velocity, velocity_sensitive=enabled)
        self.classifier = VelocityClassifier(self.state.config.velocity)

    def set_slash_chord_detection(self, enabled: bool) -> None:
        self.state.config.slash_chord_detection = enabled

    def copy(self) -> "ChordDetector":
        """Independent detector with the same notes, key and configuration.

        The copy starts with fresh statistics.
        """
        clone = ChordDetector(engine=self.engine)
        clone.state = self.state.copy()
        clone.classifier = VelocityClassifier(clone.state.config.velocity)
        return clone

    # Detection

    def current_mask(self) -> int:
        """Pitch-class mask of every sounding note."""
        return self.state.notes.mask

    def is_chord_active(self) -> bool:
        return self.state.notes.is_active

    def chord_complexity(self) -> float:
        """
        Rough complexity of the sounding notes by distinct pitch classes.

        Returns:
            1.0 for triads and smaller, rising by one per added pitch class
            up to 5.0; 0.0 when nothing sounds
        """
        size = popcount(self.current_mask())
        if size == 0:
            return 0.0
        if size <= 3:
            return 1.0
        return COMPLEXITY_BY_SIZE.get(size, MAX_COMPLEXITY)

    def reset_statistics(self) -> None:
        self.statistics = DetectionStatistics()

    def detect_best(self) -> Optional[ChordCandidate]:
        """Best reading of the sounding notes, or None when nothing matches."""
        candidates = self._detect(detailed=False)
        return candidates[0] if candidates else None

    def detect_alternatives(self, max_count: int = 3) -> List[ChordCandidate]:
        """Up to ``max_count`` readings, best first."""
        return self._detect(detailed=False, limit=max_count)

    def detect_detailed(self, max_candidates: Optional[int] = None) -> List[ChordCandidate]:
        """Up to ``max_candidates`` readings including ambiguous equivalences.

        Defaults to ``config.max_alternatives``.
        """
        limit = max_candidates if max_candidates is not None else self.config.max_alternatives
        return self._detect(detailed=True, limit=limit)

    def _detect(self, detailed: bool, limit: Optional[int] = None) -> List[ChordCandidate]:
        """Run the engine on the current notes and record statistics."""
        start = time.perf_counter()
        candidates = self._run_engine(detailed, limit)
        elapsed_ms = (time.perf_counter() - start) * 1000.0
        self.statistics.update(elapsed_ms, candidates[0].confidence if candidates else None)
        return candidates

    def _run_engine(self, detailed: bool, limit: Optional[int]) -> List[ChordCandidate]:
        """With a ``limit`` the list is truncated and rescaled to sum to 10.0 again."""
        notes = self.state.notes
        if not notes.is_active:
            return []

        config = self.state.config
        weights = self.classifier.process(notes)
        mask = weights.harmonic_mask or notes.mask
        lowest = notes.lowest_note(within_mask=mask)
        bass = lowest % NUM_PITCH_CLASSES if lowest >= 0 else -1

        if popcount(mask) == 1:
            return [self._single_note(lowest, mask)]

        candidates = self.engine.generate_candidates(
            mask,
            bass,
            key_context=self.state.key,
            weights=weights if config.velocity_sensitive else None,
            include_equivalences=detailed,
            slash_chords=config.slash_chord_detection,
        )
        if config.confidence_threshold > 0.0:
            candidates = [c for c in candidates if c.confidence >= config.confidence_threshold]

        if limit is not None:
            candidates = candidates[:limit]
            rescale_confidences(candidates)

        if candidates:
            logger.debug(f"{notes.note_names()} -> {candidates[0].name}")
        return candidates

    @staticmethod
    def _single_note(note: int, mask: int) -> ChordCandidate:
        pc = note % NUM_PITCH_CLASSES
        return make_candidate(
            name=midi_note_name(note),
            mask=mask,
            confidence=CONFIDENCE_SCALE,
            root=pc,
            bass=pc,
            interpretation=Interpretation.SINGLE_NOTE,
        )
