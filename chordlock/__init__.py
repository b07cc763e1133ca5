"""Chordlock - Real-time chord identification from MIDI notes.

Architecture Layers:
    1. core/        - Pitch-class masks, note names, note state
    2. processing/  - Velocity classification into harmonic and melodic masks
    3. inference/   - Chord table, root estimation, key context, candidate engine
    4. output/      - Text and JSON formatting
    detector.py     - Note-event facade over the candidate engine
"""

__version__ = "0.3.0"

# Core types
from .core import NoteState

# Processing layer
from .processing import VelocityConfig, VelocityClassifier, VelocityWeights

# Inference layer
from .inference import (
    CandidateEngine,
    ChordCandidate,
    ChordTable,
    KeyContext,
    QualityFlags,
    RootEstimator,
    parse_chord_name,
    chord_name_to_notes,
    degree_to_chord_name,
    analyze_degree,
)

# Facade
from .detector import ChordDetector, DetectionStatistics, DetectorConfig, EngineState

# Output layer
from .output import format_candidates, result_to_json

__all__ = [
    # Core
    "NoteState",
    # Processing
    "VelocityConfig",
    "VelocityClassifier",
    "VelocityWeights",
    # Inference
    "CandidateEngine",
    "ChordCandidate",
    "ChordTable",
    "KeyContext",
    "QualityFlags",
    "RootEstimator",
    "parse_chord_name",
    "chord_name_to_notes",
    "degree_to_chord_name",
    "analyze_degree",
    # Facade
    "ChordDetector",
    "DetectionStatistics",
    "DetectorConfig",
    "EngineState",
    # Output
    "format_candidates",
    "result_to_json",
]
