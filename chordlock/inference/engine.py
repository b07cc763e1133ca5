"""Candidate engine - Ordered chord-reading generation and ranking.

Runs the scoring rules in a fixed order over one pitch-class mask:
- Symmetric chords (augmented, diminished seventh) take a dedicated lane
- Half-diminished and extended templates
- Exact, rotated, slash and inversion table matches
- Subset, superset and transposition alternatives
- Specialized family detectors
- Key-context detectors when a key is set
- Ambiguous equivalences for detailed analysis

Order matters: later rules never replace an earlier candidate of the same
name. The rotated table matches and the inversion lane may raise the
confidence of an existing reading, never lower it.
"""

import logging
import time
from typing import Dict, List, Optional

import numpy as np

from ..core.constants import CONFIDENCE_SCALE, FULL_MASK
from ..core.pitch import has_pitch, is_subset, pitch_classes, popcount, rotate_mask
from ..processing.velocity import VelocityWeights
from .candidates import (
    SYMMETRIC_FLAGS,
    ChordCandidate,
    Interpretation,
    QualityFlags as Q,
    analyze_extensions,
    chord_label,
    make_candidate,
)
from .contextual import detect_diatonic_extended, detect_polychord, detect_rootless
from .detectors import (
    AUGMENTED_MASKS,
    DIMINISHED7_MASKS,
    detect_altered_dominants,
    detect_ambiguous_equivalence,
    detect_augmented_chords,
    detect_diminished_seventh_chords,
    detect_extended_templates,
    detect_half_diminished,
    detect_sixth_chords,
    detect_sus_chords,
)
from .key import NO_KEY, FunctionalHarmony, HarmonicFunction, KeyContext
from .root import RootEstimator
from .table import CHORD_TABLE, ChordTable

logger = logging.getLogger(__name__)


EXACT_MATCH_MULTIPLIER = 3.0
VELOCITY_CONFIDENCE_CAP = 0.95

# Bass interval above the root -> multiplier for the exact direct match
DIRECT_INVERSION_MULTIPLIER = {3: 2.5, 4: 2.5, 7: 2.0, 10: 1.8, 11: 1.8}

SLASH_BONUS = 2.5
SYMMETRIC_SLASH_BONUS = 4.0
SEVENTH_MULTIPLIER = 4.0
MINOR_SEVENTH_MULTIPLIER = 2.5
ROOT_CONFIDENCE_WEIGHT = 0.1

INVERSION_BASE_MULTIPLIER = 8.0
# Bass interval above the root -> multiplier for the inversion lane
INVERSION_LANE_MULTIPLIER = {
    3: 4.0, 4: 4.0,     # third in bass
    7: 3.5,             # fifth in bass
    10: 3.0, 11: 3.0,   # seventh in bass
    5: 3.2,             # sus4 fourth in bass
}

SUBSET_BASE = 0.5
SUBSET_EXTRA_PENALTY = 0.1
SUPERSET_MULTIPLIER = {1: 0.6, 2: 0.4}
TRANSPOSITION_MULTIPLIER = 0.5
TRANSPOSITION_MIN_NOTES = 3

SYMMETRIC_ROOT_BONUS = 100

POST_FUNCTION_MULTIPLIER = {
    HarmonicFunction.TONIC: 3.0,
    HarmonicFunction.DOMINANT: 2.5,
    HarmonicFunction.SUBDOMINANT: 2.0,
}
POST_SEVENTH_MULTIPLIER = {
    HarmonicFunction.TONIC: 1.5,
    HarmonicFunction.DOMINANT: 1.3,
}


def softmax_confidences(candidates: List[ChordCandidate], scale: float = CONFIDENCE_SCALE) -> None:
    """Replace confidences in place by a softmax scaled to sum to ``scale``."""
    if not candidates:
        return
    raw = np.array([c.confidence for c in candidates], dtype=float)
    exp = np.exp(raw - raw.max())
    normalized = exp / exp.sum() * scale
    for candidate, value in zip(candidates, normalized):
        candidate.confidence = float(value)


def rescale_confidences(candidates: List[ChordCandidate], scale: float = CONFIDENCE_SCALE) -> None:
    """Scale confidences in place so a truncated list still sums to ``scale``."""
    total = sum(c.confidence for c in candidates)
    if total <= 0.0:
        return
    for candidate in candidates:
        candidate.confidence = candidate.confidence * scale / total


class _CandidateList:
    """Insertion-ordered candidates, unique by display name."""

    def __init__(self, slash_chords: bool = True):
        self.slash_chords = slash_chords
        self.items: List[ChordCandidate] = []
        self._by_name: Dict[str, ChordCandidate] = {}

    def __len__(self) -> int:
        return len(self.items)

    def add(self, candidate: ChordCandidate) -> bool:
        if not self.slash_chords and candidate.is_slash:
            return False
        if candidate.name in self._by_name:
            return False
        self._by_name[candidate.name] = candidate
        self.items.append(candidate)
        return True

    def extend(self, candidates: List[ChordCandidate]) -> int:
        return sum(1 for c in candidates if self.add(c))

    def rescore(self, candidate: ChordCandidate) -> None:
        """Raise an existing reading's confidence, or add it if new."""
        existing = self._by_name.get(candidate.name)
        if existing is None:
            self.add(candidate)
        elif candidate.confidence > existing.confidence:
            existing.confidence = candidate.confidence


class CandidateEngine:
    """Generate, rank and normalize chord candidates for a pitch-class mask.

    The engine holds no per-call state; one instance can be shared by any
    number of detectors.
    """

    def __init__(
        self,
        table: ChordTable = CHORD_TABLE,
        root_estimator: Optional[RootEstimator] = None,
    ):
        self.table = table
        self.root_estimator = root_estimator or RootEstimator()

    def generate_candidates(
        self,
        mask: int,
        bass: int = -1,
        key_context: Optional[KeyContext] = None,
        weights: Optional[VelocityWeights] = None,
        include_equivalences: bool = False,
        slash_chords: bool = True,
    ) -> List[ChordCandidate]:
        """
        Produce ranked chord readings for a mask.

        Args:
            mask: 12-bit pitch-class mask
            bass: Pitch class of the lowest sounding note, -1 if unknown
            key_context: Optional key; enables functional ranking and
                the key-context detectors
            weights: Velocity weights; when given they scale the exact match
            include_equivalences: Add the ambiguous-equivalence reading
                (detailed analysis)
            slash_chords: Allow readings whose bass differs from the root

        Returns:
            Candidates best first with confidences summing to 10.0, or an
            empty list when nothing matches
        """
        start = time.perf_counter()
        mask &= FULL_MASK
        if popcount(mask) == 0:
            return []
        if bass >= 0 and not has_pitch(mask, bass):
            bass = -1
        key = key_context if key_context is not None else NO_KEY

        # Symmetric chords short-circuit everything else
        if mask in AUGMENTED_MASKS or mask in DIMINISHED7_MASKS:
            candidates = [self._symmetric_candidate(mask, bass, slash_chords)]
            softmax_confidences(candidates)
            logger.debug(f"Symmetric mask {mask:#05x}: {candidates[0].name}")
            return candidates

        harmony = FunctionalHarmony(key)
        results = _CandidateList(slash_chords)

        # Step 1: Half-diminished priority check
        results.extend(detect_half_diminished(mask, bass))

        # Step 2: Extended templates
        results.extend(detect_extended_templates(mask, bass))

        # Step 3: Exact direct match
        direct = self._direct_match(mask, bass, key, harmony, weights, slash_chords)
        if direct is not None:
            results.add(direct)

        # Step 4: Rotated matches on every present root
        for candidate in self._rotated_matches(mask, bass, slash_chords):
            results.rescore(candidate)

        # Step 5: Inversion lane
        if slash_chords and bass >= 0:
            for candidate in self._inversion_matches(mask, bass):
                results.rescore(candidate)

        # Step 6: Alternative search
        results.extend(self._subset_matches(mask, bass, slash_chords))
        results.extend(self._superset_matches(mask, bass, slash_chords))
        results.extend(self._transposition_matches(mask, bass))

        # Step 7: Specialized detectors
        results.extend(detect_sixth_chords(mask, bass))
        results.extend(detect_sus_chords(mask, bass))
        results.extend(detect_augmented_chords(mask, bass))
        results.extend(detect_diminished_seventh_chords(mask, bass))
        results.extend(detect_altered_dominants(mask, bass))

        # Step 8: Key-context detectors
        if key.is_active:
            results.extend(detect_diatonic_extended(mask, bass, key, harmony))
            results.extend(detect_rootless(mask, bass, key, self.table))
            if slash_chords:
                results.extend(detect_polychord(mask, bass, key, self.table))

        # Step 9: Ambiguous equivalences
        if include_equivalences:
            results.extend(detect_ambiguous_equivalence(mask, bass))

        candidates = self._rank(results.items, harmony)
        softmax_confidences(candidates)

        elapsed_us = (time.perf_counter() - start) * 1e6
        logger.debug(
            f"Mask {mask:#05x} bass={bass} key={key.name}: "
            f"{len(candidates)} candidates in {elapsed_us:.0f}us"
        )
        return candidates

    def _symmetric_candidate(self, mask: int, bass: int, slash_chords: bool) -> ChordCandidate:
        """Pick the root of a symmetric chord closest above the bass."""
        entry = None
        best_root, best_score = -1, None
        for root in pitch_classes(mask):
            candidate_entry = self.table.lookup_rotated(mask, root)
            if bass >= 0:
                score = (SYMMETRIC_ROOT_BONUS if root == bass else 0) - (root - bass) % 12
            else:
                score = -root
            if best_score is None or score > best_score:
                best_root, best_score, entry = root, score, candidate_entry

        slash_bass = bass if slash_chords else -1
        return make_candidate(
            name=chord_label(best_root, entry.quality, slash_bass),
            mask=mask,
            confidence=float(best_score * 100),
            root=best_root,
            bass=bass,
            quality=entry.quality,
            flags=entry.flags,
            interpretation=Interpretation.SYMMETRIC,
            slash=slash_bass >= 0 and slash_bass != best_root,
        )

    def _direct_match(
        self,
        mask: int,
        bass: int,
        key: KeyContext,
        harmony: FunctionalHarmony,
        weights: Optional[VelocityWeights],
        slash_chords: bool,
    ) -> Optional[ChordCandidate]:
        """Look the raw mask up as a C-rooted pattern."""
        entry = self.table.lookup(mask)
        if entry is None:
            return None
        root = 0

        confidence = entry.confidence
        if weights is not None:
            ratio = weights.harmonic_ratio(mask)
            boost = float(np.clip(1.0 + (ratio - 0.5), 0.5, 1.5))
            confidence = min(confidence * boost, VELOCITY_CONFIDENCE_CAP)

        if key.is_active:
            confidence *= harmony.key_boost(root, entry.flags, mask, bass)

        confidence *= EXACT_MATCH_MULTIPLIER
        if Q.SEVENTH in entry.flags:
            confidence *= 2.0 if key.is_active else 1.5

        if bass >= 0:
            confidence *= DIRECT_INVERSION_MULTIPLIER.get((bass - root) % 12, 1.0)

        extensions = analyze_extensions(mask, root, entry.flags, entry.pattern)
        slash_bass = bass if slash_chords else -1
        candidate = make_candidate(
            name=chord_label(root, entry.quality, slash_bass, extensions.format()),
            mask=mask,
            confidence=confidence,
            root=root,
            bass=bass,
            quality=entry.quality,
            flags=entry.flags,
            interpretation=Interpretation.EXACT,
            slash=slash_bass >= 0 and slash_bass != root,
        )
        candidate.extensions = extensions
        return candidate

    def _rotated_matches(self, mask: int, bass: int, slash_chords: bool) -> List[ChordCandidate]:
        """Rotate-and-lookup on every present root, with slash readings."""
        # Interval-only scores keep the table lookup transposition invariant
        root_scores = self.root_estimator.root_confidences(mask, bass, common_roots=False)
        results = []
        for root in pitch_classes(mask):
            entry = self.table.lookup_rotated(mask, root)
            if entry is None:
                continue
            # Without slash chords an inverted voicing reads as its root chord
            is_slash = slash_chords and bass >= 0 and bass != root

            score = entry.confidence
            if is_slash:
                score += SYMMETRIC_SLASH_BONUS if entry.flags & SYMMETRIC_FLAGS else SLASH_BONUS
            score *= EXACT_MATCH_MULTIPLIER
            if Q.SEVENTH in entry.flags:
                score *= SEVENTH_MULTIPLIER
            if Q.MINOR_SEVENTH in entry.flags:
                score *= MINOR_SEVENTH_MULTIPLIER
            score *= 1.0 + root_scores.get(root, 0.0) * ROOT_CONFIDENCE_WEIGHT

            results.append(make_candidate(
                name=chord_label(root, entry.quality, bass if is_slash else -1),
                mask=mask,
                confidence=score,
                root=root,
                bass=bass if is_slash else root,
                quality=entry.quality,
                flags=entry.flags,
                interpretation=Interpretation.SLASH if is_slash else Interpretation.EXACT,
                slash=is_slash,
            ))
        return results

    def _inversion_matches(self, mask: int, bass: int) -> List[ChordCandidate]:
        """Rescore readings whose bass is a third, fourth, fifth or seventh."""
        results = []
        for root in pitch_classes(mask):
            if root == bass:
                continue
            multiplier = INVERSION_LANE_MULTIPLIER.get((bass - root) % 12)
            if multiplier is None:
                continue
            entry = self.table.lookup_rotated(mask, root)
            if entry is None:
                continue

            score = entry.confidence
            score += SYMMETRIC_SLASH_BONUS if entry.flags & SYMMETRIC_FLAGS else SLASH_BONUS
            score *= INVERSION_BASE_MULTIPLIER * multiplier
            if Q.SEVENTH in entry.flags:
                score *= SEVENTH_MULTIPLIER
            if Q.MINOR_SEVENTH in entry.flags:
                score *= MINOR_SEVENTH_MULTIPLIER

            results.append(make_candidate(
                name=chord_label(root, entry.quality, bass),
                mask=mask,
                confidence=score,
                root=root,
                bass=bass,
                quality=entry.quality,
                flags=entry.flags,
                interpretation=Interpretation.INVERSION,
                slash=True,
            ))
        return results

    def _subset_matches(self, mask: int, bass: int, slash_chords: bool) -> List[ChordCandidate]:
        """Table chords wholly contained in the mask, penalized per extra note."""
        note_count = popcount(mask)
        results = []
        for root, entry, chord_mask in self.table.transposed_entries():
            if chord_mask == mask or not is_subset(chord_mask, mask):
                continue
            extra = note_count - entry.size
            confidence = entry.confidence * (SUBSET_BASE - SUBSET_EXTRA_PENALTY * extra)
            if confidence <= 0.0:
                continue
            extensions = analyze_extensions(mask, root, entry.flags, entry.pattern)
            in_chord = bass >= 0 and has_pitch(chord_mask, bass)
            slash_bass = bass if slash_chords and in_chord else -1
            candidate = make_candidate(
                name=chord_label(root, entry.quality, slash_bass, extensions.format()),
                mask=chord_mask,
                confidence=confidence,
                root=root,
                bass=bass,
                quality=entry.quality,
                flags=entry.flags,
                interpretation=Interpretation.SUBSET,
                expected_mask=chord_mask,
                input_mask=mask,
                slash=slash_bass >= 0 and slash_bass != root,
            )
            candidate.extensions = extensions
            results.append(candidate)
        return results

    def _superset_matches(self, mask: int, bass: int, slash_chords: bool) -> List[ChordCandidate]:
        """Table chords containing the mask plus at most two more notes."""
        note_count = popcount(mask)
        results = []
        for root, entry, chord_mask in self.table.transposed_entries():
            if chord_mask == mask or not is_subset(mask, chord_mask):
                continue
            multiplier = SUPERSET_MULTIPLIER.get(entry.size - note_count)
            if multiplier is None:
                continue
            slash_bass = bass if slash_chords else -1
            results.append(make_candidate(
                name=chord_label(root, entry.quality, slash_bass),
                mask=chord_mask,
                confidence=entry.confidence * multiplier,
                root=root,
                bass=bass,
                quality=entry.quality,
                flags=entry.flags,
                interpretation=Interpretation.SUPERSET,
                expected_mask=chord_mask,
                input_mask=mask,
                slash=slash_bass >= 0 and slash_bass != root,
            ))
        return results

    def _transposition_matches(self, mask: int, bass: int) -> List[ChordCandidate]:
        """Rotate the whole mask by 1..11 semitones and look it up."""
        if popcount(mask) < TRANSPOSITION_MIN_NOTES:
            return []
        results = []
        for k in range(1, 12):
            entry = self.table.lookup(rotate_mask(mask, k))
            if entry is None:
                continue
            # the pattern's root bit came from pitch class k
            root = k
            results.append(make_candidate(
                name=chord_label(root, entry.quality),
                mask=mask,
                confidence=entry.confidence * TRANSPOSITION_MULTIPLIER,
                root=root,
                bass=bass,
                quality=entry.quality,
                flags=entry.flags,
                interpretation=Interpretation.TRANSPOSITION,
            ))
        return results

    def _rank(self, candidates: List[ChordCandidate], harmony: FunctionalHarmony) -> List[ChordCandidate]:
        """Sort by function (with a key) or confidence, then apply key post-processing."""
        if not harmony.key.is_active:
            return sorted(candidates, key=lambda c: c.confidence, reverse=True)

        ranked = sorted(
            candidates,
            key=lambda c: (harmony.priority(c.root, c.flags, c.is_slash), c.confidence),
            reverse=True,
        )
        for candidate in ranked:
            if candidate.is_slash:
                continue
            function = harmony.function(candidate.root, candidate.flags)
            candidate.confidence *= POST_FUNCTION_MULTIPLIER.get(function, 1.0)
            if Q.SEVENTH in candidate.flags:
                candidate.confidence *= POST_SEVENTH_MULTIPLIER.get(function, 1.0)
        ranked.sort(key=lambda c: c.confidence, reverse=True)
        return ranked
