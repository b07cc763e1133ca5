"""Specialized chord-family detectors.

Each detector is a pure function of (mask, bass) returning zero or more
candidates. They cover readings the plain table lookup ranks poorly or
cannot disambiguate:
- Half-diminished sevenths (priority check)
- Extended/altered-tension templates (13#11, 13b9, 6/9, ...)
- Major sixth chords
- sus2 / sus4 ambiguity
- Augmented and diminished-seventh root disambiguation
- Altered dominant sevenths including a fuzzy 7alt
- Fixed ambiguous equivalences (C6 = Am7, ...)
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple

from ..core.pitch import (
    mask_from_pitch_classes,
    transpose_mask,
    popcount,
    is_subset,
    note_name,
)
from ..core.constants import NUM_PITCH_CLASSES
from .candidates import (
    ChordCandidate,
    Interpretation,
    QualityFlags as Q,
    analyze_extensions,
    chord_label,
    make_candidate,
)


def _pattern(intervals) -> int:
    return mask_from_pitch_classes(intervals)


HALF_DIMINISHED_PATTERN = _pattern([0, 3, 6, 10])
HALF_DIMINISHED_BASE = 5.0
EXACT_MATCH_BONUS = 1.5

# name -> (intervals, flags)
EXTENDED_TEMPLATES: Tuple[Tuple[str, Tuple[int, ...], Q], ...] = (
    ("13#11", (0, 4, 7, 10, 2, 6, 9), Q.SEVENTH | Q.DOMINANT | Q.EXTENDED | Q.ALTERED),
    ("13b9", (0, 4, 7, 10, 1, 9), Q.SEVENTH | Q.DOMINANT | Q.EXTENDED | Q.ALTERED),
    ("11#9", (0, 4, 7, 10, 3, 5), Q.SEVENTH | Q.DOMINANT | Q.EXTENDED | Q.ALTERED),
    ("7#11", (0, 4, 7, 10, 6), Q.SEVENTH | Q.DOMINANT | Q.ALTERED),
    ("add2#4", (0, 4, 7, 2, 6), Q.EXTENDED | Q.ALTERED),
    ("6/9", (0, 4, 7, 9, 2), Q.SIXTH | Q.EXTENDED),
)
EXTENDED_MIN_SHARED = 4
EXTENDED_MAX_MISSING = 1
EXTENDED_SCALE = 3.0

SIXTH_PATTERN = _pattern([0, 4, 7, 9])

# (mask, sus2 root, sus4 root): the same three notes read either way
SUS_CONFLICTS: Tuple[Tuple[int, int, int], ...] = (
    (_pattern([0, 2, 7]), 0, 7),    # Csus2 = Gsus4
    (_pattern([2, 4, 9]), 2, 9),    # Dsus2 = Asus4
    (_pattern([7, 9, 2]), 7, 2),    # Gsus2 = Dsus4
)

AUGMENTED_PATTERN = _pattern([0, 4, 8])
AUGMENTED_MASKS: Tuple[int, ...] = tuple(transpose_mask(AUGMENTED_PATTERN, k) for k in range(4))
DIMINISHED7_PATTERN = _pattern([0, 3, 6, 9])
DIMINISHED7_MASKS: Tuple[int, ...] = tuple(transpose_mask(DIMINISHED7_PATTERN, k) for k in range(3))

ALTERED_DOMINANTS: Tuple[Tuple[str, int], ...] = (
    ("7#5", _pattern([0, 4, 8, 10])),
    ("7b9", _pattern([0, 1, 4, 7, 10])),
    ("7#9", _pattern([0, 3, 4, 7, 10])),
    ("7#5#9", _pattern([0, 3, 4, 8, 10])),
    ("7#5b9", _pattern([0, 1, 4, 8, 10])),
)
# root, b9, #9, 3, b5, #5, b7
ALTERED_SCALE_TEMPLATE = _pattern([0, 1, 3, 4, 6, 8, 10])
ALTERED_FLAGS = Q.SEVENTH | Q.DOMINANT | Q.ALTERED


def detect_half_diminished(mask: int, bass: int = -1) -> List[ChordCandidate]:
    """Find every m7♭5 contained in the mask."""
    results = []
    for root in range(NUM_PITCH_CLASSES):
        pattern = transpose_mask(HALF_DIMINISHED_PATTERN, root)
        if not is_subset(pattern, mask):
            continue
        confidence = HALF_DIMINISHED_BASE
        if pattern == mask:
            confidence *= EXACT_MATCH_BONUS
        results.append(make_candidate(
            name=f"{note_name(root)}m7♭5",
            mask=pattern,
            confidence=confidence,
            root=root,
            bass=bass,
            quality="m7♭5",
            flags=Q.SEVENTH | Q.MINOR_SEVENTH | Q.DIMINISHED,
            interpretation=Interpretation.HALF_DIMINISHED,
            expected_mask=pattern,
            input_mask=mask,
        ))
    return results


def detect_extended_templates(mask: int, bass: int = -1) -> List[ChordCandidate]:
    """Sweep all roots for extended shapes sharing >= 4 notes with the input."""
    results = []
    for root in range(NUM_PITCH_CLASSES):
        for suffix, intervals, flags in EXTENDED_TEMPLATES:
            template = transpose_mask(_pattern(intervals), root)
            size = popcount(template)
            shared = popcount(template & mask)
            if shared < EXTENDED_MIN_SHARED or size - shared > EXTENDED_MAX_MISSING:
                continue
            confidence = (shared / size) * EXTENDED_SCALE
            if template == mask:
                confidence *= EXACT_MATCH_BONUS
            results.append(make_candidate(
                name=f"{note_name(root)}{suffix}",
                mask=template,
                confidence=confidence,
                root=root,
                bass=bass,
                quality=suffix,
                flags=flags,
                interpretation=Interpretation.EXTENDED,
                expected_mask=template,
                input_mask=mask,
            ))
    return results


def detect_sixth_chords(mask: int, bass: int = -1) -> List[ChordCandidate]:
    """Major triad plus major sixth, exact mask only."""
    results = []
    for root in range(NUM_PITCH_CLASSES):
        pattern = transpose_mask(SIXTH_PATTERN, root)
        if pattern != mask:
            continue
        confidence = 1.45 if root == bass else 0.40
        results.append(make_candidate(
            name=chord_label(root, "6", bass),
            mask=pattern,
            confidence=confidence,
            root=root,
            bass=bass,
            quality="6",
            flags=Q.SIXTH,
            interpretation=Interpretation.SIXTH,
            slash=bass >= 0 and bass != root,
        ))
    return results


def detect_sus_chords(mask: int, bass: int = -1) -> List[ChordCandidate]:
    """Resolve the three sus2/sus4 spellings of the same notes by the bass."""
    for conflict_mask, sus2_root, sus4_root in SUS_CONFLICTS:
        if mask != conflict_mask:
            continue
        if bass == sus2_root:
            root, quality, confidence, slash_bass = sus2_root, "sus2", 1.8, -1
        elif bass == sus4_root:
            root, quality, confidence, slash_bass = sus4_root, "sus4", 0.6, -1
        else:
            root, quality, confidence, slash_bass = sus2_root, "sus2", 0.7, bass
        return [make_candidate(
            name=chord_label(root, quality, slash_bass),
            mask=mask,
            confidence=confidence,
            root=root,
            bass=bass,
            quality=quality,
            flags=Q.SUSPENDED,
            interpretation=Interpretation.SUS,
            slash=slash_bass >= 0 and slash_bass != root,
        )]
    return []


def _symmetric_root_candidates(
    mask: int,
    bass: int,
    canonical_masks: Tuple[int, ...],
    pattern: int,
    quality: str,
    flags: Q,
    confidence: float,
    interpretation: str,
) -> List[ChordCandidate]:
    results = []
    for canonical in canonical_masks:
        if not is_subset(canonical, mask) or bass < 0 or not canonical & (1 << bass):
            continue
        extensions = analyze_extensions(mask, bass, flags, pattern)
        results.append(make_candidate(
            name=chord_label(bass, quality, extensions=extensions.format()),
            mask=canonical,
            confidence=confidence,
            root=bass,
            bass=bass,
            quality=quality,
            flags=flags,
            interpretation=interpretation,
            expected_mask=canonical,
            input_mask=mask,
        ))
        results[-1].extensions = extensions
    return results


def detect_augmented_chords(mask: int, bass: int = -1) -> List[ChordCandidate]:
    """Name an augmented triad after the bass when the bass is one of its roots."""
    return _symmetric_root_candidates(
        mask, bass, AUGMENTED_MASKS, AUGMENTED_PATTERN, "aug",
        Q.AUGMENTED, 1.2, Interpretation.AUGMENTED,
    )


def detect_diminished_seventh_chords(mask: int, bass: int = -1) -> List[ChordCandidate]:
    """Name a diminished seventh after the bass when the bass is one of its roots."""
    return _symmetric_root_candidates(
        mask, bass, DIMINISHED7_MASKS, DIMINISHED7_PATTERN, "dim7",
        Q.SEVENTH | Q.DIMINISHED, 1.25, Interpretation.DIMINISHED7,
    )


def detect_altered_dominants(mask: int, bass: int = -1) -> List[ChordCandidate]:
    """Exact altered dominant sevenths plus a fuzzy 7alt reading."""
    results = []
    for root in range(NUM_PITCH_CLASSES):
        confidence = 1.2 if root == bass else 0.85
        slash = bass >= 0 and bass != root
        for suffix, pattern in ALTERED_DOMINANTS:
            chord_mask = transpose_mask(pattern, root)
            if chord_mask != mask:
                continue
            results.append(make_candidate(
                name=chord_label(root, suffix, bass),
                mask=chord_mask,
                confidence=confidence,
                root=root,
                bass=bass,
                quality=suffix,
                flags=ALTERED_FLAGS | (Q.AUGMENTED if "#5" in suffix else Q.NONE),
                interpretation=Interpretation.ALTERED,
                slash=slash,
            ))

        template = transpose_mask(ALTERED_SCALE_TEMPLATE, root)
        if (
            mask & (1 << root)
            and is_subset(mask, template)
            and popcount(mask) >= popcount(template) - 1
        ):
            results.append(make_candidate(
                name=chord_label(root, "7alt", bass),
                mask=mask,
                confidence=confidence,
                root=root,
                bass=bass,
                quality="7alt",
                flags=ALTERED_FLAGS,
                interpretation=Interpretation.ALTERED,
                expected_mask=template,
                input_mask=mask,
                slash=slash,
            ))
    return results


@dataclass(frozen=True)
class AmbiguousSet:
    """A four-note mask that is the exact pattern of two chord names."""

    mask: int
    label_a: str
    root_a: int
    label_b: str
    root_b: int

    def label(self, bass: int) -> str:
        """Resolve the pair against the bass: root-matching name first."""
        if bass < 0 or bass == self.root_a:
            return f"{self.label_a} (={self.label_b})"
        if bass == self.root_b:
            return f"{self.label_b} (={self.label_a})"
        bass_name = note_name(bass)
        return f"{self.label_a}/{bass_name} (={self.label_b}/{bass_name})"

    def root_for(self, bass: int) -> int:
        return self.root_b if bass == self.root_b else self.root_a


AMBIGUOUS_SETS: Tuple[AmbiguousSet, ...] = (
    AmbiguousSet(_pattern([0, 4, 7, 9]), "C6", 0, "Am7", 9),
    AmbiguousSet(_pattern([0, 3, 7, 9]), "Cm6", 0, "Am7♭5", 9),
    AmbiguousSet(_pattern([5, 9, 0, 2]), "F6", 5, "Dm7", 2),
    AmbiguousSet(_pattern([7, 11, 2, 4]), "G6", 7, "Em7", 4),
    AmbiguousSet(_pattern([2, 5, 9, 11]), "Dm6", 2, "Bm7♭5", 11),
    AmbiguousSet(_pattern([10, 2, 5, 7]), "A#6", 10, "Gm7", 7),
    AmbiguousSet(_pattern([2, 6, 9, 11]), "D6", 2, "Bm7", 11),
)

AMBIGUOUS_CONFIDENCE = 25.0


def find_ambiguous_set(mask: int) -> Optional[AmbiguousSet]:
    for entry in AMBIGUOUS_SETS:
        if entry.mask == mask:
            return entry
    return None


def detect_ambiguous_equivalence(mask: int, bass: int = -1) -> List[ChordCandidate]:
    """Label a fixed ambiguous mask with both of its names."""
    entry = find_ambiguous_set(mask)
    if entry is None:
        return []
    root = entry.root_for(bass)
    return [make_candidate(
        name=entry.label(bass),
        mask=mask,
        confidence=AMBIGUOUS_CONFIDENCE,
        root=root,
        bass=bass,
        interpretation=Interpretation.AMBIGUOUS,
        slash=bass >= 0 and bass not in (entry.root_a, entry.root_b),
    )]
