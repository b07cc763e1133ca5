"""Key-context detectors.

Only run when a key is set. They produce readings that depend on knowing
the tonic:
- Diatonic extended chords on I, IV, V and vi
- Rootless voicings completed with an implied diatonic root
- Polychords split into an upper and lower structure
"""

from typing import List, Optional, Tuple

from ..core.pitch import (
    has_pitch,
    mask_from_pitch_classes,
    note_name,
    pitch_classes,
    popcount,
    rotate_mask,
)
from .candidates import (
    ChordCandidate,
    ChordExtensions,
    Interpretation,
    QualityFlags as Q,
    chord_label,
    make_candidate,
)
from .key import FunctionalHarmony, HarmonicFunction, KeyContext
from .root import RootEstimator
from .table import CHORD_TABLE, ChordTable, ChordTableEntry


DIATONIC_BASE_CONFIDENCE = 1.2
DIATONIC_EXTENSION_STEP = 0.1

ROOTLESS_SUFFIXES = ("maj7", "m7", "7", "9", "m9", "maj9", "m7♭5")
ROOTLESS_SCALE = 0.8
ROOTLESS_BONUS = 0.15
ROOTLESS_TONIC_MAJOR_BONUS = 0.2
ROOTLESS_DOMINANT_BONUS = 0.25

POLYCHORD_MIN_NOTES = 4
POLYCHORD_SCALE = 0.9


def _diatonic_roots(key: KeyContext) -> List[Tuple[int, float]]:
    """(root, functional multiplier) for I, IV, V, vi."""
    return [
        (key.tonic, 1.5),
        (key.subdominant, 1.3),
        (key.dominant, 1.4),
        (key.submediant, 1.2),
    ]


def _has_complete_triad(mask: int) -> bool:
    estimator = RootEstimator()
    return any(
        estimator.has_third(mask, r) and estimator.has_perfect_fifth(mask, r)
        for r in pitch_classes(mask)
    )


def _describe_diatonic(relative: int) -> Optional[Tuple[str, Q, ChordExtensions, int]]:
    """
    Spell a chord from a root-relative mask.

    Returns:
        (quality, flags, extensions, extension_count), or None when the
        notes cannot be explained as a triad plus diatonic extensions
    """
    def present(i: int) -> bool:
        return bool(relative & (1 << i))

    minor = present(3) and not present(4)
    major = present(4)
    if not (minor or major):
        return None
    diminished_fifth = minor and present(6) and not present(7)
    fifth = 6 if diminished_fifth else 7

    allowed = {0, 3 if minor else 4, fifth, 2, 5, 8, 9, 10, 11}
    if any(i not in allowed for i in pitch_classes(relative)):
        return None

    flags = Q.NONE
    ext = ChordExtensions()
    if present(10):
        flags |= Q.SEVENTH
        if diminished_fifth:
            quality = "m7♭5"
            flags |= Q.MINOR_SEVENTH | Q.DIMINISHED
        elif minor:
            quality = "m7"
            flags |= Q.MINOR_SEVENTH
        else:
            quality = "7"
            flags |= Q.DOMINANT
    elif present(11):
        flags |= Q.SEVENTH | Q.MAJOR_SEVENTH
        quality = "mMaj7" if minor else "maj7"
    else:
        quality = "m" if minor else ""
        if diminished_fifth:
            quality = "dim"
            flags |= Q.DIMINISHED

    if present(2):
        flags |= Q.EXTENDED
        upgrades = {"7": "9", "maj7": "maj9", "m7": "m9"}
        if quality in upgrades:
            quality = upgrades[quality]
        else:
            ext.added.append("add9")
    if present(5):
        flags |= Q.EXTENDED
        ext.added.append("add11")
    if present(9):
        flags |= Q.EXTENDED
        ext.added.append("add6")
    if present(8) and fifth == 7:
        flags |= Q.EXTENDED
        ext.added.append("add♭6")

    # everything beyond root, third and fifth
    triad = (1 << 0) | (1 << (3 if minor else 4)) | (1 << fifth)
    extension_count = popcount(relative & ~triad)
    return quality, flags, ext, extension_count


def detect_diatonic_extended(
    mask: int,
    bass: int,
    key: KeyContext,
    harmony: Optional[FunctionalHarmony] = None,
) -> List[ChordCandidate]:
    """
    Build extended chords on the primary diatonic roots.

    A root qualifies when it sounds together with its third. The fifth may
    be missing only if no complete triad exists anywhere in the mask.
    """
    if not key.is_active:
        return []
    harmony = harmony or FunctionalHarmony(key)
    allow_incomplete = not _has_complete_triad(mask)
    results = []

    for root, function_multiplier in _diatonic_roots(key):
        if not has_pitch(mask, root):
            continue
        relative = rotate_mask(mask, root)
        has_fifth = bool(relative & (1 << 7)) or bool(relative & (1 << 6))
        if not has_fifth and not allow_incomplete:
            continue
        described = _describe_diatonic(relative)
        if described is None:
            continue
        quality, flags, ext, extension_count = described
        if extension_count == 0:
            continue

        confidence = DIATONIC_BASE_CONFIDENCE + DIATONIC_EXTENSION_STEP * extension_count
        confidence *= function_multiplier
        confidence *= harmony.key_boost(root, flags, mask, bass)

        candidate = make_candidate(
            name=chord_label(root, quality, bass, ext.format()),
            mask=mask,
            confidence=confidence,
            root=root,
            bass=bass,
            quality=quality,
            flags=flags,
            interpretation=Interpretation.DIATONIC,
            slash=bass >= 0 and bass != root,
        )
        candidate.extensions = ext
        results.append(candidate)

    return results


def _rootless_roots(key: KeyContext) -> List[int]:
    """Implied roots tried for rootless voicings: I, ii, IV, V, vi."""
    return [key.degree_root(d) for d in (0, 1, 3, 4, 5)]


def detect_rootless(
    mask: int,
    bass: int,
    key: KeyContext,
    table: ChordTable = CHORD_TABLE,
) -> List[ChordCandidate]:
    """Complete voicings that omit a diatonic root and match a seventh chord."""
    if not key.is_active:
        return []
    harmony = FunctionalHarmony(key)
    results = []

    for root in _rootless_roots(key):
        if has_pitch(mask, root):
            continue
        completed = mask | (1 << root)
        entry = table.lookup_rotated(completed, root)
        if entry is None or entry.quality not in ROOTLESS_SUFFIXES:
            continue

        confidence = entry.confidence * ROOTLESS_SCALE + ROOTLESS_BONUS
        function = harmony.function(root, entry.flags)
        if function == HarmonicFunction.TONIC and Q.MAJOR_SEVENTH in entry.flags:
            confidence += ROOTLESS_TONIC_MAJOR_BONUS
        if Q.DOMINANT in entry.flags:
            confidence += ROOTLESS_DOMINANT_BONUS

        results.append(make_candidate(
            name=chord_label(root, entry.quality),
            mask=completed,
            confidence=confidence,
            root=root,
            bass=bass,
            quality=entry.quality,
            flags=entry.flags,
            interpretation=Interpretation.ROOTLESS,
            expected_mask=completed,
            input_mask=mask,
        ))

    return results


def _match_structure(mask: int, table: ChordTable) -> Optional[Tuple[int, ChordTableEntry]]:
    for root in pitch_classes(mask):
        entry = table.lookup_rotated(mask, root)
        if entry is not None:
            return root, entry
    return None


def detect_polychord(
    mask: int,
    bass: int,
    key: KeyContext,
    table: ChordTable = CHORD_TABLE,
) -> List[ChordCandidate]:
    """Split the sorted pitch classes at the midpoint and name both halves."""
    if not key.is_active or popcount(mask) < POLYCHORD_MIN_NOTES:
        return []

    pcs = pitch_classes(mask)
    middle = len(pcs) // 2
    lower = _match_structure(mask_from_pitch_classes(pcs[:middle]), table)
    upper = _match_structure(mask_from_pitch_classes(pcs[middle:]), table)
    if lower is None or upper is None:
        return []

    lower_root, lower_entry = lower
    upper_root, upper_entry = upper
    confidence = (lower_entry.confidence + upper_entry.confidence) / 2 * POLYCHORD_SCALE
    confidence *= FunctionalHarmony(key).key_boost(upper_root, upper_entry.flags, mask)

    label = (
        f"{note_name(upper_root)}{upper_entry.quality}"
        f"/{note_name(lower_root)}{lower_entry.quality}"
    )
    return [make_candidate(
        name=label,
        mask=mask,
        confidence=confidence,
        root=upper_root,
        bass=bass,
        quality=upper_entry.quality,
        flags=upper_entry.flags | lower_entry.flags,
        interpretation=Interpretation.POLYCHORD,
        slash=True,
    )]
