"""Chord candidates - Result types, quality flags and extension analysis."""

from dataclasses import dataclass, field
from enum import Flag, auto
from typing import List, Optional

from ..core.pitch import (
    note_name,
    pitch_classes,
    rotate_mask,
    find_missing_notes,
    find_extra_notes,
    match_score,
)


class QualityFlags(Flag):
    """Structured description of a chord quality.

    Ranking rules test these flags instead of searching display names.
    """
    NONE = 0
    SEVENTH = auto()        # contains any seventh
    DOMINANT = auto()       # major third + minor seventh
    MAJOR_SEVENTH = auto()
    MINOR_SEVENTH = auto()  # minor third + minor seventh (m7, m7b5, m9, m11)
    AUGMENTED = auto()
    DIMINISHED = auto()
    SUSPENDED = auto()
    SIXTH = auto()
    EXTENDED = auto()       # add tones, 9ths, 11ths, 13ths
    ALTERED = auto()


SYMMETRIC_FLAGS = QualityFlags.AUGMENTED | QualityFlags.DIMINISHED


class Interpretation:
    """Tags for how a candidate was produced."""
    EXACT = "exact"
    SLASH = "slash"
    INVERSION = "inversion"
    SYMMETRIC = "symmetric"
    SUBSET = "subset"
    SUPERSET = "superset"
    TRANSPOSITION = "transposition"
    HALF_DIMINISHED = "half_diminished"
    EXTENDED = "extended"
    SIXTH = "sixth"
    SUS = "sus"
    AUGMENTED = "augmented"
    DIMINISHED7 = "diminished7"
    ALTERED = "altered"
    DIATONIC = "diatonic"
    ROOTLESS = "rootless"
    POLYCHORD = "polychord"
    AMBIGUOUS = "ambiguous"
    SINGLE_NOTE = "single_note"


@dataclass
class ChordExtensions:
    """Add, altered and suspension tones found beyond a matched quality."""

    added: List[str] = field(default_factory=list)
    altered: List[str] = field(default_factory=list)
    suspension: Optional[str] = None

    def has_extensions(self) -> bool:
        return bool(self.added or self.altered or self.suspension)

    @property
    def tokens(self) -> List[str]:
        tokens = list(self.added) + list(self.altered)
        if self.suspension:
            tokens.append(self.suspension)
        return tokens

    def format(self) -> str:
        """Format as a parenthesised suffix, e.g. '(add9,#11)'."""
        if not self.has_extensions():
            return ""
        return "(" + ",".join(self.tokens) + ")"


@dataclass
class ChordCandidate:
    """A chord reading with its confidence and diagnostics."""

    name: str
    mask: int
    confidence: float
    root: int
    bass: int = -1
    quality: str = ""
    flags: QualityFlags = QualityFlags.NONE
    is_inversion: bool = False
    inversion_degree: int = 0
    interpretation: str = Interpretation.EXACT
    missing_notes: List[int] = field(default_factory=list)
    extra_notes: List[int] = field(default_factory=list)
    match_score: float = 1.0
    extensions: ChordExtensions = field(default_factory=ChordExtensions)
    is_slash: bool = False

    @property
    def root_name(self) -> str:
        return note_name(self.root)

    @property
    def bass_name(self) -> Optional[str]:
        return note_name(self.bass) if self.bass >= 0 else None

    @property
    def display_name(self) -> str:
        return self.name

    def __post_init__(self):
        if not self.mask & (1 << self.root):
            raise ValueError(f"Root {self.root} is not part of mask {self.mask:#05x}")
        if self.bass >= 0 and not self.mask & (1 << self.bass):
            raise ValueError(f"Bass {self.bass} is not part of mask {self.mask:#05x}")


def chord_label(root: int, quality: str, bass: int = -1, extensions: str = "") -> str:
    """Build a chord symbol such as 'Am7', 'G/B' or 'C(add9)/E'."""
    label = f"{note_name(root)}{quality}{extensions}"
    if bass >= 0 and bass != root:
        label += f"/{note_name(bass)}"
    return label


def inversion_degree(pattern: int, root: int, bass: int) -> int:
    """Index of the bass among the chord tones counted up from the root.

    0 is root position, 1 first inversion (third in bass), and so on.
    ``pattern`` is root-normalized.
    """
    if bass < 0 or bass == root:
        return 0
    bass_interval = (bass - root) % 12
    tones = pitch_classes(pattern)
    if bass_interval not in tones:
        return 0
    return tones.index(bass_interval)


def make_candidate(
    name: str,
    mask: int,
    confidence: float,
    root: int,
    bass: int = -1,
    quality: str = "",
    flags: QualityFlags = QualityFlags.NONE,
    interpretation: str = Interpretation.EXACT,
    expected_mask: Optional[int] = None,
    input_mask: Optional[int] = None,
    slash: bool = False,
) -> ChordCandidate:
    """Create a candidate, filling in inversion and note-difference diagnostics.

    ``mask`` is the matched (absolute) chord mask. When ``input_mask`` and
    ``expected_mask`` are given, missing/extra notes and match score are
    computed from them. ``slash`` marks names carrying slash notation.
    """
    if bass >= 0 and not mask & (1 << bass):
        bass = -1
    degree = inversion_degree(rotate_mask(mask, root), root, bass)
    candidate = ChordCandidate(
        name=name,
        mask=mask,
        confidence=confidence,
        root=root,
        bass=bass,
        quality=quality,
        flags=flags,
        is_inversion=degree > 0,
        inversion_degree=degree,
        interpretation=interpretation,
        is_slash=slash,
    )
    if input_mask is not None and expected_mask is not None:
        candidate.missing_notes = find_missing_notes(input_mask, expected_mask)
        candidate.extra_notes = find_extra_notes(input_mask, expected_mask)
        candidate.match_score = match_score(input_mask, expected_mask)
    return candidate


def analyze_extensions(
    mask: int, root: int, flags: QualityFlags, pattern: int
) -> ChordExtensions:
    """
    Classify the notes of ``mask`` that lie beyond a matched quality.

    Args:
        mask: Full input mask (absolute pitch classes)
        root: Root of the matched chord
        flags: Quality flags of the matched chord
        pattern: Root-normalized pattern of the matched quality

    Returns:
        ChordExtensions. Only notes outside ``pattern`` are classified, so
        tones the quality already spells never appear twice.
    """
    ext = ChordExtensions()
    relative = rotate_mask(mask, root)
    extras = pitch_classes(relative & ~pattern)
    if not extras:
        return ext

    def present(i: int) -> bool:
        return bool(relative & (1 << i))

    has_third = present(3) or present(4)
    has_fifth = present(7)
    has_minor_seventh = present(10)
    has_major_seventh = present(11)
    # b9 or #9 already spelled by the quality
    altered_ninth = bool(pattern & (1 << 1)) or ((pattern & 0b11000) == 0b11000)

    def add(token: str, bucket: List[str]) -> None:
        if token not in bucket:
            bucket.append(token)

    for i in extras:
        if i == 1:
            add("b9", ext.altered)
        elif i == 2:
            if not has_third or altered_ninth:
                continue
            if has_major_seventh:
                token = "maj9"
            elif has_minor_seventh:
                token = "9"
            else:
                token = "add9"
            add(token, ext.added)
        elif i == 3:
            if present(4):
                add("#9", ext.altered)
        elif i == 5:
            if has_third:
                add("add11", ext.added)
        elif i == 6:
            add("#11" if has_fifth else "b5", ext.altered)
        elif i == 8:
            if has_fifth:
                add("add♭6", ext.added)
            else:
                add("#5", ext.altered)
        elif i == 9:
            if QualityFlags.SIXTH not in flags:
                add("add6", ext.added)
        elif i == 10:
            if QualityFlags.SEVENTH not in flags:
                add("add7", ext.added)
        elif i == 11:
            if QualityFlags.MAJOR_SEVENTH not in flags:
                add("addMaj7", ext.added)

    if not has_third and QualityFlags.SUSPENDED not in flags:
        if present(2) and present(5):
            ext.suspension = "sus2sus4"
        elif present(2):
            ext.suspension = "sus2"
        elif present(5):
            ext.suspension = "sus4"

    return ext
