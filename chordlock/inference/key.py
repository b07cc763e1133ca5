"""Key context - Diatonic scale and functional-harmony scoring.

Implements key-aware chord scoring with:
- Major / natural minor diatonic scales
- Roman numeral analysis including secondary dominants
- Harmonic function classification (tonic, dominant, subdominant, ...)
- A multiplicative key boost used by the candidate engine
- Functional priorities for ranking candidates in a key
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, Optional

from ..core.pitch import mask_from_pitch_classes, pitch_classes, popcount, note_name
from .candidates import QualityFlags


MAJOR_SCALE = (0, 2, 4, 5, 7, 9, 11)
MINOR_SCALE = (0, 2, 3, 5, 7, 8, 10)

# Exact mask {A, C, E}
A_MINOR_TRIAD_MASK = mask_from_pitch_classes([9, 0, 4])


class HarmonicFunction(Enum):
    """Role of a chord in the current key."""
    TONIC = "tonic"
    DOMINANT = "dominant"
    SUBDOMINANT = "subdominant"
    SECONDARY = "secondary"
    SECONDARY_DOMINANT = "secondary_dominant"
    OTHER = "other"


PRIMARY_FUNCTIONS = (
    HarmonicFunction.TONIC,
    HarmonicFunction.DOMINANT,
    HarmonicFunction.SUBDOMINANT,
)

# (non-slash, slash) ranking priority per function
FUNCTION_PRIORITY: Dict[HarmonicFunction, tuple] = {
    HarmonicFunction.TONIC: (10, 5),
    HarmonicFunction.DOMINANT: (9, 4),
    HarmonicFunction.SUBDOMINANT: (8, 3),
    HarmonicFunction.SECONDARY: (7, 2),
    HarmonicFunction.SECONDARY_DOMINANT: (6, 1),
    HarmonicFunction.OTHER: (1, 0),
}


@dataclass(frozen=True)
class KeyContext:
    """Tonic and mode of the current key; ``tonic == -1`` means no key.

    ``scale`` is always derived from tonic and mode at construction.
    """

    tonic: int = -1
    is_minor: bool = False
    scale: FrozenSet[int] = field(default=frozenset(), init=False, compare=False)

    def __post_init__(self):
        if not -1 <= self.tonic <= 11:
            raise ValueError(f"Tonic must be -1..11, got {self.tonic}")
        if self.tonic >= 0:
            offsets = MINOR_SCALE if self.is_minor else MAJOR_SCALE
            object.__setattr__(
                self, "scale", frozenset((self.tonic + o) % 12 for o in offsets)
            )

    @property
    def is_active(self) -> bool:
        return self.tonic >= 0

    @property
    def mode(self) -> str:
        return "minor" if self.is_minor else "major"

    @property
    def name(self) -> Optional[str]:
        """Get key as string (e.g. 'A minor')."""
        if not self.is_active:
            return None
        return f"{note_name(self.tonic)} {self.mode}"

    @property
    def scale_mask(self) -> int:
        return mask_from_pitch_classes(self.scale)

    def degree_root(self, degree: int) -> int:
        """Pitch class of a scale degree (0 = tonic ... 6 = leading tone)."""
        offsets = MINOR_SCALE if self.is_minor else MAJOR_SCALE
        return (self.tonic + offsets[degree % 7]) % 12

    @property
    def subdominant(self) -> int:
        return self.degree_root(3)

    @property
    def dominant(self) -> int:
        return self.degree_root(4)

    @property
    def submediant(self) -> int:
        return self.degree_root(5)

    def is_diatonic(self, pc: int) -> bool:
        return pc % 12 in self.scale

    def scale_relevance(self, mask: int) -> float:
        """Fraction of the mask's pitch classes that lie in the scale."""
        total = popcount(mask)
        if total == 0 or not self.is_active:
            return 0.0
        in_scale = sum(1 for pc in pitch_classes(mask) if pc in self.scale)
        return in_scale / total


NO_KEY = KeyContext()


class FunctionalHarmony:
    """Score chords against a key context."""

    MAJOR_DEGREE_LABELS = ["I", "♭II", "ii", "♭III", "iii", "IV", "♯IV", "V", "♭VI", "vi", "♭VII", "vii°"]
    MINOR_DEGREE_LABELS = ["i", "♭II", "ii°", "III", "♮III", "iv", "♯iv", "v", "VI", "♮vi", "VII", "♮vii"]

    # Dominant sevenths in a major key that tonicize another degree
    SECONDARY_DOMINANTS = {
        0: "V7/IV",
        2: "V7/V",
        4: "V7/vi",
        9: "V7/ii",
        11: "V7/iii",
    }

    # Per-degree bonus by interval from the tonic
    MAJOR_DEGREE_BONUS = {0: 0.5, 2: 0.3, 4: 0.2, 5: 0.4, 7: 0.45, 9: 0.35, 11: 0.1}
    MINOR_DEGREE_BONUS = {0: 0.5, 2: 0.1, 3: 0.3, 5: 0.4, 7: 0.35, 8: 0.3, 10: 0.25}

    PRIMARY_BONUS = 1.2
    PRIMARY_EXTRA = {
        HarmonicFunction.TONIC: 2.0,
        HarmonicFunction.DOMINANT: 1.5,
        HarmonicFunction.SUBDOMINANT: 1.0,
    }
    SECONDARY_BONUS = 0.4
    MISREAD_PENALTY = 0.1

    def __init__(self, key: KeyContext):
        self.key = key

    def interval(self, root: int) -> int:
        return (root - self.key.tonic) % 12

    def degree_label(self, root: int, flags: QualityFlags = QualityFlags.NONE) -> str:
        """
        Roman numeral for a chord root in the key.

        Dominant sevenths in a major key on I, II, III, VI and VII read as
        secondary dominants; everything else goes through the degree table.
        """
        interval = self.interval(root)
        if (
            not self.key.is_minor
            and QualityFlags.DOMINANT in flags
            and interval in self.SECONDARY_DOMINANTS
        ):
            return self.SECONDARY_DOMINANTS[interval]
        labels = self.MINOR_DEGREE_LABELS if self.key.is_minor else self.MAJOR_DEGREE_LABELS
        return labels[interval]

    def roman_numeral(self, root: int, flags: QualityFlags = QualityFlags.NONE) -> str:
        """Degree label with a '7' appended for seventh chords."""
        label = self.degree_label(root, flags)
        if QualityFlags.SEVENTH in flags and not label.startswith("V7/"):
            label += "7"
        return label

    def function(self, root: int, flags: QualityFlags = QualityFlags.NONE) -> HarmonicFunction:
        """Classify a chord's harmonic function in the key."""
        if not self.key.is_active:
            return HarmonicFunction.OTHER
        if self.degree_label(root, flags).startswith("V7/"):
            return HarmonicFunction.SECONDARY_DOMINANT
        interval = self.interval(root)
        if interval == 0:
            return HarmonicFunction.TONIC
        if interval == 7:
            return HarmonicFunction.DOMINANT
        if interval == 5:
            return HarmonicFunction.SUBDOMINANT
        if self.key.is_diatonic(root):
            return HarmonicFunction.SECONDARY
        return HarmonicFunction.OTHER

    def priority(self, root: int, flags: QualityFlags, is_slash: bool) -> int:
        """Ranking priority for a candidate (higher ranks first)."""
        plain, slash = FUNCTION_PRIORITY[self.function(root, flags)]
        return slash if is_slash else plain

    def seventh_bonus(self, root: int, flags: QualityFlags) -> float:
        if QualityFlags.SEVENTH not in flags:
            return 0.0
        function = self.function(root, flags)
        if function == HarmonicFunction.DOMINANT:
            return 1.8
        if function == HarmonicFunction.TONIC:
            return 1.5
        if function == HarmonicFunction.SECONDARY_DOMINANT:
            return 1.4
        if function == HarmonicFunction.SUBDOMINANT:
            return 1.2
        # ii and vii carry predominant/dominant weight too
        if self.interval(root) in ((2, 11) if not self.key.is_minor else (2, 10)):
            return 1.2
        return 0.0

    def bass_multiplier(self, bass: int, flags: QualityFlags) -> float:
        """Multiplier for slash chords depending on the bass degree."""
        if bass < 0:
            return 1.0
        if self.key.is_diatonic(bass):
            bass_interval = self.interval(bass)
            primary = (0, 5, 7)
            secondary = (2, 3, 8) if self.key.is_minor else (2, 4, 9)
            if bass_interval in primary:
                multiplier = 2.5
            elif bass_interval in secondary:
                multiplier = 2.2
            else:
                multiplier = 2.0
        else:
            multiplier = 0.7
        if QualityFlags.EXTENDED in flags:
            multiplier *= 1.3
        return multiplier

    def key_boost(
        self,
        root: int,
        flags: QualityFlags,
        mask: int,
        bass: int = -1,
    ) -> float:
        """
        Multiplicative confidence boost for a chord reading in this key.

        Args:
            root: Chord root pitch class
            flags: Quality flags of the reading
            mask: Pitch-class mask the reading covers
            bass: Bass pitch class; a bass other than the root makes it a slash chord

        Returns:
            Boost factor (1.0 when no key is set)
        """
        if not self.key.is_active:
            return 1.0

        interval = self.interval(root)
        bonus_table = self.MINOR_DEGREE_BONUS if self.key.is_minor else self.MAJOR_DEGREE_BONUS
        boost = 1.0 + bonus_table.get(interval, 0.0)

        relevance = self.key.scale_relevance(mask)
        if relevance >= 0.8:
            boost += 0.8
        elif relevance >= 0.6:
            boost += 0.4 * relevance

        function = self.function(root, flags)
        if function in PRIMARY_FUNCTIONS:
            if mask == A_MINOR_TRIAD_MASK and root == 0:
                boost *= self.MISREAD_PENALTY
            else:
                boost += self.PRIMARY_BONUS + self.PRIMARY_EXTRA[function]
        elif function == HarmonicFunction.SECONDARY:
            boost += self.SECONDARY_BONUS

        boost += self.seventh_bonus(root, flags)

        if bass >= 0 and bass != root:
            boost *= self.bass_multiplier(bass, flags)

        return boost
