"""Root estimation - Score which sounding pitch class is most likely the root."""

from dataclasses import dataclass, field
from typing import Dict, List, Set

from ..core.pitch import pitch_classes, has_pitch
from ..core.constants import ROOT_FREQUENCY_ORDER


@dataclass
class RootCandidate:
    """A candidate root with its score and the rules that fired."""
    root: int
    confidence: float
    reasons: Set[str] = field(default_factory=set)


class RootEstimator:
    """Estimate chord roots from interval structure, bass and root statistics."""

    BASS_SCORE = 10.0
    THIRD_AND_FIFTH_SCORE = 8.0
    FIFTH_SCORE = 5.0
    THIRD_SCORE = 3.0

    # Bonus for the most common roots, tapering off
    COMMON_ROOT_BONUS: Dict[int, float] = {
        0: 3.0,   # C
        7: 2.5,   # G
        5: 2.0,   # F
        2: 1.5,   # D
        9: 1.0,   # A
        4: 0.5,   # E
    }

    @staticmethod
    def has_perfect_fifth(mask: int, root: int) -> bool:
        return has_pitch(mask, root + 7)

    @staticmethod
    def has_major_third(mask: int, root: int) -> bool:
        return has_pitch(mask, root + 4)

    @staticmethod
    def has_minor_third(mask: int, root: int) -> bool:
        return has_pitch(mask, root + 3)

    def has_third(self, mask: int, root: int) -> bool:
        return self.has_major_third(mask, root) or self.has_minor_third(mask, root)

    def estimate_root(self, mask: int, bass: int = -1) -> int:
        """
        Pick a single most likely root.

        Priority: the bass if it sounds, then the first root carrying both a
        third and a perfect fifth, then the most common root present.

        Returns:
            Root pitch class, or -1 for an empty mask
        """
        if bass >= 0 and has_pitch(mask, bass):
            return bass
        for root in pitch_classes(mask):
            if self.has_third(mask, root) and self.has_perfect_fifth(mask, root):
                return root
        for root in ROOT_FREQUENCY_ORDER:
            if has_pitch(mask, root):
                return root
        return -1

    def all_root_candidates(
        self, mask: int, bass: int = -1, common_roots: bool = True
    ) -> List[RootCandidate]:
        """
        Score every present pitch class as a root, best first.

        Args:
            mask: 12-bit pitch-class mask
            bass: Pitch class of the lowest note, -1 if unknown
            common_roots: Add the bonus for frequently used roots. Scores
                without it depend only on intervals, so they move with
                the chord under transposition.
        """
        candidates = []
        for root in pitch_classes(mask):
            score = 0.0
            reasons = set()
            if root == bass:
                score += self.BASS_SCORE
                reasons.add("bass")
            third = self.has_third(mask, root)
            fifth = self.has_perfect_fifth(mask, root)
            if third and fifth:
                score += self.THIRD_AND_FIFTH_SCORE
                reasons.add("third_and_fifth")
            elif fifth:
                score += self.FIFTH_SCORE
                reasons.add("perfect_fifth")
            elif third:
                score += self.THIRD_SCORE
                reasons.add("third")
            common = self.COMMON_ROOT_BONUS.get(root, 0.0) if common_roots else 0.0
            if common > 0:
                score += common
                reasons.add("common_root")
            candidates.append(RootCandidate(root=root, confidence=score, reasons=reasons))

        candidates.sort(key=lambda c: c.confidence, reverse=True)
        return candidates

    def root_confidences(
        self, mask: int, bass: int = -1, common_roots: bool = True
    ) -> Dict[int, float]:
        """Map of root -> score for every present pitch class."""
        return {c.root: c.confidence for c in self.all_root_candidates(mask, bass, common_roots)}
